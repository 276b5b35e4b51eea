from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mspeak.errors import UsageError


class Role(Enum):
    LISTENER = "s"
    CONNECTOR = "c"


class Direction(Enum):
    INBOUND = "r"
    OUTBOUND = "w"


@dataclass(frozen=True)
class Mode:
    role: Role
    direction: Direction
    fake_http: bool = False

    def __post_init__(self) -> None:
        if self.fake_http and (self.role is not Role.LISTENER or self.direction is not Direction.OUTBOUND):
            raise UsageError("Fake HTTP only allowed in server write mode!")

    @property
    def flags(self) -> str:
        return self.role.value + self.direction.value + ("h" if self.fake_http else "")


def parse_flags(flags: str) -> Mode:
    """Parse a flag string such as ``sr``, ``wc`` or ``swh``.

    Characters may come in any order and may repeat as long as they agree.
    """
    role: Role | None = None
    direction: Direction | None = None
    fake_http = False

    for ch in flags:
        if ch in ("s", "c"):
            picked = Role(ch)
            if role is not None and role is not picked:
                raise UsageError("Invalid flag combination!")
            role = picked
        elif ch in ("r", "w"):
            picked_dir = Direction(ch)
            if direction is not None and direction is not picked_dir:
                raise UsageError("Invalid flag combination!")
            direction = picked_dir
        elif ch == "h":
            fake_http = True
        else:
            raise UsageError(f"Unrecognized flag {ch!r}!")

    if role is None or direction is None:
        raise UsageError("Required flag is missing!")
    return Mode(role, direction, fake_http)
