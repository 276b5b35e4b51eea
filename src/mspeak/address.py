from __future__ import annotations

import os
import socket
import struct
from dataclasses import dataclass
from typing import Callable

from mspeak.errors import MalformedAddress, PortOverflow

# Address strings must fit a 32-byte buffer with room for a terminator.
MAX_ADDRESS_LENGTH = 31

MAX_PORT = 0xFFFF

_DIGITS = frozenset("0123456789")
_HOST_CHARS = _DIGITS | {"."}


@dataclass(frozen=True)
class Endpoint:
    """An IPv4 address and port, both kept in numeric form."""

    octets: bytes
    port: int

    def __post_init__(self) -> None:
        if len(self.octets) != 4:
            raise MalformedAddress(f"expected 4 address octets, got {len(self.octets)}")
        if not 0 <= self.port <= MAX_PORT:
            raise PortOverflow(str(self.port))

    @property
    def host(self) -> str:
        return socket.inet_ntoa(self.octets)

    @property
    def port_bytes(self) -> bytes:
        return struct.pack("!H", self.port)

    @property
    def packed(self) -> bytes:
        """Address then port, both in network byte order."""
        return self.octets + self.port_bytes

    @property
    def sockaddr(self) -> tuple[str, int]:
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def split_endpoint(text: str) -> tuple[str, str]:
    """Split ``A.B.C.D:PORT`` into its two halves and check their characters."""
    if len(text) > MAX_ADDRESS_LENGTH:
        raise MalformedAddress(f"longer than {MAX_ADDRESS_LENGTH} characters")

    host, sep, port = text.partition(":")
    if not sep:
        raise MalformedAddress("missing ':' between address and port")
    if not host or not port:
        raise MalformedAddress("address and port must both be present")
    if not set(host) <= _HOST_CHARS:
        raise MalformedAddress(f"address {host!r} may only contain digits and dots")
    if not set(port) <= _DIGITS:
        raise MalformedAddress(f"port {port!r} may only contain digits")
    return host, port


def parse_port(digits: str) -> int:
    value = 0
    for ch in digits:
        if value > MAX_PORT // 10:
            raise PortOverflow(digits)
        value = value * 10 + (ord(ch) - ord("0"))
        if value > MAX_PORT:
            raise PortOverflow(digits)
    return value


def resolve_with_getaddrinfo(text: str) -> Endpoint:
    """Resolve through the platform resolver, restricted to numeric hosts."""
    host, port_digits = split_endpoint(text)
    port = parse_port(port_digits)
    try:
        infos = socket.getaddrinfo(
            host,
            port,
            socket.AF_INET,
            socket.SOCK_STREAM,
            socket.IPPROTO_TCP,
            socket.AI_NUMERICHOST,
        )
    except (socket.gaierror, UnicodeError) as exc:
        raise MalformedAddress(f"{host!r} is not a numeric IPv4 address") from exc

    if not infos:
        raise MalformedAddress(f"no IPv4 address for {host!r}")
    _family, _type, _proto, _canon, sockaddr = infos[0]
    resolved_host, resolved_port = sockaddr[0], sockaddr[1]
    return Endpoint(socket.inet_aton(resolved_host), resolved_port)


def resolve_with_inet_aton(text: str) -> Endpoint:
    """Resolve without a numeric-host resolver (Windows)."""
    host, port_digits = split_endpoint(text)
    try:
        octets = socket.inet_aton(host)
    except OSError as exc:
        raise MalformedAddress(f"{host!r} is not a numeric IPv4 address") from exc
    return Endpoint(octets, parse_port(port_digits))


def _select_resolver() -> Callable[[str], Endpoint]:
    if os.name == "nt" or not hasattr(socket, "AI_NUMERICHOST"):
        return resolve_with_inet_aton
    return resolve_with_getaddrinfo


resolve_numeric_endpoint: Callable[[str], Endpoint] = _select_resolver()
