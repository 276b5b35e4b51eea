from __future__ import annotations

import threading
from typing import Any, Callable

import pytest


class Background:
    """Run a blocking call on a daemon thread and collect its outcome."""

    def __init__(self, target: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self.result: Any = None
        self.error: BaseException | None = None
        self._thread = threading.Thread(target=self._run, args=(target, args, kwargs), daemon=True)

    def _run(self, target: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        try:
            self.result = target(*args, **kwargs)
        except BaseException as exc:  # re-raised in the test thread by join()
            self.error = exc

    def start(self) -> "Background":
        self._thread.start()
        return self

    def join(self, timeout: float = 10.0) -> Any:
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "background call did not finish"
        if self.error is not None:
            raise self.error
        return self.result


class ListenerAddress:
    """``on_listening`` hook that hands the bound address to the test thread."""

    def __init__(self) -> None:
        self._ready = threading.Event()
        self.sockaddr: tuple[str, int] | None = None

    def __call__(self, sockaddr: tuple[str, int]) -> None:
        self.sockaddr = sockaddr
        self._ready.set()

    def wait(self, timeout: float = 10.0) -> str:
        assert self._ready.wait(timeout), "listener never came up"
        assert self.sockaddr is not None
        return f"{self.sockaddr[0]}:{self.sockaddr[1]}"

    @property
    def port(self) -> int:
        assert self.sockaddr is not None
        return self.sockaddr[1]


@pytest.fixture
def listener_address() -> ListenerAddress:
    return ListenerAddress()


@pytest.fixture
def background() -> Callable[..., Background]:
    def _start(target: Callable[..., Any], *args: Any, **kwargs: Any) -> Background:
        return Background(target, *args, **kwargs).start()

    return _start
