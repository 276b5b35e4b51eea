from __future__ import annotations

import logging
import socket
from typing import Callable

from mspeak.address import Endpoint
from mspeak.errors import AcceptError, BindError, ConnectError, ListenError, SocketError
from mspeak.mode import Role

log = logging.getLogger(__name__)

# Exactly one client is ever accepted.
LISTEN_BACKLOG = 1

ListeningHook = Callable[[tuple[str, int]], None]


def _open_socket() -> socket.socket:
    try:
        return socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as exc:
        raise SocketError(str(exc)) from exc


def _close_quietly(sock: socket.socket) -> None:
    try:
        sock.close()
    except OSError as exc:
        log.warning("problem closing socket: %s", exc)


def accept_one(endpoint: Endpoint, on_listening: ListeningHook | None = None) -> socket.socket:
    """Listen on ``endpoint``, accept a single client and stop listening.

    The listening socket is closed before returning whether or not the accept
    succeeded, so later connection attempts are refused.
    """
    server = _open_socket()
    try:
        try:
            # A previous run's socket may still be in TIME_WAIT.
            server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as exc:
            raise SocketError(f"could not set server socket options: {exc}") from exc

        try:
            server.bind(endpoint.sockaddr)
        except OSError as exc:
            raise BindError(f"{endpoint}: {exc}") from exc

        try:
            server.listen(LISTEN_BACKLOG)
        except OSError as exc:
            raise ListenError(str(exc)) from exc

        bound = server.getsockname()
        log.info("listening on tcp://%s:%d", bound[0], bound[1])
        if on_listening is not None:
            on_listening(bound)

        try:
            conn, peer = server.accept()
        except OSError as exc:
            raise AcceptError(str(exc)) from exc
    finally:
        _close_quietly(server)

    log.info("accepted connection from %s:%d", peer[0], peer[1])
    return conn


def connect_once(endpoint: Endpoint) -> socket.socket:
    """Open one blocking connection to ``endpoint``. There is no retry."""
    sock = _open_socket()
    try:
        sock.connect(endpoint.sockaddr)
    except OSError as exc:
        _close_quietly(sock)
        raise ConnectError(f"{endpoint}: {exc}") from exc

    log.info("connected to tcp://%s", endpoint)
    return sock


def establish(role: Role, endpoint: Endpoint, on_listening: ListeningHook | None = None) -> socket.socket:
    if role is Role.LISTENER:
        return accept_one(endpoint, on_listening)
    return connect_once(endpoint)
