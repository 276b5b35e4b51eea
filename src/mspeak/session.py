from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO

from mspeak.address import resolve_numeric_endpoint
from mspeak.connection import ListeningHook, establish
from mspeak.errors import MspeakError
from mspeak.mode import Direction, Mode
from mspeak.preamble import consume_preamble
from mspeak.relay import TransferBuffer, receive_stream, send_stream, shutdown_connection

log = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    ADDRESS_RESOLVED = "address-resolved"
    CONNECTED = "connected"
    PREAMBLE_CONSUMED = "preamble-consumed"
    RELAYING = "relaying"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class SessionResult:
    state: SessionState
    bytes_relayed: int = 0
    preamble_found: bool | None = None


class Session:
    """One mspeak run: resolve, connect, optionally skip a preamble, relay."""

    def __init__(self, mode: Mode, address: str, stdin: BinaryIO, stdout: BinaryIO) -> None:
        self.mode = mode
        self.address = address
        self.stdin = stdin
        self.stdout = stdout
        self.state = SessionState.IDLE
        self.conn: socket.socket | None = None

    def _advance(self, state: SessionState) -> None:
        log.debug("session %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self, on_listening: ListeningHook | None = None) -> SessionResult:
        result = SessionResult(self.state)
        buffer: TransferBuffer | None = None
        try:
            endpoint = resolve_numeric_endpoint(self.address)
            self._advance(SessionState.ADDRESS_RESOLVED)

            self.conn = establish(self.mode.role, endpoint, on_listening)
            self._advance(SessionState.CONNECTED)

            buffer = TransferBuffer()

            if self.mode.fake_http:
                result.preamble_found = consume_preamble(self.conn, buffer)
                self._advance(SessionState.PREAMBLE_CONSUMED)

            self._advance(SessionState.RELAYING)
            if self.mode.direction is Direction.OUTBOUND:
                result.bytes_relayed = send_stream(self.stdin, self.conn, buffer)
            else:
                result.bytes_relayed = receive_stream(self.conn, self.stdout, buffer)
        except MspeakError:
            self._advance(SessionState.FAILED)
            raise
        finally:
            if self.conn is not None:
                shutdown_connection(self.conn)
                self.conn = None
            if buffer is not None:
                buffer.release()

        self._advance(SessionState.CLOSED)
        result.state = self.state
        return result


def run_session(
    mode: Mode,
    address: str,
    stdin: BinaryIO,
    stdout: BinaryIO,
    on_listening: ListeningHook | None = None,
) -> SessionResult:
    return Session(mode, address, stdin, stdout).run(on_listening)
