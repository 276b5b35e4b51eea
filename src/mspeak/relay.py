from __future__ import annotations

import logging
import socket
from typing import BinaryIO

from mspeak.errors import ReadError, ResourceExhausted, WriteError

log = logging.getLogger(__name__)

BUFFER_SIZE = 4096


class TransferBuffer:
    """Scratch space shared, one phase at a time, by the scanner and the relay."""

    def __init__(self, size: int = BUFFER_SIZE) -> None:
        try:
            self.data = bytearray(size)
        except MemoryError as exc:
            raise ResourceExhausted(f"{size} bytes") from exc
        self.view = memoryview(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def release(self) -> None:
        self.view.release()


def send_stream(source: BinaryIO, conn: socket.socket, buffer: TransferBuffer) -> int:
    """Copy ``source`` into ``conn`` until ``source`` is exhausted."""
    total = 0
    while True:
        try:
            count = source.readinto(buffer.view)
        except OSError as exc:
            raise ReadError(f"from stdin: {exc}") from exc
        if not count:
            break
        try:
            conn.sendall(buffer.view[:count])
        except OSError as exc:
            raise WriteError(f"to socket: {exc}") from exc
        total += count
    log.debug("sent %d bytes", total)
    return total


def _write_all(sink: BinaryIO, data: memoryview) -> None:
    # Unbuffered sinks may accept only part of the data per call.
    while data:
        try:
            written = sink.write(data)
        except OSError as exc:
            raise WriteError(f"to stdout: {exc}") from exc
        if not written:
            raise WriteError(f"to stdout: no progress with {len(data)} bytes left")
        data = data[written:]


def receive_stream(conn: socket.socket, sink: BinaryIO, buffer: TransferBuffer) -> int:
    """Copy ``conn`` into ``sink`` until the peer closes its side."""
    total = 0
    while True:
        try:
            count = conn.recv_into(buffer.view)
        except OSError as exc:
            raise ReadError(f"from socket: {exc}") from exc
        if not count:
            break
        _write_all(sink, buffer.view[:count])
        total += count

    try:
        sink.flush()
    except OSError as exc:
        raise WriteError(f"to stdout: {exc}") from exc
    log.debug("received %d bytes", total)
    return total


def shutdown_connection(conn: socket.socket) -> None:
    """Shut down both directions, then close. Failures are only logged."""
    try:
        conn.shutdown(socket.SHUT_RDWR)
    except OSError as exc:
        log.warning("socket shutdown failed: %s", exc)
    try:
        conn.close()
    except OSError as exc:
        log.warning("problem closing socket: %s", exc)
