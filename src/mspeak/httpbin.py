from __future__ import annotations

import os
import stat
from typing import BinaryIO

from mspeak.errors import FramingError, ReadError, WriteError
from mspeak.relay import BUFFER_SIZE


def response_header(length: int) -> bytes:
    """Status line and headers for a binary download, CRLF terminated."""
    return (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: application/octet-stream\r\n"
        f"Content-Length: {length}\r\n"
        "\r\n"
    ).encode("ascii")


def frame_file(path: str | os.PathLike[str], sink: BinaryIO) -> int:
    """Write ``path`` to ``sink`` wrapped in a minimal HTTP response.

    Pipe the output into ``mspeak swh`` to hand the file to a web browser.
    Returns the payload length announced in ``Content-Length``.
    """
    try:
        src = open(path, "rb")
    except OSError as exc:
        raise FramingError(f"{path}: {exc}") from exc

    with src:
        try:
            if not stat.S_ISREG(os.fstat(src.fileno()).st_mode):
                raise FramingError(f"{path} is not a regular file")
            src.seek(0, os.SEEK_END)
            length = src.tell()
            src.seek(0)
        except OSError as exc:
            raise FramingError(f"could not determine length of {path}: {exc}") from exc

        try:
            sink.write(response_header(length))
        except OSError as exc:
            raise WriteError(f"HTTP header: {exc}") from exc

        remaining = length
        while remaining > 0:
            try:
                chunk = src.read(min(BUFFER_SIZE, remaining))
            except OSError as exc:
                raise ReadError(f"from {path}: {exc}") from exc
            if not chunk:
                raise ReadError(f"{path} ended {remaining} bytes early")
            try:
                sink.write(chunk)
            except OSError as exc:
                raise WriteError(f"to output: {exc}") from exc
            remaining -= len(chunk)

    try:
        sink.flush()
    except OSError as exc:
        raise WriteError(f"to output: {exc}") from exc
    return length
