from __future__ import annotations

import logging
import socket
from dataclasses import dataclass

from mspeak.errors import ScanError
from mspeak.relay import TransferBuffer

log = logging.getLogger(__name__)

CR = 0x0D
LF = 0x0A


@dataclass
class PreambleScanner:
    """Finds the blank line that ends an HTTP-style request preamble.

    CR bytes are ignored, so ``\\n\\n`` and ``\\r\\n\\r\\n`` both terminate.
    State survives between :meth:`feed` calls, so chunks may be split anywhere.
    """

    after_newline: bool = False
    found: bool = False

    def feed(self, chunk: bytes | bytearray | memoryview) -> int | None:
        """Scan one chunk.

        Returns the offset just past the terminating LF, or ``None`` if the
        chunk does not complete the blank line.
        """
        if self.found:
            return 0
        for i, byte in enumerate(chunk):
            if byte == CR:
                continue
            if byte == LF:
                if self.after_newline:
                    self.found = True
                    return i + 1
                self.after_newline = True
            else:
                self.after_newline = False
        return None


def consume_preamble(conn: socket.socket, buffer: TransferBuffer) -> bool:
    """Read and discard the peer's request up to and including a blank line.

    Returns ``False`` if the peer closed the connection before sending one.
    Anything received after the blank line in the same read is dropped too.
    """
    scanner = PreambleScanner()
    discarded = 0
    while True:
        try:
            count = conn.recv_into(buffer.view)
        except OSError as exc:
            raise ScanError(str(exc)) from exc
        if not count:
            break
        end = scanner.feed(buffer.view[:count])
        if end is not None:
            discarded += end
            log.debug("request preamble consumed (%d bytes)", discarded)
            return True
        discarded += count

    # TODO: decide whether a peer that closes mid-preamble should fail the
    # session instead of falling through to an outbound relay nobody reads.
    log.warning("peer closed before ending its request (%d bytes discarded)", discarded)
    return False
