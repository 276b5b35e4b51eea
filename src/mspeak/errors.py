from __future__ import annotations


class MspeakError(Exception):
    """Base class for every failure that ends an mspeak invocation."""

    summary = "Operation failed!"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(self.summary if not detail else f"{self.summary} ({detail})")


class UsageError(MspeakError):
    summary = "Invalid command line!"

    def __init__(self, detail: str | None = None) -> None:
        # Usage problems are reported with their own message only.
        self.detail = detail
        Exception.__init__(self, detail or self.summary)


class MalformedAddress(MspeakError):
    summary = "Address is not valid!"


class PortOverflow(MalformedAddress):
    summary = "Port is out of range!"


class SocketError(MspeakError):
    summary = "Could not open a socket!"


class ConnectError(MspeakError):
    summary = "Could not connect to server!"


class BindError(MspeakError):
    summary = "Could not bind server socket to address!"


class ListenError(MspeakError):
    summary = "Could not listen for incoming connections!"


class AcceptError(MspeakError):
    summary = "Could not accept the incoming connection!"


class ScanError(MspeakError):
    summary = "Read error during fake HTTP handling!"


class ReadError(MspeakError):
    summary = "Error reading data!"


class WriteError(MspeakError):
    summary = "Error writing data!"


class ResourceExhausted(MspeakError):
    summary = "Couldn't allocate I/O buffer!"


class FramingError(MspeakError):
    summary = "Couldn't open input file!"
