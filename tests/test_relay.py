import io
import socket

import pytest

from mspeak import relay
from mspeak.errors import ReadError, ResourceExhausted, WriteError
from mspeak.relay import BUFFER_SIZE, TransferBuffer, receive_stream, send_stream, shutdown_connection


def recv_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        data = sock.recv(65536)
        if not data:
            return b"".join(chunks)
        chunks.append(data)


class RecordingConn:
    def __init__(self):
        self.sent = []

    def sendall(self, data):
        self.sent.append(bytes(data))


PAYLOADS = {
    "empty": b"",
    "short": b"hello world",
    "exact-multiple": bytes(range(256)) * (BUFFER_SIZE * 3 // 256),
    "partial-tail": b"\x00\xff" * (BUFFER_SIZE + 17),
}


@pytest.mark.parametrize("payload", PAYLOADS.values(), ids=PAYLOADS.keys())
def test_send_stream_is_byte_exact(payload, background):
    a, b = socket.socketpair()
    with a, b:
        reader = background(recv_all, b)
        assert send_stream(io.BytesIO(payload), a, TransferBuffer()) == len(payload)
        a.shutdown(socket.SHUT_WR)
        assert reader.join() == payload


@pytest.mark.parametrize("payload", PAYLOADS.values(), ids=PAYLOADS.keys())
def test_receive_stream_is_byte_exact(payload, background):
    a, b = socket.socketpair()
    with a, b:
        def writer():
            b.sendall(payload)
            b.shutdown(socket.SHUT_WR)

        feeding = background(writer)
        sink = io.BytesIO()
        assert receive_stream(a, sink, TransferBuffer()) == len(payload)
        feeding.join()
    assert sink.getvalue() == payload


def test_exact_multiple_has_no_trailing_send():
    conn = RecordingConn()
    send_stream(io.BytesIO(b"x" * (BUFFER_SIZE * 2)), conn, TransferBuffer())
    assert [len(chunk) for chunk in conn.sent] == [BUFFER_SIZE, BUFFER_SIZE]


def test_partial_tail_is_not_padded():
    conn = RecordingConn()
    send_stream(io.BytesIO(b"y" * (BUFFER_SIZE + 5)), conn, TransferBuffer())
    assert [len(chunk) for chunk in conn.sent] == [BUFFER_SIZE, 5]


def test_empty_input_sends_nothing():
    conn = RecordingConn()
    assert send_stream(io.BytesIO(b""), conn, TransferBuffer()) == 0
    assert conn.sent == []


class _FailingSource(io.RawIOBase):
    def readable(self):
        return True

    def readinto(self, view):
        raise OSError("stdin went away")


class _FailingConn:
    def sendall(self, data):
        raise BrokenPipeError("peer closed")

    def recv_into(self, view):
        raise ConnectionResetError("reset by peer")


class _FailingSink(io.RawIOBase):
    def writable(self):
        return True

    def write(self, data):
        raise OSError("disk full")


class _StalledSink(io.RawIOBase):
    def writable(self):
        return True

    def write(self, data):
        return 0


class _TrickleSink(io.RawIOBase):
    """Accepts at most three bytes per call, like a raw pipe under pressure."""

    def __init__(self):
        super().__init__()
        self.data = bytearray()

    def writable(self):
        return True

    def write(self, data):
        accepted = bytes(data[:3])
        self.data += accepted
        return len(accepted)


def test_read_failure_on_source():
    with pytest.raises(ReadError):
        send_stream(_FailingSource(), RecordingConn(), TransferBuffer())


def test_write_failure_on_socket():
    with pytest.raises(WriteError):
        send_stream(io.BytesIO(b"data"), _FailingConn(), TransferBuffer())


def test_read_failure_on_socket():
    with pytest.raises(ReadError):
        receive_stream(_FailingConn(), io.BytesIO(), TransferBuffer())


@pytest.mark.parametrize("sink_type", [_FailingSink, _StalledSink])
def test_write_failure_on_sink(sink_type):
    a, b = socket.socketpair()
    with a, b:
        b.sendall(b"data")
        b.shutdown(socket.SHUT_WR)
        with pytest.raises(WriteError):
            receive_stream(a, sink_type(), TransferBuffer())


class _StubbornConn:
    def __init__(self):
        self.closed = False

    def shutdown(self, how):
        raise OSError("not connected")

    def close(self):
        self.closed = True


def test_shutdown_failure_is_only_a_warning(caplog):
    conn = _StubbornConn()
    with caplog.at_level("WARNING", logger="mspeak.relay"):
        shutdown_connection(conn)
    assert conn.closed
    assert "socket shutdown failed" in caplog.text


def test_transfer_buffer_size():
    buffer = TransferBuffer()
    assert len(buffer) == BUFFER_SIZE
    assert len(buffer.view) == BUFFER_SIZE


def test_short_writes_are_completed():
    payload = b"partial pipe writes"
    a, b = socket.socketpair()
    with a, b:
        b.sendall(payload)
        b.shutdown(socket.SHUT_WR)
        sink = _TrickleSink()
        assert receive_stream(a, sink, TransferBuffer()) == len(payload)
    assert bytes(sink.data) == payload


def test_allocation_failure_is_resource_exhausted(monkeypatch):
    def no_memory(size):
        raise MemoryError

    monkeypatch.setattr(relay, "bytearray", no_memory, raising=False)
    with pytest.raises(ResourceExhausted):
        TransferBuffer()
