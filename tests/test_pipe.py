"""
Tests for StreamingPipe: backpressure and closed-with-error semantics.
"""

import threading
import time

import pytest

from maskstream.exceptions import PipeClosedWithError
from maskstream.transform.pipe import StreamingPipe


def _start(target, *args):
    outcome = {}

    def run():
        try:
            outcome["result"] = target(*args)
        except BaseException as e:
            outcome["error"] = e

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, outcome


class TestBasics:
    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            StreamingPipe(0)

    def test_read_after_clean_close_returns_eof(self):
        pipe = StreamingPipe(16)
        pipe.writer.write(b"abc")
        pipe.writer.close()
        assert pipe.reader.read(10) == b"abc"
        assert pipe.reader.read(10) == b""
        assert pipe.closed_cleanly is True

    def test_read_respects_size(self):
        pipe = StreamingPipe(16)
        pipe.write(b"abcdef")
        assert pipe.read(4) == b"abcd"
        assert pipe.read(4) == b"ef"

    def test_write_after_close_fails(self):
        pipe = StreamingPipe(16)
        pipe.close_writer()
        with pytest.raises(PipeClosedWithError):
            pipe.write(b"x")

    def test_writer_adapter_rejects_writes_when_closed(self):
        pipe = StreamingPipe(16)
        pipe.writer.close()
        with pytest.raises(PipeClosedWithError):
            pipe.writer.write(b"x")


class TestBackpressure:
    def test_buffer_never_exceeds_capacity(self):
        pipe = StreamingPipe(8)
        payload = bytes(range(256)) * 4
        observed = []

        def consume():
            parts = []
            while True:
                observed.append(pipe.buffered)
                chunk = pipe.reader.read(3)
                if not chunk:
                    return b"".join(parts)
                parts.append(chunk)

        thread, outcome = _start(consume)
        pipe.writer.write(payload)
        pipe.writer.close()
        thread.join(timeout=5)

        assert outcome["result"] == payload
        assert max(observed) <= 8

    def test_writer_blocks_while_full(self):
        pipe = StreamingPipe(4)
        thread, outcome = _start(pipe.write, b"0123456789")
        time.sleep(0.1)

        assert thread.is_alive()
        assert pipe.buffered == 4

        received = b""
        while len(received) < 10:
            received += pipe.read(4)
        thread.join(timeout=5)
        assert outcome["result"] == 10
        assert received == b"0123456789"

    def test_bytes_delivered_in_order_exactly_once(self):
        pipe = StreamingPipe(5)
        rows = [f"row-{i}\r\n".encode() for i in range(200)]

        def produce():
            for row in rows:
                pipe.writer.write(row)
            pipe.writer.close()

        thread, _ = _start(produce)
        data = pipe.reader.readall()
        thread.join(timeout=5)

        assert data == b"".join(rows)
        assert pipe.bytes_written == pipe.bytes_read == len(data)


class TestClosedWithError:
    def test_reader_drains_then_gets_error(self):
        pipe = StreamingPipe(16)
        cause = ValueError("row 5 failed")
        pipe.writer.write(b"partial")
        pipe.writer.fail(cause)

        assert pipe.reader.read(100) == b"partial"
        with pytest.raises(PipeClosedWithError) as exc_info:
            pipe.reader.read(100)
        assert exc_info.value.cause is cause
        assert pipe.closed_cleanly is False

    def test_blocked_reader_wakes_on_error(self):
        pipe = StreamingPipe(16)
        thread, outcome = _start(pipe.read, 10)
        time.sleep(0.05)
        pipe.close_writer(RuntimeError("boom"))
        thread.join(timeout=5)
        assert isinstance(outcome["error"], PipeClosedWithError)

    def test_abort_wakes_blocked_writer(self):
        pipe = StreamingPipe(4)
        cause = OSError("upload failed")
        thread, outcome = _start(pipe.write, b"x" * 100)
        time.sleep(0.05)
        assert thread.is_alive()

        pipe.abort(cause)
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert isinstance(outcome["error"], PipeClosedWithError)
        assert outcome["error"].cause is cause

    def test_write_after_abort_fails(self):
        pipe = StreamingPipe(16)
        pipe.abort()
        with pytest.raises(PipeClosedWithError):
            pipe.write(b"x")
        assert pipe.buffered == 0

    def test_abort_discards_buffer(self):
        pipe = StreamingPipe(16)
        pipe.write(b"abc")
        pipe.abort(RuntimeError("stop"))
        with pytest.raises(PipeClosedWithError):
            pipe.read(10)

    def test_closing_reader_early_releases_writer(self):
        pipe = StreamingPipe(2)
        thread, outcome = _start(pipe.writer.write, b"abcdef")
        time.sleep(0.05)
        pipe.reader.close()
        thread.join(timeout=5)
        assert isinstance(outcome["error"], PipeClosedWithError)
