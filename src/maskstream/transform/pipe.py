"""
Bounded single-producer single-consumer byte pipe.

Joins the producer thread (framing anonymized rows) to the consumer thread
(uploading chunks). The buffer never holds more than ``capacity`` bytes: a
writer blocks while it is full and a reader blocks while it is empty and the
writer is still open.

Failure is carried through close semantics in both directions:

- ``close_writer(error)``: the reader drains what is already buffered, then
  gets ``PipeClosedWithError`` instead of a clean end-of-stream.
- ``abort(error)``: a writer blocked on a full buffer wakes up and gets
  ``PipeClosedWithError``, so the producer can release its source.
"""

from __future__ import annotations

import io
import threading

from maskstream.exceptions import PipeClosedWithError

DEFAULT_CAPACITY = 1024


class StreamingPipe:
    """In-memory pipe with backpressure and closed-with-error semantics."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"Pipe capacity must be a positive integer, got {capacity}")
        self.capacity = capacity
        self._buffer = bytearray()
        self._cond = threading.Condition()
        self._writer_closed = False
        self._writer_error: BaseException | None = None
        self._reader_error: BaseException | None = None
        self.bytes_written = 0
        self.bytes_read = 0
        self.writer = PipeWriter(self)
        self.reader = PipeReader(self)

    # --- write end ---------------------------------------------------------

    def write(self, data: bytes) -> int:
        """
        Write all of ``data``, blocking while the buffer is full.

        Raises:
            PipeClosedWithError: If the reader aborted, or the write end is closed
        """
        data = bytes(data)
        with self._cond:
            if self._writer_closed:
                raise PipeClosedWithError("Write to a pipe whose write end is closed")
            offset = 0
            while offset < len(data):
                while len(self._buffer) >= self.capacity and self._reader_error is None:
                    self._cond.wait()
                if self._reader_error is not None:
                    raise PipeClosedWithError("Reader aborted the pipe", cause=self._reader_error)
                n = min(self.capacity - len(self._buffer), len(data) - offset)
                self._buffer += data[offset : offset + n]
                offset += n
                self.bytes_written += n
                self._cond.notify_all()
        return len(data)

    def close_writer(self, error: BaseException | None = None) -> None:
        """Close the write end, cleanly or with the error that stopped the producer."""
        with self._cond:
            if self._writer_closed:
                return
            self._writer_closed = True
            self._writer_error = error
            self._cond.notify_all()

    # --- read end ----------------------------------------------------------

    def read(self, size: int = -1) -> bytes:
        """
        Read up to ``size`` bytes (all buffered bytes if negative).

        Blocks until data is available or the writer has closed. Returns
        ``b""`` once the writer closed cleanly and the buffer is drained.

        Raises:
            PipeClosedWithError: Once drained, if the writer closed with an
                error; or if this pipe was aborted
        """
        with self._cond:
            while not self._buffer and not self._writer_closed and self._reader_error is None:
                self._cond.wait()
            if self._reader_error is not None:
                raise PipeClosedWithError("Read from an aborted pipe", cause=self._reader_error)
            if self._buffer:
                n = len(self._buffer) if size is None or size < 0 else min(size, len(self._buffer))
                chunk = bytes(self._buffer[:n])
                del self._buffer[:n]
                self.bytes_read += n
                self._cond.notify_all()
                return chunk
            if self._writer_error is not None:
                raise PipeClosedWithError("Producer failed before end of stream", cause=self._writer_error)
            return b""

    def abort(self, error: BaseException | None = None) -> None:
        """Stop the pipe from the read side; buffered bytes are discarded."""
        with self._cond:
            if self._reader_error is not None:
                return
            self._reader_error = error or PipeClosedWithError("Reader closed before end of stream")
            self._buffer.clear()
            self._cond.notify_all()

    @property
    def closed_cleanly(self) -> bool:
        with self._cond:
            return self._writer_closed and self._writer_error is None and self._reader_error is None

    @property
    def buffered(self) -> int:
        with self._cond:
            return len(self._buffer)

    def __repr__(self) -> str:
        return (
            f"StreamingPipe(capacity={self.capacity}, written={self.bytes_written}, "
            f"read={self.bytes_read}, writer_closed={self._writer_closed})"
        )


class PipeWriter(io.RawIOBase):
    """File-like write end of a StreamingPipe."""

    def __init__(self, pipe: StreamingPipe):
        super().__init__()
        self._pipe = pipe

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise PipeClosedWithError("Write to a closed pipe writer")
        return self._pipe.write(b)

    def fail(self, error: BaseException) -> None:
        """Close the write end abnormally."""
        self._pipe.close_writer(error)
        super().close()

    def close(self) -> None:
        if not self.closed:
            self._pipe.close_writer()
        super().close()


class PipeReader(io.RawIOBase):
    """File-like read end of a StreamingPipe."""

    def __init__(self, pipe: StreamingPipe):
        super().__init__()
        self._pipe = pipe
        self._eof = False

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise ValueError("read from closed pipe reader")
        chunk = self._pipe.read(size)
        if not chunk:
            self._eof = True
        return chunk

    def readinto(self, b) -> int:
        chunk = self.read(len(b))
        n = len(chunk)
        b[:n] = chunk
        return n

    def readall(self) -> bytes:
        parts = []
        while True:
            chunk = self.read(self._pipe.capacity)
            if not chunk:
                return b"".join(parts)
            parts.append(chunk)

    def close(self) -> None:
        # Closing before end-of-stream releases a writer blocked on a full buffer
        if not self.closed and not self._eof:
            self._pipe.abort()
        super().close()
