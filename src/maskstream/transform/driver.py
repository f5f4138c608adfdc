"""
TransformDriver: one file from source stream to committed destination object.

Per file, two tasks run concurrently on the driver's thread pool:

- producer: parse rows, anonymize them, frame them as CSV into a StreamingPipe
- consumer: SinkWriter draining the pipe into the destination

The pipe carries failures both ways (closed-with-error / abort). The
producer's future is awaited as a second signal before a transfer is
reported as successful.
"""

from __future__ import annotations

import asyncio
import functools
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Sequence

from maskstream.anonymize.fields import FieldInfo
from maskstream.anonymize.registry import FormatRegistry
from maskstream.exceptions import (
    EmptyFileError,
    MaskstreamError,
    PipeClosedWithError,
    RecordEncodeError,
    SourceOpenError,
    SourceReadError,
)
from maskstream.listing.descriptor import FileDescriptor
from maskstream.sinks.writer import SinkWriter
from maskstream.sources.opener import UNPARSEABLE, SourceOpener, SourceStream
from maskstream.transform.codec import CsvCodec
from maskstream.transform.pipe import DEFAULT_CAPACITY, PipeWriter, StreamingPipe
from maskstream.transform.record import RecordTransformer
from maskstream.utils.logging import get_logger

logger = get_logger("maskstream.transform.driver")


class TransferState(str, Enum):
    """Lifecycle of one file transfer."""

    PENDING = "pending"
    OPENED = "opened"
    TRANSFORMING = "transforming"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class FileTransferResult:
    """Outcome of one file transfer."""

    descriptor: FileDescriptor
    destination_key: str
    state: TransferState = TransferState.PENDING
    bytes_written: int = 0
    rows: int = 0
    duration_s: float = 0.0
    error: MaskstreamError | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.state == TransferState.COMPLETED and self.error is None


@dataclass
class _OpenedSource:
    source: SourceStream
    rows: Iterator[list[str]]
    first_row: list[str]


class TransformDriver:
    """
    Drives the per-file transform pipeline.

    The driver owns a thread pool with two workers per concurrent file so a
    producer blocked on a full pipe can never starve its own consumer.
    """

    def __init__(
        self,
        fields: Sequence[FieldInfo],
        registry: FormatRegistry,
        *,
        codec: CsvCodec | None = None,
        source_opener: SourceOpener | None = None,
        buffer_size: int = DEFAULT_CAPACITY,
        header: bool = True,
        max_concurrent_files: int = 1,
        executor: ThreadPoolExecutor | None = None,
    ):
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be a positive integer, got {buffer_size}")
        self.fields = list(fields)
        self.registry = registry
        self.codec = codec or CsvCodec()
        self.source_opener = source_opener or SourceOpener()
        self.buffer_size = buffer_size
        self.header = header
        self.transformer = RecordTransformer(registry)
        # a shared executor needs two free workers per concurrent file
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2 * max(1, max_concurrent_files),
            thread_name_prefix="maskstream-transfer",
        )

    # --- public API ----------------------------------------------------------

    async def transfer(
        self,
        descriptor: FileDescriptor,
        sink: SinkWriter,
        destination_key: str,
        *,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> FileTransferResult:
        """
        Transform one file and stream it to ``destination_key``.

        Returns:
            A completed FileTransferResult

        Raises:
            SourceOpenError: Source missing, unreadable or not parseable
            EmptyFileError: Source has zero rows (raised before the sink is touched)
            SourceReadError: Source failed mid-file
            RowTooShortError: A row has fewer columns than configured fields
            FieldProtectionError: A value could not be anonymized
            RecordEncodeError: An output row cannot be encoded in the codec charset
            SinkWriteError: The destination rejected a write or the commit
        """
        loop = asyncio.get_running_loop()
        started = time.monotonic()
        result = FileTransferResult(descriptor, destination_key, metadata=dict(metadata or {}))

        opened = await loop.run_in_executor(self._executor, self._open, descriptor)
        result.state = TransferState.OPENED
        logger.info(f"Transferring {descriptor.source_uri} -> {destination_key}")

        pipe = StreamingPipe(self.buffer_size)
        producer = loop.run_in_executor(self._executor, self._produce, descriptor, opened, pipe.writer)
        result.state = TransferState.TRANSFORMING

        upload = functools.partial(
            sink.upload,
            pipe.reader,
            destination_key,
            content_type or self.codec.content_type,
            result.metadata,
            file=descriptor.full_path,
        )
        try:
            result.bytes_written = await loop.run_in_executor(self._executor, upload)
        except PipeClosedWithError:
            # The producer failed and the sink aborted; report the producer's error
            result.state = TransferState.FAILED
            await producer
            raise
        except BaseException as e:
            result.state = TransferState.FAILED
            pipe.abort(e)
            await self._drain_producer(producer, descriptor)
            raise

        result.rows = await producer
        result.state = TransferState.COMPLETED
        result.duration_s = time.monotonic() - started
        logger.info(
            f"Completed {descriptor.full_path}: {result.rows} rows, "
            f"{result.bytes_written} bytes in {result.duration_s:.2f}s"
        )
        return result

    def transfer_sync(
        self,
        descriptor: FileDescriptor,
        sink: SinkWriter,
        destination_key: str,
        *,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> FileTransferResult:
        """Blocking wrapper around ``transfer`` for synchronous callers."""
        return asyncio.run(
            self.transfer(descriptor, sink, destination_key, content_type=content_type, metadata=metadata)
        )

    def close(self) -> None:
        """Shut down the worker threads and release source connections."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self.source_opener.close()

    def __enter__(self) -> TransformDriver:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- producer side ---------------------------------------------------------

    def _open(self, descriptor: FileDescriptor) -> _OpenedSource:
        """Open the source and read the first row, so empty files fail before any upload."""
        source = self.source_opener.open(descriptor)
        try:
            rows = self.codec.parse_rows(source)  # type: ignore[arg-type]
            first_row = next(rows, None)
        except Exception as e:
            source.close()
            raise SourceOpenError(
                descriptor.full_path, UNPARSEABLE, f"Not parseable as delimited text: {e}", cause=e
            ) from e

        if first_row is None:
            source.close()
            logger.warning(f"The input file '{descriptor.full_path}' is empty")
            raise EmptyFileError(descriptor.full_path)
        return _OpenedSource(source, rows, first_row)

    def _produce(self, descriptor: FileDescriptor, opened: _OpenedSource, writer: PipeWriter) -> int:
        """Transform rows in file order into the pipe; returns the number of rows written."""
        row_number = 1
        row: list[str] | None = opened.first_row
        try:
            while row is not None:
                values = self.transformer.transform(
                    row,
                    self.fields,
                    self.header and row_number == 1,
                    row_number=row_number,
                    file=descriptor.full_path,
                )
                try:
                    framed = self.codec.serialize_row(values)
                except Exception as e:
                    raise RecordEncodeError(descriptor.full_path, row_number, str(e), cause=e) from e
                writer.write(framed)
                try:
                    row = next(opened.rows, None)
                except Exception as e:
                    raise SourceReadError(descriptor.full_path, row_number, str(e), cause=e) from e
                if row is not None:
                    row_number += 1
            writer.close()
            logger.debug(f"Processed all {row_number} records of {descriptor.full_path}")
            return row_number
        except BaseException as e:
            if not isinstance(e, PipeClosedWithError):
                logger.error(f"Transform of {descriptor.full_path} failed at row {row_number}: {e}")
            writer.fail(e)
            raise
        finally:
            opened.source.close()

    async def _drain_producer(self, producer: asyncio.Future, descriptor: FileDescriptor) -> None:
        """Wait for an aborted producer to release its source."""
        try:
            await producer
        except PipeClosedWithError:
            pass
        except Exception as e:
            logger.warning(f"Producer for {descriptor.full_path} also failed after the upload aborted: {e}")
