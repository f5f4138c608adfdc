"""
SinkWriter: drain a readable stream into a destination in fixed-size chunks.
"""

from __future__ import annotations

from typing import BinaryIO

from maskstream.exceptions import PipeClosedWithError, SinkWriteError
from maskstream.sinks.destinations import ChunkWriter, Destination
from maskstream.utils.logging import get_logger

logger = get_logger("maskstream.sinks.writer")

DEFAULT_CHUNK_SIZE = 1024


class SinkWriter:
    """
    Streams chunks from a readable stream to a destination object.

    Chunks are forwarded in read order and nothing beyond one chunk (plus the
    destination's own part buffer) is held in memory. The object is committed
    only after a clean end-of-stream; any read or write failure aborts it.
    """

    def __init__(self, destination: Destination, *, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be a positive integer, got {chunk_size}")
        self.destination = destination
        self.chunk_size = chunk_size

    def upload(
        self,
        stream: BinaryIO,
        destination_key: str,
        content_type: str = "text/csv",
        metadata: dict[str, str] | None = None,
        *,
        file: str = "",
    ) -> int:
        """
        Upload ``stream`` to ``destination_key``.

        Returns:
            Number of bytes written

        Raises:
            PipeClosedWithError: If the stream ended with a producer failure
            SinkWriteError: If the destination rejected a write or the commit
        """
        try:
            writer = self.destination.open_writer(destination_key, content_type, metadata)
        except Exception as e:
            raise SinkWriteError(destination_key, f"cannot open writer: {e}", file=file, cause=e) from e

        total = 0
        try:
            while True:
                chunk = stream.read(self.chunk_size)
                if not chunk:
                    break
                try:
                    writer.write(chunk)
                except Exception as e:
                    raise SinkWriteError(destination_key, str(e), file=file, cause=e) from e
                total += len(chunk)
                logger.debug(f"Uploaded {len(chunk)} bytes to {destination_key} ({total} total)")

            try:
                uri = writer.commit()
            except Exception as e:
                raise SinkWriteError(destination_key, f"commit failed: {e}", file=file, cause=e) from e
        except PipeClosedWithError:
            logger.warning(f"Aborting upload of {destination_key}: source stream failed after {total} bytes")
            self._abort(writer, destination_key)
            raise
        except BaseException:
            self._abort(writer, destination_key)
            raise

        logger.info(f"Committed {total} bytes to {uri}")
        return total

    def _abort(self, writer: ChunkWriter, destination_key: str) -> None:
        try:
            writer.abort()
        except Exception as e:
            # the upload failure propagates, not this one
            logger.error(f"Failed to abort partial upload of {destination_key}: {e}")
