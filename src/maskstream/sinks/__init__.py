"""
Destination side of a transfer.
"""

from maskstream.sinks.destinations import (
    ChunkWriter,
    Destination,
    FilesystemDestination,
    FilesystemWriter,
    S3Destination,
    S3MultipartWriter,
    build_destination,
)
from maskstream.sinks.writer import SinkWriter

__all__ = [
    "ChunkWriter",
    "Destination",
    "FilesystemDestination",
    "FilesystemWriter",
    "S3Destination",
    "S3MultipartWriter",
    "SinkWriter",
    "build_destination",
]
