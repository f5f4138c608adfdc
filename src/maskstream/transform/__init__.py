"""
Streaming file transform: row anonymization, CSV framing, the bounded pipe
and the per-file driver.
"""

from maskstream.transform.codec import CsvCodec
from maskstream.transform.driver import FileTransferResult, TransferState, TransformDriver
from maskstream.transform.pipe import PipeReader, PipeWriter, StreamingPipe
from maskstream.transform.record import RecordTransformer

__all__ = [
    "CsvCodec",
    "FileTransferResult",
    "PipeReader",
    "PipeWriter",
    "RecordTransformer",
    "StreamingPipe",
    "TransferState",
    "TransformDriver",
]
