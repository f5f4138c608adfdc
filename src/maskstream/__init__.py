"""
Maskstream - stream files from a source filesystem through decryption,
decompression and field-level anonymization into an object store.
"""

__version__ = "0.1.0"

from maskstream.anonymize import FieldInfo, FormatRegistry, ProtectionConfig, Protector, parse_field_spec
from maskstream.config import Config, load_config

# Exceptions
from maskstream.exceptions import (
    ConfigurationError,
    EmptyFileError,
    FieldProtectionError,
    FileTransferError,
    MalformedSpecError,
    MaskstreamError,
    PipeClosedWithError,
    ProtectorInitError,
    RecordEncodeError,
    RowTooShortError,
    SinkWriteError,
    SourceOpenError,
    SourceReadError,
)
from maskstream.job import JobSummary, TransferJob, run_job, run_job_sync
from maskstream.listing import FileDescriptor
from maskstream.sinks import SinkWriter
from maskstream.transform import FileTransferResult, RecordTransformer, StreamingPipe, TransformDriver

__all__ = [
    "__version__",
    # Pipeline
    "FieldInfo",
    "parse_field_spec",
    "Protector",
    "ProtectionConfig",
    "FormatRegistry",
    "RecordTransformer",
    "StreamingPipe",
    "TransformDriver",
    "FileTransferResult",
    "SinkWriter",
    "FileDescriptor",
    # Jobs
    "TransferJob",
    "JobSummary",
    "run_job",
    "run_job_sync",
    # Config
    "Config",
    "load_config",
    # Exceptions
    "MaskstreamError",
    "ConfigurationError",
    "MalformedSpecError",
    "ProtectorInitError",
    "FileTransferError",
    "SourceOpenError",
    "SourceReadError",
    "EmptyFileError",
    "RowTooShortError",
    "FieldProtectionError",
    "RecordEncodeError",
    "SinkWriteError",
    "PipeClosedWithError",
]
