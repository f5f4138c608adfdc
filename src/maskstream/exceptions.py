"""
Maskstream exception hierarchy.

All domain-specific exceptions inherit from MaskstreamError, making it easy
to catch any pipeline error with a single base class while still allowing
fine-grained handling when needed.

Hierarchy::

    MaskstreamError
    ├── ConfigurationError        - job-fatal, raised before any file is processed
    │   ├── MalformedSpecError    - field specification string cannot be parsed
    │   └── ProtectorInitError    - protection engine could not be built
    ├── FileTransferError         - file-fatal, the job continues with other files
    │   ├── SourceOpenError       - source missing, unreadable or not parseable
    │   ├── SourceReadError       - source became unreadable mid-file
    │   ├── EmptyFileError        - source has zero rows
    │   ├── RowTooShortError      - row has fewer columns than configured fields
    │   ├── FieldProtectionError  - protect call failed for one value
    │   ├── RecordEncodeError     - output row cannot be encoded
    │   └── SinkWriteError        - destination write/commit failed
    └── PipeClosedWithError       - internal producer/consumer failure signal
"""

from __future__ import annotations


class MaskstreamError(Exception):
    """Base exception for all Maskstream errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(MaskstreamError):
    """Raised when configuration loading, parsing, or validation fails."""


class MalformedSpecError(ConfigurationError):
    """Raised when a field specification record is not ``name:flag:format``."""

    def __init__(self, record: str, message: str) -> None:
        super().__init__(f"Malformed field spec '{record}': {message}", details={"record": record})
        self.record = record


class ProtectorInitError(ConfigurationError):
    """Raised when a protector for a format tag cannot be constructed."""

    def __init__(self, format_tag: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(
            f"Cannot build protector for format '{format_tag}': {message}",
            details={"format": format_tag},
        )
        self.format_tag = format_tag
        if cause is not None:
            self.__cause__ = cause


# --- Per-file failures -------------------------------------------------------


class FileTransferError(MaskstreamError):
    """Raised when a single file cannot be transferred.

    ``file`` identifies the source file (its full path) so callers can report
    failures per file.
    """

    def __init__(self, file: str, message: str, *, details: dict | None = None) -> None:
        merged = {"file": file}
        merged.update(details or {})
        super().__init__(f"{message} (file '{file}')", details=merged)
        self.file = file


class SourceOpenError(FileTransferError):
    """Raised when a source file cannot be opened or parsed.

    ``reason`` is one of ``not_found``, ``access_denied``, ``io_error`` or
    ``unparseable``.
    """

    def __init__(self, file: str, reason: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(file, message, details={"reason": reason})
        self.reason = reason
        if cause is not None:
            self.__cause__ = cause


class SourceReadError(FileTransferError):
    """Raised when reading or parsing fails after the first row."""

    def __init__(self, file: str, row: int, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(file, f"Read failed after row {row}: {message}", details={"row": row})
        self.row = row
        if cause is not None:
            self.__cause__ = cause


class EmptyFileError(FileTransferError):
    """Raised when a source file contains no rows."""

    def __init__(self, file: str) -> None:
        super().__init__(file, "The input file is empty")


class RowTooShortError(FileTransferError):
    """Raised when a row has fewer columns than there are configured fields."""

    def __init__(self, row: int, expected: int, actual: int, *, file: str = "") -> None:
        super().__init__(
            file,
            f"Invalid number of columns at line {row}: expected at least {expected}, got {actual}",
            details={"row": row, "expected": expected, "actual": actual},
        )
        self.row = row
        self.expected = expected
        self.actual = actual


class FieldProtectionError(FileTransferError):
    """Raised when a value cannot be anonymized.

    Only a redacted form of the raw value is kept on the exception.
    """

    def __init__(
        self,
        row: int,
        column: int,
        field_name: str,
        redacted_value: str,
        *,
        file: str = "",
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            file,
            f"Unable to anonymize value {redacted_value} for column '{field_name}' "
            f"(index {column}) at line {row}",
            details={"row": row, "column": column, "field": field_name},
        )
        self.row = row
        self.column = column
        self.field_name = field_name
        self.redacted_value = redacted_value
        if cause is not None:
            self.__cause__ = cause


class RecordEncodeError(FileTransferError):
    """Raised when an output row cannot be framed or encoded in the output charset."""

    def __init__(self, file: str, row: int, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(file, f"Cannot encode output row {row}: {message}", details={"row": row})
        self.row = row
        if cause is not None:
            self.__cause__ = cause


class SinkWriteError(FileTransferError):
    """Raised when the destination store rejects a write or commit."""

    def __init__(self, destination_key: str, message: str, *, file: str = "", cause: Exception | None = None) -> None:
        super().__init__(file, f"Upload to '{destination_key}' failed: {message}", details={"key": destination_key})
        self.destination_key = destination_key
        if cause is not None:
            self.__cause__ = cause


# --- Internal ----------------------------------------------------------------


class PipeClosedWithError(MaskstreamError):
    """Raised on one end of a StreamingPipe after the other end failed.

    Not user-visible: the driver translates it into the originating error.
    """

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
