"""
Tests for the exception hierarchy.
"""

import pytest

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


class TestHierarchy:
    """Verify all exceptions inherit from MaskstreamError."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            MalformedSpecError,
            ProtectorInitError,
            FileTransferError,
            SourceOpenError,
            SourceReadError,
            EmptyFileError,
            RowTooShortError,
            FieldProtectionError,
            RecordEncodeError,
            SinkWriteError,
            PipeClosedWithError,
        ],
    )
    def test_inherits_from_maskstream_error(self, exc_class):
        assert issubclass(exc_class, MaskstreamError)

    @pytest.mark.parametrize("exc_class", [MalformedSpecError, ProtectorInitError])
    def test_job_fatal_errors_are_configuration_errors(self, exc_class):
        assert issubclass(exc_class, ConfigurationError)

    @pytest.mark.parametrize(
        "exc_class",
        [
            SourceOpenError,
            SourceReadError,
            EmptyFileError,
            RowTooShortError,
            FieldProtectionError,
            RecordEncodeError,
            SinkWriteError,
        ],
    )
    def test_file_fatal_errors_are_transfer_errors(self, exc_class):
        assert issubclass(exc_class, FileTransferError)

    def test_pipe_error_is_not_a_transfer_error(self):
        assert not issubclass(PipeClosedWithError, FileTransferError)


class TestExceptionMessages:
    """Test exception constructors and details."""

    def test_maskstream_error(self):
        e = MaskstreamError("boom", details={"key": "val"})
        assert str(e) == "boom"
        assert e.message == "boom"
        assert e.details == {"key": "val"}

    def test_malformed_spec_error(self):
        e = MalformedSpecError("a:b", "expected 3 tokens")
        assert "a:b" in str(e)
        assert e.record == "a:b"

    def test_protector_init_error_keeps_cause(self):
        cause = OSError("libfpe.so not found")
        e = ProtectorInitError("cc", "load failed", cause=cause)
        assert e.format_tag == "cc"
        assert "cc" in str(e)
        assert e.__cause__ is cause

    def test_source_open_error(self):
        e = SourceOpenError("/in/a.csv", "not_found", "missing")
        assert e.file == "/in/a.csv"
        assert e.reason == "not_found"
        assert e.details == {"file": "/in/a.csv", "reason": "not_found"}

    def test_row_too_short_error(self):
        e = RowTooShortError(3, 4, 2, file="/in/a.csv")
        assert e.row == 3
        assert e.expected == 4
        assert e.actual == 2
        assert "line 3" in str(e)
        assert "/in/a.csv" in str(e)

    def test_field_protection_error_identifies_row_and_column(self):
        e = FieldProtectionError(5, 1, "card", "<redacted:16 chars>", file="/in/a.csv")
        assert e.row == 5
        assert e.column == 1
        assert e.field_name == "card"
        assert "card" in str(e)
        assert "<redacted:16 chars>" in str(e)

    def test_record_encode_error(self):
        cause = UnicodeEncodeError("latin-1", "€", 0, 1, "ordinal not in range(256)")
        e = RecordEncodeError("/in/a.csv", 7, str(cause), cause=cause)
        assert e.file == "/in/a.csv"
        assert e.row == 7
        assert "row 7" in str(e)
        assert e.__cause__ is cause

    def test_sink_write_error(self):
        cause = OSError("reset")
        e = SinkWriteError("out/a.csv", "write failed", file="/in/a.csv", cause=cause)
        assert e.destination_key == "out/a.csv"
        assert e.file == "/in/a.csv"
        assert e.__cause__ is cause

    def test_pipe_closed_with_error_exposes_cause(self):
        cause = ValueError("producer died")
        e = PipeClosedWithError("closed", cause=cause)
        assert e.cause is cause
        assert e.__cause__ is cause

    def test_catchable_with_base(self):
        """All exceptions can be caught with MaskstreamError."""
        with pytest.raises(MaskstreamError):
            raise EmptyFileError("/in/empty.csv")

        with pytest.raises(FileTransferError):
            raise RowTooShortError(1, 2, 1)
