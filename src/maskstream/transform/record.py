"""
Row-level anonymization.
"""

from __future__ import annotations

from typing import Sequence

from maskstream.anonymize.fields import FieldInfo
from maskstream.anonymize.registry import FormatRegistry
from maskstream.exceptions import FieldProtectionError, RowTooShortError


def redact(value: str) -> str:
    """Describe a value without revealing it."""
    return f"<redacted:{len(value)} chars>"


class RecordTransformer:
    """
    Applies the configured protector to each anonymized column of a row.

    The header row is passed through untouched. Empty values and columns not
    flagged for anonymization are copied as-is, as are extra columns beyond
    the configured fields. A failed protect call fails the whole row; there
    is no plaintext fallback.
    """

    def __init__(self, registry: FormatRegistry):
        self.registry = registry

    def transform(
        self,
        row: Sequence[str],
        fields: Sequence[FieldInfo],
        is_header_row: bool,
        *,
        row_number: int = 0,
        file: str = "",
    ) -> list[str]:
        if len(row) < len(fields):
            raise RowTooShortError(row_number, len(fields), len(row), file=file)

        if is_header_row:
            return list(row)

        values: list[str] = []
        for column, raw in enumerate(row):
            field = fields[column] if column < len(fields) else None
            if field is None or not field.anonymize or not raw:
                values.append(raw)
                continue
            values.append(self._protect(raw, field, column, row_number, file))
        return values

    def _protect(self, raw: str, field: FieldInfo, column: int, row_number: int, file: str) -> str:
        try:
            protected = self.registry.get(field.format).protect(raw)
        except Exception as e:
            raise FieldProtectionError(row_number, column, field.name, redact(raw), file=file, cause=e) from e
        if not isinstance(protected, str):
            raise FieldProtectionError(row_number, column, field.name, redact(raw), file=file)
        return protected
