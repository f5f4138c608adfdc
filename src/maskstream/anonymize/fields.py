"""
Field anonymization specification.

A job is configured with a flat string such as
``id:No:none,card:Yes:cc,ssn:yes:ssn-format``: one ``name:flag:format``
record per column, in column order.
"""

from __future__ import annotations

from dataclasses import dataclass

from maskstream.exceptions import MalformedSpecError

RECORD_SEPARATOR = ","
TOKEN_SEPARATOR = ":"


@dataclass(frozen=True)
class FieldInfo:
    """One column of the field specification."""

    name: str
    anonymize: bool
    format: str

    def __str__(self) -> str:
        flag = "Yes" if self.anonymize else "No"
        return TOKEN_SEPARATOR.join((self.name, flag, self.format))


def parse_field_spec(spec: str) -> list[FieldInfo]:
    """
    Parse a field specification string into ordered FieldInfo records.

    Empty tokens are preserved (``a::fmt`` is a field named ``a`` that is not
    anonymized). The flag is ``Yes`` in any casing for anonymized columns;
    any other value means pass-through.

    Raises:
        MalformedSpecError: If the spec is blank or a record does not have
            exactly three tokens
    """
    if spec is None or not spec.strip():
        raise MalformedSpecError(spec or "", "field specification is empty")

    fields: list[FieldInfo] = []
    for record in spec.split(RECORD_SEPARATOR):
        tokens = record.split(TOKEN_SEPARATOR)
        if len(tokens) != 3:
            raise MalformedSpecError(record, f"expected 'name:Yes|No:format', got {len(tokens)} token(s)")
        name, flag, fmt = tokens
        fields.append(FieldInfo(name=name, anonymize=flag.lower() == "yes", format=fmt))
    return fields


def format_field_spec(fields: list[FieldInfo]) -> str:
    """Join fields back into a specification string with normalized flags."""
    return RECORD_SEPARATOR.join(str(f) for f in fields)


def anonymized_formats(fields: list[FieldInfo]) -> list[str]:
    """Distinct format tags of anonymized fields, in first-seen order."""
    seen: dict[str, None] = {}
    for f in fields:
        if f.anonymize:
            seen.setdefault(f.format, None)
    return list(seen)
