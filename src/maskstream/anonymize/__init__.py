"""
Field-level anonymization: field specs, protectors and the per-format registry.
"""

from maskstream.anonymize.fields import FieldInfo, format_field_spec, parse_field_spec
from maskstream.anonymize.protector import (
    KeyedFormatProtector,
    ProtectionConfig,
    Protector,
    keyed_protector_factory,
    load_protector_factory,
)
from maskstream.anonymize.registry import FormatRegistry

__all__ = [
    "FieldInfo",
    "parse_field_spec",
    "format_field_spec",
    "Protector",
    "ProtectionConfig",
    "KeyedFormatProtector",
    "keyed_protector_factory",
    "load_protector_factory",
    "FormatRegistry",
]
