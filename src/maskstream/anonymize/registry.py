"""
Per-format protector cache.

Building a protector is expensive (policy download, key derivation, native
context), so a job builds at most one per format tag and shares it across
every row of every file.
"""

from __future__ import annotations

from typing import Iterable

from maskstream.anonymize.fields import FieldInfo, anonymized_formats
from maskstream.anonymize.protector import (
    ProtectionConfig,
    Protector,
    ProtectorFactory,
    keyed_protector_factory,
)
from maskstream.exceptions import ProtectorInitError
from maskstream.utils.logging import get_logger

logger = get_logger("maskstream.anonymize.registry")


class FormatRegistry:
    """
    Lazily builds and caches one Protector per format tag.

    Lookups are meant to happen while the job starts up (``prepare``); after
    ``freeze`` the registry is read-only and can be shared by concurrent file
    transfers.
    """

    def __init__(self, config: ProtectionConfig, factory: ProtectorFactory | None = None):
        self.config = config
        self._factory = factory or keyed_protector_factory
        self._protectors: dict[str, Protector] = {}
        self._frozen = False

    def get(self, format_tag: str) -> Protector:
        """
        Get the protector for a format tag, building it on first use.

        Raises:
            ProtectorInitError: If the protector cannot be built, or the tag
                is unknown once the registry is frozen
        """
        protector = self._protectors.get(format_tag)
        if protector is not None:
            return protector

        if self._frozen:
            raise ProtectorInitError(format_tag, "format was not prepared before processing started")

        logger.info(f"Building protector for format '{format_tag}'")
        try:
            protector = self._factory(format_tag, self.config)
        except Exception as e:
            raise ProtectorInitError(format_tag, str(e), cause=e) from e
        if protector is None or not callable(getattr(protector, "protect", None)):
            raise ProtectorInitError(format_tag, f"factory returned {protector!r}, which has no protect()")

        self._protectors[format_tag] = protector
        return protector

    def prepare(self, fields: Iterable[FieldInfo]) -> None:
        """Eagerly build protectors for every anonymized field format."""
        for format_tag in anonymized_formats(list(fields)):
            self.get(format_tag)

    def freeze(self) -> None:
        """Stop building new protectors; only cached ones are served afterwards."""
        self._frozen = True

    @property
    def formats(self) -> list[str]:
        return list(self._protectors)

    def __contains__(self, format_tag: str) -> bool:
        return format_tag in self._protectors

    def __len__(self) -> int:
        return len(self._protectors)

    def close(self) -> None:
        """Tear down all protectors."""
        for format_tag, protector in self._protectors.items():
            close = getattr(protector, "close", None)
            if callable(close):
                try:
                    close()
                except Exception as e:
                    logger.warning(f"Error closing protector for format '{format_tag}': {e}")
        self._protectors.clear()

    def __enter__(self) -> FormatRegistry:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"FormatRegistry(formats={self.formats})"
