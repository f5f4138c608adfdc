"""
Source side of a transfer: opening files and peeling decrypt/decompress layers.
"""

from maskstream.sources.opener import SourceOpener, SourceStream, classify_error
from maskstream.sources.processors import (
    DecompressProcessor,
    PGPDecryptProcessor,
    split_processing_suffixes,
)

__all__ = [
    "SourceOpener",
    "SourceStream",
    "classify_error",
    "DecompressProcessor",
    "PGPDecryptProcessor",
    "split_processing_suffixes",
]
