"""
Stream processors applied to a source before parsing: decryption and decompression.

A source file is peeled by suffix from the outside in, so ``a.csv.gz.pgp``
is PGP-decrypted, then gunzipped, then parsed as CSV.
"""

from __future__ import annotations

import bz2
import gzip
import io
import lzma
from typing import Any, BinaryIO, Protocol

from maskstream.utils.logging import get_logger

logger = get_logger("maskstream.sources.processors")


class StreamProcessor(Protocol):
    """Wraps a readable binary stream into another readable binary stream."""

    name: str
    suffixes: tuple[str, ...]

    def wrap(self, stream: BinaryIO) -> BinaryIO: ...


class DecompressProcessor:
    """Streaming decompression for gzip, bzip2 and xz sources."""

    name = "decompress"
    suffixes = (".gz", ".gzip", ".bz2", ".xz")

    def __init__(self, suffix: str):
        self.suffix = suffix.lower()

    def wrap(self, stream: BinaryIO) -> BinaryIO:
        if self.suffix in (".gz", ".gzip"):
            return gzip.GzipFile(fileobj=stream, mode="rb")  # type: ignore[return-value]
        if self.suffix == ".bz2":
            return bz2.BZ2File(stream, mode="rb")  # type: ignore[return-value]
        if self.suffix == ".xz":
            return lzma.LZMAFile(stream, mode="rb")  # type: ignore[return-value]
        raise ValueError(f"Unsupported compression suffix '{self.suffix}'")


class PGPDecryptProcessor:
    """
    Decrypt a PGP-encrypted source using PGPy (pure Python).

    Config:
    - private_key_path: str (required)
    - private_key_passphrase: str (optional)

    Notes:
    - PGPy loads the whole encrypted message into memory; the decrypted
      payload is then streamed onwards from a buffer. Very large encrypted
      sources need a gpg-based processor instead.
    """

    name = "decrypt"
    suffixes = (".pgp", ".gpg", ".asc")

    def __init__(self, private_key_path: str, private_key_passphrase: str | None = None):
        if not private_key_path:
            raise ValueError("decrypt requires source.decrypt.private_key_path")
        self.private_key_path = private_key_path
        self.private_key_passphrase = private_key_passphrase
        self._key: Any = None

    def _load_key(self) -> Any:
        if self._key is None:
            import pgpy

            self._key, _ = pgpy.PGPKey.from_file(str(self.private_key_path))
        return self._key

    def wrap(self, stream: BinaryIO) -> BinaryIO:
        import pgpy

        key = self._load_key()
        message = pgpy.PGPMessage.from_blob(stream.read())
        if self.private_key_passphrase:
            with key.unlock(self.private_key_passphrase):
                decrypted = key.decrypt(message)
        else:
            decrypted = key.decrypt(message)

        # `decrypted.message` can be str (text) or bytes depending on input.
        payload = decrypted.message
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return io.BytesIO(bytes(payload or b""))


def split_processing_suffixes(name: str, known: tuple[str, ...]) -> tuple[str, list[str]]:
    """
    Split trailing processing suffixes off a file name.

    Returns:
        (stripped name, suffixes outermost first), e.g.
        ``("a.csv", [".pgp", ".gz"])`` for ``a.csv.gz.pgp``
    """
    suffixes: list[str] = []
    base = name
    while True:
        lowered = base.lower()
        match = next((s for s in known if lowered.endswith(s) and len(base) > len(s)), None)
        if match is None:
            return base, suffixes
        suffixes.append(match)
        base = base[: -len(match)]
