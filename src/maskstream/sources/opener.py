"""
Source stream capability: open a descriptor as a readable, processed byte stream.
"""

from __future__ import annotations

import threading
from typing import Any, BinaryIO

from maskstream.connections.s3 import S3Connection
from maskstream.connections.sftp import SFTPConnection
from maskstream.exceptions import SourceOpenError
from maskstream.listing.descriptor import FileDescriptor
from maskstream.sources.processors import (
    DecompressProcessor,
    PGPDecryptProcessor,
    split_processing_suffixes,
)
from maskstream.utils.logging import get_logger

logger = get_logger("maskstream.sources.opener")

NOT_FOUND = "not_found"
ACCESS_DENIED = "access_denied"
IO_ERROR = "io_error"
UNPARSEABLE = "unparseable"

_S3_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound", "NoSuchBucket")
_S3_DENIED_CODES = ("403", "AccessDenied", "Forbidden")


class SourceStream:
    """
    A stack of stream layers (raw source, decryption, decompression).

    Reads come from the top layer; ``close`` closes every layer, innermost
    last, since wrapping readers do not own the stream they wrap.
    """

    def __init__(self, layers: list[Any]):
        self._layers = layers

    def read(self, size: int = -1) -> bytes:
        return self._layers[-1].read(size)

    @property
    def depth(self) -> int:
        return len(self._layers)

    def close(self) -> None:
        for layer in reversed(self._layers):
            try:
                layer.close()
            except Exception as e:
                logger.debug(f"Error closing source layer {layer!r}: {e}")
        self._layers = self._layers[:1]

    def __enter__(self) -> SourceStream:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def classify_error(error: BaseException) -> str:
    """Map an open failure to ``not_found``, ``access_denied`` or ``io_error``."""
    if isinstance(error, FileNotFoundError):
        return NOT_FOUND
    if isinstance(error, PermissionError):
        return ACCESS_DENIED
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        code = str(response.get("Error", {}).get("Code", ""))
        if code in _S3_NOT_FOUND_CODES:
            return NOT_FOUND
        if code in _S3_DENIED_CODES:
            return ACCESS_DENIED
    return IO_ERROR


class SourceOpener:
    """
    Opens source files by host URI scheme and applies decrypt/decompress stages.

    Supported schemes: ``file`` (local disk), ``sftp`` (paramiko) and ``s3``
    (boto3, bucket taken from the host URI).
    """

    def __init__(
        self,
        *,
        decompress: bool = True,
        decrypt: PGPDecryptProcessor | None = None,
        sftp: SFTPConnection | None = None,
        s3: S3Connection | None = None,
    ):
        self.decompress = decompress
        self.decrypt = decrypt
        self.sftp = sftp
        self.s3 = s3
        # transfers open sources from worker threads
        self._connect_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> SourceOpener:
        """
        Build an opener from the ``source`` config section.

        Example:
            source:
              decompress: true
              decrypt:
                private_key_path: /keys/ingest.asc
                private_key_passphrase: ${PGP_PASSPHRASE}
              sftp:
                config: {username: ingest, private_key_path: /keys/id_ed25519}
              s3:
                config: {bucket: landing, region: eu-west-1}
        """
        config = config or {}
        decrypt_cfg = config.get("decrypt") or None
        decrypt = None
        if decrypt_cfg:
            decrypt = PGPDecryptProcessor(
                decrypt_cfg.get("private_key_path", ""),
                decrypt_cfg.get("private_key_passphrase"),
            )
        sftp_cfg = config.get("sftp")
        s3_cfg = config.get("s3")
        return cls(
            decompress=bool(config.get("decompress", True)),
            decrypt=decrypt,
            sftp=SFTPConnection("source_sftp", {"type": "sftp", **sftp_cfg}) if sftp_cfg else None,
            s3=S3Connection("source_s3", {"type": "s3", **s3_cfg}) if s3_cfg else None,
        )

    @property
    def known_suffixes(self) -> tuple[str, ...]:
        return PGPDecryptProcessor.suffixes + DecompressProcessor.suffixes

    def output_name(self, relative_path: str) -> str:
        """Destination name for a source: processing suffixes removed."""
        stripped, _ = split_processing_suffixes(relative_path, self._handled_suffixes())
        return stripped

    def _handled_suffixes(self) -> tuple[str, ...]:
        handled: tuple[str, ...] = ()
        if self.decrypt is not None:
            handled += PGPDecryptProcessor.suffixes
        if self.decompress:
            handled += DecompressProcessor.suffixes
        return handled

    def open(self, descriptor: FileDescriptor) -> SourceStream:
        """
        Open a descriptor and stack the processors its suffixes call for.

        Raises:
            SourceOpenError: If the file is missing, unreadable, or needs a
                processing stage that is not configured
        """
        _, suffixes = split_processing_suffixes(descriptor.file_name, self.known_suffixes)
        raw = self._open_raw(descriptor)
        layers: list[Any] = [raw]
        try:
            for suffix in suffixes:
                layers.append(self._processor_for(descriptor, suffix).wrap(layers[-1]))
        except SourceOpenError:
            SourceStream(layers).close()
            raise
        except Exception as e:
            SourceStream(layers).close()
            raise SourceOpenError(
                descriptor.full_path, UNPARSEABLE, f"Cannot process '{suffix}' layer: {e}", cause=e
            ) from e
        if suffixes:
            logger.debug(f"Opened {descriptor.source_uri} with layers {suffixes}")
        return SourceStream(layers)

    def _processor_for(self, descriptor: FileDescriptor, suffix: str):
        if suffix in PGPDecryptProcessor.suffixes:
            if self.decrypt is None:
                raise SourceOpenError(
                    descriptor.full_path, UNPARSEABLE, "Encrypted source but no source.decrypt key is configured"
                )
            return self.decrypt
        if not self.decompress:
            raise SourceOpenError(
                descriptor.full_path, UNPARSEABLE, f"Compressed source '{suffix}' but decompression is disabled"
            )
        return DecompressProcessor(suffix)

    def _open_raw(self, descriptor: FileDescriptor) -> BinaryIO:
        scheme = descriptor.scheme
        try:
            if scheme == "file":
                return open(descriptor.full_path, "rb")
            if scheme == "sftp":
                return self._sftp_connection().open(descriptor.full_path, host=descriptor.host)
            if scheme == "s3":
                return self._s3_connection(descriptor.host).open_object(descriptor.full_path, bucket=descriptor.host)
        except Exception as e:
            reason = classify_error(e)
            raise SourceOpenError(
                descriptor.full_path, reason, f"Cannot open {descriptor.source_uri}: {e}", cause=e
            ) from e
        raise SourceOpenError(descriptor.full_path, IO_ERROR, f"Unsupported source scheme '{scheme}'")

    def _sftp_connection(self) -> SFTPConnection:
        with self._connect_lock:
            if self.sftp is None:
                self.sftp = SFTPConnection("source_sftp", {"type": "sftp", "config": {}})
            return self.sftp

    def _s3_connection(self, bucket: str) -> S3Connection:
        with self._connect_lock:
            if self.s3 is None:
                self.s3 = S3Connection("source_s3", {"type": "s3", "config": {"bucket": bucket}})
            return self.s3

    def close(self) -> None:
        for conn in (self.sftp, self.s3):
            if conn is not None:
                conn.close()
