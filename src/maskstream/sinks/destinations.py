"""
Destination stores with streaming writes and an abort path.

A writer must leave nothing visible at the destination key until
``commit``; ``abort`` discards whatever was staged.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote

from maskstream.connections import FilesystemConnection, S3Connection, create_connection
from maskstream.utils.logging import get_logger

logger = get_logger("maskstream.sinks.destinations")

# S3 rejects multipart parts below 5 MiB (except the last one)
S3_MIN_PART_SIZE = 5 * 1024 * 1024


def encode_s3_metadata(metadata: dict[str, str]) -> dict[str, str]:
    """
    Percent-encode metadata values for S3, which only accepts ASCII there.

    Values are UTF-8 percent-encoded with ``/`` and ``:`` kept, so
    ``urllib.parse.unquote`` restores the original text.
    """
    return {key: quote(str(value), safe="/:") for key, value in metadata.items()}


class ChunkWriter(Protocol):
    """Chunked writable stream for one destination object."""

    def write(self, data: bytes) -> None: ...

    def commit(self) -> str: ...

    def abort(self) -> None: ...


class Destination(Protocol):
    """Destination store capability."""

    def open_writer(self, key: str, content_type: str, metadata: dict[str, str] | None = None) -> ChunkWriter: ...

    def uri(self, key: str) -> str: ...


class S3MultipartWriter:
    """
    Streams an object to S3 with a multipart upload.

    Parts are buffered up to ``part_size``; the upload is only started once
    the first part is full, so small objects go out as a single
    ``put_object`` on commit. Until ``complete_multipart_upload`` the object
    is invisible, and ``abort`` drops every uploaded part.
    """

    def __init__(
        self,
        connection: S3Connection,
        key: str,
        content_type: str,
        metadata: dict[str, str] | None = None,
        *,
        part_size: int = S3_MIN_PART_SIZE,
    ):
        self.connection = connection
        self.key = connection.full_key(key)
        self.content_type = content_type
        self.metadata = encode_s3_metadata(metadata or {})
        self.part_size = max(part_size, S3_MIN_PART_SIZE)
        self._buffer = bytearray()
        self._upload_id: str | None = None
        self._parts: list[dict[str, Any]] = []

    @property
    def _client(self):
        return self.connection.client

    def write(self, data: bytes) -> None:
        self._buffer += data
        while len(self._buffer) >= self.part_size:
            part = bytes(self._buffer[: self.part_size])
            del self._buffer[: self.part_size]
            self._upload_part(part)

    def _upload_part(self, body: bytes) -> None:
        if self._upload_id is None:
            response = self._client.create_multipart_upload(
                Bucket=self.connection.bucket,
                Key=self.key,
                ContentType=self.content_type,
                Metadata=self.metadata,
            )
            self._upload_id = response["UploadId"]
        part_number = len(self._parts) + 1
        response = self._client.upload_part(
            Bucket=self.connection.bucket,
            Key=self.key,
            UploadId=self._upload_id,
            PartNumber=part_number,
            Body=body,
        )
        self._parts.append({"ETag": response["ETag"], "PartNumber": part_number})

    def commit(self) -> str:
        if self._upload_id is None:
            self._client.put_object(
                Bucket=self.connection.bucket,
                Key=self.key,
                Body=bytes(self._buffer),
                ContentType=self.content_type,
                Metadata=self.metadata,
            )
        else:
            if self._buffer:
                self._upload_part(bytes(self._buffer))
            self._client.complete_multipart_upload(
                Bucket=self.connection.bucket,
                Key=self.key,
                UploadId=self._upload_id,
                MultipartUpload={"Parts": self._parts},
            )
        self._buffer.clear()
        return f"s3://{self.connection.bucket}/{self.key}"

    def abort(self) -> None:
        self._buffer.clear()
        if self._upload_id is not None:
            self._client.abort_multipart_upload(
                Bucket=self.connection.bucket,
                Key=self.key,
                UploadId=self._upload_id,
            )
            self._upload_id = None


class S3Destination:
    """S3 bucket (plus optional base_path) as a destination."""

    def __init__(self, connection: S3Connection, *, part_size: int = S3_MIN_PART_SIZE):
        self.connection = connection
        self.part_size = part_size

    def open_writer(self, key: str, content_type: str, metadata: dict[str, str] | None = None) -> S3MultipartWriter:
        return S3MultipartWriter(self.connection, key, content_type, metadata, part_size=self.part_size)

    def uri(self, key: str) -> str:
        return self.connection.uri(key)


class FilesystemWriter:
    """
    Writes to ``<path>.part`` and renames it into place on commit.

    Object metadata, when given, is written next to the file as
    ``<path>.metadata.json``. The sidecar is staged as a ``.part`` file too
    and is complete before the data file appears.
    """

    def __init__(self, path: Path, metadata: dict[str, str] | None = None):
        self.path = path
        self.metadata = metadata or {}
        self.tmp_path = path.with_name(path.name + ".part")
        self.meta_path = path.with_name(path.name + ".metadata.json")
        self.meta_tmp_path = self.meta_path.with_name(self.meta_path.name + ".part")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.tmp_path, "wb")

    def write(self, data: bytes) -> None:
        self._fh.write(data)

    def commit(self) -> str:
        self._fh.flush()
        os.fsync(self._fh.fileno())
        self._fh.close()
        if self.metadata:
            self.meta_tmp_path.write_text(json.dumps(self.metadata, indent=2, sort_keys=True))
        os.replace(self.tmp_path, self.path)
        if self.metadata:
            os.replace(self.meta_tmp_path, self.meta_path)
        return f"file://{self.path}"

    def abort(self) -> None:
        if not self._fh.closed:
            self._fh.close()
        for staged in (self.tmp_path, self.meta_tmp_path):
            if staged.exists():
                staged.unlink()


class FilesystemDestination:
    """Local directory (root_path + base_path) as a destination."""

    def __init__(self, connection: FilesystemConnection):
        self.connection = connection

    def open_writer(self, key: str, content_type: str, metadata: dict[str, str] | None = None) -> FilesystemWriter:
        return FilesystemWriter(self.connection.path_for(key), metadata)

    def uri(self, key: str) -> str:
        return f"file://{self.connection.path_for(key)}"


def build_destination(config: dict[str, Any]) -> S3Destination | FilesystemDestination:
    """
    Build a destination from the ``destination`` config section.

    Raises:
        ValueError: If the destination type is not ``s3`` or ``filesystem``
    """
    conn = create_connection("destination", config)
    if isinstance(conn, S3Connection):
        part_size = int(config.get("part_size", S3_MIN_PART_SIZE))
        return S3Destination(conn, part_size=part_size)
    if isinstance(conn, FilesystemConnection):
        return FilesystemDestination(conn)
    raise ValueError(f"Connection type '{config.get('type')}' cannot be used as a destination")
