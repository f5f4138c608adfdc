"""
File descriptors produced by the listing stage.

A descriptor identifies one source file and where it lands relative to the
destination prefix. Descriptors are immutable and compare by size only, so
an upstream splitter can balance work with ``sorted()``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit, urlunsplit

FILE_NAME = "fileName"
FILE_SIZE = "fileSize"
FULL_PATH = "fullPath"
IS_DIR = "isDir"
RELATIVE_PATH = "relativePath"
HOST_URI = "hostURI"


@dataclass(frozen=True, order=True)
class FileDescriptor:
    """Metadata record for one source file."""

    file_size: int
    file_name: str = field(compare=False)
    full_path: str = field(compare=False)
    is_dir: bool = field(default=False, compare=False)
    relative_path: str = field(default="", compare=False)
    host_uri: str = field(default="file:///", compare=False)

    @classmethod
    def from_path(cls, path: str | Path, source_path: str | Path) -> FileDescriptor:
        """
        Build a descriptor for a local file found under ``source_path``.

        The relative path keeps the last component of ``source_path``: for
        full path ``/foo/bar/baz/a.csv`` and source path ``/foo/bar`` it is
        ``bar/baz/a.csv``.

        Raises:
            ValueError: If ``source_path`` is not a prefix of ``path``
            FileNotFoundError: If ``path`` does not exist
        """
        full_path = Path(path).absolute().as_posix()
        source = Path(source_path).absolute().as_posix()
        stat = os.stat(full_path)
        return cls(
            file_size=stat.st_size,
            file_name=Path(full_path).name,
            full_path=full_path,
            is_dir=Path(full_path).is_dir(),
            relative_path=relative_to_source(full_path, source),
            host_uri="file:///",
        )

    @classmethod
    def from_uri(cls, uri: str, source_path: str, *, file_size: int = 0, is_dir: bool = False) -> FileDescriptor:
        """Build a descriptor for a remote object such as ``sftp://host/dir/a.csv``."""
        parts = urlsplit(uri)
        full_path = parts.path or "/"
        return cls(
            file_size=file_size,
            file_name=full_path.rstrip("/").rsplit("/", 1)[-1],
            full_path=full_path,
            is_dir=is_dir,
            relative_path=relative_to_source(full_path, source_path),
            host_uri=urlunsplit((parts.scheme, parts.netloc, "/", "", "")),
        )

    @property
    def scheme(self) -> str:
        """URI scheme of the source filesystem (``file`` for local files)."""
        return urlsplit(self.host_uri).scheme or "file"

    @property
    def host(self) -> str:
        return urlsplit(self.host_uri).netloc

    @property
    def source_uri(self) -> str:
        """Full URI of the source file."""
        base = self.host_uri if self.host_uri.endswith("/") else self.host_uri + "/"
        return base + self.full_path.lstrip("/")

    def to_record(self) -> dict[str, Any]:
        return {
            FILE_NAME: self.file_name,
            FULL_PATH: self.full_path,
            FILE_SIZE: self.file_size,
            IS_DIR: self.is_dir,
            RELATIVE_PATH: self.relative_path,
            HOST_URI: self.host_uri,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> FileDescriptor:
        return cls(
            file_size=int(record.get(FILE_SIZE) or 0),
            file_name=record[FILE_NAME],
            full_path=record[FULL_PATH],
            is_dir=bool(record.get(IS_DIR, False)),
            relative_path=record.get(RELATIVE_PATH) or "",
            host_uri=record.get(HOST_URI) or "file:///",
        )

    def metadata(self) -> dict[str, str]:
        """Descriptor fields as string metadata for the destination object."""
        return {
            "source-uri": self.source_uri,
            "source-size": str(self.file_size),
            "relative-path": self.relative_path,
        }


def relative_to_source(full_path: str, source_path: str) -> str:
    """
    Strip everything before the last separator of ``source_path`` from ``full_path``.

    Raises:
        ValueError: If ``source_path`` is not a prefix of ``full_path``
    """
    if not full_path.startswith(source_path):
        raise ValueError(f"sourcePath '{source_path}' should be a valid prefix of fullPath '{full_path}'")
    return full_path[source_path.rfind("/") + 1 :]
