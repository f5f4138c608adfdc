"""
Storage connections used by sources and destinations.
"""

from typing import Any

from maskstream.connections.filesystem import FilesystemConnection
from maskstream.connections.s3 import S3Connection
from maskstream.connections.sftp import SFTPConnection
from maskstream.connections.storage import BaseStorageConnection

CONNECTION_TYPES: dict[str, type[BaseStorageConnection]] = {
    "s3": S3Connection,
    "filesystem": FilesystemConnection,
    "sftp": SFTPConnection,
}


def create_connection(name: str, config: dict[str, Any]) -> BaseStorageConnection:
    """
    Build a storage connection from a ``{"type": ..., "config": {...}}`` section.

    Raises:
        ValueError: If the type is missing or unknown
    """
    conn_type = config.get("type")
    conn_class = CONNECTION_TYPES.get(conn_type or "")
    if conn_class is None:
        raise ValueError(
            f"Unknown connection type '{conn_type}' for '{name}'. Available: {list(CONNECTION_TYPES)}"
        )
    return conn_class(name, config)


__all__ = [
    "BaseStorageConnection",
    "FilesystemConnection",
    "S3Connection",
    "SFTPConnection",
    "create_connection",
]
