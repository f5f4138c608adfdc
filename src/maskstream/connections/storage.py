"""
Storage connection base class.

Sources are read from and anonymized output is written to these backends.
"""

from typing import Any


class BaseStorageConnection:
    """
    Base class for storage connections.

    Backends address objects differently:
    - S3: bucket + base_path key prefix
    - Local filesystem: root_path/base_path
    - SFTP: host + absolute remote paths (no base_path)

    Config layout matches the ``source``/``destination`` sections of the job
    config: ``{"type": ..., "config": {..., "storage": {"base_path": ...}}}``.
    """

    def __init__(self, name: str, config: dict[str, Any]):
        """
        Args:
            name: Connection name, used in log and error messages
            config: Connection section of the job config
        """
        self.name = name
        self.config = config

    @property
    def _cfg(self) -> dict[str, Any]:
        return self.config.get("config", {}) or {}

    @property
    def base_path(self) -> str:
        """Key prefix (object storage) or subdirectory (filesystem) for writes."""
        storage = self._cfg.get("storage", {}) or {}
        return storage.get("base_path", "")  # type: ignore[no-any-return]

    def prefixed(self, key: str) -> str:
        """``key`` under base_path, without a leading slash."""
        base = self.base_path.strip("/")
        key = key.lstrip("/")
        return f"{base}/{key}" if base else key

    def close(self) -> None:
        """Release client resources (no-op by default)."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
