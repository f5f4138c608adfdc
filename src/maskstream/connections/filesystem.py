"""
Local filesystem connection for storage.
"""

from pathlib import Path

from maskstream.connections.storage import BaseStorageConnection


class FilesystemConnection(BaseStorageConnection):
    """
    Local filesystem connection wrapper for storage operations.

    Config example:
        destination:
          type: filesystem
          config:
            root_path: /data/out
            storage:
              base_path: anonymized
    """

    @property
    def root_path(self) -> Path:
        """
        Get root path for filesystem storage.

        Returns:
            Path: Root directory path for this storage connection
        """
        root = self._cfg.get("root_path", "data")
        return Path(root)

    @property
    def full_path(self) -> Path:
        """
        Get full storage path (root_path + base_path).

        Raises:
            ValueError: If base_path attempts path traversal outside root_path
        """
        return self.resolve(self.base_path) if self.base_path else self.root_path.resolve()

    def resolve(self, relative: str) -> Path:
        """
        Resolve a relative path under root_path.

        Raises:
            ValueError: If the path escapes root_path
        """
        root_resolved = self.root_path.resolve()
        full_resolved = (root_resolved / relative.lstrip("/")).resolve()
        try:
            full_resolved.relative_to(root_resolved)
        except ValueError as e:
            raise ValueError(f"Path traversal detected: '{relative}' escapes root_path '{self.root_path}'") from e
        return full_resolved

    def path_for(self, key: str) -> Path:
        """Local path for an object key (base_path is prepended automatically)."""
        return self.resolve(self.prefixed(key))

    def __repr__(self) -> str:
        """String representation."""
        return f"{self.__class__.__name__}(name='{self.name}', root_path='{self.root_path}')"
