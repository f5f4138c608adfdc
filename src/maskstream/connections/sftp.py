"""
SFTP connection for reading source files.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

import paramiko

from maskstream.connections.storage import BaseStorageConnection


@dataclass(frozen=True)
class SFTPConfig:
    host: str
    port: int = 22
    username: str | None = None
    password: str | None = None
    private_key_path: str | None = None
    private_key_passphrase: str | None = None
    # Safety/perf knobs
    connect_timeout_s: float = 15.0


class SFTPConnection(BaseStorageConnection):
    """
    Minimal SFTP connection wrapper for streaming remote files.

    The host may be omitted from config; it then comes from the descriptor's
    host URI at connect time. One transport and client is kept per
    ``host:port``, so a listing spanning several hosts reads each file from
    its own host.
    """

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name, config)
        # "host:port" -> (transport, client)
        self._sessions: dict[str, tuple[paramiko.Transport, paramiko.SFTPClient]] = {}
        self._lock = threading.Lock()

    def _parse_config(self, host: str | None = None) -> SFTPConfig:
        cfg = self._cfg
        return SFTPConfig(
            host=cfg.get("host") or host or "",
            port=int(cfg.get("port", 22)),
            username=cfg.get("username"),
            password=cfg.get("password"),
            private_key_path=cfg.get("private_key_path"),
            private_key_passphrase=cfg.get("private_key_passphrase"),
            connect_timeout_s=float(cfg.get("connect_timeout_s", 15.0)),
        )

    def connect(self, host: str | None = None) -> paramiko.SFTPClient:
        """Return a live `paramiko.SFTPClient` for ``host``, connecting on first use."""
        cfg = self._parse_config(host)
        if not cfg.host:
            raise ValueError(f"SFTP connection '{self.name}' missing host")
        hostname, _, port = cfg.host.partition(":")
        address = (hostname, int(port) if port else cfg.port)
        session_key = f"{address[0]}:{address[1]}"

        with self._lock:
            session = self._sessions.get(session_key)
            if session is not None:
                return session[1]

            transport = paramiko.Transport(address)
            transport.banner_timeout = cfg.connect_timeout_s
            transport.auth_timeout = cfg.connect_timeout_s

            pkey = None
            if cfg.private_key_path:
                # Try common key types; paramiko will raise if incompatible.
                try:
                    pkey = paramiko.RSAKey.from_private_key_file(
                        cfg.private_key_path, password=cfg.private_key_passphrase
                    )
                except paramiko.SSHException:
                    pkey = paramiko.Ed25519Key.from_private_key_file(
                        cfg.private_key_path, password=cfg.private_key_passphrase
                    )

            try:
                transport.connect(username=cfg.username, password=cfg.password, pkey=pkey)
                client = paramiko.SFTPClient.from_transport(transport)
            except BaseException:
                transport.close()
                raise

            self._sessions[session_key] = (transport, client)
            return client

    def open(self, path: str, host: str | None = None) -> paramiko.SFTPFile:
        """Open a remote file for reading, with read-ahead enabled."""
        handle = self.connect(host).open(path, "rb")
        handle.prefetch()
        return handle

    @property
    def hosts(self) -> list[str]:
        """``host:port`` of every open session."""
        with self._lock:
            return list(self._sessions)

    def close(self) -> None:
        """Close every SFTP client and its underlying transport."""
        with self._lock:
            sessions, self._sessions = list(self._sessions.values()), {}
        for transport, client in sessions:
            try:
                client.close()
            finally:
                transport.close()
