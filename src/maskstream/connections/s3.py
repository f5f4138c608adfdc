"""
S3 connection for streaming reads and multipart uploads.
"""

from __future__ import annotations

from typing import Any, Optional

from maskstream.connections.storage import BaseStorageConnection

DEFAULT_MAX_POOL_CONNECTIONS = 10
DEFAULT_MAX_ATTEMPTS = 5


class S3Connection(BaseStorageConnection):
    """
    Lazily created boto3 S3 client plus key handling for one bucket.

    Credentials come from the config when both keys are given, otherwise
    from a named ``profile``, otherwise from boto3's default chain
    (environment, instance role).

    Config example:
        destination:
          type: s3
          config:
            bucket: anonymized-exports
            region: eu-west-1
            profile: exports            # Optional named profile
            access_key_id: ${AWS_KEY}   # Optional, together with secret_access_key
            secret_access_key: ${AWS_SECRET}
            session_token: ...          # Optional (temporary credentials)
            endpoint_url: ...           # Optional (MinIO and other S3-compatible stores)
            max_pool_connections: 20    # Optional, raise with transfer.max_concurrent_files
            max_attempts: 5             # Optional retry budget per request
            storage:
              base_path: masked         # Optional key prefix for writes
    """

    def __init__(self, name: str, config: dict[str, Any], *, client: Any = None):
        super().__init__(name, config)
        self._client = client
        if not self._cfg.get("bucket", ""):
            raise ValueError(
                f"S3 connection '{name}' requires 'bucket' in config. "
                f"Example: {name}.config.bucket = 'my-bucket'"
            )

    @property
    def bucket(self) -> str:
        return self._cfg["bucket"]

    @property
    def region(self) -> Optional[str]:
        return self._cfg.get("region")

    @property
    def endpoint_url(self) -> Optional[str]:
        return self._cfg.get("endpoint_url")

    def _get_client_kwargs(self) -> dict[str, Any]:
        """Region, endpoint and explicit credentials for ``client()``."""
        kwargs: dict[str, Any] = {}
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url

        access_key = self._cfg.get("access_key_id")
        secret_key = self._cfg.get("secret_access_key")
        if access_key and secret_key:
            kwargs["aws_access_key_id"] = access_key
            kwargs["aws_secret_access_key"] = secret_key
            if self._cfg.get("session_token"):
                kwargs["aws_session_token"] = self._cfg["session_token"]
        return kwargs

    def _client_config(self):
        from botocore.config import Config as BotoConfig

        # every concurrent upload holds a pooled connection while it sends a part
        return BotoConfig(
            max_pool_connections=int(self._cfg.get("max_pool_connections", DEFAULT_MAX_POOL_CONNECTIONS)),
            retries={"max_attempts": int(self._cfg.get("max_attempts", DEFAULT_MAX_ATTEMPTS)), "mode": "standard"},
        )

    @property
    def client(self):
        """
        boto3 S3 client, created on first use.

        boto3 clients are thread-safe, so one client serves every concurrent
        transfer of a job.
        """
        if self._client is None:
            import boto3

            profile = self._cfg.get("profile")
            make_client = boto3.session.Session(profile_name=profile).client if profile else boto3.client
            self._client = make_client("s3", config=self._client_config(), **self._get_client_kwargs())
        return self._client

    def full_key(self, key: str) -> str:
        """Destination key with base_path applied."""
        return self.prefixed(key)

    def open_object(self, key: str, *, bucket: str | None = None) -> Any:
        """
        Open an object for streaming reads.

        Args:
            key: Object key (used as-is, base_path is not applied to reads)
            bucket: Bucket to read from (default: configured bucket)

        Returns:
            botocore StreamingBody with ``read(n)`` and ``close()``
        """
        response = self.client.get_object(Bucket=bucket or self.bucket, Key=key.lstrip("/"))
        return response["Body"]

    def uri(self, key: str) -> str:
        return f"s3://{self.bucket}/{self.full_key(key)}"

    def close(self) -> None:
        """Drop the cached client; boto3 needs no explicit shutdown."""
        self._client = None
