"""
Shared fixtures: in-memory destination, fake protectors and CSV helpers.
"""

from __future__ import annotations

import pytest

from maskstream.anonymize.fields import FieldInfo
from maskstream.anonymize.protector import ProtectionConfig
from maskstream.anonymize.registry import FormatRegistry
from maskstream.listing.descriptor import FileDescriptor


class MemoryWriter:
    """Chunk writer that stages bytes and publishes them on commit."""

    def __init__(self, destination: MemoryDestination, key: str, content_type: str, metadata: dict | None):
        self.destination = destination
        self.key = key
        self.content_type = content_type
        self.metadata = dict(metadata or {})
        self.staged = bytearray()
        self.chunks: list[bytes] = []

    def write(self, data: bytes) -> None:
        if self.destination.fail_after_chunks is not None and len(self.chunks) >= self.destination.fail_after_chunks:
            raise OSError("connection reset by peer")
        self.chunks.append(bytes(data))
        self.staged += data

    def commit(self) -> str:
        self.destination.objects[self.key] = bytes(self.staged)
        self.destination.metadata[self.key] = self.metadata
        self.destination.content_types[self.key] = self.content_type
        self.destination.commits += 1
        return self.destination.uri(self.key)

    def abort(self) -> None:
        self.staged.clear()
        self.destination.aborts += 1


class MemoryDestination:
    """Destination keeping committed objects in a dict."""

    def __init__(self, fail_after_chunks: int | None = None):
        self.fail_after_chunks = fail_after_chunks
        self.objects: dict[str, bytes] = {}
        self.metadata: dict[str, dict] = {}
        self.content_types: dict[str, str] = {}
        self.writers: list[MemoryWriter] = []
        self.commits = 0
        self.aborts = 0

    def open_writer(self, key: str, content_type: str, metadata: dict | None = None) -> MemoryWriter:
        writer = MemoryWriter(self, key, content_type, metadata)
        self.writers.append(writer)
        return writer

    def uri(self, key: str) -> str:
        return f"memory://{key}"

    @property
    def interactions(self) -> int:
        return len(self.writers)


class TaggingProtector:
    """Deterministic fake: ``protect("abc")`` -> ``"fmt(cba)"``."""

    def __init__(self, format_tag: str):
        self.format_tag = format_tag
        self.calls: list[str] = []
        self.closed = False

    def protect(self, plaintext: str) -> str:
        self.calls.append(plaintext)
        return f"{self.format_tag}({plaintext[::-1]})"

    def close(self) -> None:
        self.closed = True


class FailingProtector(TaggingProtector):
    """Raises on one specific plaintext value."""

    def __init__(self, format_tag: str, poison: str):
        super().__init__(format_tag)
        self.poison = poison

    def protect(self, plaintext: str) -> str:
        if plaintext == self.poison:
            raise RuntimeError("policy violation")
        return super().protect(plaintext)


def tagging_factory(format_tag: str, config: ProtectionConfig) -> TaggingProtector:
    return TaggingProtector(format_tag)


class EuroProtector(TaggingProtector):
    """Output outside latin-1: ``protect("ab")`` -> ``"€ab"``."""

    def protect(self, plaintext: str) -> str:
        self.calls.append(plaintext)
        return "€" + plaintext


def euro_factory(format_tag: str, config: ProtectionConfig) -> EuroProtector:
    return EuroProtector(format_tag)


@pytest.fixture
def protection_config():
    return ProtectionConfig(identity="tester", shared_secret="s3cr3t")


@pytest.fixture
def registry(protection_config):
    reg = FormatRegistry(protection_config, tagging_factory)
    yield reg
    reg.close()


@pytest.fixture
def destination():
    return MemoryDestination()


@pytest.fixture
def two_fields():
    return [FieldInfo("h1", True, "fmt1"), FieldInfo("h2", False, "fmt1")]


@pytest.fixture
def write_source(tmp_path):
    """Write a source file under ``tmp_path/in`` and return its descriptor."""

    def _write(name: str, content: bytes | str) -> FileDescriptor:
        source_dir = tmp_path / "in"
        path = source_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8") if isinstance(content, str) else content)
        return FileDescriptor.from_path(path, source_dir)

    return _write
