"""
Protector engines for format-preserving anonymization.

A protector is bound to one format tag and turns a plaintext value into an
anonymized value of the same shape. Production deployments plug in their
data-protection SDK through a factory import path; the built-in ``keyed``
factory provides a deterministic HMAC-based pseudonymizer that needs no
native library.
"""

from __future__ import annotations

import hashlib
import hmac
import importlib
import string
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from maskstream.utils.logging import get_logger

logger = get_logger("maskstream.anonymize.protector")


@runtime_checkable
class Protector(Protocol):
    """
    Format-preserving transform engine for one format tag.

    Implementations may also provide ``close()``; the registry calls it on
    teardown when present.
    """

    def protect(self, plaintext: str) -> str: ...


@dataclass(frozen=True)
class ProtectionConfig:
    """
    Connection settings for the protection engine, supplied once per job.

    ``library_path`` is the native library search path for SDKs that load a
    shared library; it is handed to the factory and never patched into the
    interpreter.
    """

    policy_url: str | None = None
    identity: str | None = None
    shared_secret: str | None = None
    trust_store_path: str | None = None
    cache_path: str | None = None
    library_path: str | None = None
    options: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProtectionConfig:
        known = {"policy_url", "identity", "shared_secret", "trust_store_path", "cache_path", "library_path"}
        return cls(
            **{k: data.get(k) for k in known},
            options={k: v for k, v in data.items() if k not in known and k != "factory"} or None,
        )

    def __repr__(self) -> str:
        # shared_secret is never rendered
        return (
            f"ProtectionConfig(policy_url={self.policy_url!r}, identity={self.identity!r}, "
            f"trust_store_path={self.trust_store_path!r}, cache_path={self.cache_path!r})"
        )


ProtectorFactory = Callable[[str, ProtectionConfig], Protector]


class KeyedFormatProtector:
    """
    Deterministic, irreversible, format-preserving pseudonymizer.

    Digits map to digits and ASCII letters to letters of the same case; every
    other character is kept in place, so ``4111-1111-1111-1111`` stays a
    dashed 16-digit string. The keystream is HMAC-SHA256 over the plaintext
    with a key derived from identity, shared secret and format tag, so equal
    inputs give equal outputs within one key.
    """

    def __init__(self, format_tag: str, key: bytes):
        self.format_tag = format_tag
        self._key = key

    def protect(self, plaintext: str) -> str:
        stream = self._keystream(plaintext, len(plaintext))
        out = []
        for ch, k in zip(plaintext, stream):
            if ch in string.digits:
                out.append(string.digits[k % 10])
            elif ch in string.ascii_uppercase:
                out.append(string.ascii_uppercase[k % 26])
            elif ch in string.ascii_lowercase:
                out.append(string.ascii_lowercase[k % 26])
            else:
                out.append(ch)
        return "".join(out)

    def _keystream(self, plaintext: str, length: int) -> bytes:
        data = plaintext.encode("utf-8")
        blocks = []
        counter = 0
        while sum(len(b) for b in blocks) < length:
            blocks.append(hmac.new(self._key, counter.to_bytes(4, "big") + data, hashlib.sha256).digest())
            counter += 1
        return b"".join(blocks)[:length]

    def __repr__(self) -> str:
        return f"KeyedFormatProtector(format_tag='{self.format_tag}')"


def keyed_protector_factory(format_tag: str, config: ProtectionConfig) -> KeyedFormatProtector:
    """Built-in factory: derive a per-format key from identity and shared secret."""
    if not config.shared_secret:
        raise ValueError("protection.shared_secret is required for the keyed protector")
    material = "\x00".join((config.identity or "", config.shared_secret, format_tag))
    key = hashlib.sha256(material.encode("utf-8")).digest()
    return KeyedFormatProtector(format_tag, key)


BUILTIN_FACTORIES: dict[str, ProtectorFactory] = {
    "keyed": keyed_protector_factory,
}


def load_protector_factory(spec: str | None) -> ProtectorFactory:
    """
    Resolve a protector factory from a built-in name or ``module:attribute`` path.

    Args:
        spec: ``None``/``"keyed"`` for the built-in factory, otherwise an import
            path such as ``acme_sdk.maskstream:build_fpe``

    Raises:
        ValueError: If the spec cannot be resolved to a callable
    """
    if not spec:
        return keyed_protector_factory
    if spec in BUILTIN_FACTORIES:
        return BUILTIN_FACTORIES[spec]

    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(
            f"Unknown protector factory '{spec}'. "
            f"Use one of {list(BUILTIN_FACTORIES)} or a 'module:attribute' import path"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import protector factory module '{module_name}': {e}") from e
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(f"Protector factory '{spec}' is not callable")
    logger.debug(f"Loaded protector factory {spec}")
    return factory
