"""
Credential key lookup.

A credential key reference (``credential_key`` in a build profile) names
the Fernet key that protects stored credentials. It is tried against each
source in order:

- environment: ``lab/credential-key`` reads ``BUILDLAYER_LAB_CREDENTIAL_KEY``
- keyring file: ``~/.buildlayer/credentials.yaml``, nested by path segment
  (``lab: {credential-key: ...}``)
- key file: the reference itself as a filesystem path (``~/keys/lab.key``)

Keys are returned as bytes, ready for ``cryptography.fernet.Fernet``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog
import yaml
from cryptography.fernet import Fernet

from buildlayer.core.errors import InputError

logger = structlog.get_logger()


class KeySource(StrEnum):
    """Places a credential key can come from."""

    ENV = "env"
    KEYRING = "keyring"
    KEY_FILE = "key_file"


@dataclass
class KeyStoreConfig:
    """Where credential keys are looked up, and in which order."""

    order: list[KeySource] = field(
        default_factory=lambda: [KeySource.ENV, KeySource.KEYRING, KeySource.KEY_FILE]
    )
    env_prefix: str = "BUILDLAYER_"
    keyring_file: Path = field(
        default_factory=lambda: Path.home() / ".buildlayer" / "credentials.yaml"
    )


def env_var_name(key_ref: str, prefix: str = "BUILDLAYER_") -> str:
    """``lab/credential-key`` -> ``BUILDLAYER_LAB_CREDENTIAL_KEY``."""
    return prefix + key_ref.replace("/", "_").replace("-", "_").upper()


def read_key_file(key_ref: str) -> bytes | None:
    """Read a key from the file a reference names, if there is one."""
    path = Path(key_ref).expanduser()
    if not path.is_file():
        return None
    try:
        return path.read_bytes().strip() or None
    except OSError as e:
        raise InputError(
            f"Credential key file cannot be read: {path}",
            details={"file": str(path), "error": str(e)},
        ) from e


class Keyring:
    """YAML file mapping nested key references to Fernet keys."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise InputError(
                f"Keyring file cannot be read: {self.path}",
                details={"file": str(self.path), "error": str(e)},
            ) from e
        if not isinstance(data, dict):
            raise InputError(
                f"Keyring file must contain a mapping: {self.path}",
                details={"file": str(self.path)},
            )
        return data

    def get(self, key_ref: str) -> bytes | None:
        node: Any = self._read()
        for segment in key_ref.split("/"):
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        if node is None or isinstance(node, dict):
            return None
        return str(node).strip().encode() or None

    def put(self, key_ref: str, key: bytes) -> None:
        """Store a key under its reference; the file is kept owner-only."""
        data = self._read()
        *parents, leaf = key_ref.split("/")
        node = data
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise InputError(
                    f"Key reference '{key_ref}' conflicts with an existing key in {self.path}",
                    details={"file": str(self.path), "key_ref": key_ref},
                )
            node = child
        node[leaf] = key.decode()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False)
        os.chmod(self.path, 0o600)
        logger.info("credential_key_stored", key_ref=key_ref, file=str(self.path))


class CredentialKeyResolver:
    """Finds the Fernet key for a reference across the configured sources."""

    def __init__(self, config: KeyStoreConfig | None = None):
        self.config = config or KeyStoreConfig()
        self.keyring = Keyring(self.config.keyring_file)

    def _lookup(self, source: KeySource, key_ref: str) -> bytes | None:
        if source == KeySource.ENV:
            value = os.environ.get(env_var_name(key_ref, self.config.env_prefix), "").strip()
            return value.encode() or None
        if source == KeySource.KEYRING:
            return self.keyring.get(key_ref)
        return read_key_file(key_ref)

    def resolve(self, key_ref: str, source: KeySource | None = None) -> bytes | None:
        """Return the key for key_ref, or None when no source has it."""
        for candidate in [source] if source else self.config.order:
            key = self._lookup(candidate, key_ref)
            if key is not None:
                logger.debug("credential_key_resolved", key_ref=key_ref, source=str(candidate))
                return key
        return None

    def generate(self, key_ref: str) -> bool:
        """Create a key in the keyring unless key_ref already resolves.

        Returns:
            True when a new key was stored
        """
        if self.resolve(key_ref) is not None:
            return False
        self.keyring.put(key_ref, Fernet.generate_key())
        return True


_resolver: CredentialKeyResolver | None = None


def get_key_resolver(config: KeyStoreConfig | None = None) -> CredentialKeyResolver:
    """Get or create the process-wide key resolver."""
    global _resolver
    if _resolver is None or config is not None:
        _resolver = CredentialKeyResolver(config)
    return _resolver


def resolve_key(key_ref: str) -> bytes | None:
    return get_key_resolver().resolve(key_ref)
