"""
Credential storage for build secrets.

A stored credential is a small YAML record whose password is a Fernet
token. The key that encrypts it is never stored next to it: the caller
passes a key reference, looked up by the CredentialKeyResolver in the
environment, the keyring file or as a key file path.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import structlog
import yaml
from cryptography.fernet import Fernet, InvalidToken

from buildlayer.config.secrets import CredentialKeyResolver, get_key_resolver
from buildlayer.core.errors import ResolutionError

logger = structlog.get_logger()


class CredentialError(ResolutionError):
    """Raised when a credential record cannot be read or decrypted."""


@dataclass(frozen=True)
class Credential:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, password='***')"


class CredentialService(ABC):
    """Contract for encrypting and decrypting stored credentials."""

    @abstractmethod
    def decrypt(self, path: Path, key_ref: str) -> Credential:
        """Read and decrypt the credential stored at path."""

    @abstractmethod
    def encrypt(self, credential: Credential, key_ref: str) -> str:
        """Return the stored record text for a credential."""


class FernetCredentialService(CredentialService):
    """Credential service using symmetric Fernet encryption."""

    def __init__(self, resolver: CredentialKeyResolver | None = None):
        self._resolver = resolver

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def _load_key(self, key_ref: str) -> bytes:
        key = (self._resolver or get_key_resolver()).resolve(key_ref)
        if key is None:
            raise CredentialError(
                f"Credential key '{key_ref}' could not be resolved",
                details={"key_ref": key_ref},
            )
        return key

    def _fernet(self, key_ref: str) -> Fernet:
        try:
            return Fernet(self._load_key(key_ref))
        except ValueError as e:
            raise CredentialError(f"Credential key '{key_ref}' is not a valid Fernet key") from e

    def encrypt(self, credential: Credential, key_ref: str) -> str:
        token = self._fernet(key_ref).encrypt(credential.password.encode()).decode()
        record = {"username": credential.username, "password": token}
        return yaml.safe_dump(record, default_flow_style=False, sort_keys=False)

    def decrypt(self, path: Path, key_ref: str) -> Credential:
        try:
            record = yaml.safe_load(Path(path).read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise CredentialError(f"Cannot read credential record {path}: {e}") from e

        if not isinstance(record, dict) or "password" not in record:
            raise CredentialError(f"Credential record {path} has no password")

        try:
            password = self._fernet(key_ref).decrypt(str(record["password"]).encode())
        except InvalidToken as e:
            raise CredentialError(f"Credential {path} cannot be decrypted with '{key_ref}'") from e

        logger.debug("credential_decrypted", file=str(path))
        return Credential(username=str(record.get("username", "")), password=password.decode())
