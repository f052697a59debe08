"""
BuildLayer Configuration System.

Provides unified configuration management with:
- Pydantic-based settings (environment variables, .env files)
- Credential key lookup (environment, keyring file, key files)
- Per-build YAML profiles
"""

from buildlayer.config.loader import BuildProfile, get_profile_path, load_profile
from buildlayer.config.secrets import (
    CredentialKeyResolver,
    KeySource,
    KeyStoreConfig,
    get_key_resolver,
    resolve_key,
)
from buildlayer.config.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Credential keys
    "CredentialKeyResolver",
    "KeySource",
    "KeyStoreConfig",
    "get_key_resolver",
    "resolve_key",
    # Profiles
    "BuildProfile",
    "get_profile_path",
    "load_profile",
]
