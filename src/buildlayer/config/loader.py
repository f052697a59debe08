"""
Build profile loading.

A build profile names every input of one build so the CLI does not need
a long list of flags:

    build: values/lab01
    overrides: values/lab01-overrides.csv
    dml_index: /media/dml/index.csv
    credential_store: credentials
    credential_key: lab/credential-key
    network_ledger: networks.json
    stages: stages/lab01
    skip_media_validation: false

Search order:
1. Explicit path (--profile flag)
2. .buildlayer/build.yaml (current directory)
3. ~/.buildlayer/build.yaml (user home)

Relative paths are resolved against the directory holding the profile.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import structlog
import yaml

from buildlayer.core.errors import InputError

logger = structlog.get_logger()

PATH_FIELDS = ("build", "overrides", "dml_index", "credential_store", "network_ledger", "stages")


def get_profile_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the build profile to use.

    Returns:
        Path to profile file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise InputError(f"Build profile not found: {path}", details={"file": str(path)})

    cwd_profile = Path.cwd() / ".buildlayer" / "build.yaml"
    if cwd_profile.exists():
        return cwd_profile

    home_profile = Path.home() / ".buildlayer" / "build.yaml"
    if home_profile.exists():
        return home_profile

    return None


@dataclass
class BuildProfile:
    """Inputs for one build run."""

    build: Path | None = None
    overrides: Path | None = None
    dml_index: Path | None = None
    credential_store: Path | None = None
    credential_key: str | None = None
    network_ledger: Path | None = None
    stages: Path | None = None
    skip_media_validation: bool = False
    skip_credential_validation: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> "BuildProfile":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("unknown_profile_keys", keys=unknown)

        kwargs: dict[str, Any] = {}
        for name in known & set(data):
            value = data[name]
            if name in PATH_FIELDS and value is not None:
                path = Path(str(value)).expanduser()
                if base_dir is not None and not path.is_absolute():
                    path = base_dir / path
                value = path
            kwargs[name] = value
        return cls(**kwargs)

    def merge(self, **overrides: Any) -> "BuildProfile":
        """Return a copy where every non-None override replaces the profile value."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for name, value in overrides.items():
            if value is None:
                continue
            if name in PATH_FIELDS:
                value = Path(value)
            values[name] = value
        return BuildProfile(**values)

    def require(self, *names: str) -> None:
        missing = [name for name in names if getattr(self, name) in (None, "")]
        if missing:
            raise InputError(
                f"Missing build inputs: {', '.join(missing)}",
                details={"missing": missing},
            )


def load_profile(path: str | Path | None = None) -> BuildProfile:
    """Load a build profile, or return an empty one when none is found."""
    profile_path = get_profile_path(path)
    if profile_path is None:
        return BuildProfile()

    try:
        with open(profile_path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise InputError(
            f"Cannot load build profile {profile_path}: {e}",
            details={"file": str(profile_path)},
        ) from e

    if not isinstance(data, dict):
        raise InputError(
            f"Build profile {profile_path} must be a mapping",
            details={"file": str(profile_path)},
        )

    logger.debug("loaded_profile", path=str(profile_path))
    return BuildProfile.from_dict(data, base_dir=profile_path.parent)
