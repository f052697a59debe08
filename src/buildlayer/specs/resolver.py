"""
Build value table resolution.

Resolution runs in a fixed order:
1. Load base rows (CSV file or directory)
2. Apply overrides (an override row replaces the base row entirely)
3. Resolve DML references to absolute, hash-verified media paths
4. Resolve Credential references to paths inside the credential store
5. Resolve NETALLOCATION#<network>#<action> rows through the allocator
6. Validate every non-credential row, failing once for all bad rows

Every step is fail-fast: no partial table is ever returned.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path

import structlog

from buildlayer.core.errors import AllocationError, InputError, ResolutionError, ValidationError
from buildlayer.credentials import CredentialService, FernetCredentialService
from buildlayer.network.allocator import AllocationAction, NetworkAllocator
from buildlayer.specs.loader import load_build_values, load_dml_index, load_overrides
from buildlayer.specs.models import BuildValue, DataType, DmlIndexEntry, ValueTable
from buildlayer.validation.metadata import MetadataValidator, ValidationResult

logger = structlog.get_logger()

HASH_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    """Compute the hex SHA256 digest of a file."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def apply_overrides(values: list[BuildValue], overrides: list[BuildValue]) -> ValueTable:
    """Merge override rows into base rows; an override supersedes the whole row."""
    table = ValueTable(values)
    for override in overrides:
        if override.key in table:
            logger.debug("value_overridden", key=override.key, source=override.source)
        table.replace(override)
    return table


@dataclass
class ResolverOptions:
    """Switches for the expensive or external checks."""

    skip_media_validation: bool = False
    skip_credential_validation: bool = False
    # Compute newIP addresses without recording them in the ledger file.
    preview_allocations: bool = False


class ValueTableResolver:
    """Builds the final, validated value table for one build."""

    def __init__(
        self,
        dml_index_path: str | Path,
        credential_store_path: str | Path,
        credential_key_ref: str,
        network_ledger_path: str | Path | None = None,
        credential_service: CredentialService | None = None,
        validator: MetadataValidator | None = None,
        options: ResolverOptions | None = None,
    ):
        self.dml_index_path = Path(dml_index_path)
        self.credential_store_path = Path(credential_store_path)
        self.credential_key_ref = credential_key_ref
        self.network_ledger_path = Path(network_ledger_path) if network_ledger_path else None
        self.credential_service = credential_service or FernetCredentialService()
        self.validator = validator or MetadataValidator()
        self.options = options or ResolverOptions()
        self._dml_index: dict[str, DmlIndexEntry] | None = None
        self._allocator: NetworkAllocator | None = None

    @property
    def dml_index(self) -> dict[str, DmlIndexEntry]:
        if self._dml_index is None:
            self._dml_index = load_dml_index(self.dml_index_path)
        return self._dml_index

    def resolve(self, build_path: str | Path, overrides_path: str | Path | None = None) -> ValueTable:
        """Load, merge, resolve and validate the value table for a build."""
        values = load_build_values(build_path)
        overrides = load_overrides(overrides_path) if overrides_path else []
        table = apply_overrides(values, overrides)
        self._allocator = None
        logger.info(
            "value_table_loaded",
            build=str(build_path),
            values=len(values),
            overrides=len(overrides),
        )

        for row in table:
            if row.data_type == DataType.DML:
                self.resolve_media(row)
        for row in table:
            if row.data_type == DataType.CREDENTIAL:
                self.resolve_credential(row)
        for row in table:
            if DataType.is_net_allocation(row.data_type):
                self.resolve_net_allocation(row)

        self.validate_table(table)
        logger.info("value_table_resolved", build=str(build_path), values=len(table))
        return table

    def resolve_media(self, row: BuildValue) -> None:
        """Rewrite a DML item reference to its absolute media path."""
        entry = self.dml_index.get(row.value.strip())
        if entry is None:
            raise ResolutionError(
                f"DML item '{row.value}' for key '{row.key}' is not in the index",
                details={"key": row.key, "item": row.value, "index": str(self.dml_index_path)},
            )

        media_path = (self.dml_index_path.parent / entry.path).resolve()
        if not self.options.skip_media_validation:
            if not media_path.is_file():
                raise ResolutionError(
                    f"DML media for key '{row.key}' not found: {media_path}",
                    details={"key": row.key, "item": entry.item_number, "file": str(media_path)},
                )
            actual = sha256_file(media_path)
            if actual.lower() != entry.sha256.lower():
                raise ResolutionError(
                    f"SHA256 mismatch for DML item '{entry.item_number}' ({media_path})",
                    details={
                        "key": row.key,
                        "file": str(media_path),
                        "expected": entry.sha256,
                        "actual": actual,
                    },
                )
            logger.debug("dml_hash_verified", key=row.key, file=str(media_path))

        row.value = str(media_path)
        row.data_type = DataType.FOLDER_PATH

    def resolve_credential(self, row: BuildValue) -> None:
        """Rewrite a credential reference to its path inside the credential store."""
        credential_path = (self.credential_store_path / row.value.strip()).resolve()
        if not self.options.skip_credential_validation:
            try:
                self.credential_service.decrypt(credential_path, self.credential_key_ref)
            except Exception as e:
                raise ResolutionError(
                    f"Credential for key '{row.key}' cannot be decrypted: {e}",
                    details={"key": row.key, "file": str(credential_path)},
                ) from e
        row.value = str(credential_path)

    def resolve_net_allocation(self, row: BuildValue) -> None:
        """Replace a NETALLOCATION row with an address or network fact."""
        parts = row.data_type.split("#")
        if len(parts) != 3 or not parts[1] or not parts[2]:
            raise ResolutionError(
                f"Malformed network allocation type '{row.data_type}' for key '{row.key}'",
                details={"key": row.key, "dataType": row.data_type},
            )
        if self.network_ledger_path is None:
            raise InputError(
                f"Key '{row.key}' requests a network allocation but no ledger is configured",
                details={"key": row.key},
            )
        _, net_name, action = parts
        if action not in set(AllocationAction):
            raise AllocationError(
                f"Unknown allocation action '{action}' for key '{row.key}'",
                details={"key": row.key, "network": net_name, "action": action},
            )
        if self._allocator is None:
            self._allocator = NetworkAllocator(
                self.network_ledger_path, persist=not self.options.preview_allocations
            )
        row.value = self._allocator.allocate(net_name, action)
        row.data_type = DataType.IPV4
        logger.debug("network_value_resolved", key=row.key, network=net_name, action=action)

    def validate_table(self, table: ValueTable) -> list[ValidationResult]:
        """Validate every non-credential row and fail once for all failures."""
        results = [
            self.validator.validate(row.value, row.data_type, key=row.key)
            for row in table
            if row.data_type != DataType.CREDENTIAL
        ]
        failures = [result for result in results if not result.is_valid]
        if failures:
            for failure in failures:
                logger.warning(
                    "value_invalid",
                    key=failure.key,
                    value=failure.data_item,
                    data_type=failure.data_type,
                )
            listing = "; ".join(failure.describe() for failure in failures)
            raise ValidationError(
                f"{len(failures)} build value(s) failed validation: {listing}",
                failures=failures,
                details={"keys": [failure.key for failure in failures]},
            )
        return results


def resolve_value_table(
    build_path: str | Path,
    dml_index_path: str | Path,
    credential_store_path: str | Path,
    credential_key_ref: str,
    overrides_path: str | Path | None = None,
    skip_media_validation: bool = False,
    network_ledger_path: str | Path | None = None,
    skip_credential_validation: bool = False,
    credential_service: CredentialService | None = None,
    preview_allocations: bool = False,
) -> ValueTable:
    """Convenience function for a one-shot resolution."""
    resolver = ValueTableResolver(
        dml_index_path=dml_index_path,
        credential_store_path=credential_store_path,
        credential_key_ref=credential_key_ref,
        network_ledger_path=network_ledger_path,
        credential_service=credential_service,
        options=ResolverOptions(
            skip_media_validation=skip_media_validation,
            skip_credential_validation=skip_credential_validation,
            preview_allocations=preview_allocations,
        ),
    )
    return resolver.resolve(build_path, overrides_path)
