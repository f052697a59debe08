from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from buildlayer.core.errors import AllocationError, InputError

DEFAULT_LEDGER_PATH = Path("networks.json")


@dataclass
class NetworkDefinition:
    name: str
    range_start: str
    range_end: str
    gateway: str
    net_id: str
    net_mask: str
    allocated_addresses: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NetworkDefinition":
        return cls(
            name=data["networkName"],
            range_start=data["rangeStart"],
            range_end=data["rangeEnd"],
            gateway=data.get("gateway", ""),
            net_id=data.get("netid", ""),
            net_mask=data.get("netmask", ""),
            allocated_addresses=list(data.get("addressAllocations") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "networkName": self.name,
            "rangeStart": self.range_start,
            "rangeEnd": self.range_end,
            "gateway": self.gateway,
            "netid": self.net_id,
            "netmask": self.net_mask,
            "addressAllocations": list(self.allocated_addresses),
        }


@dataclass
class NetworkLedger:
    networks: List[NetworkDefinition] = field(default_factory=list)
    wrapped: bool = False

    def get(self, name: str) -> NetworkDefinition | None:
        for network in self.networks:
            if network.name == name:
                return network
        return None

    def to_document(self) -> Any:
        records = [network.to_dict() for network in self.networks]
        if self.wrapped:
            return {"networks": records}
        return records


def load_ledger(path: Path | None = None) -> NetworkLedger:
    ledger_path = path or DEFAULT_LEDGER_PATH
    if not ledger_path.exists():
        raise InputError(
            f"Network ledger not found: {ledger_path}", details={"file": str(ledger_path)}
        )
    try:
        text = ledger_path.read_text()
    except OSError as e:
        raise InputError(
            f"Network ledger cannot be read: {ledger_path}",
            details={"file": str(ledger_path), "error": str(e)},
        ) from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InputError(
            f"Network ledger is not valid JSON: {ledger_path}",
            details={"file": str(ledger_path), "error": str(e)},
        ) from e

    wrapped = isinstance(data, dict)
    records = data.get("networks", []) if wrapped else data
    if isinstance(records, dict):
        records = [records]
    if not isinstance(records, list):
        raise InputError(
            f"Network ledger must contain a list of networks: {ledger_path}",
            details={"file": str(ledger_path)},
        )
    try:
        networks = [NetworkDefinition.from_dict(record) for record in records]
    except (KeyError, TypeError) as e:
        raise InputError(
            f"Network ledger record is missing a field: {e}",
            details={"file": str(ledger_path)},
        ) from e
    return NetworkLedger(networks=networks, wrapped=wrapped)


def save_ledger(ledger: NetworkLedger, path: Path | None = None) -> None:
    """Write the whole ledger, replacing the previous file atomically."""
    ledger_path = path or DEFAULT_LEDGER_PATH
    payload = json.dumps(ledger.to_document(), indent=2) + "\n"
    directory = ledger_path.parent if str(ledger_path.parent) else Path(".")
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{ledger_path.name}.", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "w") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, ledger_path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise AllocationError(
            f"Failed to persist network ledger: {ledger_path}",
            details={"file": str(ledger_path), "error": str(e)},
        ) from e
