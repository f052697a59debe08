"""
IP address allocation from a file-backed network ledger.

The ledger is read, modified and written back on every newIP request.
No locking is performed: callers must serialize allocations against the
same ledger file.
"""

from __future__ import annotations

import ipaddress
from enum import StrEnum
from pathlib import Path

import structlog

from buildlayer.core.errors import AddressPoolExhaustedError, AllocationError, NetworkNotFoundError
from buildlayer.network.ledger import NetworkDefinition, NetworkLedger, load_ledger, save_ledger

logger = structlog.get_logger()


class AllocationAction(StrEnum):
    """Requests the allocator can serve."""

    NEW_IP = "newIP"
    GATEWAY = "gateway"
    NET_ID = "netId"
    NET_MASK = "netMask"


def _parse_address(value: str, field_name: str, network: str) -> int:
    try:
        return int(ipaddress.IPv4Address(value))
    except (ipaddress.AddressValueError, ValueError) as e:
        raise AllocationError(
            f"Network '{network}' has an invalid {field_name}: {value}",
            details={"network": network, "field": field_name, "value": value},
        ) from e


def next_free_address(network: NetworkDefinition) -> str:
    """Return the lowest address in the range that is not yet allocated."""
    start = _parse_address(network.range_start, "rangeStart", network.name)
    end = _parse_address(network.range_end, "rangeEnd", network.name)
    taken = set(network.allocated_addresses)

    for candidate in range(start, end + 1):
        address = str(ipaddress.IPv4Address(candidate))
        if address not in taken:
            return address

    raise AddressPoolExhaustedError(
        f"No free addresses left in network '{network.name}'",
        details={
            "network": network.name,
            "range": f"{network.range_start}-{network.range_end}",
        },
    )


class NetworkAllocator:
    """Issues addresses and static network facts from a ledger file.

    With ``persist=False`` the ledger is read once and newIP requests are
    recorded only in memory, so repeated requests still get distinct
    addresses but the file is never written.
    """

    def __init__(self, ledger_path: Path, persist: bool = True):
        self.ledger_path = Path(ledger_path)
        self.persist = persist
        self._preview_ledger: NetworkLedger | None = None

    def _ledger(self) -> NetworkLedger:
        if self.persist:
            return load_ledger(self.ledger_path)
        if self._preview_ledger is None:
            self._preview_ledger = load_ledger(self.ledger_path)
        return self._preview_ledger

    def allocate(self, net_name: str, action: str | AllocationAction) -> str:
        try:
            request = AllocationAction(action)
        except ValueError as e:
            raise AllocationError(
                f"Unknown allocation action '{action}'",
                details={"network": net_name, "action": str(action)},
            ) from e

        ledger = self._ledger()
        network = ledger.get(net_name)
        if network is None:
            raise NetworkNotFoundError(
                f"Network '{net_name}' not found in ledger",
                details={"network": net_name, "file": str(self.ledger_path)},
            )

        if request == AllocationAction.GATEWAY:
            return network.gateway
        if request == AllocationAction.NET_ID:
            return network.net_id
        if request == AllocationAction.NET_MASK:
            return network.net_mask

        address = next_free_address(network)
        network.allocated_addresses.append(address)
        if not self.persist:
            logger.debug("address_previewed", network=net_name, address=address)
            return address
        save_ledger(ledger, self.ledger_path)
        logger.info("address_allocated", network=net_name, address=address)
        return address


def allocate(definition_path: str | Path, net_name: str, action: str) -> str:
    """Convenience function for a single allocation request."""
    return NetworkAllocator(Path(definition_path)).allocate(net_name, action)
