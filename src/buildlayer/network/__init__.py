"""Network address allocation backed by a JSON ledger."""

from buildlayer.network.allocator import (
    AllocationAction,
    NetworkAllocator,
    allocate,
    next_free_address,
)
from buildlayer.network.ledger import (
    NetworkDefinition,
    NetworkLedger,
    load_ledger,
    save_ledger,
)

__all__ = [
    "AllocationAction",
    "NetworkAllocator",
    "NetworkDefinition",
    "NetworkLedger",
    "allocate",
    "load_ledger",
    "next_free_address",
    "save_ledger",
]
