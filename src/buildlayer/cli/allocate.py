"""
CLI command for querying or allocating from the network ledger.
"""

from pathlib import Path

from buildlayer.core.errors import main_with_error_handling
from buildlayer.network.allocator import NetworkAllocator


@main_with_error_handling()
def allocate_command(ledger: str | Path, network: str, action: str = "newIP") -> int:
    """
    Print a network fact, or allocate and print the next free address.

    Returns:
        Exit code (0 for success, 15 for allocation errors)
    """
    print(NetworkAllocator(Path(ledger)).allocate(network, action))
    return 0
