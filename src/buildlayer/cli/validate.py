"""
CLI command for resolving and validating a build's value table.
"""

from buildlayer.cli.ux import console, error, header, print_value_table, success
from buildlayer.config.loader import BuildProfile
from buildlayer.core.errors import ValidationError, main_with_error_handling
from buildlayer.orchestrator import BuildOrchestrator


@main_with_error_handling()
def validate_command(profile: BuildProfile, verbose: bool = False) -> int:
    """
    Resolve the value table and report every invalid value at once.

    Network addresses are previewed, not taken from the ledger.

    Returns:
        Exit code (0 for success, 12 when values fail validation)
    """
    header("Validate Build Values", profile.build)
    orchestrator = BuildOrchestrator(profile)

    try:
        table = orchestrator.resolve(preview=True)
    except ValidationError as e:
        for failure in e.failures:
            error(failure.describe())
        raise

    if verbose:
        print_value_table(table)

    console.print()
    success(f"{len(table)} build values resolved and valid")
    return 0
