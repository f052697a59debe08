"""
CLI command listing the build values a stage directory requires.
"""

from buildlayer.cli.ux import console, error, header, print_placeholder_table, success
from buildlayer.config.loader import BuildProfile
from buildlayer.core.errors import ExitCode, main_with_error_handling
from buildlayer.orchestrator import BuildOrchestrator
from buildlayer.specs.loader import load_build_values, load_overrides
from buildlayer.specs.resolver import apply_overrides


@main_with_error_handling()
def placeholders_command(profile: BuildProfile) -> int:
    """
    Statically list placeholders in the stage directory.

    When the profile names a build, keys missing from its (unresolved)
    value rows are reported and the command fails.

    Returns:
        Exit code (0 when every placeholder has a value, 14 otherwise)
    """
    header("Stage Placeholders", profile.stages)
    orchestrator = BuildOrchestrator(profile)

    table = None
    if profile.build:
        values = load_build_values(profile.build)
        overrides = load_overrides(profile.overrides) if profile.overrides else []
        table = apply_overrides(values, overrides)

    report = orchestrator.check_placeholders(table)
    print_placeholder_table(report.required)
    console.print()

    if report.missing:
        for ref in report.missing:
            error(f"{ref.name} (stage {ref.sequence_id} {ref.function_name}, line {ref.line})")
        return ExitCode.TEMPLATE_ERROR

    success(f"{len({ref.name for ref in report.required})} distinct keys required")
    return 0
