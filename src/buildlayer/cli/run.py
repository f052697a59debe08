"""
CLI commands for planning (dry-run) and running a build.
"""

import json
from typing import List

from buildlayer.cli.ux import (
    console,
    error,
    header,
    info,
    print_attributes,
    success,
    warning,
    working,
)
from buildlayer.config.loader import BuildProfile
from buildlayer.core.errors import WorkflowError, main_with_error_handling
from buildlayer.orchestration.results import PlannedStage, RunResult
from buildlayer.orchestrator import BuildOrchestrator


def print_plan_summary(stages: List[PlannedStage]) -> None:
    """Print the stages a run would execute."""
    header("Plan")
    console.print()

    if not stages:
        warning("No stages found")
        return

    for stage in stages:
        console.print(
            f"  [success]{stage.sequence_id:>4}[/success]  [bold]{stage.function_name}[/bold]"
            f"  [muted]({len(stage.invocations)} invocation(s))[/muted]"
        )
        for parameters in stage.invocations:
            console.print(f"        [muted]└[/muted] {', '.join(parameters) or '(no parameters)'}")
        if stage.captures:
            console.print(f"        [muted]captures:[/muted] {', '.join(stage.captures)}")

    total = sum(len(stage.invocations) for stage in stages)
    console.print()
    console.print(f"[bold]Total:[/bold] {len(stages)} stages, {total} invocations")
    console.print()


def print_plan_json(stages: List[PlannedStage]) -> None:
    output = [
        {
            "sequence_id": stage.sequence_id,
            "function_name": stage.function_name,
            "invocations": stage.invocations,
            "captures": stage.captures,
        }
        for stage in stages
    ]
    print(json.dumps(output, indent=2, default=str))


@main_with_error_handling()
def plan_command(profile: BuildProfile, output_format: str = "text") -> int:
    """
    Preview the stages a build would run (dry-run).

    Returns:
        Exit code (0 for success)
    """
    orchestrator = BuildOrchestrator(profile)
    stages = orchestrator.plan()

    if output_format == "json":
        print_plan_json(stages)
    else:
        print_plan_summary(stages)
    return 0


def print_run_summary(result: RunResult) -> None:
    console.print()
    for stage in result.stages:
        success(f"{stage.sequence_id} {stage.function_name} ({stage.invocations} invocation(s))")
    for message in result.warnings:
        warning(message)
    print_attributes(result.attributes)
    console.print()
    console.print(
        f"[bold]Completed:[/bold] {len(result.stages)} stages in {result.duration_seconds:.1f}s"
    )
    info(f"Log: {result.log_path}")


@main_with_error_handling()
def run_command(profile: BuildProfile, run_id: str | None = None) -> int:
    """
    Resolve, render and run every stage of a build.

    Returns:
        Exit code (0 for success, see ExitCode for failures)
    """
    header("Run Build", profile.build)
    orchestrator = BuildOrchestrator(profile)
    with working("Resolving build values and rendering stages..."):
        orchestrator.load()

    try:
        result = orchestrator.run(run_id=run_id)
    except WorkflowError as e:
        error(e.message)
        raise
    print_run_summary(result)
    return 0
