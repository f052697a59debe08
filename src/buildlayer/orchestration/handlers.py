"""Generic action providers shipped with the engine.

Platform actions (VM creation, switch configuration, media mounting) live
outside this package and are registered by the caller. The providers here
cover the plumbing every build needs.
"""

from __future__ import annotations

import shlex
import subprocess
from typing import Any, Callable, Dict

import structlog

from buildlayer.orchestration.registry import ActionOutcome, ActionRegistry, WorkflowContext

logger = structlog.get_logger()


class EchoAction:
    """Returns ``message``; every other parameter is logged as a diagnostic."""

    @property
    def name(self) -> str:
        return "Echo"

    def invoke(self, parameters: Dict[str, Any], ctx: WorkflowContext) -> ActionOutcome:
        diagnostics = [f"{key}={value}" for key, value in parameters.items() if key != "message"]
        return ActionOutcome.success(parameters.get("message"), diagnostics)


class RunCommandAction:
    """Runs ``command`` in a subprocess.

    Parameters:
        command: Command line (string, split with shlex) or list of arguments
        cwd: Working directory (defaults to the run's scratch directory)
        timeout: Seconds before the command is killed

    Output lines become diagnostics; the last non-empty stdout line is the
    result. A non-zero exit status fails the invocation.
    """

    @property
    def name(self) -> str:
        return "RunCommand"

    def invoke(self, parameters: Dict[str, Any], ctx: WorkflowContext) -> ActionOutcome:
        command = parameters.get("command")
        if not command:
            return ActionOutcome.failure("RunCommand requires a 'command' parameter")
        args = shlex.split(command) if isinstance(command, str) else [str(a) for a in command]
        timeout = parameters.get("timeout")

        try:
            completed = subprocess.run(
                args,
                cwd=parameters.get("cwd") or ctx.scratch_dir,
                capture_output=True,
                text=True,
                timeout=float(timeout) if timeout else None,
            )
        except FileNotFoundError:
            return ActionOutcome.failure(f"Command not found: {args[0]}")
        except subprocess.TimeoutExpired:
            return ActionOutcome.failure(f"Command timed out after {timeout}s: {args[0]}")

        stdout = [line for line in completed.stdout.splitlines() if line.strip()]
        diagnostics = stdout + [f"stderr: {line}" for line in completed.stderr.splitlines() if line.strip()]
        if completed.returncode != 0:
            return ActionOutcome.failure(
                f"Command exited with status {completed.returncode}: {args[0]}", diagnostics
            )
        return ActionOutcome.success(stdout[-1] if stdout else None, diagnostics)


class FunctionAction:
    """Adapts a plain callable ``fn(parameters, ctx) -> result`` to a provider."""

    def __init__(self, name: str, fn: Callable[[Dict[str, Any], WorkflowContext], Any]):
        self._name = name
        self._fn = fn

    @property
    def name(self) -> str:
        return self._name

    def invoke(self, parameters: Dict[str, Any], ctx: WorkflowContext) -> ActionOutcome:
        result = self._fn(parameters, ctx)
        if isinstance(result, ActionOutcome):
            return result
        return ActionOutcome.success(result)


def register_default_handlers(registry: ActionRegistry) -> None:
    """Register the built-in action providers."""
    for provider in (EchoAction(), RunCommandAction()):
        registry.register(provider)
