"""Sequential execution engine for rendered stages."""

from __future__ import annotations

import shutil
import tempfile
import threading
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from buildlayer.core.errors import WorkflowError
from buildlayer.logging import WorkflowLogSink, bind_context
from buildlayer.orchestration.registry import (
    ActionOutcome,
    ActionProvider,
    ActionRegistry,
    AttributeStore,
    RunConfig,
    WorkflowContext,
)
from buildlayer.orchestration.results import PlannedStage, ResultCollector, RunResult, StageResult
from buildlayer.specs.template import ObjectSpec, StageTemplate

logger = structlog.get_logger()


def new_run_id() -> str:
    return f"{datetime.now():%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:8]}"


class ActionDeadlineExceeded(Exception):
    """An invocation was still running when its deadline passed."""


class WorkflowSequencer:
    """Runs stages one at a time, one invocation at a time, in declared order.

    Values captured by one stage (``workflowAttrib``) are available to later
    stages through the reference marker (``@@name``). The first failing
    invocation aborts the run; completed stages are not rolled back.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        log_dir: Path = Path("logs"),
        scratch_root: Optional[Path] = None,
        stage_pause_seconds: float = 5.0,
        action_timeout_seconds: Optional[float] = None,
        reference_marker: str = "@@",
        capture_parameter: str = "workflowAttrib",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._registry = registry
        self.log_dir = Path(log_dir)
        self.scratch_root = Path(scratch_root) if scratch_root else Path(tempfile.gettempdir())
        self.stage_pause_seconds = stage_pause_seconds
        self.action_timeout_seconds = action_timeout_seconds
        self.reference_marker = reference_marker
        self.capture_parameter = capture_parameter
        self._sleep = sleep

    def build_invocation(
        self, obj: ObjectSpec, attributes: AttributeStore
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        """Turn declared (name, value) pairs into a parameter map and a capture name."""
        parameters: Dict[str, Any] = {}
        capture: Optional[str] = None
        for name, value in obj.parameters:
            if name == self.capture_parameter:
                capture = str(value)
            elif isinstance(value, str) and value.startswith(self.reference_marker):
                parameters[name] = attributes.get(value[len(self.reference_marker):])
            else:
                parameters[name] = value
        return parameters, capture

    def plan(self, stages: List[StageTemplate]) -> List[PlannedStage]:
        """Describe what a run would invoke; references are left unresolved."""
        planned = []
        for stage in sorted(stages, key=lambda s: s.sequence_id):
            entry = PlannedStage(sequence_id=stage.sequence_id, function_name=stage.function_name)
            for obj in stage.objects:
                parameters = {}
                for name, value in obj.parameters:
                    if name == self.capture_parameter:
                        entry.captures.append(str(value))
                    else:
                        parameters[name] = value
                entry.invocations.append(parameters)
            planned.append(entry)
        return planned

    def run(self, stages: List[StageTemplate], run_id: Optional[str] = None) -> RunResult:
        """Execute every stage in ascending sequence order.

        Raises:
            InputError: If a stage names an unregistered action
            WorkflowError: If any invocation fails; the message points at the run log
        """
        ordered = sorted(stages, key=lambda s: s.sequence_id)
        providers = {stage.function_name: self._registry.require(stage.function_name) for stage in ordered}

        run_id = run_id or new_run_id()
        self.scratch_root.mkdir(parents=True, exist_ok=True)
        scratch_dir = Path(tempfile.mkdtemp(prefix=f"buildlayer-{run_id}-", dir=self.scratch_root))
        log_path = self.log_dir / f"{run_id}.log"
        sink = WorkflowLogSink(log_path)
        ctx = WorkflowContext(
            config=RunConfig(
                run_id=run_id,
                scratch_dir=scratch_dir,
                log_path=log_path,
                stage_pause_seconds=self.stage_pause_seconds,
                action_timeout_seconds=self.action_timeout_seconds,
                reference_marker=self.reference_marker,
                capture_parameter=self.capture_parameter,
            )
        )
        collector = ResultCollector(run_id=run_id, log_path=log_path)
        started = time.monotonic()
        log = bind_context(run_id=run_id)
        log.info("run_started", stages=len(ordered), log=str(log_path))

        for stage in ordered:
            ctx.function_name = stage.function_name
            ctx.sequence_id = stage.sequence_id
            stage_result = self._run_stage(stage, providers[stage.function_name], ctx, sink)
            collector.record(stage_result)
            if self.stage_pause_seconds > 0:
                self._sleep(self.stage_pause_seconds)

        self._remove_scratch(scratch_dir, sink)
        duration = time.monotonic() - started
        log.info("run_completed", stages=len(ordered), duration=round(duration, 2))
        return collector.finalize(ctx.attributes.as_dict(), duration)

    def _run_stage(
        self,
        stage: StageTemplate,
        provider: ActionProvider,
        ctx: WorkflowContext,
        sink: WorkflowLogSink,
    ) -> StageResult:
        name = stage.function_name
        sink.verbose(name, f"Starting stage {stage.sequence_id} with {len(stage.objects)} object(s)")
        stage_result = StageResult(sequence_id=stage.sequence_id, function_name=name)
        captures: List[Optional[str]] = []

        for position, obj in enumerate(stage.objects, 1):
            parameters, capture = self.build_invocation(obj, ctx.attributes)
            sink.verbose(name, f"Invoking object {position} with parameters: {', '.join(parameters)}")
            outcome = self._invoke(provider, parameters, ctx)

            for line in outcome.diagnostics:
                sink.verbose(name, line)

            if not outcome.succeeded:
                sink.error(name, f"Object {position} failed: {outcome.error}")
                self._remove_scratch(ctx.scratch_dir, sink)
                raise WorkflowError(
                    f"Stage {stage.sequence_id} ({name}) failed: {outcome.error}. "
                    f"See log {ctx.config.log_path}",
                    log_path=ctx.config.log_path,
                    details={"stage": stage.sequence_id, "action": name, "object": position},
                )

            if outcome.result is not None:
                sink.stdout(name, outcome.result)
            stage_result.results.append(outcome.result)
            captures.append(capture)

        for capture, result in zip(captures, stage_result.results):
            if capture is None:
                continue
            if result is None:
                warning = f"No result to capture into '{capture}'"
                sink.warning(name, warning)
                stage_result.warnings.append(warning)
                continue
            ctx.attributes.set(capture, result)
            stage_result.captured[capture] = result
            sink.verbose(name, f"Captured workflow attribute '{capture}'")

        return stage_result

    def _invoke(
        self, provider: ActionProvider, parameters: Dict[str, Any], ctx: WorkflowContext
    ) -> ActionOutcome:
        """Call the provider, converting exceptions and deadlines into failed outcomes."""
        try:
            if self.action_timeout_seconds is None:
                outcome = provider.invoke(parameters, ctx)
            else:
                outcome = self._invoke_with_deadline(provider, parameters, ctx)
        except ActionDeadlineExceeded:
            logger.warning(
                "action_deadline_exceeded",
                action=provider.name,
                timeout=self.action_timeout_seconds,
            )
            return ActionOutcome.failure(
                f"Action '{provider.name}' did not finish within {self.action_timeout_seconds}s"
            )
        except Exception as e:
            logger.warning("action_raised", action=provider.name, err=str(e), exc_info=True)
            return ActionOutcome.failure(f"{type(e).__name__}: {e}")

        if not isinstance(outcome, ActionOutcome):
            return ActionOutcome.success(outcome)
        return outcome

    def _invoke_with_deadline(
        self, provider: ActionProvider, parameters: Dict[str, Any], ctx: WorkflowContext
    ) -> Any:
        """Run the invocation on a daemon thread and wait at most the deadline.

        A hung action cannot be interrupted; its daemon thread is abandoned
        and does not keep the process alive.
        """
        holder: Dict[str, Any] = {}

        def target() -> None:
            try:
                holder["result"] = provider.invoke(parameters, ctx)
            except Exception as e:
                holder["error"] = e

        worker = threading.Thread(target=target, name=f"buildlayer-action-{provider.name}", daemon=True)
        worker.start()
        worker.join(self.action_timeout_seconds)
        if worker.is_alive():
            raise ActionDeadlineExceeded(provider.name)
        if "error" in holder:
            raise holder["error"]
        return holder.get("result")

    def _remove_scratch(self, scratch_dir: Path, sink: WorkflowLogSink) -> None:
        try:
            shutil.rmtree(scratch_dir)
        except OSError as e:
            sink.warning("Cleanup", f"Could not remove scratch directory {scratch_dir}: {e}")
