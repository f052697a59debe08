"""Result types for workflow runs."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List


@dataclass
class StageResult:
    """Outcome of one executed stage."""

    sequence_id: int
    function_name: str
    results: List[Any] = field(default_factory=list)
    captured: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def invocations(self) -> int:
        return len(self.results)


@dataclass
class RunResult:
    """Result of a complete workflow run."""

    run_id: str
    log_path: Path
    stages: List[StageResult] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def total_invocations(self) -> int:
        return sum(stage.invocations for stage in self.stages)

    @property
    def warnings(self) -> List[str]:
        return [warning for stage in self.stages for warning in stage.warnings]


@dataclass
class PlannedStage:
    """A stage as it would run, without invoking anything."""

    sequence_id: int
    function_name: str
    invocations: List[Dict[str, Any]] = field(default_factory=list)
    captures: List[str] = field(default_factory=list)


class ResultCollector:
    """Aggregates stage results during a run."""

    def __init__(self, run_id: str, log_path: Path) -> None:
        self._result = RunResult(run_id=run_id, log_path=log_path)

    def record(self, stage: StageResult) -> None:
        """Record a completed stage."""
        self._result.stages.append(stage)

    @property
    def completed(self) -> List[StageResult]:
        return list(self._result.stages)

    def finalize(self, attributes: Dict[str, Any], duration: float) -> RunResult:
        """Return the final result with attributes and duration set."""
        self._result.attributes = dict(attributes)
        self._result.duration_seconds = duration
        return self._result
