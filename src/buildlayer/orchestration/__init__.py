"""Orchestration package: sequential stage execution."""

from buildlayer.orchestration.engine import WorkflowSequencer
from buildlayer.orchestration.handlers import (
    EchoAction,
    FunctionAction,
    RunCommandAction,
    register_default_handlers,
)
from buildlayer.orchestration.registry import (
    ActionOutcome,
    ActionProvider,
    ActionRegistry,
    AttributeStore,
    RunConfig,
    WorkflowContext,
)
from buildlayer.orchestration.results import PlannedStage, ResultCollector, RunResult, StageResult

__all__ = [
    "ActionOutcome",
    "ActionProvider",
    "ActionRegistry",
    "AttributeStore",
    "EchoAction",
    "FunctionAction",
    "PlannedStage",
    "ResultCollector",
    "RunCommandAction",
    "RunConfig",
    "RunResult",
    "StageResult",
    "WorkflowContext",
    "WorkflowSequencer",
    "register_default_handlers",
]
