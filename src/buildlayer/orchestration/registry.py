"""Action provider protocol, registry and run context for orchestration."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from buildlayer.core.errors import InputError


@dataclass
class ActionOutcome:
    """What a single action invocation produced.

    ``result`` is the primary return value (None when the action returns
    nothing); ``diagnostics`` are extra lines for the run log.
    """

    result: Any = None
    diagnostics: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, result: Any = None, diagnostics: Optional[List[str]] = None) -> "ActionOutcome":
        return cls(result=result, diagnostics=list(diagnostics or []))

    @classmethod
    def failure(cls, error: str, diagnostics: Optional[List[str]] = None) -> "ActionOutcome":
        return cls(error=error, diagnostics=list(diagnostics or []))


class AttributeStore:
    """Values captured from earlier stages, scoped to one run."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def get(self, name: str) -> Any:
        """Return the captured value; an unset attribute resolves to an empty string."""
        return self._values.get(name, "")

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)


@dataclass
class RunConfig:
    """Per-run settings shared by the sequencer and action providers."""

    run_id: str
    scratch_dir: Path
    log_path: Path
    stage_pause_seconds: float = 5.0
    action_timeout_seconds: Optional[float] = None
    reference_marker: str = "@@"
    capture_parameter: str = "workflowAttrib"


@dataclass
class WorkflowContext:
    """Explicit context passed to every stage and action invocation."""

    config: RunConfig
    attributes: AttributeStore = field(default_factory=AttributeStore)
    function_name: str = ""
    sequence_id: int = 0

    @property
    def scratch_dir(self) -> Path:
        return self.config.scratch_dir


@runtime_checkable
class ActionProvider(Protocol):
    """Protocol for named actions that stages invoke."""

    @property
    def name(self) -> str:
        """Function name used in stage file names (e.g. 'NewVM')."""
        ...

    def invoke(self, parameters: Dict[str, Any], ctx: WorkflowContext) -> ActionOutcome:
        """Run the action once with a parameter map."""
        ...


class ActionRegistry:
    """In-memory registry for action providers."""

    def __init__(self) -> None:
        self._providers: Dict[str, ActionProvider] = {}

    def register(self, provider: ActionProvider) -> None:
        """Register a provider by its name."""
        self._providers[provider.name] = provider

    def get(self, name: str) -> Optional[ActionProvider]:
        """Get a provider by function name."""
        return self._providers.get(name)

    def require(self, name: str) -> ActionProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise InputError(f"No action registered for '{name}'", details={"action": name})
        return provider

    def list(self) -> List[str]:
        """List all registered provider names."""
        return list(self._providers.keys())
