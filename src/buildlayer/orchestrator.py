"""
Build orchestrator for the resolve → render → run workflow.

Coordinates value-table resolution, stage rendering and sequential
execution for a single build profile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import structlog

from buildlayer.config.loader import BuildProfile
from buildlayer.config.settings import Settings, get_settings
from buildlayer.credentials import CredentialService
from buildlayer.orchestration.engine import WorkflowSequencer
from buildlayer.orchestration.handlers import register_default_handlers
from buildlayer.orchestration.registry import ActionRegistry
from buildlayer.orchestration.results import PlannedStage, RunResult
from buildlayer.specs.models import ValueTable
from buildlayer.specs.resolver import ResolverOptions, ValueTableResolver
from buildlayer.specs.stages import collect_placeholders, load_stages
from buildlayer.specs.template import PlaceholderRef, StageTemplate, placeholder_pattern

logger = structlog.get_logger()


@dataclass
class PlaceholderReport:
    """Which value-table keys a stage directory needs and which are missing."""

    required: List[PlaceholderRef] = field(default_factory=list)
    missing: List[PlaceholderRef] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing


class BuildOrchestrator:
    """Orchestrates a complete build from one profile."""

    def __init__(
        self,
        profile: BuildProfile,
        registry: Optional[ActionRegistry] = None,
        settings: Optional[Settings] = None,
        credential_service: Optional[CredentialService] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.profile = profile
        self.settings = settings or get_settings()
        if registry is None:
            registry = ActionRegistry()
            register_default_handlers(registry)
        self.registry = registry
        self.credential_service = credential_service
        self._sleep = sleep
        self._pattern = placeholder_pattern(self.settings.placeholder_marker)
        self.value_table: Optional[ValueTable] = None
        self.stages: Optional[List[StageTemplate]] = None
        self.previewed = False

    def resolve(self, preview: bool = False) -> ValueTable:
        """Resolve and validate the build's value table.

        With ``preview`` the network ledger is read but never written, so
        addresses shown by a dry run are the ones a later run receives.
        """
        self.profile.require("build", "credential_store", "credential_key")
        resolver = ValueTableResolver(
            dml_index_path=self.profile.dml_index or Path("index.csv"),
            credential_store_path=self.profile.credential_store,
            credential_key_ref=self.profile.credential_key,
            network_ledger_path=self.profile.network_ledger or self.settings.network_ledger,
            credential_service=self.credential_service,
            options=ResolverOptions(
                skip_media_validation=self.profile.skip_media_validation,
                skip_credential_validation=self.profile.skip_credential_validation,
                preview_allocations=preview,
            ),
        )
        self.value_table = resolver.resolve(self.profile.build, self.profile.overrides)
        self.previewed = preview
        return self.value_table

    def load(self, preview: bool = False) -> List[StageTemplate]:
        """Render every stage against the resolved table."""
        self.profile.require("stages")
        if self.value_table is None or (self.previewed and not preview):
            self.resolve(preview=preview)
        assert self.value_table is not None
        self.stages = load_stages(self.profile.stages, self.value_table, self.registry, self._pattern)
        return self.stages

    def check_placeholders(self, table: Optional[ValueTable] = None) -> PlaceholderReport:
        """Report placeholders the stage directory needs, without rendering."""
        self.profile.require("stages")
        required = collect_placeholders(self.profile.stages, self._pattern)
        report = PlaceholderReport(required=required)
        if table is not None:
            report.missing = [ref for ref in required if ref.name not in table]
        return report

    def _sequencer(self) -> WorkflowSequencer:
        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return WorkflowSequencer(
            self.registry,
            log_dir=self.settings.log_dir,
            scratch_root=self.settings.scratch_root,
            stage_pause_seconds=self.settings.stage_pause_seconds,
            action_timeout_seconds=self.settings.action_timeout_seconds,
            reference_marker=self.settings.reference_marker,
            capture_parameter=self.settings.capture_parameter,
            **kwargs,
        )

    def plan(self) -> List[PlannedStage]:
        """Resolve and render, then describe the run without executing it."""
        stages = self.stages if self.stages is not None else self.load(preview=True)
        return self._sequencer().plan(stages)

    def run(self, run_id: Optional[str] = None) -> RunResult:
        """Resolve, render and execute every stage."""
        if self.stages is None or self.previewed:
            self.load()
        stages = self.stages
        assert stages is not None
        logger.info("build_starting", build=str(self.profile.build), stages=len(stages))
        return self._sequencer().run(stages, run_id=run_id)
