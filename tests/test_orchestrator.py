"""Tests for orchestrator.py.

End-to-end tests for resolve, render and run against a build workspace.
"""

import json
from pathlib import Path

import pytest
from buildlayer.config.loader import BuildProfile, load_profile
from buildlayer.core.errors import InputError, TemplateError, ValidationError
from buildlayer.orchestration.handlers import EchoAction, FunctionAction
from buildlayer.orchestration.registry import ActionRegistry
from buildlayer.orchestrator import BuildOrchestrator


@pytest.fixture
def profile(build_workspace):
    return load_profile(build_workspace / "build.yaml")


class TestBuildOrchestrator:
    """Tests for BuildOrchestrator."""

    def test_resolve(self, profile, settings_env, build_workspace):
        table = BuildOrchestrator(profile, settings=settings_env).resolve()
        assert table.lookup("vlan") == "200"
        assert table.lookup("esxiIp") == "10.0.0.10"
        assert table.lookup("esxiRoot") == str((build_workspace / "credentials" / "root.yaml").resolve())

    def test_run(self, profile, settings_env):
        """Values flow into stage 10 and its capture flows into stage 20."""
        calls = []

        def echo(parameters, ctx):
            calls.append(dict(parameters))
            return parameters["message"]

        registry = ActionRegistry()
        registry.register(FunctionAction("Echo", echo))
        result = BuildOrchestrator(profile, registry=registry, settings=settings_env).run(run_id="lab01")

        assert calls == [
            {"message": "esxi01.lab.local", "vlan": "200"},
            {"message": "esxi01.lab.local", "ip": "10.0.0.10"},
        ]
        assert result.attributes == {"hostRef": "esxi01.lab.local"}
        assert result.log_path == settings_env.log_dir / "lab01.log"
        assert result.log_path.exists()

    def test_plan_does_not_execute(self, profile, settings_env):
        registry = ActionRegistry()
        registry.register(EchoAction())
        planned = BuildOrchestrator(profile, registry=registry, settings=settings_env).plan()
        assert [p.sequence_id for p in planned] == [10, 20]
        assert planned[0].captures == ["hostRef"]
        assert planned[1].invocations == [{"message": "@@hostRef", "ip": "10.0.0.10"}]
        assert not settings_env.log_dir.exists()

    def test_invalid_value_never_runs(self, profile, settings_env, build_workspace):
        """A bad FQDN fails resolution before any action is invoked."""
        (build_workspace / "values" / "20-bad.csv").write_text(
            "key,value,dataType,description\nhostFQDN,bad_host,FQDN,\n"
        )
        calls = []
        registry = ActionRegistry()
        registry.register(FunctionAction("Echo", lambda p, ctx: calls.append(p)))
        with pytest.raises(ValidationError):
            BuildOrchestrator(profile, registry=registry, settings=settings_env).run()
        assert calls == []

    def test_unresolved_placeholder(self, profile, settings_env, build_workspace):
        (build_workspace / "stages" / "30$Echo.json").write_text('[{"message": "##nothing##"}]')
        with pytest.raises(TemplateError):
            BuildOrchestrator(profile, settings=settings_env).load()

    def test_missing_inputs(self, settings_env):
        with pytest.raises(InputError):
            BuildOrchestrator(BuildProfile(), settings=settings_env).resolve()

    def test_allocation_persisted(self, profile, settings_env, build_workspace):
        BuildOrchestrator(profile, settings=settings_env).resolve()
        ledger = json.loads((build_workspace / "networks.json").read_text())
        assert ledger[0]["addressAllocations"] == ["10.0.0.10"]

    def test_plan_leaves_ledger_untouched(self, profile, settings_env, build_workspace):
        """Repeated dry runs do not consume addresses."""
        before = (build_workspace / "networks.json").read_text()
        BuildOrchestrator(profile, settings=settings_env).plan()
        BuildOrchestrator(profile, settings=settings_env).plan()
        assert (build_workspace / "networks.json").read_text() == before

    def test_run_after_plan_allocates_planned_address(self, profile, settings_env, build_workspace):
        registry = ActionRegistry()
        registry.register(EchoAction())
        orchestrator = BuildOrchestrator(profile, registry=registry, settings=settings_env)
        planned = orchestrator.plan()
        assert planned[1].invocations[0]["ip"] == "10.0.0.10"

        orchestrator.run()
        ledger = json.loads((build_workspace / "networks.json").read_text())
        assert ledger[0]["addressAllocations"] == ["10.0.0.10"]

    def test_preview_resolve(self, profile, settings_env, build_workspace):
        table = BuildOrchestrator(profile, settings=settings_env).resolve(preview=True)
        assert table.lookup("esxiIp") == "10.0.0.10"
        ledger = json.loads((build_workspace / "networks.json").read_text())
        assert ledger[0]["addressAllocations"] == []


class TestCheckPlaceholders:
    """Tests for BuildOrchestrator.check_placeholders."""

    def test_reports_missing(self, profile, settings_env, build_workspace):
        (build_workspace / "stages" / "30$Echo.json").write_text('[{"message": "##nothing##"}]')
        orchestrator = BuildOrchestrator(profile, settings=settings_env)
        report = orchestrator.check_placeholders({"esxiHost": "x", "vlan": "1", "esxiIp": "y"})
        assert [ref.name for ref in report.missing] == ["nothing"]
        assert not report.complete

    def test_without_table(self, profile, settings_env):
        report = BuildOrchestrator(profile, settings=settings_env).check_placeholders()
        assert {ref.name for ref in report.required} == {"esxiHost", "vlan", "esxiIp"}
        assert report.complete

    def test_paths_are_absolute(self, profile):
        assert Path(profile.stages).is_absolute()
