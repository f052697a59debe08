"""Root test configuration."""

import logging

import pytest
import structlog
from buildlayer.config.settings import get_settings
from buildlayer.credentials import Credential, FernetCredentialService


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def settings_env(tmp_path, monkeypatch):
    """Point run logs and scratch space at tmp_path and disable stage pauses."""
    monkeypatch.setenv("BUILDLAYER_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("BUILDLAYER_SCRATCH_ROOT", str(tmp_path / "scratch"))
    monkeypatch.setenv("BUILDLAYER_STAGE_PAUSE_SECONDS", "0")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def build_workspace(tmp_path, monkeypatch):
    """A complete build: values, overrides, credentials, ledger and two Echo stages."""
    monkeypatch.setenv("BUILDLAYER_LAB_CREDENTIAL_KEY", FernetCredentialService.generate_key())

    values = tmp_path / "values"
    values.mkdir()
    (values / "10-hosts.csv").write_text(
        "key,value,dataType,description\n"
        "esxiHost,esxi01.lab.local,FQDN,First host\n"
        "vlan,100,string,\n"
        "esxiRoot,root.yaml,Credential,\n"
        "esxiIp,,NETALLOCATION#mgmt#newIP,\n"
    )
    (tmp_path / "overrides.csv").write_text("key,value,dataType,description\nvlan,200,string,\n")

    store = tmp_path / "credentials"
    store.mkdir()
    (store / "root.yaml").write_text(
        FernetCredentialService().encrypt(Credential("root", "VMware1!"), "lab/credential-key")
    )

    (tmp_path / "networks.json").write_text(
        '[{"networkName": "mgmt", "rangeStart": "10.0.0.10", "rangeEnd": "10.0.0.20",'
        ' "gateway": "10.0.0.1", "netid": "10.0.0.0", "netmask": "255.255.255.0",'
        ' "addressAllocations": []}]'
    )

    stages = tmp_path / "stages"
    stages.mkdir()
    (stages / "10$Echo.json").write_text(
        '[{"message": "##esxiHost##", "vlan": "##vlan##", "workflowAttrib": "hostRef"}]'
    )
    (stages / "20$Echo.yaml").write_text("- message: '@@hostRef'\n  ip: ##esxiIp##\n")

    (tmp_path / "build.yaml").write_text(
        "build: values\n"
        "overrides: overrides.csv\n"
        "dml_index: index.csv\n"
        "credential_store: credentials\n"
        "credential_key: lab/credential-key\n"
        "network_ledger: networks.json\n"
        "stages: stages\n"
    )
    return tmp_path
