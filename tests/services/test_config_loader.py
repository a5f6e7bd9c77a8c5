import pytest

from keptninstaller.errors import InstallerError
from keptninstaller.services.config_loader import ConfigLoader


def test_config_loader_reads_supported_keys(tmp_path):
    config_file = tmp_path / ".keptninstaller.yml"
    config_file.write_text(
        "keptn_version: '0.2.1'\n" "poll_interval_seconds: 2\n" "verbose: true\n",
        encoding="utf-8",
    )

    values = ConfigLoader().load(str(config_file))

    assert values == {"keptn_version": "0.2.1", "poll_interval_seconds": 2, "verbose": True}


def test_config_loader_returns_empty_mapping_without_path():
    assert ConfigLoader().load(None) == {}


def test_config_loader_rejects_unknown_keys(tmp_path):
    config_file = tmp_path / "config.yml"
    config_file.write_text("cluster_size: 3\n", encoding="utf-8")

    with pytest.raises(InstallerError, match="Unknown configuration keys: cluster_size"):
        ConfigLoader().load(str(config_file))


def test_config_loader_rejects_negative_numbers(tmp_path):
    config_file = tmp_path / "config.yml"
    config_file.write_text("readiness_max_attempts: -1\n", encoding="utf-8")

    with pytest.raises(InstallerError, match="non-negative number"):
        ConfigLoader().load(str(config_file))


def test_config_loader_rejects_non_boolean_flags(tmp_path):
    config_file = tmp_path / "config.yml"
    config_file.write_text("dry_run: maybe\n", encoding="utf-8")

    with pytest.raises(InstallerError, match="true or false"):
        ConfigLoader().load(str(config_file))


def test_config_loader_reports_missing_file(tmp_path):
    with pytest.raises(InstallerError, match="Config file not found"):
        ConfigLoader().load(str(tmp_path / "missing.yml"))
