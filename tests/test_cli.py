import json
import signal

import pytest
from click.testing import CliRunner

import keptninstaller.cli as cli_module

TOKEN = "0123456789abcdef0123456789abcdef01234567"


@pytest.fixture(autouse=True)
def signal_handlers(monkeypatch):
    handlers = {}
    monkeypatch.setattr(cli_module.signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))
    return handlers


def fake_installer(captured, exit_code=0):
    class FakeInstaller:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            return exit_code

    return FakeInstaller


def test_install_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    config_file = tmp_path / ".keptninstaller.yml"
    config_file.write_text(
        "keptn_version: '0.2.0'\n" "readiness_max_attempts: 10\n" "poll_interval_seconds: 2\n" "dry_run: true\n",
        encoding="utf-8",
    )
    captured = {}
    monkeypatch.setattr(cli_module, "KeptnInstaller", fake_installer(captured))

    runner = CliRunner()
    result = runner.invoke(
        cli_module.main,
        [
            "install",
            "--config",
            str(config_file),
            "--keptn-dir",
            str(tmp_path),
            "--creds",
            "creds.json",
            "--readiness-max-attempts",
            "0",
        ],
    )

    assert result.exit_code == 0
    assert captured["keptn_version"] == "0.2.0"
    assert captured["creds_file"] == "creds.json"
    assert captured["readiness_max_attempts"] == 0
    assert captured["endpoint_max_attempts"] == 360
    assert captured["poll_interval_seconds"] == 2.0
    assert captured["dry_run"] is True
    assert captured["keptn_dir"] == str(tmp_path)


def test_install_defaults_without_config(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "KeptnInstaller", fake_installer(captured, exit_code=1))
    monkeypatch.chdir(tmp_path)

    runner = CliRunner()
    result = runner.invoke(cli_module.main, ["install", "--keptn-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert captured["keptn_version"] == "master"
    assert captured["creds_file"] is None
    assert captured["dry_run"] is False
    assert captured["command_timeout"] is None


def test_install_rejects_unknown_config_keys(tmp_path, monkeypatch):
    config_file = tmp_path / ".keptninstaller.yml"
    config_file.write_text("unknown: value\n", encoding="utf-8")
    monkeypatch.setattr(cli_module, "KeptnInstaller", fake_installer({}))

    runner = CliRunner()
    result = runner.invoke(cli_module.main, ["install", "--config", str(config_file)])

    assert result.exit_code != 0
    assert "Unknown configuration keys: unknown" in result.output


def test_configure_writes_cli_config(tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        cli_module.main,
        ["configure", "--org", "acme", "--user", "jdoe", "--token", TOKEN, "--keptn-dir", str(tmp_path)],
    )

    assert result.exit_code == 0
    data = json.loads((tmp_path / "config.json").read_text(encoding="utf-8"))
    assert data["github"] == {"org": "acme", "user": "jdoe", "token": TOKEN}


def test_auth_reports_failures(tmp_path, monkeypatch):
    class FailingService:
        def __init__(self, *_args, **_kwargs):
            pass

        def authenticate(self, endpoint, api_token):
            raise cli_module.InstallerError(f"Authentication at {endpoint} failed: 401")

    monkeypatch.setattr(cli_module, "CliConfigService", FailingService)

    runner = CliRunner()
    result = runner.invoke(
        cli_module.main,
        ["auth", "--endpoint", "https://e.xip.io", "--api-token", "secret", "--keptn-dir", str(tmp_path)],
    )

    assert result.exit_code != 0
    assert "Authentication at https://e.xip.io failed: 401" in result.output


def test_sigterm_during_install_aborts_the_run(tmp_path, monkeypatch, signal_handlers):
    captured = {}

    class InterruptedInstaller:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            try:
                signal_handlers[signal.SIGTERM](signal.SIGTERM, None)
            except KeyboardInterrupt:
                return 1
            return 0

    monkeypatch.setattr(cli_module, "KeptnInstaller", InterruptedInstaller)

    runner = CliRunner()
    result = runner.invoke(cli_module.main, ["install", "--keptn-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert captured["cancel_event"].is_set()
