"""CLI command tests."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from usage_pace import __version__
from usage_pace.cli.commands import app
from usage_pace.config import loader

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "config.json"
    monkeypatch.setattr(loader, "get_config_path", lambda: path)
    monkeypatch.delenv("CLAUDE_SESSION_KEY", raising=False)
    monkeypatch.delenv("USAGE_PACE_API__SESSION_KEY", raising=False)
    return path


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_select_persists_metric(config_path: Path) -> None:
    result = runner.invoke(app, ["select", "five_hour"])
    assert result.exit_code == 0, result.output
    data = json.loads(config_path.read_text(encoding="utf-8"))
    assert data["monitor"]["selectedMetric"] == "five_hour"


def test_select_current_metric_is_noop(config_path: Path) -> None:
    result = runner.invoke(app, ["select", "seven_day"])
    assert result.exit_code == 0
    assert "already selected" in result.output
    assert not config_path.exists()


def test_select_rejects_opus(config_path: Path) -> None:
    result = runner.invoke(app, ["select", "seven_day_opus"])
    assert result.exit_code == 1
    assert not config_path.exists()


def test_set_key(config_path: Path) -> None:
    result = runner.invoke(app, ["set-key", "sk-123", "--org", "org-9"])
    assert result.exit_code == 0
    data = json.loads(config_path.read_text(encoding="utf-8"))
    assert data["api"]["sessionKey"] == "sk-123"
    assert data["api"]["organizationId"] == "org-9"


def test_status_without_key(config_path: Path) -> None:
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 1
    assert "No session key" in result.output


def test_select_reports_save_failure(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(_metric) -> None:
        raise PermissionError("read-only")

    monkeypatch.setattr(loader, "save_selected_metric", fail)
    result = runner.invoke(app, ["select", "five_hour"])
    assert result.exit_code == 1
    assert "Could not save" in result.output
    assert "OK" not in result.output


def test_set_key_does_not_write_environment_values(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("USAGE_PACE_API__BASE_URL", "https://proxy.example")
    result = runner.invoke(app, ["set-key", "sk-123"])
    assert result.exit_code == 0
    assert json.loads(config_path.read_text(encoding="utf-8")) == {"api": {"sessionKey": "sk-123"}}
