"""
Tests for the serverpulse command line
"""
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from serverpulse.cli import app
from serverpulse.presence.store import PresenceStore, utc_now

runner = CliRunner()


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.setenv("DISCORD_TOKEN", "token")
    monkeypatch.setenv("CHANNEL_ID", "100")
    monkeypatch.setenv("MC_SERVER_ADDRESS", "mc.example.com")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return tmp_path


def test_missing_config_exits(monkeypatch):
    for name in ("DISCORD_TOKEN", "CHANNEL_ID", "MC_SERVER_ADDRESS"):
        monkeypatch.delenv(name, raising=False)

    result = runner.invoke(app, ["players"])

    assert result.exit_code == 1
    assert "is required" in result.output


def test_players_lists_records(env):
    store = PresenceStore(env / "database.json")
    store.upsert_seen(["Alice"], utc_now() - timedelta(hours=2))
    store.upsert_seen(["Bob"], utc_now() - timedelta(days=10))

    result = runner.invoke(app, ["players"])

    assert result.exit_code == 0
    assert "Alice" in result.output
    assert "Bob" in result.output


def test_players_days_filter(env):
    store = PresenceStore(env / "database.json")
    store.upsert_seen(["Alice"], utc_now() - timedelta(hours=2))
    store.upsert_seen(["Bob"], utc_now() - timedelta(days=10))

    result = runner.invoke(app, ["players", "--days", "7"])

    assert result.exit_code == 0
    assert "Alice" in result.output
    assert "Bob" not in result.output


def test_players_empty(env):
    result = runner.invoke(app, ["players"])

    assert result.exit_code == 0
    assert "No players recorded" in result.output


def test_probe_reports_latency():
    with patch("serverpulse.probe.LatencyProber.probe", AsyncMock(return_value=23)):
        result = runner.invoke(app, ["probe", "mc.example.com"])

    assert result.exit_code == 0
    assert "23ms" in result.output


def test_probe_unknown_latency():
    with patch("serverpulse.probe.LatencyProber.probe", AsyncMock(return_value=None)):
        result = runner.invoke(app, ["probe", "nowhere.invalid", "--port", "25565"])

    assert result.exit_code == 1
    assert "latency unknown" in result.output
