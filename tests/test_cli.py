"""Tests for the hndigest command line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from hndigest.pipeline import cli as cli_module
from hndigest.pipeline.orchestrator import IngestOrchestrator
from hndigest.storage.ledger import LedgerStore

from tests.conftest import NOW, FailingConnector, FakeRankedConnector, make_item


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli_module, "setup_logging", lambda debug: None)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "db_file": str(tmp_path / "ledger.txt"),
        "purge_after_days": 30,
        "hackernews": {"enabled": True},
    }))
    return path


def use_connector(monkeypatch, factory):
    """Make the CLI build its orchestrator with *factory* instead of real connectors."""

    class PatchedOrchestrator(IngestOrchestrator):
        @classmethod
        def from_config(cls, config, reverse=False, console=None, **kwargs):
            return super().from_config(config, reverse=reverse, console=console, connector_factory=factory)

    monkeypatch.setattr(cli_module, "IngestOrchestrator", PatchedOrchestrator)


class TestCli:
    def test_help(self, runner):
        result = runner.invoke(cli_module.cli, ["--help"])
        assert result.exit_code == 0
        for flag in ("--config", "--reverse", "--vacuum", "--feeds-only", "--debug"):
            assert flag in result.output

    def test_fetch_prints_digest(self, runner, config_path, tmp_path, monkeypatch):
        use_connector(monkeypatch, lambda cfg: FakeRankedConnector([make_item(1), make_item(2)]))

        result = runner.invoke(cli_module.cli, ["--config", str(config_path), "--reverse"])

        assert result.exit_code == 0, result.output
        assert "* Story 1 - https://example.com/1" in result.output
        assert "Fetched new items: 2" in result.output
        assert LedgerStore.open(tmp_path / "ledger.txt").query_ids("hackernews") == {1, 2}

    def test_feeds_only_skips_hackernews(self, runner, config_path, monkeypatch):
        use_connector(monkeypatch, lambda cfg: FailingConnector(cfg["id"]))

        result = runner.invoke(cli_module.cli, ["-c", str(config_path), "--feeds-only"])

        assert result.exit_code == 0, result.output
        assert "Fetched new items: 0" in result.output

    def test_failed_source_exits_nonzero(self, runner, config_path, monkeypatch):
        use_connector(monkeypatch, lambda cfg: FailingConnector(cfg["id"]))

        result = runner.invoke(cli_module.cli, ["-c", str(config_path)])

        assert result.exit_code == 1

    def test_vacuum(self, runner, config_path, tmp_path):
        (tmp_path / "ledger.txt").write_text(f"1,hackernews,0\n2,hackernews,{NOW * 2}\n")

        result = runner.invoke(cli_module.cli, ["-c", str(config_path), "--vacuum"])

        assert result.exit_code == 0, result.output
        assert "1 record(s) removed" in result.output
        assert LedgerStore.open(tmp_path / "ledger.txt").query_ids("hackernews") == {2}

    def test_missing_config(self, runner, tmp_path):
        result = runner.invoke(cli_module.cli, ["-c", str(tmp_path / "missing.json")])
        assert result.exit_code == 2
        assert "Config file not found" in result.output

    def test_invalid_config(self, runner, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"db_backend": "redis"}))
        result = runner.invoke(cli_module.cli, ["-c", str(path)])
        assert result.exit_code == 2
