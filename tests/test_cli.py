"""Tests for the CLI interface.

Tests command parsing, output formatting, and basic functionality
using Click's CliRunner.
"""

import json

import pytest
from click.testing import CliRunner

from fs_callflow import config
from fs_callflow.__main__ import cli
from fs_callflow.models import AnalysisReport


@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Each invocation reads settings from a clean environment."""
    for name in ("CALLFLOW_WEAK_ANCHOR_MERGE", "CALLFLOW_RENDER_DIAGRAMS",
                 "CALLFLOW_TEMPLATE_DIR", "CALLFLOW_LOG_LEVEL", "CALLFLOW_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_settings", None)


@pytest.fixture
def empty_log(tmp_path):
    path = tmp_path / "empty.log"
    path.write_text("", encoding="utf-8")
    return path


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self, runner):
        """Test that --help works."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "FreeSWITCH Call Flow Analyzer" in result.output

    def test_cli_version(self, runner):
        """Test that --version works."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_verbose_flag(self, runner):
        """Test that --verbose flag is recognized."""
        result = runner.invoke(cli, ["--verbose", "--help"])
        assert result.exit_code == 0


class TestAnalyzeCommand:
    """Test the analyze command."""

    def test_analyze_help(self, runner):
        result = runner.invoke(cli, ["analyze", "--help"])
        assert result.exit_code == 0
        assert "--format" in result.output
        assert "--weak-anchor-merge" in result.output
        assert "--workers" in result.output

    def test_table(self, runner, call_log_file):
        result = runner.invoke(cli, ["analyze", str(call_log_file)])
        assert result.exit_code == 0
        assert "Calls (1)" in result.output
        assert "Events: 4" in result.output

    def test_json(self, runner, call_log_file):
        result = runner.invoke(cli, ["analyze", str(call_log_file), "--format", "json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert len(data["results"]) == 1
        assert data["results"][0]["graph"]["summary"]["queue_name"] == "sales@default"
        assert data["stats"]["events"] == 4

    def test_mermaid(self, runner, call_log_file):
        result = runner.invoke(cli, ["analyze", str(call_log_file), "-f", "mermaid"])
        assert result.exit_code == 0
        assert "sequenceDiagram" in result.output
        assert "T->>S: INVITE_INBOUND" in result.output

    def test_output_file(self, runner, call_log_file, tmp_path):
        out = tmp_path / "reports" / "report.json"
        result = runner.invoke(cli, [
            "analyze", str(call_log_file),
            "--format", "json",
            "--output", str(out),
        ])

        assert result.exit_code == 0
        assert "Report saved to:" in result.output
        report = AnalysisReport.load_from_file(out)
        assert len(report.results) == 1

    def test_weak_anchor_merge_flag(self, runner, call_log_file):
        result = runner.invoke(cli, [
            "analyze", str(call_log_file), "--weak-anchor-merge", "--workers", "2",
        ])
        assert result.exit_code == 0
        assert "Calls (1)" in result.output

    def test_empty_log(self, runner, empty_log):
        result = runner.invoke(cli, ["analyze", str(empty_log)])
        assert result.exit_code == 0
        assert "No calls found." in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["analyze", str(tmp_path / "nope.log")])
        assert result.exit_code == 1
        assert "cannot read" in result.output


class TestEventsCommand:
    """Test the events command."""

    def test_events(self, runner, call_log_file):
        result = runner.invoke(cli, ["events", str(call_log_file)])
        assert result.exit_code == 0
        assert "Events (4 of 4)" in result.output

    def test_type_filter(self, runner, call_log_file):
        result = runner.invoke(cli, ["events", str(call_log_file), "--type", "hangup"])
        assert result.exit_code == 0
        assert "Events (1 of 1)" in result.output

    def test_limit(self, runner, call_log_file):
        result = runner.invoke(cli, ["events", str(call_log_file), "--limit", "2"])
        assert result.exit_code == 0
        assert "Events (2 of 4)" in result.output

    def test_no_match(self, runner, call_log_file):
        result = runner.invoke(cli, ["events", str(call_log_file), "--type", "DTMF"])
        assert result.exit_code == 0
        assert "No events found." in result.output
