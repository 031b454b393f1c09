"""CLI tests for init, create, list, show, comment, compact, check."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from ba import __version__
from ba.cli import cli


class TestInit:
    def test_init_creates_project(self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["init", "--prefix", "proj", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["already_initialized"] is False
        assert data["id_prefix"] == "proj"
        assert (tmp_path / ".ba" / "config.json").exists()

    def test_bad_prefix(self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["init", "--prefix", "no-hyphens"])
        assert result.exit_code == 1
        assert "Error: Invalid id prefix" in result.output

    def test_init_twice_reports_existing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["init", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["already_initialized"] is True
        assert data["id_prefix"] == "test"
        assert data["issue_count"] == 0
        assert (root / ".ba" / "issues.jsonl").exists()

    def test_init_text_output(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["init"])
        assert "already initialized" in result.output
        assert "Prefix: test" in result.output

    def test_init_writes_log_file(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        runner.invoke(cli, ["create", "Logged"])
        assert (root / ".ba" / "ba.log").exists()

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestCreate:
    def test_create_text(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "Fix the parser"])
        assert result.exit_code == 0
        assert result.output.strip() == "Created test-1: Fix the parser"

    def test_create_json_shape(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "Spike it", "-t", "spike", "-p", "0", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["id"] == "test-1"
        assert data["type"] == "spike"
        assert data["priority"] == 0
        assert data["status"] == "open"
        assert data["claimed_by"] is None
        assert data["blocked_by"] == []
        assert data["comments"] == []

    def test_create_bad_priority_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "Nope", "-p", "7", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["code"] == "validation_error"
        assert "between 0 and 4" in data["error"]


class TestList:
    def test_list_hides_closed(self, cli_in_project: tuple[CliRunner, Path], create_issue: Callable[..., str]) -> None:
        runner, _ = cli_in_project
        keep = create_issue("Keep")
        gone = create_issue("Gone")
        runner.invoke(cli, ["claim", gone, "--session", "s1"])
        runner.invoke(cli, ["finish", gone, "--session", "s1"])

        result = runner.invoke(cli, ["list", "--json"])
        assert [i["id"] for i in json.loads(result.output)] == [keep]

        result = runner.invoke(cli, ["list", "--all", "--json"])
        assert {i["id"] for i in json.loads(result.output)} == {keep, gone}

    def test_list_status_filter(self, cli_in_project: tuple[CliRunner, Path], create_issue: Callable[..., str]) -> None:
        runner, _ = cli_in_project
        create_issue("Open")
        busy = create_issue("Busy")
        runner.invoke(cli, ["claim", busy, "--session", "s1"])
        result = runner.invoke(cli, ["list", "--status", "in_progress", "--json"])
        assert [i["id"] for i in json.loads(result.output)] == [busy]

    def test_list_empty_text(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "No issues." in result.output


class TestShow:
    def test_show_json(self, cli_in_project: tuple[CliRunner, Path], create_issue: Callable[..., str]) -> None:
        runner, _ = cli_in_project
        issue_id = create_issue("Detail")
        result = runner.invoke(cli, ["show", issue_id, "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["title"] == "Detail"

    def test_show_text(self, cli_in_project: tuple[CliRunner, Path], create_issue: Callable[..., str]) -> None:
        runner, _ = cli_in_project
        a = create_issue("Blocked one")
        b = create_issue("Blocker")
        runner.invoke(cli, ["block", a, b])
        runner.invoke(cli, ["comment", a, "waiting on b", "--author", "rev"])
        result = runner.invoke(cli, ["show", a])
        assert result.exit_code == 0
        assert "Title:    Blocked one" in result.output
        assert f"Blocked by: {b} (open)" in result.output
        assert "rev: waiting on b" in result.output
        assert "Ready:" not in result.output
        assert "Next:     claim" in result.output

        blocker = runner.invoke(cli, ["show", b])
        assert "Ready:    YES" in blocker.output
        assert f"Blocks:   {a}" in blocker.output

    def test_show_missing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["show", "test-99", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output) == {"error": "Issue not found: test-99", "code": "not_found"}


class TestComment:
    def test_author_from_session_env(
        self, cli_in_project: tuple[CliRunner, Path], create_issue: Callable[..., str]
    ) -> None:
        runner, _ = cli_in_project
        issue_id = create_issue("Discuss")
        result = runner.invoke(cli, ["comment", issue_id, "hello", "--json"], env={"SESSION_ID": "agent-7"})
        assert result.exit_code == 0
        assert json.loads(result.output)["comments"][0]["author"] == "agent-7"

    def test_author_defaults_to_anonymous(
        self, cli_in_project: tuple[CliRunner, Path], create_issue: Callable[..., str]
    ) -> None:
        runner, _ = cli_in_project
        issue_id = create_issue("Discuss")
        result = runner.invoke(cli, ["comment", issue_id, "hello", "--json"])
        assert json.loads(result.output)["comments"][0]["author"] == "anonymous"


class TestMaintenance:
    def test_compact(self, cli_in_project: tuple[CliRunner, Path], create_issue: Callable[..., str]) -> None:
        runner, root = cli_in_project
        issue_id = create_issue("Churn")
        runner.invoke(cli, ["claim", issue_id, "--session", "s1"])
        runner.invoke(cli, ["release", issue_id, "--session", "s1"])
        result = runner.invoke(cli, ["compact", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == {"removed": 2}
        assert len((root / ".ba" / "issues.jsonl").read_text().splitlines()) == 1

    def test_check_clean(self, cli_in_project: tuple[CliRunner, Path], create_issue: Callable[..., str]) -> None:
        runner, _ = cli_in_project
        create_issue("Fine")
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 0
        assert "OK: 1 issue(s)" in result.output

    def test_check_reports_corruption(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / ".ba" / "issues.jsonl").write_text("not json\n")
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 1
        assert "corrupt: Corrupt record at line 1" in result.output
        assert "Warning:" not in result.output
        assert result.output.count("Corrupt record at line 1") == 1
        assert "1 problem(s) found" in result.output
