"""Fixtures for CLI interface tests."""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from ba.cli import cli


@pytest.fixture
def cli_in_project(
    tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> Generator[tuple[CliRunner, Path], None, None]:
    """Initialize a ba project in tmp_path and return (runner, project_root)."""
    monkeypatch.delenv("SESSION_ID", raising=False)
    monkeypatch.delenv("BA_OWNERSHIP", raising=False)
    original_cwd = os.getcwd()
    os.chdir(str(tmp_path))
    result = cli_runner.invoke(cli, ["init", "--prefix", "test"])
    assert result.exit_code == 0
    yield cli_runner, tmp_path
    os.chdir(original_cwd)


@pytest.fixture
def create_issue(cli_in_project: tuple[CliRunner, Path]) -> Callable[..., str]:
    """Create an issue through the CLI and return its id."""
    runner, _ = cli_in_project

    def _create(title: str, *args: str) -> str:
        result = runner.invoke(cli, ["create", title, *args, "--json"])
        assert result.exit_code == 0, result.output
        return str(json.loads(result.output)["id"])

    return _create
