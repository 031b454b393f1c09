"""Shared CLI helpers used by cli.py and the ``cli_commands/*.py`` modules.

Provides ``get_db()``, the error-to-exit-code mapping, and the text/JSON
renderers, so the command modules can import them without circular imports.
"""

from __future__ import annotations

import contextlib
import json as json_mod
import sys
from collections.abc import Iterator
from typing import Any, NoReturn

import click

from ba.commands import Check, Command, Init, Result, execute, run
from ba.core import BA_DIR_NAME, BaDB, Issue, find_ba_root, read_config
from ba.errors import BaError, ConfigError
from ba.logging import setup_logging

SESSION_ENVVAR = "SESSION_ID"
OWNERSHIP_ENVVAR = "BA_OWNERSHIP"


def fail(message: str, code: str, *, as_json: bool) -> NoReturn:
    """Report an error in the requested format and exit 1."""
    if as_json:
        click.echo(json_mod.dumps({"error": message, "code": code}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@contextlib.contextmanager
def handle_errors(as_json: bool) -> Iterator[None]:
    """Map any BaError raised inside the block to the CLI error contract."""
    try:
        yield
    except BaError as e:
        fail(e.message, e.code, as_json=as_json)


def _enforce_ownership() -> bool:
    ctx = click.get_current_context(silent=True)
    if ctx is None or ctx.obj is None:
        return True
    return ctx.obj.get("ownership", "strict") == "strict"


def get_db(*, warn_corrupt: bool = True) -> BaDB:
    """Discover .ba/ and return a BaDB honoring the group's ownership policy.

    Corrupt log lines are echoed to stderr unless *warn_corrupt* is False.
    """
    try:
        ba_dir = find_ba_root()
    except FileNotFoundError:
        msg = f"No {BA_DIR_NAME}/ found. Run 'ba init' first."
        raise ConfigError(msg) from None
    setup_logging(ba_dir)
    config = read_config(ba_dir)
    db = BaDB(ba_dir, prefix=config["id_prefix"], enforce_ownership=_enforce_ownership())
    if warn_corrupt:
        for record in db.corrupt_records:
            click.echo(f"Warning: {record}", err=True)
    return db


def run_command(command: Command, *, as_json: bool) -> Result:
    """Execute *command* against the discovered project, exiting 1 on BaError."""
    with handle_errors(as_json):
        if isinstance(command, Init):
            return run(command)
        # check reports corrupt lines itself.
        with get_db(warn_corrupt=not isinstance(command, Check)) as db:
            return execute(db, command)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def emit_json(data: Any) -> None:
    click.echo(json_mod.dumps(data, indent=2))


def format_issue_line(issue: Issue) -> str:
    owner = f"  @{issue.claimed_by}" if issue.claimed_by else ""
    return f"{issue.id:<10} P{issue.priority}  {issue.status:<12} {issue.type:<9} {issue.title}{owner}"


def emit_issue_list(issues: list[Issue], *, as_json: bool, empty: str) -> None:
    if as_json:
        emit_json([i.to_dict() for i in issues])
        return
    if not issues:
        click.echo(empty)
        return
    for issue in issues:
        click.echo(format_issue_line(issue))
