"""CLI commands for project administration: init, compact, check."""

from __future__ import annotations

import sys
from typing import cast

import click

from ba.cli_common import emit_json, run_command
from ba.commands import Check, Compact, Init
from ba.core import BA_DIR_NAME, ISSUES_FILENAME, InitResult
from ba.db_meta import CheckReport
from ba.logging import setup_logging


@click.command()
@click.option("--prefix", default=None, help="ID prefix for issues (default: directory name)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def init(prefix: str | None, as_json: bool) -> None:
    """Initialize .ba/ in the current directory."""
    result = cast(InitResult, run_command(Init(prefix=prefix), as_json=as_json))
    setup_logging(result.ba_dir)
    if as_json:
        emit_json(result.to_dict())
        return
    project = result.ba_dir.parent
    if result.already_initialized:
        click.echo(f"{BA_DIR_NAME}/ already initialized in {project}")
        click.echo(f"  Prefix: {result.config['id_prefix']}")
        click.echo(f"  Issues: {result.issue_count}")
        return
    click.echo(f"Initialized {BA_DIR_NAME}/ in {project}")
    click.echo(f"  Prefix: {result.config['id_prefix']}")
    click.echo(f"  Log:    {result.ba_dir / ISSUES_FILENAME}")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def compact(as_json: bool) -> None:
    """Rewrite the issue log to one line per issue."""
    result = cast(int, run_command(Compact(), as_json=as_json))
    if as_json:
        emit_json({"removed": result})
        return
    click.echo(f"Compacted {ISSUES_FILENAME}: removed {result} line(s)")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def check(as_json: bool) -> None:
    """Audit the log for corrupt lines and broken invariants (exit 1 on problems)."""
    result = cast(CheckReport, run_command(Check(), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
    elif result.ok:
        click.echo(f"OK: {result.issue_count} issue(s), no problems found")
    else:
        for record in result.corrupt:
            click.echo(f"  corrupt: {record}")
        for violation in result.violations:
            click.echo(f"  violation: {violation}")
        click.echo(f"{len(result.corrupt) + len(result.violations)} problem(s) found")
    if not result.ok:
        sys.exit(1)


def register(cli: click.Group) -> None:
    """Register administration commands with the CLI group."""
    cli.add_command(init)
    cli.add_command(compact)
    cli.add_command(check)
