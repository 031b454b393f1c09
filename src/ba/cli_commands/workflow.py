"""CLI commands for ownership: claim, release, finish, mine, sessions."""

from __future__ import annotations

from typing import cast

import click

from ba.cli_common import SESSION_ENVVAR, emit_issue_list, emit_json, run_command
from ba.commands import Claim, Finish, Mine, Release, Sessions
from ba.core import Issue

_session_option = click.option(
    "--session",
    envvar=SESSION_ENVVAR,
    default=None,
    help=f"Session id of the caller (default: ${SESSION_ENVVAR})",
)


@click.command()
@click.argument("issue_id")
@_session_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def claim(issue_id: str, session: str | None, as_json: bool) -> None:
    """Take ownership of an issue (reopens it if closed)."""
    result = cast(Issue, run_command(Claim(issue_id=issue_id, session=session or ""), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
        return
    click.echo(f"Claimed {result.id}: {result.title} (session {result.claimed_by})")


@click.command()
@click.argument("issue_id")
@_session_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def release(issue_id: str, session: str | None, as_json: bool) -> None:
    """Give an in-progress issue back to the ready pool."""
    result = cast(Issue, run_command(Release(issue_id=issue_id, session=session), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
        return
    click.echo(f"Released {result.id}: {result.title}")


@click.command()
@click.argument("issue_id")
@_session_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def finish(issue_id: str, session: str | None, as_json: bool) -> None:
    """Close an in-progress issue."""
    result = cast(Issue, run_command(Finish(issue_id=issue_id, session=session), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
        return
    click.echo(f"Finished {result.id}: {result.title}")


@click.command()
@_session_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def mine(session: str | None, as_json: bool) -> None:
    """List issues claimed by this session."""
    result = cast("list[Issue]", run_command(Mine(session=session or ""), as_json=as_json))
    emit_issue_list(result, as_json=as_json, empty=f"No issues claimed by {session}.")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def sessions(as_json: bool) -> None:
    """List every session holding a claim, with the issues it holds."""
    result = cast("dict[str, list[str]]", run_command(Sessions(), as_json=as_json))
    if as_json:
        emit_json(result)
        return
    if not result:
        click.echo("No active claims.")
        return
    for session, held in result.items():
        click.echo(f"{session}: {', '.join(held)}")


def register(cli: click.Group) -> None:
    """Register ownership commands with the CLI group."""
    cli.add_command(claim)
    cli.add_command(release)
    cli.add_command(finish)
    cli.add_command(mine)
    cli.add_command(sessions)
