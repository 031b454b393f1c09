"""CLI commands for issue records: create, list, show, comment."""

from __future__ import annotations

from typing import cast

import click

from ba.cli_common import SESSION_ENVVAR, emit_issue_list, emit_json, run_command
from ba.commands import Comment, Create, List, Show
from ba.core import Issue, IssueDetail
from ba.db_workflow import STATUSES
from ba.validation import MAX_PRIORITY, MIN_PRIORITY, VALID_TYPES


@click.command()
@click.argument("title")
@click.option("--type", "-t", "issue_type", default="task", help=f"Issue type ({', '.join(VALID_TYPES)})")
@click.option("--priority", "-p", default=2, type=int, help=f"Priority {MIN_PRIORITY}-{MAX_PRIORITY} (0=highest)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def create(title: str, issue_type: str, priority: int, as_json: bool) -> None:
    """Create a new open issue."""
    result = cast(Issue, run_command(Create(title=title, type=issue_type, priority=priority), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
        return
    click.echo(f"Created {result.id}: {result.title}")


@click.command("list")
@click.option("--all", "include_closed", is_flag=True, help="Include closed issues")
@click.option("--status", default=None, type=click.Choice(STATUSES), help="Filter by status")
@click.option("--type", "-t", "issue_type", default=None, help="Filter by type")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_issues(include_closed: bool, status: str | None, issue_type: str | None, as_json: bool) -> None:
    """List issues by priority then creation order (closed hidden unless --all)."""
    command = List(include_closed=include_closed, status=status, type=issue_type)
    result = cast("list[Issue]", run_command(command, as_json=as_json))
    emit_issue_list(result, as_json=as_json, empty="No issues.")


@click.command()
@click.argument("issue_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(issue_id: str, as_json: bool) -> None:
    """Show issue details."""
    detail = cast(IssueDetail, run_command(Show(issue_id=issue_id), as_json=as_json))
    if as_json:
        emit_json(detail.to_dict())
        return

    issue = detail.issue
    click.echo(f"ID:       {issue.id}")
    click.echo(f"Title:    {issue.title}")
    click.echo(f"Status:   {issue.status}")
    click.echo(f"Priority: P{issue.priority}")
    click.echo(f"Type:     {issue.type}")
    if issue.claimed_by:
        click.echo(f"Claimed:  {issue.claimed_by}")
    click.echo(f"Created:  {issue.created_at}")
    click.echo(f"Updated:  {issue.updated_at}")
    if detail.ready:
        click.echo("Ready:    YES")
    if issue.blocked_by:
        waiting = set(detail.open_blockers)
        marks = [f"{b} (open)" if b in waiting else b for b in issue.blocked_by]
        click.echo(f"Blocked by: {', '.join(marks)}")
    if detail.dependents:
        click.echo(f"Blocks:   {', '.join(detail.dependents)}")
    click.echo(f"Next:     {', '.join(detail.valid_events)}")
    if detail.comments:
        click.echo("\n--- Comments ---")
        for c in detail.comments:
            click.echo(f"  [{c.timestamp}] {c.author}: {c.text}")


@click.command()
@click.argument("issue_id")
@click.argument("text")
@click.option("--author", envvar=SESSION_ENVVAR, default=None, help=f"Comment author (default: ${SESSION_ENVVAR}, then 'anonymous')")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def comment(issue_id: str, text: str, author: str | None, as_json: bool) -> None:
    """Append a comment to an issue."""
    result = cast(Issue, run_command(Comment(issue_id=issue_id, text=text, author=author), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
        return
    click.echo(f"Added comment to {result.id}")


def register(cli: click.Group) -> None:
    """Register issue commands with the CLI group."""
    cli.add_command(create)
    cli.add_command(list_issues, "list")
    cli.add_command(show)
    cli.add_command(comment)
