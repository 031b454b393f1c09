"""CLI commands for dependencies: ready, blocked, block, unblock, tree."""

from __future__ import annotations

from typing import cast

import click

from ba.cli_common import emit_issue_list, emit_json, format_issue_line, run_command
from ba.commands import Block, Blocked, Ready, Tree, Unblock
from ba.core import Issue
from ba.db_planning import TreeNode


def render_tree(node: TreeNode) -> list[str]:
    """Indented text form of a blocker tree, one line per node."""

    def label(n: TreeNode) -> str:
        issue = n.issue
        text = f"{issue.id} [{issue.status}] P{issue.priority} {issue.title}"
        if n.repeated:
            return text + " (see above)"
        if n.ready:
            return text + " (ready)"
        return text

    def children(n: TreeNode, indent: str) -> list[tuple[TreeNode, str, bool]]:
        last = len(n.blockers) - 1
        return [(child, indent, i == last) for i, child in enumerate(n.blockers)][::-1]

    lines = [label(node)]
    stack = children(node, "")
    while stack:
        current, indent, last = stack.pop()
        lines.append(f"{indent}{'└── ' if last else '├── '}{label(current)}")
        stack.extend(children(current, indent + ("    " if last else "│   ")))
    return lines


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def ready(as_json: bool) -> None:
    """Show open issues with no unfinished blockers."""
    result = cast("list[Issue]", run_command(Ready(), as_json=as_json))
    emit_issue_list(result, as_json=as_json, empty="No ready issues.")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def blocked(as_json: bool) -> None:
    """Show open issues waiting on unfinished blockers."""
    result = cast("list[tuple[Issue, list[str]]]", run_command(Blocked(), as_json=as_json))
    if as_json:
        emit_json([{"issue": issue.to_dict(), "open_blockers": waiting} for issue, waiting in result])
        return
    if not result:
        click.echo("No blocked issues.")
        return
    for issue, waiting in result:
        click.echo(f"{format_issue_line(issue)}  [waiting on: {', '.join(waiting)}]")


@click.command()
@click.argument("issue_id")
@click.argument("blocker_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def block(issue_id: str, blocker_id: str, as_json: bool) -> None:
    """Mark ISSUE_ID as blocked until BLOCKER_ID is finished."""
    result = cast(Issue, run_command(Block(issue_id=issue_id, blocker_id=blocker_id), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
        return
    click.echo(f"{result.id} is blocked by {blocker_id}")


@click.command()
@click.argument("issue_id")
@click.argument("blocker_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def unblock(issue_id: str, blocker_id: str, as_json: bool) -> None:
    """Remove BLOCKER_ID from ISSUE_ID's blockers."""
    result = cast(Issue, run_command(Unblock(issue_id=issue_id, blocker_id=blocker_id), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
        return
    click.echo(f"{result.id} is no longer blocked by {blocker_id}")


@click.command()
@click.argument("issue_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tree(issue_id: str, as_json: bool) -> None:
    """Show everything blocking an issue, transitively."""
    result = cast(TreeNode, run_command(Tree(issue_id=issue_id), as_json=as_json))
    if as_json:
        emit_json(result.to_dict())
        return
    for line in render_tree(result):
        click.echo(line)


def register(cli: click.Group) -> None:
    """Register dependency commands with the CLI group."""
    cli.add_command(ready)
    cli.add_command(blocked)
    cli.add_command(block)
    cli.add_command(unblock)
    cli.add_command(tree)
