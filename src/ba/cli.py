"""CLI for the ba issue tracker.

Convention-based: discovers .ba/ by walking up from cwd.

Usage:
    ba init                          # Initialize .ba/ in cwd
    ba create "Fix the bug" -p 1     # Create issue
    ba list [--all]                  # List issues
    ba ready                         # Show ready issues
    ba blocked                       # Show blocked issues
    ba claim <id> --session=s1       # Take ownership
    ba release <id>                  # Give an issue back
    ba finish <id>                   # Close an issue
    ba block <id> <blocker>          # Add a blocker
    ba unblock <id> <blocker>        # Remove a blocker
    ba comment <id> "text"           # Add comment
    ba mine                          # Issues held by $SESSION_ID
    ba sessions                      # Claims held per session
    ba show <id>                     # Show issue details
    ba tree <id>                     # Show blockers transitively
    ba compact                       # Rewrite the log
    ba check                         # Audit the log
"""

from __future__ import annotations

import click

from ba import __version__
from ba.cli_commands import admin, issues, planning, workflow
from ba.cli_common import OWNERSHIP_ENVVAR


@click.group()
@click.version_option(version=__version__, prog_name="ba")
@click.option(
    "--ownership",
    type=click.Choice(["strict", "relaxed"]),
    envvar=OWNERSHIP_ENVVAR,
    default="strict",
    show_default=True,
    help="strict: only the claiming session may finish or release an issue",
)
@click.pass_context
def cli(ctx: click.Context, ownership: str) -> None:
    """ba — ownership-based issue tracking for concurrent agents."""
    ctx.ensure_object(dict)
    ctx.obj["ownership"] = ownership


for _module in (admin, issues, workflow, planning):
    _module.register(cli)


if __name__ == "__main__":
    cli()
