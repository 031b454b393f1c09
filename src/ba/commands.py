"""Command engine: the closed set of ba operations and their dispatcher.

Every externally visible operation is a frozen dataclass. ``execute`` maps
each variant to the BaDB call that implements it; the ``assert_never``
guard makes a forgotten variant a type error rather than a silent gap.
Front ends (the click CLI, embedders) build commands and render results;
they never call the store directly for mutations.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import assert_never

from ba.core import BaDB, InitResult, Issue, IssueDetail, init_project, read_config
from ba.db_meta import CheckReport
from ba.db_planning import TreeNode
from ba.db_workflow import require_session


@dataclass(frozen=True)
class Init:
    prefix: str | None = None


@dataclass(frozen=True)
class Create:
    title: str
    type: str = "task"
    priority: int = 2


@dataclass(frozen=True)
class List:
    include_closed: bool = False
    status: str | None = None
    type: str | None = None


@dataclass(frozen=True)
class Ready:
    pass


@dataclass(frozen=True)
class Blocked:
    pass


@dataclass(frozen=True)
class Claim:
    issue_id: str
    session: str


@dataclass(frozen=True)
class Release:
    issue_id: str
    session: str | None = None


@dataclass(frozen=True)
class Finish:
    issue_id: str
    session: str | None = None


@dataclass(frozen=True)
class Block:
    issue_id: str
    blocker_id: str


@dataclass(frozen=True)
class Unblock:
    issue_id: str
    blocker_id: str


@dataclass(frozen=True)
class Comment:
    issue_id: str
    text: str
    author: str | None = None


@dataclass(frozen=True)
class Mine:
    session: str


@dataclass(frozen=True)
class Sessions:
    pass


@dataclass(frozen=True)
class Show:
    issue_id: str


@dataclass(frozen=True)
class Tree:
    issue_id: str


@dataclass(frozen=True)
class Compact:
    pass


@dataclass(frozen=True)
class Check:
    pass


Command = (
    Init
    | Create
    | List
    | Ready
    | Blocked
    | Claim
    | Release
    | Finish
    | Block
    | Unblock
    | Comment
    | Mine
    | Sessions
    | Show
    | Tree
    | Compact
    | Check
)

# list[Issue] for List/Ready/Mine, Issue for single-issue mutations,
# (issue, open blockers) pairs for Blocked, session -> ids for Sessions,
# int (lines removed) for Compact.
Result = (
    InitResult
    | Issue
    | IssueDetail
    | list[Issue]
    | list[tuple[Issue, list[str]]]
    | dict[str, list[str]]
    | TreeNode
    | CheckReport
    | int
)


def execute(db: BaDB, command: Command) -> Result:
    """Run *command* against an open store."""
    match command:
        case Init():
            # The store exists, so init has nothing to do.
            return InitResult(
                ba_dir=db.ba_dir,
                config=read_config(db.ba_dir),
                already_initialized=True,
                issue_count=len(db.issues),
            )
        case Create(title=title, type=issue_type, priority=priority):
            return db.create_issue(title, type=issue_type, priority=priority)
        case List(include_closed=include_closed, status=status, type=issue_type):
            return db.list_issues(include_closed=include_closed, status=status, type=issue_type)
        case Ready():
            return db.get_ready()
        case Blocked():
            return db.get_blocked()
        case Claim(issue_id=issue_id, session=session):
            return db.claim_issue(issue_id, session=session)
        case Release(issue_id=issue_id, session=session):
            return db.release_issue(issue_id, session=session)
        case Finish(issue_id=issue_id, session=session):
            return db.finish_issue(issue_id, session=session)
        case Block(issue_id=issue_id, blocker_id=blocker_id):
            return db.add_blocker(issue_id, blocker_id)
        case Unblock(issue_id=issue_id, blocker_id=blocker_id):
            return db.remove_blocker(issue_id, blocker_id)
        case Comment(issue_id=issue_id, text=text, author=author):
            return db.add_comment(issue_id, text, author=author)
        case Mine(session=session):
            return db.get_mine(require_session(session))
        case Sessions():
            return db.get_sessions()
        case Show(issue_id=issue_id):
            return db.get_issue_detail(issue_id)
        case Tree(issue_id=issue_id):
            return db.get_tree(issue_id)
        case Compact():
            return db.compact()
        case Check():
            return db.check()
        case _:
            assert_never(command)


def run(command: Command, *, start: Path | None = None, enforce_ownership: bool = True) -> Result:
    """Discover the project from *start* (default cwd) and execute *command*.

    ``Init`` is the one command that may run before ``.ba/`` exists: it
    always targets *start* itself rather than a parent project.
    """
    if isinstance(command, Init):
        return init_project((start or Path.cwd()).resolve(), prefix=command.prefix)
    with BaDB.from_project(start, enforce_ownership=enforce_ownership) as db:
        return execute(db, command)
