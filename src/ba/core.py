"""Core store operations for the ba issue tracker.

Single source of truth for all issue state. Both the CLI and embedders
import from this module. No daemon and no server, just an append-only JSONL
log guarded by an advisory file lock.

Covers project discovery, the versioned project config, the Issue record,
and the Issue Store contract (append / update / get / list, compaction).
Workflow, dependency, session and comment operations live in the mixins
composed into ``BaDB``.

Convention-based discovery: each project has a `.ba/` directory containing
`issues.jsonl` (the log), `issues.lock`, `ba.log` and `config.json`
(id prefix, config version).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ba.db_base import _now_iso, write_atomic
from ba.db_log import IssueLog
from ba.db_meta import MetaMixin
from ba.db_planning import PlanningMixin
from ba.db_sessions import SessionsMixin
from ba.db_workflow import STATUSES, WorkflowMixin
from ba.errors import ConfigError, ConflictError, CorruptRecordError, NotFoundError, ValidationError
from ba.migrations import CURRENT_CONFIG_VERSION, apply_pending_migrations
from ba.types.core import CommentDict, IssueDict, ISOTimestamp, ProjectConfig
from ba.validation import (
    VALID_TYPES,
    check_priority,
    check_type,
    derive_prefix,
    sanitize_prefix,
    sanitize_title,
)

if TYPE_CHECKING:
    from ba.db_base import Mutation
    from ba.db_planning import DependencyGraph

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

BA_DIR_NAME = ".ba"
CONFIG_FILENAME = "config.json"
ISSUES_FILENAME = "issues.jsonl"
LOCK_FILENAME = "issues.lock"


def find_ba_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .ba/ directory.

    Returns the .ba/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / BA_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {BA_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(ba_dir: Path) -> ProjectConfig:
    """Read .ba/config.json, migrating (and persisting) older versions.

    A missing or corrupt config is a ConfigError; the id prefix is never
    guessed.
    """
    config_path = ba_dir / CONFIG_FILENAME
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        msg = f"Missing {config_path}. Run 'ba init' first."
        raise ConfigError(msg) from None
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read {config_path}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(raw, dict):
        msg = f"{config_path} must contain a JSON object"
        raise ConfigError(msg)

    upgraded, applied = apply_pending_migrations(raw)
    prefix, err = sanitize_prefix(upgraded.get("id_prefix"))
    if err:
        msg = f"{config_path}: {err}"
        raise ConfigError(msg)
    config = ProjectConfig(id_prefix=prefix, version=str(upgraded["version"]))
    if applied:
        logger.info("Migrated %s to config v%s", config_path, config["version"])
        write_config(ba_dir, config)
    return config


def write_config(ba_dir: Path, config: ProjectConfig) -> None:
    """Write .ba/config.json."""
    write_atomic(ba_dir / CONFIG_FILENAME, json.dumps(dict(config), indent=2) + "\n")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


def id_counter(issue_id: str, prefix: str | None = None) -> int | None:
    """The ``<n>`` of ``<prefix>-<n>``, or None when the id carries no ASCII counter."""
    head, _, tail = issue_id.rpartition("-")
    if prefix is not None and head != prefix:
        return None
    # isdigit() alone admits characters such as "²" that int() rejects.
    if tail.isascii() and tail.isdecimal():
        return int(tail)
    return None


def _require(row: Mapping[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    value = row[key]
    # bool is an int subclass; a boolean priority is still corrupt.
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        names = kind.__name__ if isinstance(kind, type) else "/".join(k.__name__ for k in kind)
        msg = f"field '{key}' must be {names}, got {type(value).__name__}"
        raise TypeError(msg)
    return value


@dataclass
class Comment:
    author: str
    text: str
    timestamp: str

    def to_dict(self) -> CommentDict:
        return {"author": self.author, "text": self.text, "timestamp": ISOTimestamp(self.timestamp)}

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Comment:
        if not isinstance(row, Mapping):
            msg = "comment must be an object"
            raise TypeError(msg)
        return cls(
            author=_require(row, "author", str),
            text=_require(row, "text", str),
            timestamp=_require(row, "timestamp", str),
        )


@dataclass
class Issue:
    id: str
    title: str
    type: str = "task"
    priority: int = 2
    status: str = "open"
    claimed_by: str | None = None
    blocked_by: list[str] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @property
    def seq(self) -> int:
        """Creation counter parsed from ``<prefix>-<n>``; ids without one sort last."""
        counter = id_counter(self.id)
        return 2**63 if counter is None else counter

    @property
    def sort_key(self) -> tuple[int, int, str, str]:
        """Ascending priority, then creation order."""
        return (self.priority, self.seq, self.created_at, self.id)

    def to_dict(self) -> IssueDict:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "priority": self.priority,
            "status": self.status,
            "claimed_by": self.claimed_by,
            "blocked_by": sorted(self.blocked_by),
            "comments": [c.to_dict() for c in self.comments],
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Issue:
        """Decode one log line. Raises KeyError/TypeError/ValueError on bad input."""
        status = _require(row, "status", str)
        if status not in STATUSES:
            msg = f"unknown status '{status}'"
            raise ValueError(msg)
        issue_type = _require(row, "type", str)
        if issue_type not in VALID_TYPES:
            msg = f"unknown type '{issue_type}'"
            raise ValueError(msg)
        priority = _require(row, "priority", int)
        if check_priority(priority) is not None:
            msg = f"priority {priority} out of range"
            raise ValueError(msg)
        claimed_by = row.get("claimed_by")
        if claimed_by is not None and not isinstance(claimed_by, str):
            msg = "field 'claimed_by' must be a string or null"
            raise TypeError(msg)
        blocked_by = _require(row, "blocked_by", list)
        if not all(isinstance(b, str) for b in blocked_by):
            msg = "field 'blocked_by' must be a list of strings"
            raise TypeError(msg)
        return cls(
            id=_require(row, "id", str),
            title=_require(row, "title", str),
            type=issue_type,
            priority=priority,
            status=status,
            claimed_by=claimed_by or None,
            blocked_by=sorted(set(blocked_by)),
            comments=[Comment.from_dict(c) for c in _require(row, "comments", list)],
            created_at=_require(row, "created_at", str),
            updated_at=_require(row, "updated_at", str),
        )


@dataclass
class InitResult:
    """Outcome of ``init``. ``already_initialized`` is informational, not an error."""

    ba_dir: Path
    config: ProjectConfig
    already_initialized: bool
    issue_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id_prefix": self.config["id_prefix"],
            "version": self.config["version"],
            "already_initialized": self.already_initialized,
            "issue_count": self.issue_count,
            "path": str(self.ba_dir),
        }


@dataclass
class IssueDetail:
    """An issue plus its derived planning state, as shown by ``show``.

    The JSON form is the plain issue; the rest is context for text output.
    """

    issue: Issue
    ready: bool
    open_blockers: list[str]
    dependents: list[str]
    comments: list[Comment]
    valid_events: list[str]

    def to_dict(self) -> IssueDict:
        return self.issue.to_dict()


def init_project(project_root: Path, *, prefix: str | None = None) -> InitResult:
    """Create .ba/ with config and an empty log. Idempotent.

    Re-running on an initialized project changes nothing (a differing
    *prefix* is ignored) and reports the current state.
    """
    ba_dir = project_root / BA_DIR_NAME
    ba_dir.mkdir(parents=True, exist_ok=True)
    log = IssueLog(ba_dir / ISSUES_FILENAME, lock_path=ba_dir / LOCK_FILENAME)

    with log.locked():
        if (ba_dir / CONFIG_FILENAME).exists():
            config = read_config(ba_dir)
            log.create()
            count = len(log.load(Issue.from_dict).records)
            if prefix is not None and prefix != config["id_prefix"]:
                logger.info("init: ignoring prefix %r, project already uses %r", prefix, config["id_prefix"])
            return InitResult(ba_dir=ba_dir, config=config, already_initialized=True, issue_count=count)

        if prefix is None:
            chosen = derive_prefix(project_root.resolve().name)
        else:
            chosen, err = sanitize_prefix(prefix)
            if err:
                raise ValidationError(err)
        config = ProjectConfig(id_prefix=chosen, version=CURRENT_CONFIG_VERSION)
        write_config(ba_dir, config)
        log.create()

    logger.info("Initialized %s with prefix %s", ba_dir, chosen, extra={"command": "init"})
    return InitResult(ba_dir=ba_dir, config=config, already_initialized=False)


# ---------------------------------------------------------------------------
# BaDB
# ---------------------------------------------------------------------------


class BaDB(WorkflowMixin, PlanningMixin, MetaMixin, SessionsMixin):
    """JSONL issue store. One in-memory materialization per instance.

    Reads fold the log once and are served from memory; ``refresh()``
    re-reads. Every mutation takes the writer lock, re-reads the log,
    validates against that fresh state, and appends one line.
    """

    def __init__(
        self,
        ba_dir: str | Path,
        *,
        prefix: str = "ba",
        enforce_ownership: bool = True,
    ) -> None:
        self.ba_dir = Path(ba_dir)
        self.prefix = prefix
        self.enforce_ownership = enforce_ownership
        self.log = IssueLog(self.ba_dir / ISSUES_FILENAME, lock_path=self.ba_dir / LOCK_FILENAME)
        self._issues: dict[str, Issue] | None = None
        self._seen_ids: set[str] = set()
        self._corrupt: list[CorruptRecordError] = []
        self._graph: DependencyGraph | None = None

    @classmethod
    def from_project(cls, project_path: Path | None = None, *, enforce_ownership: bool = True) -> BaDB:
        """Create a BaDB by discovering .ba/ from project_path (or cwd)."""
        ba_dir = find_ba_root(project_path)
        config = read_config(ba_dir)
        return cls(ba_dir, prefix=config["id_prefix"], enforce_ownership=enforce_ownership)

    def __enter__(self) -> BaDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        """Drop the in-memory materialization. The next read reloads."""
        self._issues = None
        self._graph = None

    # -- Materialization -----------------------------------------------------

    def _load(self) -> dict[str, Issue]:
        snapshot = self.log.load(Issue.from_dict)
        self._issues = snapshot.records
        self._seen_ids = set(snapshot.records) | snapshot.seen_ids
        self._corrupt = snapshot.corrupt
        self._graph = None
        return self._issues

    def refresh(self) -> None:
        """Re-read the log, picking up other processes' writes."""
        self._load()

    @property
    def issues(self) -> Mapping[str, Issue]:
        if self._issues is None:
            return self._load()
        return self._issues

    @property
    def corrupt_records(self) -> list[CorruptRecordError]:
        """Lines skipped by the most recent load."""
        if self._issues is None:
            self._load()
        return list(self._corrupt)

    def _commit(self, issue: Issue) -> None:
        """Append *issue* and fold it into memory. Caller holds the lock."""
        issues = self._issues if self._issues is not None else self._load()
        self.log.append(issue.to_dict())
        issues[issue.id] = issue
        self._seen_ids.add(issue.id)
        self._graph = None

    # -- Issue Store contract ------------------------------------------------

    def get_issue(self, issue_id: str) -> Issue:
        issue = self.issues.get(issue_id)
        if issue is None:
            raise NotFoundError(issue_id)
        return issue

    def get_issue_detail(self, issue_id: str) -> IssueDetail:
        issue = self.get_issue(issue_id)
        return IssueDetail(
            issue=issue,
            ready=self.is_ready(issue_id),
            open_blockers=self.graph.open_blockers(issue),
            dependents=self.graph.dependents(issue_id),
            comments=self.get_comments(issue_id),
            valid_events=self.get_valid_events(issue_id),
        )

    def list_issues(
        self,
        *,
        include_closed: bool = False,
        status: str | None = None,
        type: str | None = None,
        claimed_by: str | None = None,
    ) -> list[Issue]:
        """Issues matching all given filters, by priority then creation order.

        Closed issues are excluded unless *include_closed* or ``status="closed"``.
        """
        if status is not None and status not in STATUSES:
            msg = f"Unknown status '{status}'. Valid statuses: {', '.join(STATUSES)}"
            raise ValidationError(msg)
        result = []
        for issue in self.issues.values():
            if status is not None and issue.status != status:
                continue
            if status is None and not include_closed and issue.status == "closed":
                continue
            if type is not None and issue.type != type:
                continue
            if claimed_by is not None and issue.claimed_by != claimed_by:
                continue
            result.append(issue)
        result.sort(key=lambda i: i.sort_key)
        return result

    def _next_id(self) -> str:
        highest = 0
        for issue_id in self._seen_ids:
            counter = id_counter(issue_id, self.prefix)
            if counter is not None:
                highest = max(highest, counter)
        return f"{self.prefix}-{highest + 1}"

    def create_issue(self, title: str, *, type: str = "task", priority: int = 2) -> Issue:
        cleaned, err = sanitize_title(title)
        if err:
            raise ValidationError(err)
        err = check_type(type) or check_priority(priority)
        if err:
            raise ValidationError(err)

        with self.log.locked():
            self._load()
            now = _now_iso()
            issue = Issue(
                id=self._next_id(),
                title=cleaned,
                type=type,
                priority=priority,
                created_at=now,
                updated_at=now,
            )
            self._commit(issue)

        logger.info("Created %s: %s", issue.id, issue.title, extra={"command": "create", "issue_id": issue.id})
        return issue

    def update_issue(self, issue_id: str, mutation: Mutation, *, expected: Issue | None = None) -> Issue:
        """Apply *mutation* to the fresh record of *issue_id* under the writer lock.

        With *expected*, this is a compare-and-swap: if the record changed
        since the caller observed it, nothing is written and ``ConflictError``
        is raised. A mutation returning ``None`` (or an unchanged issue) is a
        no-op and appends nothing.
        """
        with self.log.locked():
            issues = self._load()
            current = issues.get(issue_id)
            if current is None:
                raise NotFoundError(issue_id)
            if expected is not None and current != expected:
                logger.warning("Lost update race on %s", issue_id, extra={"issue_id": issue_id})
                msg = f"{issue_id} changed since it was read (now '{current.status}'); re-read and retry"
                raise ConflictError(msg)

            updated = mutation(current, issues)
            if updated is None or updated == current:
                return current
            updated = replace(updated, id=current.id, created_at=current.created_at, updated_at=_now_iso())
            _check_record(current, updated)
            self._commit(updated)
            return updated

    def compact(self) -> int:
        """Rewrite the log as one line per issue. Returns the number of lines dropped."""
        with self.log.locked():
            snapshot = self.log.load(Issue.from_dict)
            rows = [issue.to_dict() for issue in sorted(snapshot.records.values(), key=lambda i: (i.seq, i.created_at, i.id))]
            self.log.rewrite(rows)
            removed = snapshot.line_count - len(rows)
            self._load()
        logger.info("Compacted log: %d line(s) removed", removed, extra={"command": "compact"})
        return removed


def _check_record(before: Issue, after: Issue) -> None:
    """Per-record invariants every committed mutation must keep."""
    if (after.status == "in_progress") != bool(after.claimed_by):
        msg = f"{after.id}: claimed_by must be set if and only if status is in_progress"
        raise ValidationError(msg)
    if after.comments[: len(before.comments)] != before.comments:
        msg = f"{after.id}: comments are append-only"
        raise ValidationError(msg)
