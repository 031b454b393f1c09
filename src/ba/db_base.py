"""Shared utilities, types, and Protocol for DB mixins."""

from __future__ import annotations

import contextlib
import os
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ba.core import Issue
    from ba.db_log import IssueLog
    from ba.errors import CorruptRecordError

    # A mutation receives the fresh issue plus the fresh store and returns the
    # post-mutation issue, or None when the call is a no-op.
    Mutation = Callable[[Issue, Mapping[str, Issue]], Issue | None]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


class DBMixinProtocol(Protocol):
    """Shared attributes and methods that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check self.log,
    self.get_issue(), etc. without ``type: ignore`` on every call.
    Actual implementations are provided by BaDB at composition time.
    """

    ba_dir: Path
    prefix: str
    enforce_ownership: bool
    log: IssueLog

    @property
    def issues(self) -> Mapping[str, Issue]: ...

    @property
    def corrupt_records(self) -> list[CorruptRecordError]: ...

    def get_issue(self, issue_id: str) -> Issue: ...

    def update_issue(self, issue_id: str, mutation: Mutation, *, expected: Issue | None = None) -> Issue: ...
