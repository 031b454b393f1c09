"""Append-only JSONL issue log — the durable half of the Issue Store.

Every mutation appends one full issue snapshot as a single line to
``.ba/issues.jsonl``. Loading folds the log in write order so the latest
valid line per id wins. The format stays diff-friendly under version control
and can always be recovered by replaying it.

Writers serialize through an exclusive ``fcntl.flock`` on ``.ba/issues.lock``
held for the whole read-validate-append sequence. Readers take no lock: they
see every fully written line, and a torn trailing line is reported as a
corrupt record and skipped.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

from ba.db_base import write_atomic
from ba.errors import CorruptRecordError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class LogSnapshot(Generic[T]):
    """Result of folding the log: latest record per id plus what was skipped."""

    records: dict[str, T] = field(default_factory=dict)
    corrupt: list[CorruptRecordError] = field(default_factory=list)
    line_count: int = 0
    # Ids seen on any line, decodable or not; ids are never reused.
    seen_ids: set[str] = field(default_factory=set)


def encode_line(row: dict[str, Any]) -> bytes:
    return (json.dumps(row, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")


class IssueLog:
    """Line-oriented issue log with advisory locking."""

    def __init__(self, path: Path, *, lock_path: Path | None = None) -> None:
        self.path = path
        self.lock_path = lock_path or path.with_suffix(".lock")
        # flock is per open file description: a second LOCK_EX from this
        # process on a fresh fd would deadlock, so nested locked() calls
        # on the same instance just bump a depth counter.
        self._lock_depth = 0

    def exists(self) -> bool:
        return self.path.exists()

    def create(self) -> None:
        """Create an empty log (and lock file) if missing. Never truncates."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        self.lock_path.touch(exist_ok=True)

    @contextlib.contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the exclusive writer lock for the duration of the block."""
        if self._lock_depth:
            self._lock_depth += 1
            try:
                yield
            finally:
                self._lock_depth -= 1
            return

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_fd = open(self.lock_path, "a")  # noqa: SIM115
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            self._lock_depth = 1
            try:
                yield
            finally:
                self._lock_depth = 0
                fcntl.flock(lock_fd, fcntl.LOCK_UN)
        finally:
            lock_fd.close()

    @property
    def is_locked(self) -> bool:
        return self._lock_depth > 0

    def load(self, decode: Callable[[dict[str, Any]], T]) -> LogSnapshot[T]:
        """Fold the log into the latest decodable record per id.

        ``decode`` turns a JSON object into a record; any KeyError, TypeError
        or ValueError it raises marks the line corrupt. Corrupt lines are
        logged and skipped; earlier good lines for the same id stay in effect.
        """
        snapshot: LogSnapshot[T] = LogSnapshot()
        if not self.path.exists():
            return snapshot

        with self.path.open("rb") as f:
            for line_number, raw in enumerate(f, start=1):
                snapshot.line_count = line_number
                if not raw.strip():
                    continue
                try:
                    row = json.loads(raw.decode("utf-8"))
                    if not isinstance(row, dict):
                        msg = f"expected a JSON object, got {type(row).__name__}"
                        raise TypeError(msg)
                    record_id = row.get("id")
                    if not isinstance(record_id, str) or not record_id:
                        msg = "record has no string 'id'"
                        raise ValueError(msg)
                    snapshot.seen_ids.add(record_id)
                    record = decode(row)
                except (UnicodeDecodeError, KeyError, TypeError, ValueError) as exc:
                    # json.JSONDecodeError is a ValueError
                    error = CorruptRecordError(line_number, _describe(exc))
                    logger.warning(
                        "Skipping corrupt record in %s: %s",
                        self.path.name,
                        error,
                        extra={"line": line_number, "error": error.reason},
                    )
                    snapshot.corrupt.append(error)
                    continue
                # Re-inserting keeps first-seen (creation) order in the dict.
                snapshot.records[record_id] = record
        return snapshot

    def append(self, row: dict[str, Any]) -> None:
        """Append one snapshot line. Caller must hold ``locked()``."""
        if not self.is_locked:
            msg = "IssueLog.append() requires the writer lock"
            raise RuntimeError(msg)
        data = encode_line(row)
        with self.path.open("ab") as f:
            if self._needs_separator():
                # A previous writer died mid-line; keep our record on its own line.
                data = b"\n" + data
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

    def rewrite(self, rows: list[dict[str, Any]]) -> None:
        """Atomically replace the whole log. Caller must hold ``locked()``."""
        if not self.is_locked:
            msg = "IssueLog.rewrite() requires the writer lock"
            raise RuntimeError(msg)
        write_atomic(self.path, b"".join(encode_line(r) for r in rows).decode("utf-8"))

    def _needs_separator(self) -> bool:
        try:
            size = self.path.stat().st_size
        except FileNotFoundError:
            return False
        if size == 0:
            return False
        with self.path.open("rb") as f:
            f.seek(-1, os.SEEK_END)
            return f.read(1) != b"\n"


def _describe(exc: Exception) -> str:
    if isinstance(exc, json.JSONDecodeError):
        return f"invalid JSON ({exc.msg})"
    if isinstance(exc, UnicodeDecodeError):
        return "not valid UTF-8"
    if isinstance(exc, KeyError):
        return f"missing field {exc}"
    return str(exc)
