"""MetaMixin — comments and store health checks.

Comments are append-only: an issue's comment list only ever grows, and each
comment is stamped with its author and a UTC timestamp. ``check()`` is a
read-only audit of the materialized store.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from ba.db_base import DBMixinProtocol, _now_iso
from ba.errors import ValidationError
from ba.validation import sanitize_session

if TYPE_CHECKING:
    from ba.core import Comment, Issue
    from ba.db_planning import DependencyGraph
    from ba.errors import CorruptRecordError

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "anonymous"


@dataclass
class CheckReport:
    corrupt: list[CorruptRecordError] = field(default_factory=list)
    violations: list[str] = field(default_factory=list)
    issue_count: int = 0

    @property
    def ok(self) -> bool:
        return not self.corrupt and not self.violations

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "issue_count": self.issue_count,
            "corrupt": [{"line": c.line_number, "reason": c.reason} for c in self.corrupt],
            "violations": list(self.violations),
        }


class MetaMixin(DBMixinProtocol):
    """Comments and health checks for BaDB.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``BaDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:

        @property
        def graph(self) -> DependencyGraph: ...

    # -- Comments ------------------------------------------------------------

    def add_comment(self, issue_id: str, text: str, *, author: str | None = None) -> Issue:
        if not isinstance(text, str) or not text.strip():
            msg = "Comment text cannot be empty"
            raise ValidationError(msg)
        if author is None or not author.strip():
            author = DEFAULT_AUTHOR
        else:
            author, err = sanitize_session(author, name="author")
            if err:
                raise ValidationError(err)

        from ba.core import Comment

        comment = Comment(author=author, text=text.strip(), timestamp=_now_iso())

        def mutation(current: Issue, _issues: Mapping[str, Issue]) -> Issue:
            return replace(current, comments=[*current.comments, comment])

        issue = self.update_issue(issue_id, mutation)
        logger.info("Comment on %s by %s", issue_id, author, extra={"command": "comment", "issue_id": issue_id})
        return issue

    def get_comments(self, issue_id: str) -> list[Comment]:
        return list(self.get_issue(issue_id).comments)

    # -- Health --------------------------------------------------------------

    def check(self) -> CheckReport:
        """Report corrupt log lines and invariant violations. Never writes."""
        issues = self.issues
        report = CheckReport(corrupt=self.corrupt_records, issue_count=len(issues))
        for issue in issues.values():
            if issue.status == "in_progress" and not issue.claimed_by:
                report.violations.append(f"{issue.id}: in_progress but not claimed")
            if issue.status != "in_progress" and issue.claimed_by:
                report.violations.append(f"{issue.id}: claimed by '{issue.claimed_by}' but status is '{issue.status}'")
            for blocker_id in issue.blocked_by:
                if blocker_id not in issues:
                    report.violations.append(f"{issue.id}: blocked by unknown issue {blocker_id}")
        cycle = self.graph.find_cycle()
        if cycle:
            report.violations.append(f"blocking cycle: {' -> '.join(cycle)}")
        if not report.ok:
            logger.warning(
                "check found %d corrupt line(s), %d violation(s)",
                len(report.corrupt),
                len(report.violations),
                extra={"command": "check"},
            )
        return report
