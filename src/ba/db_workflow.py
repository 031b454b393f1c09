"""WorkflowMixin — the claim/release/finish state machine.

Covers the transition table, ownership checks, and the claim, release and
finish operations. Claiming is the only way to become an issue's owner and
``claimed_by`` is set exactly while the issue is ``in_progress``.

All methods reach the store via ``self.update_issue()``, so each transition
is validated against the fresh record under the writer lock when composed
into ``BaDB``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from ba.db_base import DBMixinProtocol
from ba.errors import ConflictError, InvalidTransitionError, NotOwnerError, ValidationError
from ba.validation import sanitize_session

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ba.core import Issue

logger = logging.getLogger(__name__)

STATUSES: tuple[str, ...] = ("open", "in_progress", "closed")

# (status, event) -> next status. Anything absent is an invalid transition.
TRANSITIONS: dict[tuple[str, str], str] = {
    ("open", "claim"): "in_progress",
    ("closed", "claim"): "in_progress",  # claiming a closed issue reopens it
    ("in_progress", "finish"): "closed",
    ("in_progress", "release"): "open",
}

# Events that never change status.
STATUS_PRESERVING_EVENTS = frozenset({"block", "unblock", "comment"})


def next_status(issue_id: str, status: str, event: str) -> str:
    """Resolve the status after *event*, or raise InvalidTransitionError."""
    if event in STATUS_PRESERVING_EVENTS:
        return status
    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(issue_id, status, event) from None


def valid_events(status: str) -> list[str]:
    events = [event for (from_status, event) in TRANSITIONS if from_status == status]
    return events + sorted(STATUS_PRESERVING_EVENTS)


def clean_session(session: str | None) -> str | None:
    """Validate an optional *session*; blank counts as absent."""
    if session is None or (isinstance(session, str) and not session.strip()):
        return None
    return require_session(session)


def require_session(session: str | None) -> str:
    """Validate a session that must be present."""
    if session is None or (isinstance(session, str) and not session.strip()):
        msg = "A session id is required (pass --session or set SESSION_ID)"
        raise ValidationError(msg)
    cleaned, err = sanitize_session(session)
    if err:
        raise ValidationError(err)
    return cleaned


class WorkflowMixin(DBMixinProtocol):
    """Claim/release/finish operations for BaDB.

    Inherits ``DBMixinProtocol`` for type-safe access to ``self.update_issue()``
    and the ownership policy flag. Implementations are provided by ``BaDB``
    at composition time via MRO.
    """

    def get_valid_events(self, issue_id: str) -> list[str]:
        return valid_events(self.get_issue(issue_id).status)

    def claim_issue(self, issue_id: str, *, session: str) -> Issue:
        """Take ownership of *issue_id*.

        Claiming an issue this session already holds is a no-op. Claiming a
        closed issue reopens it. An issue held by another session is a
        ConflictError: there is no stealing.
        """
        claimant = require_session(session)

        def mutation(current: Issue, _issues: Mapping[str, Issue]) -> Issue | None:
            if current.status == "in_progress":
                if current.claimed_by == claimant:
                    return None
                logger.warning(
                    "Claim of %s by %s lost to %s",
                    current.id,
                    claimant,
                    current.claimed_by,
                    extra={"command": "claim", "issue_id": current.id, "session": claimant},
                )
                msg = f"Cannot claim {current.id}: already claimed by '{current.claimed_by}'"
                raise ConflictError(msg)
            status = next_status(current.id, current.status, "claim")
            return replace(current, status=status, claimed_by=claimant)

        issue = self.update_issue(issue_id, mutation)
        logger.info("Claimed %s", issue_id, extra={"command": "claim", "issue_id": issue_id, "session": claimant})
        return issue

    def release_issue(self, issue_id: str, *, session: str | None = None) -> Issue:
        """Give an in_progress issue back to the pool."""
        return self._end_claim(issue_id, "release", session)

    def finish_issue(self, issue_id: str, *, session: str | None = None) -> Issue:
        """Close an in_progress issue. Ownership is cleared on close."""
        return self._end_claim(issue_id, "finish", session)

    def _end_claim(self, issue_id: str, event: str, session: str | None) -> Issue:
        caller = clean_session(session)
        enforce = self.enforce_ownership

        def mutation(current: Issue, _issues: Mapping[str, Issue]) -> Issue:
            status = next_status(current.id, current.status, event)
            if enforce and current.claimed_by != caller:
                logger.warning(
                    "%s of %s refused: owned by %s",
                    event,
                    current.id,
                    current.claimed_by,
                    extra={"command": event, "issue_id": current.id, "session": caller},
                )
                raise NotOwnerError(current.id, current.claimed_by, caller)
            return replace(current, status=status, claimed_by=None)

        issue = self.update_issue(issue_id, mutation)
        logger.info("%s %s", event.capitalize(), issue_id, extra={"command": event, "issue_id": issue_id, "session": caller})
        return issue
