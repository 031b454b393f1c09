"""SessionsMixin — who is working on what.

A session is an opaque caller-supplied identifier. There is no session
table: the registry is recomputed from ``claimed_by`` on in_progress issues,
so it can never disagree with the store.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from ba.db_base import DBMixinProtocol

if TYPE_CHECKING:
    from ba.core import Issue


class SessionRegistry:
    """Map of session id to the issues it currently holds."""

    def __init__(self, issues: Mapping[str, Issue]) -> None:
        self._held: dict[str, list[Issue]] = {}
        for issue in issues.values():
            if issue.status == "in_progress" and issue.claimed_by:
                self._held.setdefault(issue.claimed_by, []).append(issue)
        for held in self._held.values():
            held.sort(key=lambda i: i.sort_key)

    def mine(self, session: str) -> list[Issue]:
        return list(self._held.get(session, []))

    def sessions(self) -> dict[str, list[str]]:
        return {session: [i.id for i in held] for session, held in sorted(self._held.items())}


class SessionsMixin(DBMixinProtocol):
    def get_mine(self, session: str) -> list[Issue]:
        """In-progress issues claimed by *session*."""
        return SessionRegistry(self.issues).mine(session)

    def get_sessions(self) -> dict[str, list[str]]:
        return SessionRegistry(self.issues).sessions()
