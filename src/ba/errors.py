"""Typed error taxonomy for the ba engine.

Every failure the engine reports is a ``BaError`` subclass carrying a stable
``code`` string. The CLI uses ``code`` for its JSON error envelope, so codes
are part of the machine-readable contract and must not change.

Most errors also subclass a builtin (``KeyError`` for missing issues,
``ValueError`` for rejected operations), so callers that catch builtins keep
working.
"""

from __future__ import annotations


class BaError(Exception):
    """Base class for all engine errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message; keep it readable.
        return self.message


class NotFoundError(BaError, KeyError):
    """Referenced issue id does not exist."""

    code = "not_found"

    def __init__(self, issue_id: str) -> None:
        self.issue_id = issue_id
        super().__init__(f"Issue not found: {issue_id}")


class ValidationError(BaError, ValueError):
    """Input rejected before any state was touched (bad title, priority, session...)."""

    code = "validation_error"


class InvalidTransitionError(BaError, ValueError):
    """Event is not legal for the issue's current status."""

    code = "invalid_transition"

    def __init__(self, issue_id: str, status: str, event: str) -> None:
        self.issue_id = issue_id
        self.status = status
        self.event = event
        super().__init__(f"Cannot {event} {issue_id}: status is '{status}'")


class NotOwnerError(BaError, ValueError):
    """Caller's session does not match the issue's ``claimed_by``."""

    code = "not_owner"

    def __init__(self, issue_id: str, owner: str | None, session: str | None) -> None:
        self.issue_id = issue_id
        self.owner = owner
        self.session = session
        who = f"'{session}'" if session else "an anonymous caller"
        super().__init__(f"{issue_id} is claimed by '{owner}', not {who}")


class ConflictError(BaError, ValueError):
    """A concurrent or competing mutation won; the caller may retry out of band."""

    code = "conflict"


class CycleError(BaError, ValueError):
    """Adding a blocking edge would make the blocking graph cyclic."""

    code = "cycle"

    def __init__(self, issue_id: str, blocker_id: str) -> None:
        self.issue_id = issue_id
        self.blocker_id = blocker_id
        if issue_id == blocker_id:
            msg = f"{issue_id} cannot block itself"
        else:
            msg = f"Blocking {issue_id} on {blocker_id} would create a cycle"
        super().__init__(msg)


class CorruptRecordError(BaError, ValueError):
    """An unparseable log line. Collected during load, never raised by it."""

    code = "corrupt_record"

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Corrupt record at line {line_number}: {reason}")


class ConfigError(BaError):
    """Project config is missing, unreadable, or malformed."""

    code = "config_error"


class MigrationError(BaError):
    """A config version migration could not be applied."""

    code = "migration_error"

    def __init__(self, from_version: str, to_version: str, cause: str) -> None:
        self.from_version = from_version
        self.to_version = to_version
        self.cause = cause
        super().__init__(f"Config migration v{from_version} → v{to_version} failed: {cause}")
