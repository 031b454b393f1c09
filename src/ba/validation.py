"""Shared validation functions for all entry points.

Pure functions with no click dependencies. Each returns ``(cleaned, None)`` on
success or ``(fallback, error_message)`` on failure so callers decide how to
surface the problem.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

_MAX_SESSION_LENGTH = 128
_MAX_TITLE_LENGTH = 500
_PREFIX_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_]*$")

VALID_TYPES: tuple[str, ...] = ("task", "epic", "refactor", "spike")
MIN_PRIORITY = 0
MAX_PRIORITY = 4


def sanitize_session(value: Any, *, name: str = "session") -> tuple[str, str | None]:
    """Validate and clean a session identifier (also used for comment authors).

    Strips whitespace, then checks: non-empty, max length, no control/format chars.
    """
    if not isinstance(value, str):
        return ("", f"{name} must be a string")
    # Check for control/format chars before stripping: reject "\nbad" rather
    # than silently absorbing the newline via strip().
    for ch in value:
        cat = unicodedata.category(ch)
        if cat.startswith("C"):  # Cc (control) and Cf (format)
            return ("", f"{name} must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", f"{name} must not be empty")
    if len(cleaned) > _MAX_SESSION_LENGTH:
        return ("", f"{name} must be at most {_MAX_SESSION_LENGTH} characters")
    return (cleaned, None)


def sanitize_title(value: Any) -> tuple[str, str | None]:
    if not isinstance(value, str):
        return ("", "title must be a string")
    cleaned = value.strip()
    if not cleaned:
        return ("", "Title cannot be empty")
    if "\n" in cleaned or "\r" in cleaned:
        return ("", "Title must be a single line")
    if len(cleaned) > _MAX_TITLE_LENGTH:
        return ("", f"Title must be at most {_MAX_TITLE_LENGTH} characters")
    return (cleaned, None)


def check_priority(value: Any) -> str | None:
    """Return an error message if *value* is not a priority in 0..4."""
    # bool is an int subclass; True is not a priority.
    if isinstance(value, bool) or not isinstance(value, int):
        return "priority must be an integer"
    if not (MIN_PRIORITY <= value <= MAX_PRIORITY):
        return f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}, got {value}"
    return None


def check_type(value: Any) -> str | None:
    if value not in VALID_TYPES:
        return f"Unknown type '{value}'. Valid types: {', '.join(VALID_TYPES)}"
    return None


def sanitize_prefix(value: Any) -> tuple[str, str | None]:
    """Validate an id prefix. Hyphens are rejected so ``<prefix>-<n>`` splits unambiguously."""
    if not isinstance(value, str):
        return ("", "id_prefix must be a string")
    cleaned = value.strip()
    if not _PREFIX_RE.match(cleaned):
        return ("", f"Invalid id prefix '{value}': use letters, digits and underscores, starting with a letter or digit")
    return (cleaned, None)


def derive_prefix(directory_name: str) -> str:
    """Default prefix for a project directory: lowercase alphanumerics, or ``ba``."""
    derived = "".join(c for c in directory_name.lower() if c.isascii() and c.isalnum())
    return derived or "ba"
