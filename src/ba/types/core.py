"""Foundational TypedDicts for dataclass to_dict() returns and CLI JSON output."""

from __future__ import annotations

from typing import Literal, NewType, NotRequired, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)

IssueStatus = Literal["open", "in_progress", "closed"]
IssueType = Literal["task", "epic", "refactor", "spike"]


class ProjectConfig(TypedDict):
    """Shape of .ba/config.json."""

    id_prefix: str
    version: str


class CommentDict(TypedDict):
    author: str
    text: str
    timestamp: ISOTimestamp


class IssueDict(TypedDict):
    """One line of issues.jsonl, and the JSON shape of every issue the CLI prints."""

    id: str
    title: str
    type: str
    priority: int
    status: str
    claimed_by: str | None
    blocked_by: list[str]
    comments: list[CommentDict]
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class TreeNodeDict(TypedDict):
    issue: IssueDict
    ready: bool
    blockers: list[TreeNodeDict]
    repeated: NotRequired[bool]


class CorruptRecordDict(TypedDict):
    line: int
    reason: str


class ErrorResponse(TypedDict):
    """Standard error envelope printed by ``--json`` error paths."""

    error: str
    code: str
