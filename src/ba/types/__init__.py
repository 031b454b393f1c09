# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, db_base.py, or any mixin; this prevents circular imports.
"""Typed return-value contracts for ba core and CLI layers."""

from __future__ import annotations

from ba.types.core import (
    CommentDict,
    CorruptRecordDict,
    ErrorResponse,
    ISOTimestamp,
    IssueDict,
    IssueStatus,
    IssueType,
    ProjectConfig,
    TreeNodeDict,
)

__all__ = [
    "CommentDict",
    "CorruptRecordDict",
    "ErrorResponse",
    "ISOTimestamp",
    "IssueDict",
    "IssueStatus",
    "IssueType",
    "ProjectConfig",
    "TreeNodeDict",
]
