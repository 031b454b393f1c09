"""Shared pytest fixtures for ba tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from ba.core import BaDB, init_project


@pytest.fixture
def ba_dir(tmp_path: Path) -> Path:
    """An initialized .ba/ directory with prefix ``test``."""
    return init_project(tmp_path, prefix="test").ba_dir


@pytest.fixture
def db(ba_dir: Path) -> Generator[BaDB, None, None]:
    """Fresh BaDB (strict ownership) for each test."""
    d = BaDB(ba_dir, prefix="test")
    yield d
    d.close()


@pytest.fixture
def relaxed_db(ba_dir: Path) -> Generator[BaDB, None, None]:
    """BaDB on the same project with ownership enforcement off."""
    d = BaDB(ba_dir, prefix="test", enforce_ownership=False)
    yield d
    d.close()


@pytest.fixture
def populated_db(db: BaDB) -> BaDB:
    """BaDB pre-populated with a representative issue set.

    Creates:
    - A (P1), B (P2), C (P3, closed), D (P0, in_progress by s1)
    - A blocked by B
    - Comment on B
    """
    a = db.create_issue("Issue A", priority=1)
    b = db.create_issue("Issue B", priority=2)
    c = db.create_issue("Issue C", priority=3)
    d = db.create_issue("Issue D", priority=0, type="spike")
    db.claim_issue(c.id, session="s1")
    db.finish_issue(c.id, session="s1")
    db.claim_issue(d.id, session="s1")
    db.add_blocker(a.id, b.id)
    db.add_comment(b.id, "Test comment", author="tester")
    db._test_ids: dict[str, str] = {"a": a.id, "b": b.id, "c": c.id, "d": d.id}  # type: ignore[attr-defined]
    return db


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
