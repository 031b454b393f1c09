"""Tests for issue creation, lookup, listing, and comments."""

from __future__ import annotations

import pytest

from ba.core import BaDB
from ba.errors import NotFoundError, ValidationError


class TestCreateIssue:
    def test_defaults(self, db: BaDB) -> None:
        issue = db.create_issue("Fix the parser")
        assert issue.id == "test-1"
        assert issue.status == "open"
        assert issue.type == "task"
        assert issue.priority == 2
        assert issue.claimed_by is None
        assert issue.blocked_by == []
        assert issue.comments == []
        assert issue.created_at == issue.updated_at

    def test_ids_are_sequential(self, db: BaDB) -> None:
        ids = [db.create_issue(f"Issue {n}").id for n in range(3)]
        assert ids == ["test-1", "test-2", "test-3"]

    def test_title_is_stripped(self, db: BaDB) -> None:
        assert db.create_issue("  padded  ").title == "padded"

    def test_type_and_priority(self, db: BaDB) -> None:
        issue = db.create_issue("Investigate", type="spike", priority=0)
        assert issue.type == "spike"
        assert issue.priority == 0

    @pytest.mark.parametrize("title", ["", "   ", "two\nlines"])
    def test_bad_title_rejected(self, db: BaDB, title: str) -> None:
        with pytest.raises(ValidationError):
            db.create_issue(title)
        assert db.issues == {}

    @pytest.mark.parametrize("priority", [-1, 5])
    def test_priority_out_of_range(self, db: BaDB, priority: int) -> None:
        with pytest.raises(ValidationError, match="between 0 and 4"):
            db.create_issue("Bad priority", priority=priority)

    def test_unknown_type(self, db: BaDB) -> None:
        with pytest.raises(ValidationError, match="Unknown type"):
            db.create_issue("Bad type", type="bug")

    def test_validation_error_is_value_error(self, db: BaDB) -> None:
        with pytest.raises(ValueError):
            db.create_issue("")


class TestGetIssue:
    def test_get_existing(self, db: BaDB) -> None:
        issue = db.create_issue("Find me")
        assert db.get_issue(issue.id) == issue

    def test_not_found(self, db: BaDB) -> None:
        with pytest.raises(NotFoundError, match="test-99"):
            db.get_issue("test-99")

    def test_not_found_is_key_error(self, db: BaDB) -> None:
        with pytest.raises(KeyError):
            db.get_issue("nope")


class TestListIssues:
    def test_closed_excluded_by_default(self, populated_db: BaDB) -> None:
        ids = {i.id for i in populated_db.list_issues()}
        assert populated_db._test_ids["c"] not in ids  # type: ignore[attr-defined]

    def test_include_closed(self, populated_db: BaDB) -> None:
        assert len(populated_db.list_issues(include_closed=True)) == 4

    def test_status_filter(self, populated_db: BaDB) -> None:
        closed = populated_db.list_issues(status="closed")
        assert [i.id for i in closed] == [populated_db._test_ids["c"]]  # type: ignore[attr-defined]

    def test_type_filter(self, populated_db: BaDB) -> None:
        spikes = populated_db.list_issues(type="spike")
        assert [i.id for i in spikes] == [populated_db._test_ids["d"]]  # type: ignore[attr-defined]

    def test_unknown_status(self, db: BaDB) -> None:
        with pytest.raises(ValidationError):
            db.list_issues(status="done")

    def test_ordering(self, db: BaDB) -> None:
        low = db.create_issue("Low", priority=3)
        high = db.create_issue("High", priority=1)
        high_later = db.create_issue("High later", priority=1)
        assert [i.id for i in db.list_issues()] == [high.id, high_later.id, low.id]


class TestComments:
    def test_add_comment(self, db: BaDB) -> None:
        issue = db.create_issue("Discuss")
        updated = db.add_comment(issue.id, "Looks good", author="reviewer")
        assert len(updated.comments) == 1
        assert updated.comments[0].author == "reviewer"
        assert updated.comments[0].text == "Looks good"
        assert updated.comments[0].timestamp

    def test_default_author(self, db: BaDB) -> None:
        issue = db.create_issue("Discuss")
        assert db.add_comment(issue.id, "hi").comments[0].author == "anonymous"

    def test_comments_accumulate_in_order(self, db: BaDB) -> None:
        issue = db.create_issue("Discuss")
        db.add_comment(issue.id, "first")
        db.add_comment(issue.id, "second")
        assert [c.text for c in db.get_comments(issue.id)] == ["first", "second"]

    def test_comment_keeps_status(self, populated_db: BaDB) -> None:
        d = populated_db._test_ids["d"]  # type: ignore[attr-defined]
        updated = populated_db.add_comment(d, "still on it", author="s1")
        assert updated.status == "in_progress"
        assert updated.claimed_by == "s1"

    def test_empty_comment_rejected(self, db: BaDB) -> None:
        issue = db.create_issue("Discuss")
        with pytest.raises(ValidationError, match="empty"):
            db.add_comment(issue.id, "   ")

    def test_comment_on_missing_issue(self, db: BaDB) -> None:
        with pytest.raises(NotFoundError):
            db.add_comment("test-42", "hello")
