"""Tests for project init, config reading, discovery, and config migrations."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ba.core import (
    BA_DIR_NAME,
    CONFIG_FILENAME,
    ISSUES_FILENAME,
    BaDB,
    find_ba_root,
    init_project,
    read_config,
)
from ba.errors import ConfigError, MigrationError, ValidationError
from ba.migrations import CURRENT_CONFIG_VERSION, MIGRATIONS, apply_pending_migrations


class TestInitProject:
    def test_creates_layout(self, tmp_path: Path) -> None:
        result = init_project(tmp_path, prefix="proj")
        ba_dir = tmp_path / BA_DIR_NAME
        assert result.ba_dir == ba_dir
        assert not result.already_initialized
        assert (ba_dir / ISSUES_FILENAME).read_text() == ""
        config = json.loads((ba_dir / CONFIG_FILENAME).read_text())
        assert config == {"id_prefix": "proj", "version": CURRENT_CONFIG_VERSION}

    def test_second_init_is_noop(self, tmp_path: Path) -> None:
        init_project(tmp_path, prefix="proj")
        config_before = (tmp_path / BA_DIR_NAME / CONFIG_FILENAME).read_text()
        again = init_project(tmp_path, prefix="other")
        assert again.already_initialized
        assert again.config["id_prefix"] == "proj"
        assert again.issue_count == 0
        assert (tmp_path / BA_DIR_NAME / CONFIG_FILENAME).read_text() == config_before
        assert (tmp_path / BA_DIR_NAME / ISSUES_FILENAME).read_text() == ""

    def test_reinit_reports_issue_count(self, tmp_path: Path) -> None:
        ba_dir = init_project(tmp_path, prefix="proj").ba_dir
        BaDB(ba_dir, prefix="proj").create_issue("Existing")
        assert init_project(tmp_path).issue_count == 1

    def test_default_prefix_from_directory(self, tmp_path: Path) -> None:
        project = tmp_path / "My-Cool.Project"
        project.mkdir()
        assert init_project(project).config["id_prefix"] == "mycoolproject"

    def test_default_prefix_fallback(self, tmp_path: Path) -> None:
        project = tmp_path / "---"
        project.mkdir()
        assert init_project(project).config["id_prefix"] == "ba"

    @pytest.mark.parametrize("prefix", ["has-hyphen", "_lead", "", "sp ace"])
    def test_bad_prefix(self, tmp_path: Path, prefix: str) -> None:
        with pytest.raises(ValidationError):
            init_project(tmp_path, prefix=prefix)
        assert not (tmp_path / BA_DIR_NAME / CONFIG_FILENAME).exists()


class TestDiscovery:
    def test_walks_up(self, tmp_path: Path) -> None:
        ba_dir = init_project(tmp_path, prefix="proj").ba_dir
        nested = tmp_path / "src" / "deep"
        nested.mkdir(parents=True)
        assert find_ba_root(nested) == ba_dir.resolve()

    def test_missing_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            find_ba_root(tmp_path)

    def test_from_project_uses_config_prefix(self, tmp_path: Path) -> None:
        init_project(tmp_path, prefix="proj")
        with BaDB.from_project(tmp_path) as db:
            assert db.create_issue("Hello").id == "proj-1"


class TestReadConfig:
    def test_missing_config(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="ba init"):
            read_config(tmp_path)

    def test_corrupt_config(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("{oops")
        with pytest.raises(ConfigError):
            read_config(tmp_path)

    def test_legacy_config_migrated_and_persisted(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(json.dumps({"prefix": "old"}))
        config = read_config(tmp_path)
        assert config == {"id_prefix": "old", "version": "1"}
        on_disk = json.loads((tmp_path / CONFIG_FILENAME).read_text())
        assert on_disk == {"id_prefix": "old", "version": "1"}

    def test_newer_config_rejected(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(json.dumps({"id_prefix": "x", "version": "99"}))
        with pytest.raises(MigrationError, match="newer"):
            read_config(tmp_path)

    def test_bad_prefix_in_config(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(json.dumps({"id_prefix": "a-b", "version": "1"}))
        with pytest.raises(ConfigError, match="Invalid id prefix"):
            read_config(tmp_path)


class TestMigrations:
    def test_registry_covers_every_step(self) -> None:
        for version in range(int(CURRENT_CONFIG_VERSION)):
            assert str(version) in MIGRATIONS

    def test_current_config_untouched(self) -> None:
        config = {"id_prefix": "x", "version": CURRENT_CONFIG_VERSION}
        upgraded, applied = apply_pending_migrations(config)
        assert applied == 0
        assert upgraded == config

    def test_input_not_mutated(self) -> None:
        legacy = {"prefix": "old"}
        upgraded, applied = apply_pending_migrations(legacy)
        assert applied == 1
        assert legacy == {"prefix": "old"}
        assert upgraded == {"id_prefix": "old", "version": "1"}

    def test_failing_step_wrapped(self) -> None:
        with pytest.raises(MigrationError, match="v0 → v1"):
            apply_pending_migrations({"unrelated": True})

    def test_non_numeric_version(self) -> None:
        with pytest.raises(MigrationError, match="unrecognised"):
            apply_pending_migrations({"id_prefix": "x", "version": "beta"})
