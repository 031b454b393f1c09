"""Config migration framework for ba.

Migrations are version-keyed functions that transform a raw ``config.json``
dict from one version to the next. Each migration receives the dict as read
from disk and returns the upgraded dict; it must not touch issues.jsonl.

The migration runner:
  1. Reads the config's ``version`` (a config with no version is ``"0"``)
  2. Applies each pending migration in order
  3. Stamps the new version after each successful step
  4. Leaves persisting the result to the caller (``core.read_config``)

Adding a new migration:
  1. Bump CURRENT_CONFIG_VERSION below
  2. Add a function here: def migrate_v<N>_to_v<N+1>(config) -> dict
  3. Register it in MIGRATIONS: "N": migrate_v<N>_to_v<N+1>
  4. Add a test in tests/core/test_config.py
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from ba.errors import MigrationError

logger = logging.getLogger(__name__)

CURRENT_CONFIG_VERSION = "1"
LEGACY_VERSION = "0"


class MigrationFn(Protocol):
    """Protocol for migration functions."""

    def __call__(self, config: dict[str, Any]) -> dict[str, Any]: ...


def migrate_v0_to_v1(config: dict[str, Any]) -> dict[str, Any]:
    """v0 → v1: unversioned configs stored the id prefix under ``prefix``.

    Changes:
      - ``prefix`` renamed to ``id_prefix``
      - ``version`` added
    """
    upgraded = dict(config)
    if "id_prefix" not in upgraded:
        if "prefix" not in upgraded:
            msg = "config has neither 'id_prefix' nor legacy 'prefix'"
            raise ValueError(msg)
        upgraded["id_prefix"] = upgraded["prefix"]
    upgraded.pop("prefix", None)
    return upgraded


# Keys are the version being migrated FROM.
MIGRATIONS: dict[str, MigrationFn] = {
    "0": migrate_v0_to_v1,
}


def _as_int(version: str) -> int:
    try:
        return int(version)
    except ValueError:
        msg = f"unrecognised config version '{version}'"
        raise MigrationError(version, CURRENT_CONFIG_VERSION, msg) from None


def config_version(config: dict[str, Any]) -> str:
    version = config.get("version", LEGACY_VERSION)
    return str(version)


def apply_pending_migrations(config: dict[str, Any], target_version: str = CURRENT_CONFIG_VERSION) -> tuple[dict[str, Any], int]:
    """Upgrade *config* to *target_version*.

    Returns ``(config, applied_count)``; the input dict is not modified.

    Raises:
        MigrationError: unknown/newer version, missing step, or a failing step.
    """
    current = config_version(config)
    current_n = _as_int(current)
    target_n = _as_int(target_version)

    if current_n == target_n:
        return config, 0
    if current_n > target_n:
        msg = f"config v{current} is newer than this version of ba (expects v{target_version}); downgrade is not supported"
        raise MigrationError(current, target_version, msg)

    applied = 0
    for version in range(current_n, target_n):
        from_v, to_v = str(version), str(version + 1)
        migration = MIGRATIONS.get(from_v)
        if migration is None:
            raise MigrationError(from_v, to_v, "no migration registered")
        logger.info("Applying config migration v%s → v%s", from_v, to_v)
        try:
            config = migration(config)
        except (KeyError, TypeError, ValueError) as exc:
            raise MigrationError(from_v, to_v, str(exc)) from exc
        config["version"] = to_v
        applied += 1
    return config, applied
