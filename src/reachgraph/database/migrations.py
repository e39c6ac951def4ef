"""Versioned schema migrations for ReachGraph.

New databases get the full schema from schema.py and are then stamped with
every registered migration. Existing databases only run the migrations they
have not seen yet. Each migration runs in its own IMMEDIATE transaction
together with the row that records it, so a failed step leaves no trace.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from reachgraph.database.connection import get_connection
from reachgraph.exceptions import ConfigurationError
from reachgraph.utils.logging import get_logger

logger = get_logger(__name__)

MigrationFunc = Callable[[sqlite3.Connection], None]

MIGRATIONS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    applied_at TEXT NOT NULL
)
"""


@dataclass(frozen=True)
class Migration:
    """A single numbered schema change."""

    version: int
    name: str
    up: MigrationFunc

    def __str__(self) -> str:
        return f"v{self.version} {self.name}"


_registry: dict[int, Migration] = {}


def migration(version: int, name: str) -> Callable[[MigrationFunc], MigrationFunc]:
    """
    Register a function as the migration for a schema version.

    Raises:
        ConfigurationError: If the version is already taken.
    """

    def register(func: MigrationFunc) -> MigrationFunc:
        if version in _registry:
            raise ConfigurationError(
                f"Migration version {version} registered twice "
                f"({_registry[version].name}, {name})"
            )
        _registry[version] = Migration(version=version, name=name, up=func)
        return func

    return register


def registered_migrations() -> list[Migration]:
    """All known migrations, oldest first."""
    return [_registry[v] for v in sorted(_registry)]


def _applied_versions(conn: sqlite3.Connection) -> set[int]:
    conn.execute(MIGRATIONS_TABLE_SQL)
    return {row[0] for row in conn.execute("SELECT version FROM schema_migrations")}


def get_current_version(conn: sqlite3.Connection) -> int:
    """Highest applied version, 0 for an unstamped database."""
    return max(_applied_versions(conn), default=0)


def get_pending_migrations() -> list[Migration]:
    """Migrations not yet applied to the configured database."""
    with get_connection() as conn:
        applied = _applied_versions(conn)
    return [m for m in registered_migrations() if m.version not in applied]


def _apply(mig: Migration) -> None:
    with get_connection(begin="IMMEDIATE") as conn:
        if mig.version in _applied_versions(conn):
            # Another process got here first
            return
        mig.up(conn)
        conn.execute(
            "INSERT INTO schema_migrations (version, name, applied_at) VALUES (?, ?, ?)",
            (mig.version, mig.name, datetime.now().isoformat()),
        )
    logger.info(f"Applied migration {mig}")


def migrate(target_version: int | None = None) -> int:
    """
    Apply pending migrations in order.

    Args:
        target_version: Stop after this version. None applies everything.

    Returns:
        Number of migrations applied.
    """
    pending = [
        m
        for m in get_pending_migrations()
        if target_version is None or m.version <= target_version
    ]

    for mig in pending:
        try:
            _apply(mig)
        except Exception as e:
            logger.error(f"Migration {mig} failed: {e}")
            raise

    if pending:
        logger.info(f"Applied {len(pending)} migration(s)")
    else:
        logger.debug("Schema is up to date")
    return len(pending)


def migration_status() -> dict[str, Any]:
    """Summary of applied and pending migrations."""
    known = registered_migrations()
    with get_connection() as conn:
        applied = _applied_versions(conn)
        current = get_current_version(conn)

    return {
        "current_version": current,
        "latest_version": known[-1].version if known else 0,
        "total_migrations": len(known),
        "applied": len(applied),
        "applied_versions": sorted(applied),
        "pending": sum(1 for m in known if m.version not in applied),
    }


# =============================================================================
# Migrations
# =============================================================================


@migration(1, "baseline")
def _baseline(conn: sqlite3.Connection) -> None:
    """Tables come from schema.py; this only stamps the database."""


@migration(2, "add_metric_lookup_indexes")
def _metric_lookup_indexes(conn: sqlite3.Connection) -> None:
    """Index standardized metrics by platform and edges by type."""
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_standardized_platform_date "
        "ON standardized_metrics(platform, metric_date)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_edges_type ON relationship_edges(relationship_type)"
    )
