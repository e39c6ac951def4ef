"""Database connection management for ReachGraph."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from reachgraph.config import get_settings
from reachgraph.config.defaults import DEFAULT_PLATFORM_OVERLAPS
from reachgraph.database.schema import get_schema_sql
from reachgraph.exceptions import DatabaseError

BUSY_TIMEOUT_SECONDS = 30.0


def get_db_path() -> Path:
    """Location of the SQLite file, from settings."""
    return get_settings().database.path


@contextmanager
def get_connection(begin: str | None = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Open a connection that commits on success and rolls back on any error.

    Args:
        begin: Optional transaction mode ("DEFERRED" or "IMMEDIATE") to open
            explicitly. IMMEDIATE takes the write lock up front, so
            validation reads and the following write see the same state.

    Usage:
        with get_connection(begin="IMMEDIATE") as conn:
            conn.execute("INSERT INTO relationship_edges ...")
    """
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), timeout=BUSY_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        if begin is not None:
            if begin not in ("DEFERRED", "IMMEDIATE"):
                raise ValueError(f"Unsupported transaction mode: {begin}")
            conn.execute(f"BEGIN {begin}")
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise DatabaseError(f"Database error: {e}") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def initialize_database(populate_defaults: bool = True) -> None:
    """
    Create the tables, optionally seed overlaps, then apply migrations.

    Args:
        populate_defaults: Whether to seed the default platform overlaps.
    """
    with get_connection() as conn:
        conn.executescript(get_schema_sql())

        if populate_defaults:
            _populate_default_overlaps(conn)

    from reachgraph.database.migrations import migrate

    migrate()


def _populate_default_overlaps(conn: sqlite3.Connection) -> None:
    """Seed the platform overlap table so estimates are visible and editable."""
    for (platform_a, platform_b), rate in DEFAULT_PLATFORM_OVERLAPS.items():
        conn.execute(
            """
            INSERT OR IGNORE INTO platform_overlaps (platform_a, platform_b, overlap_rate, updated_at)
            VALUES (?, ?, ?, datetime('now'))
            """,
            (platform_a, platform_b, rate),
        )


def reset_database() -> None:
    """Delete the SQLite file and recreate it with the default overlaps."""
    db_path = get_db_path()
    if db_path.exists():
        db_path.unlink()
    initialize_database(populate_defaults=True)


def database_exists() -> bool:
    """Whether the SQLite file has been created yet."""
    return get_db_path().exists()
