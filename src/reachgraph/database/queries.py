"""Database query functions for ReachGraph.

Every function accepts an optional open connection so callers can group
several statements into one transaction (see the graph builder). Without
one, each call runs in its own short transaction.
"""

import sqlite3
from contextlib import contextmanager
from datetime import date
from typing import Any, Generator

from reachgraph.database.connection import get_connection
from reachgraph.database.models import (
    ContentNode,
    DailyMetric,
    PlatformOverlap,
    RelationshipEdge,
    StandardizedDailyMetric,
)
from reachgraph.exceptions import DuplicateContentError

GRAPH_SCOPE = "graph"
METRICS_SCOPE = "metrics"
OVERLAP_SCOPE = "overlap"
GLOBAL_SCOPE_ID = "*"


@contextmanager
def _use_connection(
    conn: sqlite3.Connection | None,
) -> Generator[sqlite3.Connection, None, None]:
    if conn is not None:
        yield conn
    else:
        with get_connection() as new_conn:
            yield new_conn


def _insert(conn: sqlite3.Connection, table: str, data: dict[str, Any], replace: bool = False) -> None:
    columns = ", ".join(data.keys())
    placeholders = ", ".join("?" * len(data))
    verb = "INSERT OR REPLACE" if replace else "INSERT"
    conn.execute(
        f"{verb} INTO {table} ({columns}) VALUES ({placeholders})",
        tuple(data.values()),
    )


# =============================================================================
# Content Node Queries
# =============================================================================


def insert_content_node(node: ContentNode, conn: sqlite3.Connection | None = None) -> None:
    """
    Insert a new content node.

    Raises:
        DuplicateContentError: If the creator already has this platform item.
    """
    with _use_connection(conn) as c:
        try:
            _insert(c, "content_nodes", node.to_db_dict())
        except sqlite3.IntegrityError as e:
            raise DuplicateContentError(node.creator_id, node.platform, node.external_id) from e


def get_content_node(content_id: str, conn: sqlite3.Connection | None = None) -> ContentNode | None:
    """Get a content node by ID."""
    with _use_connection(conn) as c:
        row = c.execute("SELECT * FROM content_nodes WHERE id = ?", (content_id,)).fetchone()
        return ContentNode(**dict(row)) if row else None


def get_content_nodes(
    content_ids: list[str], conn: sqlite3.Connection | None = None
) -> dict[str, ContentNode]:
    """Get several content nodes keyed by ID. Missing IDs are omitted."""
    if not content_ids:
        return {}

    placeholders = ", ".join("?" * len(content_ids))
    with _use_connection(conn) as c:
        cursor = c.execute(
            f"SELECT * FROM content_nodes WHERE id IN ({placeholders})", tuple(content_ids)
        )
        return {row["id"]: ContentNode(**dict(row)) for row in cursor.fetchall()}


def find_content_node_by_external_id(
    creator_id: str,
    platform: str,
    external_id: str,
    conn: sqlite3.Connection | None = None,
) -> ContentNode | None:
    """Look up a node by its platform identity."""
    with _use_connection(conn) as c:
        row = c.execute(
            """
            SELECT * FROM content_nodes
            WHERE creator_id = ? AND platform = ? AND external_id = ?
            """,
            (creator_id, platform.lower(), external_id),
        ).fetchone()
        return ContentNode(**dict(row)) if row else None


def list_content_nodes(
    creator_id: str | None = None,
    platform: str | None = None,
    limit: int | None = None,
    conn: sqlite3.Connection | None = None,
) -> list[ContentNode]:
    """
    List content nodes with optional filters.

    Args:
        creator_id: Only nodes owned by this creator.
        platform: Only nodes on this platform.
        limit: Maximum number of nodes to return.
    """
    query = "SELECT * FROM content_nodes WHERE 1=1"
    params: list[Any] = []

    if creator_id:
        query += " AND creator_id = ?"
        params.append(creator_id)

    if platform:
        query += " AND platform = ?"
        params.append(platform.lower())

    query += " ORDER BY published_at ASC, id ASC"

    if limit:
        query += " LIMIT ?"
        params.append(limit)

    with _use_connection(conn) as c:
        cursor = c.execute(query, params)
        return [ContentNode(**dict(row)) for row in cursor.fetchall()]


def update_content_metadata(
    content_id: str,
    title: str | None = None,
    description: str | None = None,
    conn: sqlite3.Connection | None = None,
) -> bool:
    """Update the mutable metadata of a node. Returns False if nothing matched."""
    updates: list[str] = []
    params: list[Any] = []

    if title is not None:
        updates.append("title = ?")
        params.append(title)
    if description is not None:
        updates.append("description = ?")
        params.append(description)

    if not updates:
        return get_content_node(content_id, conn=conn) is not None

    params.append(content_id)
    with _use_connection(conn) as c:
        cursor = c.execute(
            f"UPDATE content_nodes SET {', '.join(updates)} WHERE id = ?", params
        )
        return cursor.rowcount > 0


def list_creators(conn: sqlite3.Connection | None = None) -> list[str]:
    """Get all creator IDs that own content."""
    with _use_connection(conn) as c:
        cursor = c.execute("SELECT DISTINCT creator_id FROM content_nodes ORDER BY creator_id")
        return [row[0] for row in cursor.fetchall()]


# =============================================================================
# Relationship Edge Queries
# =============================================================================


def _edge_from_row(row: sqlite3.Row) -> RelationshipEdge:
    data = dict(row)
    data.pop("id", None)
    return RelationshipEdge(**data)


def insert_edge(edge: RelationshipEdge, conn: sqlite3.Connection | None = None) -> None:
    """Insert a relationship edge."""
    with _use_connection(conn) as c:
        _insert(c, "relationship_edges", edge.to_db_dict())


def delete_edge(source_id: str, target_id: str, conn: sqlite3.Connection | None = None) -> bool:
    """Delete an edge. Returns False if it did not exist."""
    with _use_connection(conn) as c:
        cursor = c.execute(
            "DELETE FROM relationship_edges WHERE source_id = ? AND target_id = ?",
            (source_id, target_id),
        )
        return cursor.rowcount > 0


def get_edge(
    source_id: str, target_id: str, conn: sqlite3.Connection | None = None
) -> RelationshipEdge | None:
    """Get the edge between two nodes, if any."""
    with _use_connection(conn) as c:
        row = c.execute(
            "SELECT * FROM relationship_edges WHERE source_id = ? AND target_id = ?",
            (source_id, target_id),
        ).fetchone()
        return _edge_from_row(row) if row else None


def get_parent_edge(target_id: str, conn: sqlite3.Connection | None = None) -> RelationshipEdge | None:
    """Get the edge pointing at a node from its parent."""
    with _use_connection(conn) as c:
        row = c.execute(
            "SELECT * FROM relationship_edges WHERE target_id = ?", (target_id,)
        ).fetchone()
        return _edge_from_row(row) if row else None


def get_edges_for_creator(
    creator_id: str, conn: sqlite3.Connection | None = None
) -> list[RelationshipEdge]:
    """Get every edge in a creator's graph with a single statement."""
    with _use_connection(conn) as c:
        cursor = c.execute(
            "SELECT * FROM relationship_edges WHERE creator_id = ? ORDER BY id",
            (creator_id,),
        )
        return [_edge_from_row(row) for row in cursor.fetchall()]


def get_edges_for_content(
    content_id: str, conn: sqlite3.Connection | None = None
) -> list[RelationshipEdge]:
    """Get the edges that start or end at a node."""
    with _use_connection(conn) as c:
        cursor = c.execute(
            """
            SELECT * FROM relationship_edges
            WHERE source_id = ? OR target_id = ?
            ORDER BY id
            """,
            (content_id, content_id),
        )
        return [_edge_from_row(row) for row in cursor.fetchall()]


# =============================================================================
# Metric Queries
# =============================================================================


def upsert_metrics(
    raw: DailyMetric,
    standardized: StandardizedDailyMetric,
    conn: sqlite3.Connection | None = None,
) -> None:
    """Store the raw and standardized rows for one (content, day)."""
    with _use_connection(conn) as c:
        _insert(c, "daily_metrics", raw.to_db_dict(), replace=True)
        _insert(c, "standardized_metrics", standardized.to_db_dict(), replace=True)


def get_daily_metric(
    content_id: str, metric_date: date, conn: sqlite3.Connection | None = None
) -> DailyMetric | None:
    """Get the raw metrics stored for a content item on a day."""
    with _use_connection(conn) as c:
        row = c.execute(
            """
            SELECT content_id, metric_date, raw_metrics AS metrics
            FROM daily_metrics WHERE content_id = ? AND metric_date = ?
            """,
            (content_id, metric_date.isoformat()),
        ).fetchone()
        return DailyMetric(**dict(row)) if row else None


def get_standardized_metrics(
    content_ids: list[str],
    start: date | None = None,
    end: date | None = None,
    conn: sqlite3.Connection | None = None,
) -> list[StandardizedDailyMetric]:
    """
    Get standardized rows for several content items.

    Args:
        content_ids: Content items to fetch.
        start: First day to include (inclusive).
        end: Last day to include (inclusive).
    """
    if not content_ids:
        return []

    placeholders = ", ".join("?" * len(content_ids))
    query = f"""
        SELECT content_id, metric_date, platform, views, engagements, shares,
               comments, likes, saves, watch_time_minutes, engagement_score,
               content_value, extra
        FROM standardized_metrics
        WHERE content_id IN ({placeholders})
    """
    params: list[Any] = list(content_ids)

    if start:
        query += " AND metric_date >= ?"
        params.append(start.isoformat())

    if end:
        query += " AND metric_date <= ?"
        params.append(end.isoformat())

    query += " ORDER BY metric_date ASC, content_id ASC"

    with _use_connection(conn) as c:
        cursor = c.execute(query, params)
        return [StandardizedDailyMetric(**dict(row)) for row in cursor.fetchall()]


# =============================================================================
# Platform Overlap Queries
# =============================================================================


def upsert_platform_overlap(overlap: PlatformOverlap, conn: sqlite3.Connection | None = None) -> None:
    """Insert or replace an overlap estimate for a platform pair."""
    with _use_connection(conn) as c:
        _insert(c, "platform_overlaps", overlap.to_db_dict(), replace=True)


def get_platform_overlaps(conn: sqlite3.Connection | None = None) -> list[PlatformOverlap]:
    """Get every stored overlap estimate."""
    with _use_connection(conn) as c:
        cursor = c.execute("SELECT * FROM platform_overlaps ORDER BY platform_a, platform_b")
        return [PlatformOverlap(**dict(row)) for row in cursor.fetchall()]


# =============================================================================
# Version Queries
# =============================================================================


def get_version(scope: str, scope_id: str, conn: sqlite3.Connection | None = None) -> int:
    """Get the current version counter for a scope (0 if never bumped)."""
    with _use_connection(conn) as c:
        row = c.execute(
            "SELECT version FROM entity_versions WHERE scope = ? AND scope_id = ?",
            (scope, scope_id),
        ).fetchone()
        return row[0] if row else 0


def bump_version(scope: str, scope_id: str, conn: sqlite3.Connection | None = None) -> int:
    """Increment a version counter and return the new value."""
    with _use_connection(conn) as c:
        c.execute(
            """
            INSERT INTO entity_versions (scope, scope_id, version) VALUES (?, ?, 1)
            ON CONFLICT(scope, scope_id) DO UPDATE SET version = version + 1
            """,
            (scope, scope_id),
        )
        return get_version(scope, scope_id, conn=c)


# =============================================================================
# Statistics Queries
# =============================================================================


def get_store_stats() -> dict[str, Any]:
    """Get statistics about the stored graph and metrics."""
    with get_connection() as conn:
        stats: dict[str, Any] = {}

        stats["content_nodes"] = conn.execute("SELECT COUNT(*) FROM content_nodes").fetchone()[0]
        stats["creators"] = conn.execute(
            "SELECT COUNT(DISTINCT creator_id) FROM content_nodes"
        ).fetchone()[0]
        stats["edges"] = conn.execute("SELECT COUNT(*) FROM relationship_edges").fetchone()[0]
        stats["metric_rows"] = conn.execute("SELECT COUNT(*) FROM standardized_metrics").fetchone()[0]
        stats["platform_overlaps"] = conn.execute(
            "SELECT COUNT(*) FROM platform_overlaps"
        ).fetchone()[0]

        cursor = conn.execute(
            "SELECT platform, COUNT(*) FROM content_nodes GROUP BY platform ORDER BY platform"
        )
        stats["platforms"] = {row[0]: row[1] for row in cursor.fetchall()}

        row = conn.execute(
            "SELECT MIN(metric_date), MAX(metric_date) FROM standardized_metrics"
        ).fetchone()
        stats["first_metric_date"] = row[0]
        stats["last_metric_date"] = row[1]

        # Roots are nodes nobody points at
        stats["families"] = conn.execute(
            """
            SELECT COUNT(*) FROM content_nodes n
            WHERE NOT EXISTS (SELECT 1 FROM relationship_edges e WHERE e.target_id = n.id)
            """
        ).fetchone()[0]

        return stats
