"""SQLite schema definitions for ReachGraph."""

SCHEMA_SQL = """
-- ============================================================================
-- Content nodes
-- ============================================================================

CREATE TABLE IF NOT EXISTS content_nodes (
    id TEXT PRIMARY KEY,              -- UUID
    creator_id TEXT NOT NULL,
    platform TEXT NOT NULL,           -- lowercase platform key ("youtube", ...)
    external_id TEXT NOT NULL,        -- Platform's own content ID
    content_type TEXT NOT NULL,       -- "video", "short_video", "post", ...
    published_at TEXT NOT NULL,       -- ISO timestamp
    title TEXT NOT NULL DEFAULT '',
    description TEXT,
    created_at TEXT NOT NULL,

    UNIQUE(creator_id, platform, external_id)
);

CREATE INDEX IF NOT EXISTS idx_nodes_creator ON content_nodes(creator_id);

-- ============================================================================
-- Relationship edges (parent -> derivative)
-- ============================================================================

CREATE TABLE IF NOT EXISTS relationship_edges (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    creator_id TEXT NOT NULL,
    source_id TEXT NOT NULL REFERENCES content_nodes(id) ON DELETE CASCADE,
    target_id TEXT NOT NULL REFERENCES content_nodes(id) ON DELETE CASCADE,
    relationship_type TEXT NOT NULL,  -- "repost", "clip", "adaptation", "reference"
    confidence REAL NOT NULL,         -- 0.0 to 1.0
    created_by TEXT NOT NULL,         -- user ID or "system"
    created_at TEXT NOT NULL,

    UNIQUE(source_id, target_id),
    UNIQUE(target_id)                 -- a node has at most one parent
);

CREATE INDEX IF NOT EXISTS idx_edges_creator ON relationship_edges(creator_id);
CREATE INDEX IF NOT EXISTS idx_edges_source ON relationship_edges(source_id);

-- ============================================================================
-- Daily metrics
-- ============================================================================

CREATE TABLE IF NOT EXISTS daily_metrics (
    content_id TEXT NOT NULL REFERENCES content_nodes(id) ON DELETE CASCADE,
    metric_date TEXT NOT NULL,        -- YYYY-MM-DD
    raw_metrics TEXT NOT NULL,        -- JSON of platform-native fields
    synced_at TEXT NOT NULL,

    PRIMARY KEY (content_id, metric_date)
);

CREATE TABLE IF NOT EXISTS standardized_metrics (
    content_id TEXT NOT NULL REFERENCES content_nodes(id) ON DELETE CASCADE,
    metric_date TEXT NOT NULL,
    platform TEXT NOT NULL,
    views REAL DEFAULT 0,
    engagements REAL DEFAULT 0,
    shares REAL DEFAULT 0,
    comments REAL DEFAULT 0,
    likes REAL DEFAULT 0,
    saves REAL DEFAULT 0,
    watch_time_minutes REAL DEFAULT 0,
    engagement_score REAL DEFAULT 0,  -- Weighted, cross-platform comparable
    content_value REAL DEFAULT 0,     -- Estimated USD value
    extra TEXT,                       -- JSON of unmapped platform fields
    standardized_at TEXT NOT NULL,

    PRIMARY KEY (content_id, metric_date)
);

CREATE INDEX IF NOT EXISTS idx_standardized_date ON standardized_metrics(metric_date);

-- ============================================================================
-- Audience overlap estimates between platforms
-- ============================================================================

CREATE TABLE IF NOT EXISTS platform_overlaps (
    platform_a TEXT NOT NULL,         -- Alphabetically first
    platform_b TEXT NOT NULL,
    overlap_rate REAL NOT NULL,       -- 0.0 to 1.0
    updated_at TEXT NOT NULL,

    PRIMARY KEY (platform_a, platform_b)
);

-- ============================================================================
-- Version counters for rollup cache invalidation
-- ============================================================================

CREATE TABLE IF NOT EXISTS entity_versions (
    scope TEXT NOT NULL,              -- "graph", "metrics", "overlap"
    scope_id TEXT NOT NULL,           -- creator ID, or "*" for global scopes
    version INTEGER NOT NULL DEFAULT 0,

    PRIMARY KEY (scope, scope_id)
);
"""


def get_schema_sql() -> str:
    """Return the complete schema SQL."""
    return SCHEMA_SQL
