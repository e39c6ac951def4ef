"""Database module for ReachGraph."""

from reachgraph.database.connection import get_connection, initialize_database
from reachgraph.database.models import (
    ContentNode,
    ContentType,
    DailyMetric,
    PlatformOverlap,
    RelationshipEdge,
    RelationshipType,
    StandardizationProfile,
    StandardizedDailyMetric,
)
from reachgraph.database.queries import (
    get_content_node,
    get_edges_for_content,
    get_platform_overlaps,
    get_standardized_metrics,
    get_store_stats,
    list_content_nodes,
)

__all__ = [
    # Connection
    "get_connection",
    "initialize_database",
    # Models
    "ContentNode",
    "ContentType",
    "DailyMetric",
    "PlatformOverlap",
    "RelationshipEdge",
    "RelationshipType",
    "StandardizationProfile",
    "StandardizedDailyMetric",
    # Queries
    "get_content_node",
    "get_edges_for_content",
    "get_platform_overlaps",
    "get_standardized_metrics",
    "get_store_stats",
    "list_content_nodes",
]
