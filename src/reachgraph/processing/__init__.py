"""Graph, standardization, aggregation and insight processing for ReachGraph."""

from reachgraph.processing.aggregation import (
    AggregateMetrics,
    FamilyAggregator,
    FamilyMetrics,
    Period,
    estimate_audience_overlap,
)
from reachgraph.processing.graph import ContentFamily, GraphBuilder, get_graph_builder
from reachgraph.processing.insights import EntityType, Insight, InsightGenerator
from reachgraph.processing.nodes import NodeStore, get_node_store
from reachgraph.processing.standardization import MetricSync, ProfileRegistry, get_registry, standardize
from reachgraph.processing.suggestions import (
    HeuristicScorer,
    RelationshipScorer,
    RelationshipSuggestion,
    StaticScorer,
    SuggestionEngine,
)

__all__ = [
    "AggregateMetrics",
    "FamilyAggregator",
    "FamilyMetrics",
    "Period",
    "estimate_audience_overlap",
    "ContentFamily",
    "GraphBuilder",
    "get_graph_builder",
    "EntityType",
    "Insight",
    "InsightGenerator",
    "NodeStore",
    "get_node_store",
    "MetricSync",
    "ProfileRegistry",
    "get_registry",
    "standardize",
    "HeuristicScorer",
    "RelationshipScorer",
    "RelationshipSuggestion",
    "StaticScorer",
    "SuggestionEngine",
]
