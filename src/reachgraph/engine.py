"""Query surface for ReachGraph.

ReachGraphEngine wires the node store, graph builder, suggestion engine,
standardization, aggregation and insight components together and exposes
the operations other services call. Transport is up to the caller; the CLI
and report generator are two such callers.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable

from reachgraph.config import get_settings
from reachgraph.database.models import (
    SYSTEM_ACTOR,
    ContentNode,
    ContentType,
    DailyMetric,
    PlatformOverlap,
    RelationshipEdge,
    RelationshipType,
)
from reachgraph.processing.aggregation import (
    CreatorMetrics,
    FamilyAggregator,
    FamilyMetrics,
    NodeMetrics,
    Period,
    list_platform_overlaps,
    set_platform_overlap,
)
from reachgraph.processing.cache import VersionedCache
from reachgraph.processing.graph import ContentFamily, GraphBuilder
from reachgraph.processing.insights import EntityType, Insight, InsightGenerator
from reachgraph.processing.nodes import NodeStore
from reachgraph.processing.standardization import MetricSync, ProfileRegistry, SyncResult, get_registry
from reachgraph.processing.suggestions import (
    RelationshipScorer,
    RelationshipSuggestion,
    SuggestionEngine,
)
from reachgraph.utils.logging import get_logger

logger = get_logger(__name__)


class ReachGraphEngine:
    """Entry point for content graph and analytics operations."""

    def __init__(
        self,
        scorer: RelationshipScorer | None = None,
        registry: ProfileRegistry | None = None,
        nodes: NodeStore | None = None,
        graph: GraphBuilder | None = None,
        aggregator: FamilyAggregator | None = None,
        insight_generator: InsightGenerator | None = None,
    ) -> None:
        """
        Initialize the engine. Every collaborator can be injected for tests.

        Args:
            scorer: Relationship scorer for suggestions.
            registry: Standardization profiles.
            nodes: Content node store.
            graph: Relationship graph builder.
            aggregator: Family aggregation engine.
            insight_generator: Insight rules.
        """
        settings = get_settings()
        self.nodes = nodes or NodeStore()
        self.graph = graph or GraphBuilder()
        self.registry = registry or get_registry()
        self.suggester = SuggestionEngine(scorer=scorer, graph=self.graph)
        self.sync_service = MetricSync(self.registry)
        self.aggregator = aggregator or FamilyAggregator(graph=self.graph)
        self.insight_generator = insight_generator or InsightGenerator()
        self.insight_cache = VersionedCache(
            max_entries=settings.aggregation.cache_max_entries,
            ttl_seconds=settings.insights.cache_ttl_seconds,
            name="insights",
        )
        self.default_period_days = settings.aggregation.default_period_days

    def default_period(self, end: date | None = None) -> Period:
        """The configured trailing window ending on `end` (default today)."""
        return Period.last_n_days(self.default_period_days, end)

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def create_content(
        self,
        creator_id: str,
        platform: str,
        external_id: str,
        content_type: ContentType | str,
        published_at: datetime | str,
        title: str = "",
        description: str | None = None,
    ) -> ContentNode:
        """Register a content item supplied by a platform connector."""
        return self.nodes.create_node(
            creator_id, platform, external_id, content_type, published_at, title, description
        )

    def content(self, content_id: str) -> ContentNode:
        return self.nodes.get_node(content_id)

    def list_content(self, creator_id: str, platform: str | None = None) -> list[ContentNode]:
        return self.nodes.list_nodes_by_creator(creator_id, platform)

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def relationships(self, content_id: str) -> list[RelationshipEdge]:
        """Edges that start or end at a content item."""
        return self.graph.get_relationships(content_id)

    def create_relationship(
        self,
        source_id: str,
        target_id: str,
        relationship_type: RelationshipType | str,
        confidence: float = 1.0,
        created_by: str = SYSTEM_ACTOR,
    ) -> RelationshipEdge:
        """Link a parent to a derivative. Graph errors propagate typed."""
        return self.graph.add_edge(source_id, target_id, relationship_type, confidence, created_by)

    def remove_relationship(self, source_id: str, target_id: str) -> RelationshipEdge:
        """Unlink a derivative; it becomes the root of its own family."""
        return self.graph.remove_edge(source_id, target_id)

    def content_family(self, content_id: str) -> ContentFamily:
        return self.graph.get_family(content_id)

    def suggestions(
        self,
        content_id: str,
        confidence_threshold: float | None = None,
        candidate_pool: Iterable[ContentNode] | None = None,
    ) -> list[RelationshipSuggestion]:
        """Suggested relationships for a content item. Never applied automatically."""
        return self.suggester.suggest_relationships(content_id, candidate_pool, confidence_threshold)

    def accept_suggestion(
        self, suggestion: RelationshipSuggestion, created_by: str = SYSTEM_ACTOR
    ) -> RelationshipEdge:
        return self.suggester.accept_suggestion(suggestion, created_by)

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def sync_metrics(self, rows: Iterable[DailyMetric | dict[str, Any]]) -> SyncResult:
        """Upsert raw daily metrics. Bad rows are skipped, not fatal."""
        return self.sync_service.sync(
            row if isinstance(row, DailyMetric) else DailyMetric(**row) for row in rows
        )

    def set_overlap(self, platform_a: str, platform_b: str, overlap_rate: float) -> PlatformOverlap:
        return set_platform_overlap(platform_a, platform_b, overlap_rate)

    def overlaps(self) -> list[PlatformOverlap]:
        return list_platform_overlaps()

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    def family(self, root_id: str, period: Period | None = None) -> FamilyMetrics:
        """Rolled-up metrics for the family containing root_id."""
        return self.aggregator.compute_family_metrics(root_id, period or self.default_period())

    def content_metrics(self, content_id: str, period: Period | None = None) -> NodeMetrics:
        return self.aggregator.compute_node_metrics(content_id, period or self.default_period())

    def creator(self, creator_id: str, period: Period | None = None) -> CreatorMetrics:
        return self.aggregator.compute_creator_metrics(creator_id, period or self.default_period())

    def insights(
        self,
        entity_id: str,
        entity_type: EntityType | str = EntityType.FAMILY,
        period: Period | None = None,
    ) -> list[Insight]:
        """
        Ranked insights for a content item, family or creator.

        Results are cached per metric versions and expire after the
        configured TTL.
        """
        entity_type = EntityType(entity_type)
        period = period or self.default_period()

        creator_id = (
            entity_id if entity_type == EntityType.CREATOR else self.graph.require_node(entity_id).creator_id
        )
        key = (entity_type.value, entity_id, period, *self.aggregator.versions(creator_id))
        return self.insight_cache.get_or_set(
            key, lambda: self._generate_insights(entity_id, entity_type, period)
        )

    def _generate_insights(self, entity_id: str, entity_type: EntityType, period: Period) -> list[Insight]:
        if entity_type == EntityType.CONTENT:
            node_metrics = self.aggregator.compute_node_metrics(entity_id, period)
            return self.insight_generator.generate_insights(
                entity_id,
                entity_type,
                node_metrics.aggregate_metrics,
                node_metrics.time_series,
            )

        if entity_type == EntityType.FAMILY:
            family = self.aggregator.compute_family_metrics(entity_id, period)
            return self.insight_generator.generate_insights(
                family.root_content_id,
                entity_type,
                family.aggregate_metrics,
                family.time_series,
                family.platform_breakdown,
                family.content_type_breakdown,
                family.audience_overlap,
            )

        creator = self.aggregator.compute_creator_metrics(entity_id, period)
        return self.insight_generator.generate_insights(
            entity_id,
            entity_type,
            creator.aggregate_metrics,
            creator.time_series,
            creator.platform_breakdown,
            creator.content_type_breakdown,
        )


_default_engine: ReachGraphEngine | None = None


def get_engine() -> ReachGraphEngine:
    """Get the default engine instance."""
    global _default_engine
    if _default_engine is None:
        _default_engine = ReachGraphEngine()
    return _default_engine
