"""Tests for the ReachGraph engine."""

from datetime import date, datetime

import pytest

from reachgraph.database.models import DailyMetric
from reachgraph.engine import ReachGraphEngine, get_engine
from reachgraph.exceptions import CycleError, InvalidReferenceError
from reachgraph.processing.aggregation import Period
from reachgraph.processing.insights import EntityType, InsightType
from reachgraph.processing.suggestions import StaticScorer


class TestEngineContent:
    """Tests for content and relationship operations."""

    def test_create_and_link(self, engine: ReachGraphEngine) -> None:
        """Test registering two items and linking them."""
        video = engine.create_content("creator-1", "youtube", "y-1", "video", datetime(2024, 5, 1))
        clip = engine.create_content("creator-1", "tiktok", "t-1", "short_video", "2024-05-02T10:00:00")

        edge = engine.create_relationship(video.id, clip.id, "clip", 0.9, created_by="user-1")

        assert edge.created_by == "user-1"
        assert engine.content_family(clip.id).root_id == video.id
        assert [n.id for n in engine.list_content("creator-1")] == [video.id, clip.id]

    def test_graph_errors_propagate(self, engine: ReachGraphEngine) -> None:
        """Test typed graph errors reach the caller."""
        a = engine.create_content("creator-1", "youtube", "y-1", "video", datetime(2024, 5, 1))
        b = engine.create_content("creator-1", "youtube", "y-2", "video", datetime(2024, 5, 2))
        engine.create_relationship(a.id, b.id, "repost")

        with pytest.raises(CycleError):
            engine.create_relationship(b.id, a.id, "repost")

    def test_suggestions_and_accept(self, temp_db) -> None:
        """Test a suggestion becomes an edge only when accepted."""
        engine = ReachGraphEngine(scorer=StaticScorer({}, default=0.8))
        video = engine.create_content("creator-1", "youtube", "y-1", "video", datetime(2024, 5, 1))
        clip = engine.create_content("creator-1", "instagram", "i-1", "short_video", datetime(2024, 5, 2))

        suggestions = engine.suggestions(video.id)

        assert len(suggestions) == 1
        assert engine.relationships(video.id) == []

        engine.accept_suggestion(suggestions[0], created_by="user-2")
        assert engine.relationships(clip.id)[0].created_by == "user-2"

    def test_remove_relationship(self, engine: ReachGraphEngine) -> None:
        """Test unlinking splits the family."""
        a = engine.create_content("creator-1", "youtube", "y-1", "video", datetime(2024, 5, 1))
        b = engine.create_content("creator-1", "tiktok", "t-1", "short_video", datetime(2024, 5, 2))
        engine.create_relationship(a.id, b.id, "clip")

        engine.remove_relationship(a.id, b.id)

        assert engine.content_family(b.id).root_id == b.id


class TestEngineAnalytics:
    """Tests for metrics and insight operations."""

    def test_sync_accepts_dicts(self, engine: ReachGraphEngine) -> None:
        """Test connector records can be plain dictionaries."""
        node = engine.create_content("creator-1", "youtube", "y-1", "video", datetime(2024, 5, 1))

        result = engine.sync_metrics(
            [
                {"content_id": node.id, "metric_date": "2024-05-01", "metrics": {"views": 10}},
                DailyMetric(content_id=node.id, metric_date=date(2024, 5, 2), metrics={"views": 20}),
            ]
        )

        assert result.synced == 2
        metrics = engine.content_metrics(node.id, Period(date(2024, 5, 1), date(2024, 5, 2)))
        assert metrics.aggregate_metrics.total_views == 30

    def test_family_and_creator(self, engine: ReachGraphEngine, example_family, may_period) -> None:
        """Test the example family through the engine."""
        root, _ = example_family

        family = engine.family(root.id, may_period)
        creator = engine.creator("creator-1", may_period)

        assert family.unique_reach_estimate == pytest.approx(1400)
        assert creator.unique_reach_estimate == pytest.approx(1400)
        assert creator.family_count == 1

    def test_default_period(self, engine: ReachGraphEngine) -> None:
        """Test the configured window length."""
        period = engine.default_period(end=date(2024, 5, 28))
        assert period.days == 28
        assert period.start == date(2024, 5, 1)

    def test_set_overlap(self, engine: ReachGraphEngine, example_family, may_period) -> None:
        """Test overlap changes flow into the next rollup."""
        root, _ = example_family
        engine.family(root.id, may_period)

        engine.set_overlap("instagram", "youtube", 0.0)

        assert engine.family(root.id, may_period).unique_reach_estimate == pytest.approx(1500)
        assert any(o.pair == ("instagram", "youtube") and o.overlap_rate == 0.0 for o in engine.overlaps())


class TestEngineInsights:
    """Tests for insight retrieval."""

    def _grow(self, engine: ReachGraphEngine, content_id: str) -> None:
        engine.sync_metrics(
            [
                DailyMetric(content_id=content_id, metric_date=date(2024, 4, 30), metrics={"views": 100}),
                DailyMetric(content_id=content_id, metric_date=date(2024, 5, 1), metrics={"views": 300}),
            ]
        )

    def test_family_insights(self, engine: ReachGraphEngine, example_family, may_period) -> None:
        """Test growth against the previous day is reported for the family."""
        root, _ = example_family
        self._grow(engine, root.id)

        insights = engine.insights(root.id, "family", may_period)

        assert InsightType.GROWTH in [i.insight_type for i in insights]
        assert all(i.entity_type == EntityType.FAMILY for i in insights)
        assert all(i.entity_id == root.id for i in insights)

    def test_insights_cached_until_metrics_change(
        self, engine: ReachGraphEngine, example_family, may_period
    ) -> None:
        """Test the same list is returned until a sync bumps versions."""
        root, _ = example_family

        first = engine.insights(root.id, EntityType.FAMILY, may_period)
        assert engine.insights(root.id, EntityType.FAMILY, may_period) is first

        self._grow(engine, root.id)
        assert engine.insights(root.id, EntityType.FAMILY, may_period) is not first

    def test_content_and_creator_insights(self, engine: ReachGraphEngine, example_family, may_period) -> None:
        """Test the other entity types resolve."""
        root, _ = example_family
        self._grow(engine, root.id)

        content_insights = engine.insights(root.id, "content", may_period)
        creator_insights = engine.insights("creator-1", "creator", may_period)

        assert all(i.entity_type == EntityType.CONTENT for i in content_insights)
        assert all(i.entity_id == "creator-1" for i in creator_insights)
        assert InsightType.GROWTH in [i.insight_type for i in creator_insights]

    def test_unknown_content(self, engine: ReachGraphEngine, may_period) -> None:
        """Test insights for a missing item."""
        with pytest.raises(InvalidReferenceError):
            engine.insights("missing", "family", may_period)


def test_get_engine_is_shared(temp_db) -> None:
    """Test the module-level engine is reused."""
    assert get_engine() is get_engine()
