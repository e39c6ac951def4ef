"""Tests for family aggregation and audience overlap."""

import random
from datetime import date, datetime

import pytest

from reachgraph.database.models import DailyMetric, StandardizedDailyMetric
from reachgraph.exceptions import InvalidReferenceError
from reachgraph.processing.aggregation import (
    AggregateMetrics,
    FamilyAggregator,
    OverlapTable,
    Period,
    TimeSeries,
    count_missing_days,
    estimate_audience_overlap,
    growth_rate,
    list_platform_overlaps,
    set_platform_overlap,
)
from reachgraph.processing.graph import GraphBuilder
from reachgraph.processing.standardization import MetricSync


def _row(content_id: str, day: date, views: float, engagements: float = 0.0) -> StandardizedDailyMetric:
    return StandardizedDailyMetric(
        content_id=content_id,
        metric_date=day,
        platform="youtube",
        views=views,
        engagements=engagements,
    )


class TestPeriod:
    """Tests for Period."""

    def test_last_n_days(self) -> None:
        """Test the window is inclusive of the end day."""
        period = Period.last_n_days(7, end=date(2024, 5, 7))
        assert period.start == date(2024, 5, 1)
        assert period.days == 7
        assert len(period.dates()) == 7

    def test_previous(self) -> None:
        """Test the previous period has the same length and abuts this one."""
        previous = Period(date(2024, 5, 8), date(2024, 5, 14)).previous()
        assert previous == Period(date(2024, 5, 1), date(2024, 5, 7))

    def test_invalid(self) -> None:
        """Test reversed ranges and empty windows are rejected."""
        with pytest.raises(ValueError):
            Period(date(2024, 5, 2), date(2024, 5, 1))
        with pytest.raises(ValueError):
            Period.last_n_days(0)

    def test_contains(self) -> None:
        """Test membership by day."""
        period = Period(date(2024, 5, 1), date(2024, 5, 3))
        assert date(2024, 5, 2) in period
        assert date(2024, 5, 4) not in period


class TestAggregateMetrics:
    """Tests for AggregateMetrics."""

    def test_from_rows_and_rate(self) -> None:
        """Test totals and the derived engagement rate."""
        aggregate = AggregateMetrics.from_rows(
            [_row("a", date(2024, 5, 1), 100, 10), _row("a", date(2024, 5, 2), 300, 30)]
        )
        assert aggregate.total_views == 400
        assert aggregate.total_engagements == 40
        assert aggregate.engagement_rate == pytest.approx(0.1)

    def test_zero_views_rate(self) -> None:
        """Test no division by zero on an empty rollup."""
        assert AggregateMetrics().engagement_rate == 0.0

    def test_growth(self) -> None:
        """Test growth against previous totals, 0 when there was nothing before."""
        aggregate = AggregateMetrics(total_views=150, total_engagements=10)
        aggregate.apply_growth({"views": 100, "engagements": 0})
        assert aggregate.growth["views"] == pytest.approx(0.5)
        assert aggregate.growth["engagements"] == 0.0

    def test_combine_keeps_previous(self) -> None:
        """Test combined growth is computed from summed previous totals."""
        a = AggregateMetrics(total_views=100)
        a.apply_growth({"views": 100})
        b = AggregateMetrics(total_views=200)
        b.apply_growth({"views": 50})

        combined = AggregateMetrics.combine([a, b])

        assert combined.total_views == 300
        assert combined.previous_totals["views"] == 150
        assert combined.growth["views"] == pytest.approx(1.0)

    def test_growth_rate_helper(self) -> None:
        """Test the growth helper."""
        assert growth_rate(120, 100) == pytest.approx(0.2)
        assert growth_rate(5, 0) == 0.0


class TestTimeSeries:
    """Tests for TimeSeries trend detection."""

    def _series(self, values: list[float]) -> TimeSeries:
        period = Period.last_n_days(len(values), end=date(2024, 5, 28))
        return TimeSeries(metric="views", dates=period.dates(), values=values)

    def test_rising(self) -> None:
        """Test a clear increase."""
        series = self._series([10, 10, 20, 20])
        assert series.trend == "rising"
        assert series.change_percent == pytest.approx(100.0)

    def test_falling(self) -> None:
        """Test a clear decrease."""
        assert self._series([20, 20, 10, 10]).trend == "falling"

    def test_stable_within_band(self) -> None:
        """Test small changes stay stable."""
        assert self._series([100, 100, 105, 105]).trend == "stable"

    def test_single_point(self) -> None:
        """Test one point has no trend."""
        series = self._series([5])
        assert series.trend == "stable"
        assert series.change_percent == 0.0


class TestAudienceOverlap:
    """Tests for the unique reach estimate."""

    def test_two_platform_example(self) -> None:
        """Test 1000 + 500 views at 20% overlap."""
        overlap = estimate_audience_overlap(
            {"youtube": 1000, "instagram": 500}, lambda a, b: 0.2
        )

        assert overlap.estimated_duplication == pytest.approx(0.2 * 500 / 1500)
        assert overlap.estimated_unique_reach == pytest.approx(1400)
        assert len(overlap.platform_pairs) == 1

    def test_zero_overlap_is_total(self) -> None:
        """Test reach equals total views without overlap."""
        overlap = estimate_audience_overlap({"youtube": 700, "tiktok": 300}, lambda a, b: 0.0)
        assert overlap.estimated_unique_reach == pytest.approx(1000)

    def test_single_platform(self) -> None:
        """Test one platform has no duplication."""
        overlap = estimate_audience_overlap({"youtube": 700}, lambda a, b: 0.9)
        assert overlap.platform_pairs == []
        assert overlap.estimated_unique_reach == pytest.approx(700)

    def test_no_views(self) -> None:
        """Test an empty rollup estimates zero reach."""
        overlap = estimate_audience_overlap({"youtube": 0, "tiktok": 0}, lambda a, b: 0.5)
        assert overlap.estimated_duplication == 0.0
        assert overlap.estimated_unique_reach == 0.0

    def test_full_overlap_clamps_to_largest_platform(self) -> None:
        """Test reach never drops below the largest audience."""
        overlap = estimate_audience_overlap(
            {"youtube": 100, "tiktok": 100, "instagram": 100}, lambda a, b: 1.0
        )
        assert overlap.estimated_unique_reach == pytest.approx(100)

    def test_bounds_hold_for_random_inputs(self) -> None:
        """Test max platform views <= reach <= total views."""
        rng = random.Random(7)
        platforms = ["youtube", "instagram", "tiktok", "twitter", "linkedin"]

        for _ in range(200):
            chosen = rng.sample(platforms, rng.randint(1, len(platforms)))
            views = {p: float(rng.randint(0, 10_000)) for p in chosen}
            rates = {}

            def rate_for(a: str, b: str) -> float:
                return rates.setdefault(tuple(sorted((a, b))), rng.random())

            overlap = estimate_audience_overlap(views, rate_for)
            total = sum(views.values())

            assert 0.0 <= overlap.estimated_duplication <= 1.0
            assert overlap.estimated_unique_reach <= total + 1e-9
            assert overlap.estimated_unique_reach >= max(views.values()) - 1e-9


class TestOverlapTable:
    """Tests for overlap rate lookup and storage."""

    def test_rate_lookup_is_order_independent(self) -> None:
        """Test pairs are unordered and same-platform overlap is 0."""
        table = OverlapTable({("youtube", "tiktok"): 0.3}, default_rate=0.1)
        assert table.rate("tiktok", "youtube") == 0.3
        assert table.rate("YouTube", "TikTok") == 0.3
        assert table.rate("youtube", "youtube") == 0.0
        assert table.rate("youtube", "snapchat") == 0.1

    def test_stored_override(self, temp_db) -> None:
        """Test stored estimates override the bundled defaults."""
        assert OverlapTable.load().rate("instagram", "youtube") == 0.25

        set_platform_overlap("youtube", "instagram", 0.4)

        assert OverlapTable.load().rate("instagram", "youtube") == 0.4
        stored = {o.pair: o.overlap_rate for o in list_platform_overlaps()}
        assert stored[("instagram", "youtube")] == 0.4

    def test_invalid_rate(self, temp_db) -> None:
        """Test overlap rates must be in [0, 1]."""
        with pytest.raises(ValueError):
            set_platform_overlap("youtube", "tiktok", 1.2)


class TestMissingDays:
    """Tests for missing-day detection."""

    def test_counts_only_published_reported_days(self, make_node) -> None:
        """Test days before publication and after today are not missing."""
        node = make_node(published_at=datetime(2024, 5, 3, 9, 0))
        period = Period(date(2024, 5, 1), date(2024, 5, 10))

        missing = count_missing_days(node, period, date(2024, 5, 6), {date(2024, 5, 4)})

        # May 3..6 expected, May 4 present
        assert missing == 3

    def test_published_after_period(self, make_node) -> None:
        """Test nothing is missing for content published later."""
        node = make_node(published_at=datetime(2024, 6, 1))
        period = Period(date(2024, 5, 1), date(2024, 5, 10))
        assert count_missing_days(node, period, date(2024, 7, 1), set()) == 0


class TestFamilyAggregator:
    """Tests for FamilyAggregator rollups."""

    def test_example_family(self, example_family, may_period) -> None:
        """Test the root plus repost rollup."""
        root, derivative = example_family

        metrics = FamilyAggregator().compute_family_metrics(root.id, may_period)

        assert metrics.aggregate_metrics.total_views == 1500
        assert metrics.aggregate_metrics.total_engagements == 180
        assert metrics.aggregate_metrics.engagement_rate == pytest.approx(0.12)
        assert metrics.audience_overlap.estimated_duplication == pytest.approx(0.2 * 500 / 1500)
        assert metrics.unique_reach_estimate == pytest.approx(1400)
        assert metrics.content_count == 2
        assert metrics.platform_count == 2
        assert metrics.partial is False

        pair = metrics.audience_overlap.content_pairs[0]
        assert len(metrics.audience_overlap.content_pairs) == 1
        assert (pair.source_id, pair.target_id) == (root.id, derivative.id)
        assert pair.overlap_rate == 0.2

    def test_breakdowns(self, example_family, may_period) -> None:
        """Test platform and content-type shares."""
        root, _ = example_family

        metrics = FamilyAggregator().compute_family_metrics(root.id, may_period)

        platforms = {b.platform: b for b in metrics.platform_breakdown}
        assert platforms["youtube"].view_share == pytest.approx(1000 / 1500)
        assert platforms["instagram"].engagement_rate == pytest.approx(80 / 500)
        assert [b.platform for b in metrics.platform_breakdown] == ["youtube", "instagram"]
        types = {b.content_type: b for b in metrics.content_type_breakdown}
        assert set(types) == {"video", "short_video"}

    def test_any_member_resolves_to_root(self, example_family, may_period) -> None:
        """Test the derivative's ID rolls up the whole family."""
        root, derivative = example_family
        metrics = FamilyAggregator().compute_family_metrics(derivative.id, may_period)
        assert metrics.root_content_id == root.id
        assert metrics.aggregate_metrics.total_views == 1500

    def test_missing_days_mark_partial(self, example_family) -> None:
        """Test days without rows make the rollup partial."""
        root, _ = example_family
        period = Period(date(2024, 5, 1), date(2024, 5, 3))
        aggregator = FamilyAggregator(today=lambda: date(2024, 5, 3))

        metrics = aggregator.compute_family_metrics(root.id, period)

        assert metrics.partial is True
        assert metrics.missing_metric_days == 4
        assert metrics.aggregate_metrics.total_views == 1500

    def test_future_days_not_missing(self, example_family) -> None:
        """Test days after today are not counted as missing."""
        root, _ = example_family
        period = Period(date(2024, 5, 1), date(2024, 5, 3))
        aggregator = FamilyAggregator(today=lambda: date(2024, 5, 1))

        assert aggregator.compute_family_metrics(root.id, period).partial is False

    def test_growth_against_previous_period(self, example_family) -> None:
        """Test growth compares with the prior equal-length window."""
        root, _ = example_family
        MetricSync().sync(
            [DailyMetric(content_id=root.id, metric_date=date(2024, 5, 2), metrics={"views": 1500})]
        )
        period = Period(date(2024, 5, 2), date(2024, 5, 2))

        metrics = FamilyAggregator().compute_family_metrics(root.id, period)

        assert metrics.aggregate_metrics.previous_totals["views"] == 1500
        assert metrics.aggregate_metrics.growth["views"] == 0.0

    def test_time_series_zero_filled(self, example_family) -> None:
        """Test days without data appear as zeros."""
        root, _ = example_family
        period = Period(date(2024, 4, 30), date(2024, 5, 2))

        metrics = FamilyAggregator(today=lambda: date(2024, 5, 2)).compute_family_metrics(
            root.id, period
        )

        assert metrics.time_series["views"].values == [0.0, 1500.0, 0.0]

    def test_node_metrics(self, example_family, may_period) -> None:
        """Test a single item's rollup carries its depth and series."""
        _, derivative = example_family

        metrics = FamilyAggregator().compute_node_metrics(derivative.id, may_period)

        assert metrics.depth == 1
        assert metrics.aggregate_metrics.total_views == 500
        assert metrics.time_series["engagements"].values == [80.0]

    def test_creator_metrics(self, example_family, make_node, may_period) -> None:
        """Test creator reach is the sum of family reach."""
        lone = make_node("tiktok", "short_video")
        MetricSync().sync(
            [DailyMetric(content_id=lone.id, metric_date=date(2024, 5, 1), metrics={"views": 200})]
        )

        metrics = FamilyAggregator().compute_creator_metrics("creator-1", may_period)

        assert metrics.family_count == 2
        assert metrics.content_count == 3
        assert metrics.aggregate_metrics.total_views == 1700
        assert metrics.unique_reach_estimate == pytest.approx(1600)
        assert metrics.platform_count == 3

    def test_missing_root(self, temp_db, may_period) -> None:
        """Test rolling up an unknown item."""
        with pytest.raises(InvalidReferenceError):
            FamilyAggregator().compute_family_metrics("missing", may_period)

    def test_to_dict_is_json_ready(self, example_family, may_period) -> None:
        """Test the serialized rollup uses plain types."""
        import json

        root, _ = example_family
        data = FamilyAggregator().compute_family_metrics(root.id, may_period).to_dict()

        assert data["period"]["days"] == 1
        assert data["aggregate_metrics"]["engagement_rate"] == pytest.approx(0.12)
        json.dumps(data)


class TestRollupCache:
    """Tests that cached rollups follow graph, metric and overlap changes."""

    def test_cache_hit_returns_same_object(self, example_family, may_period) -> None:
        """Test an unchanged family is served from cache."""
        root, _ = example_family
        aggregator = FamilyAggregator()

        first = aggregator.compute_family_metrics(root.id, may_period)
        second = aggregator.compute_family_metrics(root.id, may_period)

        assert second is first
        assert aggregator.cache.stats().hits == 1

    def test_metric_sync_invalidates(self, example_family, may_period) -> None:
        """Test re-syncing a day shows up in the next rollup."""
        root, _ = example_family
        aggregator = FamilyAggregator()
        aggregator.compute_family_metrics(root.id, may_period)

        MetricSync().sync(
            [DailyMetric(content_id=root.id, metric_date=date(2024, 5, 1), metrics={"views": 3000})]
        )

        metrics = aggregator.compute_family_metrics(root.id, may_period)
        assert metrics.aggregate_metrics.total_views == 3500

    def test_overlap_change_invalidates(self, example_family, may_period) -> None:
        """Test a new overlap estimate changes reach."""
        root, _ = example_family
        aggregator = FamilyAggregator()
        aggregator.compute_family_metrics(root.id, may_period)

        set_platform_overlap("youtube", "instagram", 0.0)

        assert aggregator.compute_family_metrics(root.id, may_period).unique_reach_estimate == 1500

    def test_edge_removal_invalidates(self, example_family, may_period) -> None:
        """Test removing the edge shrinks the family."""
        root, derivative = example_family
        aggregator = FamilyAggregator()
        aggregator.compute_family_metrics(root.id, may_period)

        GraphBuilder().remove_edge(root.id, derivative.id)

        metrics = aggregator.compute_family_metrics(root.id, may_period)
        assert metrics.content_count == 1
        assert metrics.aggregate_metrics.total_views == 1000

    def test_use_cache_false(self, example_family, may_period) -> None:
        """Test bypassing the cache recomputes."""
        root, _ = example_family
        aggregator = FamilyAggregator()
        first = aggregator.compute_family_metrics(root.id, may_period)
        assert aggregator.compute_family_metrics(root.id, may_period, use_cache=False) is not first
