"""Family aggregation engine for ReachGraph.

Rolls standardized daily metrics up a content family, compares against the
previous equal-length period and estimates unique reach across platforms.

Audience overlap model. Summing views across platforms double-counts people
who see the family on more than one platform. For the platforms present in
a family, with views v_p and pairwise overlap rates o(p, q):

    raw_duplication = sum over pairs of o(p, q) * min(v_p, v_q) / total_views
    estimated_duplication = clamp(raw_duplication, 0, 1 - max(v_p) / total_views)
    estimated_unique_reach = total_views * (1 - estimated_duplication)

Each pair contributes in proportion to its smaller audience. Reach equals
total views when every overlap is 0, never exceeds total views, and never
drops below the largest single platform's views. This is an estimate: exact
deduplication would need cross-platform identity resolution.
"""

from __future__ import annotations

import sqlite3
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from itertools import combinations
from typing import Any, Callable, Iterable

from reachgraph.config import get_settings
from reachgraph.config.defaults import DEFAULT_PLATFORM_OVERLAPS
from reachgraph.database.connection import get_connection
from reachgraph.database.models import ContentNode, PlatformOverlap, StandardizedDailyMetric, platform_pair
from reachgraph.database.queries import (
    GLOBAL_SCOPE_ID,
    GRAPH_SCOPE,
    METRICS_SCOPE,
    OVERLAP_SCOPE,
    bump_version,
    get_platform_overlaps,
    get_standardized_metrics,
    get_version,
    upsert_platform_overlap,
)
from reachgraph.processing.cache import VersionedCache
from reachgraph.processing.graph import ContentFamily, GraphBuilder, get_graph_builder
from reachgraph.utils.logging import get_logger

logger = get_logger(__name__)

SUM_FIELDS = (
    "views",
    "engagements",
    "shares",
    "comments",
    "likes",
    "saves",
    "watch_time_minutes",
    "engagement_score",
    "content_value",
)
GROWTH_METRICS = ("views", "engagements", "shares", "comments", "likes", "content_value")
SERIES_METRICS = ("views", "engagements", "content_value")
TREND_BAND = 0.1


def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide, returning 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return numerator / denominator


def growth_rate(current: float, previous: float) -> float:
    """Relative change vs the previous value, 0 when there is no previous value."""
    if not previous:
        return 0.0
    return (current - previous) / previous


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k) if not isinstance(k, str) else k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


# =============================================================================
# Periods
# =============================================================================


@dataclass(frozen=True)
class Period:
    """An inclusive range of days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Period start {self.start} is after end {self.end}")

    @classmethod
    def last_n_days(cls, days: int, end: date | None = None) -> Period:
        """The `days` days ending on `end` (default today)."""
        if days < 1:
            raise ValueError(f"days must be at least 1, got {days}")
        end = end or date.today()
        return cls(start=end - timedelta(days=days - 1), end=end)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def previous(self) -> Period:
        """The equal-length period immediately before this one."""
        end = self.start - timedelta(days=1)
        return Period(start=end - timedelta(days=self.days - 1), end=end)

    def dates(self) -> list[date]:
        return [self.start + timedelta(days=i) for i in range(self.days)]

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat(), "days": self.days}


# =============================================================================
# Result types
# =============================================================================


@dataclass
class AggregateMetrics:
    """Totals over a set of standardized rows, plus growth vs a prior period."""

    total_views: float = 0.0
    total_engagements: float = 0.0
    total_shares: float = 0.0
    total_comments: float = 0.0
    total_likes: float = 0.0
    total_saves: float = 0.0
    total_watch_time_minutes: float = 0.0
    total_engagement_score: float = 0.0
    total_content_value: float = 0.0
    growth: dict[str, float] = field(default_factory=dict)
    previous_totals: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, rows: Iterable[StandardizedDailyMetric]) -> AggregateMetrics:
        """Sum standardized rows."""
        totals = dict.fromkeys(SUM_FIELDS, 0.0)
        for row in rows:
            for name in SUM_FIELDS:
                totals[name] += getattr(row, name)
        return cls(**{f"total_{name}": value for name, value in totals.items()})

    @classmethod
    def combine(cls, parts: Iterable[AggregateMetrics]) -> AggregateMetrics:
        """Sum additive totals of several aggregates, previous totals included."""
        parts = list(parts)
        combined = cls(
            **{
                f"total_{name}": sum(getattr(p, f"total_{name}") for p in parts)
                for name in SUM_FIELDS
            }
        )
        if any(p.previous_totals for p in parts):
            previous = {
                name: sum(p.previous_totals.get(name, 0.0) for p in parts) for name in GROWTH_METRICS
            }
            combined.apply_growth(previous)
        return combined

    def total(self, metric: str) -> float:
        return getattr(self, f"total_{metric}")

    def apply_growth(self, previous_totals: dict[str, float]) -> None:
        """Record previous-period totals and derive per-metric growth."""
        self.previous_totals = {name: previous_totals.get(name, 0.0) for name in GROWTH_METRICS}
        self.growth = {
            name: growth_rate(self.total(name), self.previous_totals[name]) for name in GROWTH_METRICS
        }

    @property
    def engagement_rate(self) -> float:
        """Engagements per view, 0 when there are no views."""
        return safe_ratio(self.total_engagements, self.total_views)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["engagement_rate"] = self.engagement_rate
        return data


@dataclass
class PlatformBreakdown:
    """Share of a rollup contributed by one platform."""

    platform: str
    content_count: int
    views: float
    engagements: float
    content_value: float
    view_share: float
    engagement_rate: float


@dataclass
class ContentTypeBreakdown:
    """Share of a rollup contributed by one content type."""

    content_type: str
    content_count: int
    views: float
    engagements: float
    content_value: float
    view_share: float
    engagement_rate: float


@dataclass
class PlatformPairOverlap:
    """Overlap estimate applied to one platform pair."""

    platform_a: str
    platform_b: str
    overlap_rate: float
    views_a: float = 0.0
    views_b: float = 0.0

    @property
    def shared_audience_basis(self) -> float:
        """The smaller audience of the pair."""
        return min(self.views_a, self.views_b)


@dataclass
class ContentPairOverlap:
    """Overlap estimate for an edge whose ends sit on different platforms."""

    source_id: str
    target_id: str
    source_platform: str
    target_platform: str
    overlap_rate: float


@dataclass
class AudienceOverlap:
    """Overlap estimates and the resulting unique reach."""

    platform_pairs: list[PlatformPairOverlap] = field(default_factory=list)
    content_pairs: list[ContentPairOverlap] = field(default_factory=list)
    estimated_duplication: float = 0.0
    estimated_unique_reach: float = 0.0


@dataclass
class TimeSeries:
    """Daily values of one metric over a period."""

    metric: str
    dates: list[date]
    values: list[float]

    @property
    def total(self) -> float:
        return sum(self.values)

    def _halves(self) -> tuple[float, float] | None:
        if len(self.values) < 2:
            return None
        half = len(self.values) // 2
        first = self.values[:half]
        second = self.values[half:]
        return sum(first) / len(first), sum(second) / len(second)

    @property
    def change_percent(self) -> float:
        """Second-half vs first-half average change, in percent."""
        halves = self._halves()
        if halves is None:
            return 0.0
        return growth_rate(halves[1], halves[0]) * 100

    @property
    def trend(self) -> str:
        """'rising', 'falling' or 'stable' (within +/-10%)."""
        halves = self._halves()
        if halves is None:
            return "stable"
        first, second = halves
        if second > first * (1 + TREND_BAND):
            return "rising"
        if second < first * (1 - TREND_BAND):
            return "falling"
        return "stable"

    def points(self) -> list[tuple[date, float]]:
        return list(zip(self.dates, self.values))

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "points": [{"date": d.isoformat(), "value": v} for d, v in self.points()],
            "total": self.total,
            "trend": self.trend,
            "change_percent": self.change_percent,
        }


@dataclass
class NodeMetrics:
    """Rollup for a single content item."""

    content_id: str
    platform: str
    content_type: str
    title: str
    depth: int
    aggregate_metrics: AggregateMetrics
    missing_metric_days: int = 0
    published_at: datetime | None = None
    time_series: dict[str, TimeSeries] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return self.missing_metric_days > 0

    def to_dict(self) -> dict[str, Any]:
        data = _jsonable(asdict(self))
        data["aggregate_metrics"] = self.aggregate_metrics.to_dict()
        data["time_series"] = {k: ts.to_dict() for k, ts in self.time_series.items()}
        data["partial"] = self.partial
        return data


@dataclass
class FamilyMetrics:
    """Rollup of a content family over a period."""

    root_content_id: str
    creator_id: str
    period: Period
    aggregate_metrics: AggregateMetrics
    platform_breakdown: list[PlatformBreakdown]
    content_type_breakdown: list[ContentTypeBreakdown]
    audience_overlap: AudienceOverlap
    unique_reach_estimate: float
    content_count: int
    platform_count: int
    content_items: list[NodeMetrics] = field(default_factory=list)
    time_series: dict[str, TimeSeries] = field(default_factory=dict)
    partial: bool = False
    missing_metric_days: int = 0
    graph_version: int = 0
    metrics_version: int = 0
    computed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        data = _jsonable(asdict(self))
        data["period"] = self.period.to_dict()
        data["aggregate_metrics"] = self.aggregate_metrics.to_dict()
        data["content_items"] = [item.to_dict() for item in self.content_items]
        data["time_series"] = {k: ts.to_dict() for k, ts in self.time_series.items()}
        return data


@dataclass
class CreatorMetrics:
    """Rollup of every family of a creator over a period."""

    creator_id: str
    period: Period
    aggregate_metrics: AggregateMetrics
    platform_breakdown: list[PlatformBreakdown]
    content_type_breakdown: list[ContentTypeBreakdown]
    unique_reach_estimate: float
    family_count: int
    content_count: int
    platform_count: int
    families: list[FamilyMetrics] = field(default_factory=list)
    time_series: dict[str, TimeSeries] = field(default_factory=dict)
    partial: bool = False
    missing_metric_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = _jsonable(asdict(self))
        data["period"] = self.period.to_dict()
        data["aggregate_metrics"] = self.aggregate_metrics.to_dict()
        data["families"] = [family.to_dict() for family in self.families]
        data["time_series"] = {k: ts.to_dict() for k, ts in self.time_series.items()}
        return data


# =============================================================================
# Audience overlap
# =============================================================================


class OverlapTable:
    """Pairwise platform overlap rates with configured fallbacks."""

    def __init__(
        self,
        rates: dict[tuple[str, str], float] | None = None,
        default_rate: float | None = None,
    ) -> None:
        self.rates = {platform_pair(*pair): rate for pair, rate in (rates or {}).items()}
        self.default_rate = (
            default_rate
            if default_rate is not None
            else get_settings().aggregation.default_overlap_rate
        )

    @classmethod
    def load(cls, conn: sqlite3.Connection | None = None) -> OverlapTable:
        """Stored overrides on top of the bundled defaults."""
        rates = dict(DEFAULT_PLATFORM_OVERLAPS)
        for overlap in get_platform_overlaps(conn=conn):
            rates[overlap.pair] = overlap.overlap_rate
        return cls(rates)

    def rate(self, platform_a: str, platform_b: str) -> float:
        if platform_a.lower() == platform_b.lower():
            return 0.0
        return self.rates.get(platform_pair(platform_a, platform_b), self.default_rate)


def estimate_audience_overlap(
    platform_views: dict[str, float],
    rate_for: Callable[[str, str], float],
) -> AudienceOverlap:
    """
    Estimate duplication and unique reach from per-platform views.

    Args:
        platform_views: Total views per platform.
        rate_for: Overlap rate of a platform pair, in [0, 1].

    Returns:
        AudienceOverlap with platform pairs filled in (content pairs empty).
    """
    pairs = [
        PlatformPairOverlap(
            platform_a=a,
            platform_b=b,
            overlap_rate=rate_for(a, b),
            views_a=platform_views[a],
            views_b=platform_views[b],
        )
        for a, b in combinations(sorted(platform_views), 2)
    ]

    total_views = sum(platform_views.values())
    if total_views <= 0:
        return AudienceOverlap(platform_pairs=pairs)

    raw = sum(p.overlap_rate * p.shared_audience_basis for p in pairs) / total_views
    ceiling = 1.0 - max(platform_views.values()) / total_views
    duplication = min(max(raw, 0.0), ceiling)

    return AudienceOverlap(
        platform_pairs=pairs,
        estimated_duplication=duplication,
        estimated_unique_reach=total_views * (1.0 - duplication),
    )


def set_platform_overlap(platform_a: str, platform_b: str, overlap_rate: float) -> PlatformOverlap:
    """Store an overlap estimate and invalidate rollups that used the old one."""
    overlap = PlatformOverlap(platform_a=platform_a, platform_b=platform_b, overlap_rate=overlap_rate)
    with get_connection(begin="IMMEDIATE") as conn:
        upsert_platform_overlap(overlap, conn=conn)
        version = bump_version(OVERLAP_SCOPE, GLOBAL_SCOPE_ID, conn=conn)
    logger.info(
        f"Set overlap {overlap.platform_a}/{overlap.platform_b} = {overlap_rate:.2f} "
        f"(overlap version {version})"
    )
    return overlap


def list_platform_overlaps() -> list[PlatformOverlap]:
    """Get the stored overlap estimates."""
    return get_platform_overlaps()


# =============================================================================
# Aggregation
# =============================================================================


def _breakdown(
    items: list[NodeMetrics], key: Callable[[NodeMetrics], str], total_views: float
) -> list[dict[str, Any]]:
    groups: dict[str, list[NodeMetrics]] = defaultdict(list)
    for item in items:
        groups[key(item)].append(item)

    rows = []
    for name, members in groups.items():
        views = sum(m.aggregate_metrics.total_views for m in members)
        engagements = sum(m.aggregate_metrics.total_engagements for m in members)
        rows.append(
            {
                "name": name,
                "content_count": len(members),
                "views": views,
                "engagements": engagements,
                "content_value": round(
                    sum(m.aggregate_metrics.total_content_value for m in members), 2
                ),
                "view_share": safe_ratio(views, total_views),
                "engagement_rate": safe_ratio(engagements, views),
            }
        )
    rows.sort(key=lambda r: (-r["views"], r["name"]))
    return rows


def platform_breakdown(items: list[NodeMetrics], total_views: float) -> list[PlatformBreakdown]:
    """Group content items by platform."""
    breakdown = []
    for row in _breakdown(items, lambda m: m.platform, total_views):
        name = row.pop("name")
        breakdown.append(PlatformBreakdown(platform=name, **row))
    return breakdown


def content_type_breakdown(items: list[NodeMetrics], total_views: float) -> list[ContentTypeBreakdown]:
    """Group content items by content type."""
    breakdown = []
    for row in _breakdown(items, lambda m: m.content_type, total_views):
        name = row.pop("name")
        breakdown.append(ContentTypeBreakdown(content_type=name, **row))
    return breakdown


def build_time_series(rows: Iterable[StandardizedDailyMetric], period: Period) -> dict[str, TimeSeries]:
    """Daily sums of the tracked metrics, zero-filled across the period."""
    daily: dict[str, dict[date, float]] = {metric: defaultdict(float) for metric in SERIES_METRICS}
    for row in rows:
        for metric in SERIES_METRICS:
            daily[metric][row.metric_date] += getattr(row, metric)

    dates = period.dates()
    return {
        metric: TimeSeries(metric=metric, dates=dates, values=[daily[metric].get(d, 0.0) for d in dates])
        for metric in SERIES_METRICS
    }


def sum_time_series(parts: Iterable[dict[str, TimeSeries]], period: Period) -> dict[str, TimeSeries]:
    """Add several aligned time series together."""
    dates = period.dates()
    totals = {metric: [0.0] * len(dates) for metric in SERIES_METRICS}
    for series in parts:
        for metric, ts in series.items():
            for i, value in enumerate(ts.values):
                totals[metric][i] += value
    return {metric: TimeSeries(metric=metric, dates=dates, values=values) for metric, values in totals.items()}


def count_missing_days(node: ContentNode, period: Period, today: date, present: set[date]) -> int:
    """
    Count days with no metric row between publication (or period start) and
    today (or period end).
    """
    first = max(period.start, node.published_date)
    last = min(period.end, today)
    if first > last:
        return 0
    expected = (last - first).days + 1
    return expected - sum(1 for day in present if first <= day <= last)


class FamilyAggregator:
    """Computes rollups for content items, families and creators."""

    def __init__(
        self,
        graph: GraphBuilder | None = None,
        cache: VersionedCache | None = None,
        overlap_table: OverlapTable | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            graph: Graph builder used to resolve families.
            cache: Rollup cache. Defaults to one sized from settings.
            overlap_table: Fixed overlap rates. Defaults to loading the
                stored estimates on every computation.
            today: Clock for missing-day detection.
        """
        settings = get_settings().aggregation
        self.graph = graph or get_graph_builder()
        self.cache = cache or VersionedCache(
            max_entries=settings.cache_max_entries,
            ttl_seconds=settings.cache_ttl_seconds,
            name="family-rollup",
        )
        self._overlap_table = overlap_table
        self._today = today or date.today

    def versions(self, creator_id: str) -> tuple[int, int, int]:
        """Current (graph, metrics, overlap) versions for a creator."""
        with get_connection(begin="DEFERRED") as conn:
            return (
                get_version(GRAPH_SCOPE, creator_id, conn=conn),
                get_version(METRICS_SCOPE, creator_id, conn=conn),
                get_version(OVERLAP_SCOPE, GLOBAL_SCOPE_ID, conn=conn),
            )

    def _overlaps(self) -> OverlapTable:
        return self._overlap_table or OverlapTable.load()

    def compute_family_metrics(self, root_id: str, period: Period, use_cache: bool = True) -> FamilyMetrics:
        """
        Roll up a content family over a period.

        Args:
            root_id: Root of the family (any member resolves to its root).
            period: Days to aggregate.
            use_cache: Whether to read and write the rollup cache.

        Raises:
            InvalidReferenceError: If the content item does not exist.
            FamilyTooDeepError: If the family exceeds the depth limit.
        """
        creator_id = self.graph.require_node(root_id).creator_id
        graph_version, metrics_version, overlap_version = self.versions(creator_id)
        key = ("family", root_id, period, graph_version, metrics_version, overlap_version)

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        family = self.graph.get_family(root_id)
        result = self._compute_family(family, period, metrics_version)

        if use_cache:
            self.cache.set(
                ("family", root_id, period, family.graph_version, metrics_version, overlap_version),
                result,
            )
        return result

    def _node_metrics(
        self,
        node: ContentNode,
        depth: int,
        rows: list[StandardizedDailyMetric],
        previous_rows: list[StandardizedDailyMetric],
        period: Period,
        with_series: bool = False,
    ) -> NodeMetrics:
        aggregate = AggregateMetrics.from_rows(rows)
        previous = AggregateMetrics.from_rows(previous_rows)
        aggregate.apply_growth({name: previous.total(name) for name in GROWTH_METRICS})

        missing = count_missing_days(node, period, self._today(), {row.metric_date for row in rows})

        return NodeMetrics(
            content_id=node.id,
            platform=node.platform,
            content_type=node.content_type.value,
            title=node.title,
            depth=depth,
            aggregate_metrics=aggregate,
            missing_metric_days=missing,
            published_at=node.published_at,
            time_series=build_time_series(rows, period) if with_series else {},
        )

    def _compute_family(self, family: ContentFamily, period: Period, metrics_version: int) -> FamilyMetrics:
        node_ids = [node_id for node_id in family.node_ids if node_id in family.nodes]
        previous_period = period.previous()

        rows = get_standardized_metrics(node_ids, period.start, period.end)
        previous_rows = get_standardized_metrics(node_ids, previous_period.start, previous_period.end)

        rows_by_node: dict[str, list[StandardizedDailyMetric]] = defaultdict(list)
        for row in rows:
            rows_by_node[row.content_id].append(row)
        previous_by_node: dict[str, list[StandardizedDailyMetric]] = defaultdict(list)
        for row in previous_rows:
            previous_by_node[row.content_id].append(row)

        items = [
            self._node_metrics(
                family.nodes[node_id],
                family.depths[node_id],
                rows_by_node[node_id],
                previous_by_node[node_id],
                period,
            )
            for node_id in node_ids
        ]

        aggregate = AggregateMetrics.combine(item.aggregate_metrics for item in items)
        total_views = aggregate.total_views

        platform_views: dict[str, float] = defaultdict(float)
        for item in items:
            platform_views[item.platform] += item.aggregate_metrics.total_views

        overlaps = self._overlaps()
        audience = estimate_audience_overlap(dict(platform_views), overlaps.rate)
        audience.content_pairs = [
            ContentPairOverlap(
                source_id=edge.source_id,
                target_id=edge.target_id,
                source_platform=family.nodes[edge.source_id].platform,
                target_platform=family.nodes[edge.target_id].platform,
                overlap_rate=overlaps.rate(
                    family.nodes[edge.source_id].platform, family.nodes[edge.target_id].platform
                ),
            )
            for edge in family.edges
            if edge.source_id in family.nodes
            and edge.target_id in family.nodes
            and family.nodes[edge.source_id].platform != family.nodes[edge.target_id].platform
        ]

        missing_days = sum(item.missing_metric_days for item in items)
        if missing_days:
            logger.info(
                f"Family {family.root_id} is missing {missing_days} metric day(s) in {period}"
            )

        return FamilyMetrics(
            root_content_id=family.root_id,
            creator_id=family.creator_id,
            period=period,
            aggregate_metrics=aggregate,
            platform_breakdown=platform_breakdown(items, total_views),
            content_type_breakdown=content_type_breakdown(items, total_views),
            audience_overlap=audience,
            unique_reach_estimate=audience.estimated_unique_reach,
            content_count=len(items),
            platform_count=len(platform_views),
            content_items=items,
            time_series=build_time_series(rows, period),
            partial=missing_days > 0,
            missing_metric_days=missing_days,
            graph_version=family.graph_version,
            metrics_version=metrics_version,
        )

    def compute_node_metrics(self, content_id: str, period: Period) -> NodeMetrics:
        """
        Roll up a single content item over a period.

        Raises:
            InvalidReferenceError: If the content item does not exist.
        """
        node = self.graph.require_node(content_id)
        previous_period = period.previous()
        rows = get_standardized_metrics([content_id], period.start, period.end)
        previous_rows = get_standardized_metrics(
            [content_id], previous_period.start, previous_period.end
        )
        depth = len(self.graph.load_index(node.creator_id).ancestors(content_id))
        return self._node_metrics(node, depth, rows, previous_rows, period, with_series=True)

    def compute_creator_metrics(self, creator_id: str, period: Period) -> CreatorMetrics:
        """
        Roll up every family of a creator.

        Unique reach is the sum of the families' unique reach estimates.
        """
        families = [
            self.compute_family_metrics(family.root_id, period)
            for family in self.graph.get_families(creator_id)
        ]

        items = [item for family in families for item in family.content_items]
        aggregate = AggregateMetrics.combine(family.aggregate_metrics for family in families)
        missing_days = sum(family.missing_metric_days for family in families)

        return CreatorMetrics(
            creator_id=creator_id,
            period=period,
            aggregate_metrics=aggregate,
            platform_breakdown=platform_breakdown(items, aggregate.total_views),
            content_type_breakdown=content_type_breakdown(items, aggregate.total_views),
            unique_reach_estimate=sum(family.unique_reach_estimate for family in families),
            family_count=len(families),
            content_count=len(items),
            platform_count=len({item.platform for item in items}),
            families=families,
            time_series=sum_time_series((family.time_series for family in families), period),
            partial=missing_days > 0,
            missing_metric_days=missing_days,
        )
