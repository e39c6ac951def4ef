"""Rule-based insight generation for ReachGraph.

Insights are derived from rollup output only, so regenerating them from the
same metrics yields the same insights (and the same IDs). Each rule reports
a magnitude in [0, 1]; priority combines it with recency:

    priority = round(100 * magnitude * (0.5 + 0.5 * recency))
    recency  = 0.5 ** (days_since_signal / half_life_days)
"""

from __future__ import annotations

import statistics
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from reachgraph.config import get_settings
from reachgraph.config.defaults import DEFAULT_ENGAGEMENT_BENCHMARK, DEFAULT_ENGAGEMENT_BENCHMARKS
from reachgraph.config.settings import InsightSettings
from reachgraph.processing.aggregation import (
    AggregateMetrics,
    AudienceOverlap,
    ContentTypeBreakdown,
    PlatformBreakdown,
    TimeSeries,
    safe_ratio,
)
from reachgraph.utils.formatting import format_change, format_number, format_percent
from reachgraph.utils.logging import get_logger
from reachgraph.utils.text import stable_id

logger = get_logger(__name__)

TRACKED_METRICS = {
    "views": "Views",
    "engagements": "Engagements",
    "content_value": "Estimated value",
}


class EntityType(str, Enum):
    """What an insight is about."""

    CONTENT = "content"
    FAMILY = "family"
    CREATOR = "creator"


class InsightType(str, Enum):
    """Which rule produced an insight."""

    GROWTH = "growth"
    DECLINE = "decline"
    PLATFORM_CONCENTRATION = "platform_concentration"
    BENCHMARK = "benchmark"
    CONTENT_TYPE = "content_type"
    ANOMALY = "anomaly"
    AUDIENCE_OVERLAP = "audience_overlap"


@dataclass
class Insight:
    """A ranked, human-readable observation about an entity's metrics."""

    id: str
    entity_id: str
    entity_type: EntityType
    insight_type: InsightType
    title: str
    description: str
    metrics: dict[str, Any] = field(default_factory=dict)
    recommendation_actions: list[str] = field(default_factory=list)
    priority: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["entity_type"] = self.entity_type.value
        data["insight_type"] = self.insight_type.value
        data["created_at"] = self.created_at.isoformat()
        return data


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class InsightGenerator:
    """Applies the insight rules to rollup output."""

    def __init__(self, settings: InsightSettings | None = None) -> None:
        self.settings = settings or get_settings().insights

    def priority(self, magnitude: float, signal_date: date, as_of: date) -> int:
        """Combine a rule's magnitude with how recent its signal is."""
        days_since = max(0, (as_of - signal_date).days)
        recency = 0.5 ** (days_since / self.settings.recency_half_life_days)
        return round(100 * _clamp(magnitude) * (0.5 + 0.5 * recency))

    def generate_insights(
        self,
        entity_id: str,
        entity_type: EntityType | str,
        aggregate_metrics: AggregateMetrics,
        time_series: dict[str, TimeSeries] | None = None,
        platform_breakdown: list[PlatformBreakdown] | None = None,
        content_type_breakdown: list[ContentTypeBreakdown] | None = None,
        audience_overlap: AudienceOverlap | None = None,
        as_of: date | None = None,
    ) -> list[Insight]:
        """
        Derive insights for an entity.

        Args:
            entity_id: Content, family root or creator ID.
            entity_type: What entity_id refers to.
            aggregate_metrics: Rollup totals with growth.
            time_series: Daily series keyed by metric name.
            platform_breakdown: Per-platform shares, if available.
            content_type_breakdown: Per-content-type shares, if available.
            audience_overlap: Overlap estimate, if available.
            as_of: Reference date for recency. Defaults to the end of the
                series, or today.

        Returns:
            Insights sorted by descending priority, capped at max_insights.
        """
        entity_type = EntityType(entity_type)
        time_series = time_series or {}
        period_end = max((ts.dates[-1] for ts in time_series.values() if ts.dates), default=None)
        as_of = as_of or period_end or date.today()
        signal_date = period_end or as_of

        candidates: list[tuple[float, date, InsightType, str, dict[str, Any]]] = []
        candidates.extend(self._growth_rules(aggregate_metrics, signal_date))
        if platform_breakdown:
            candidates.extend(self._concentration_rule(platform_breakdown, signal_date))
            candidates.extend(self._benchmark_rule(aggregate_metrics, platform_breakdown, signal_date))
        if content_type_breakdown:
            candidates.extend(self._content_type_rule(content_type_breakdown, signal_date))
        if "views" in time_series:
            candidates.extend(self._anomaly_rule(time_series["views"]))
        if audience_overlap is not None:
            candidates.extend(self._overlap_rule(audience_overlap, signal_date))

        insights = []
        for magnitude, when, insight_type, key, content in candidates:
            insights.append(
                Insight(
                    id=stable_id(entity_type.value, entity_id, insight_type.value, key),
                    entity_id=entity_id,
                    entity_type=entity_type,
                    insight_type=insight_type,
                    title=content["title"],
                    description=content["description"],
                    metrics=content["metrics"],
                    recommendation_actions=content["actions"],
                    priority=self.priority(magnitude, when, as_of),
                )
            )

        insights.sort(key=lambda i: (-i.priority, i.title))
        logger.debug(f"{len(insights)} insight(s) for {entity_type.value} {entity_id}")
        return insights[: self.settings.max_insights]

    # -------------------------------------------------------------------------
    # Rules. Each yields (magnitude, signal_date, type, key, content).
    # -------------------------------------------------------------------------

    def _growth_rules(self, aggregate: AggregateMetrics, signal_date: date):
        threshold = self.settings.growth_threshold
        for metric, label in TRACKED_METRICS.items():
            if not aggregate.previous_totals.get(metric):
                continue
            rate = aggregate.growth.get(metric, 0.0)
            current = aggregate.total(metric)
            numbers = {
                "metric": metric,
                "growth_rate": rate,
                "current": current,
                "previous": aggregate.previous_totals[metric],
            }

            if rate > threshold:
                yield (
                    abs(rate),
                    signal_date,
                    InsightType.GROWTH,
                    metric,
                    {
                        "title": f"{label} up {format_change(rate)}",
                        "description": (
                            f"{label} reached {format_number(current)} this period, "
                            f"{format_change(rate)} vs the previous period."
                        ),
                        "metrics": numbers,
                        "actions": [
                            "Identify the content driving the increase and publish more like it",
                            "Repurpose the top performer to platforms it is not on yet",
                        ],
                    },
                )
            elif rate < -threshold:
                yield (
                    abs(rate),
                    signal_date,
                    InsightType.DECLINE,
                    metric,
                    {
                        "title": f"{label} down {format_change(rate)}",
                        "description": (
                            f"{label} fell to {format_number(current)} this period, "
                            f"{format_change(rate)} vs the previous period."
                        ),
                        "metrics": numbers,
                        "actions": [
                            "Check whether publishing frequency dropped",
                            "Compare recent content with the previous period's best performers",
                        ],
                    },
                )

    def _concentration_rule(self, breakdown: list[PlatformBreakdown], signal_date: date):
        top = max(breakdown, key=lambda b: (b.view_share, b.platform))
        if top.views <= 0 or top.view_share <= self.settings.concentration_threshold:
            return
        yield (
            top.view_share * 0.6,
            signal_date,
            InsightType.PLATFORM_CONCENTRATION,
            top.platform,
            {
                "title": f"{format_percent(top.view_share, 0)} of views come from {top.platform}",
                "description": (
                    f"{top.platform} carries {format_percent(top.view_share)} of views across "
                    f"{len(breakdown)} platform(s). Reach depends heavily on one platform."
                ),
                "metrics": {"platform": top.platform, "view_share": top.view_share},
                "actions": [
                    f"Adapt top {top.platform} content for other platforms",
                    "Cross-promote secondary platforms from the dominant one",
                ],
            },
        )

    def _benchmark_rule(
        self,
        aggregate: AggregateMetrics,
        breakdown: list[PlatformBreakdown],
        signal_date: date,
    ):
        total_views = sum(b.views for b in breakdown)
        if total_views <= 0:
            return

        expected = sum(
            b.views * DEFAULT_ENGAGEMENT_BENCHMARKS.get(b.platform, DEFAULT_ENGAGEMENT_BENCHMARK)
            for b in breakdown
        ) / total_views
        ratio = safe_ratio(aggregate.engagement_rate, expected)
        numbers = {
            "engagement_rate": aggregate.engagement_rate,
            "benchmark": expected,
            "ratio": ratio,
        }

        if ratio >= self.settings.benchmark_high_ratio:
            yield (
                ratio - 1,
                signal_date,
                InsightType.BENCHMARK,
                "above",
                {
                    "title": f"Engagement {ratio:.1f}x the platform benchmark",
                    "description": (
                        f"Engagement rate of {format_percent(aggregate.engagement_rate, 2)} beats the "
                        f"typical {format_percent(expected, 2)} for this platform mix."
                    ),
                    "metrics": numbers,
                    "actions": [
                        "Highlight this engagement rate in partnership pitches",
                        "Keep the format and topics that produce it",
                    ],
                },
            )
        elif ratio <= self.settings.benchmark_low_ratio:
            yield (
                1 - ratio,
                signal_date,
                InsightType.BENCHMARK,
                "below",
                {
                    "title": f"Engagement {ratio:.1f}x the platform benchmark",
                    "description": (
                        f"Engagement rate of {format_percent(aggregate.engagement_rate, 2)} trails the "
                        f"typical {format_percent(expected, 2)} for this platform mix."
                    ),
                    "metrics": numbers,
                    "actions": [
                        "Add clearer calls to action",
                        "Reply to comments early to lift engagement",
                    ],
                },
            )

    def _content_type_rule(self, breakdown: list[ContentTypeBreakdown], signal_date: date):
        with_views = [b for b in breakdown if b.views > 0]
        if len(with_views) < 2:
            return

        best = max(with_views, key=lambda b: (b.engagement_rate, b.content_type))
        worst = min(with_views, key=lambda b: (b.engagement_rate, b.content_type))
        if worst.engagement_rate <= 0:
            ratio = float("inf") if best.engagement_rate > 0 else 1.0
        else:
            ratio = best.engagement_rate / worst.engagement_rate
        if ratio < self.settings.content_type_ratio:
            return

        magnitude = 1.0 if ratio == float("inf") else (ratio - 1) / 2
        yield (
            magnitude,
            signal_date,
            InsightType.CONTENT_TYPE,
            f"{best.content_type}>{worst.content_type}",
            {
                "title": f"{best.content_type} outperforms {worst.content_type}",
                "description": (
                    f"{best.content_type} engages at {format_percent(best.engagement_rate, 2)} "
                    f"vs {format_percent(worst.engagement_rate, 2)} for {worst.content_type}."
                ),
                "metrics": {
                    "best_type": best.content_type,
                    "best_rate": best.engagement_rate,
                    "worst_type": worst.content_type,
                    "worst_rate": worst.engagement_rate,
                },
                "actions": [
                    f"Shift effort toward {best.content_type}",
                    f"Rework how {worst.content_type} content is packaged",
                ],
            },
        )

    def _anomaly_rule(self, series: TimeSeries):
        if len(series.values) < self.settings.anomaly_min_points:
            return

        mean = statistics.fmean(series.values)
        stdev = statistics.pstdev(series.values)
        if stdev == 0:
            return

        scores = [((value - mean) / stdev, day, value) for day, value in series.points()]
        z, day, value = max(scores, key=lambda s: (abs(s[0]), s[1]))
        if abs(z) <= self.settings.anomaly_z_threshold:
            return

        kind = "spike" if z > 0 else "drop"
        yield (
            abs(z) / (2 * self.settings.anomaly_z_threshold),
            day,
            InsightType.ANOMALY,
            day.isoformat(),
            {
                "title": f"Unusual views {kind} on {day.isoformat()}",
                "description": (
                    f"Views were {format_number(value)} on {day.isoformat()} against a daily "
                    f"average of {format_number(mean)} ({z:+.1f} standard deviations)."
                ),
                "metrics": {"date": day.isoformat(), "value": value, "mean": mean, "z_score": z},
                "actions": (
                    ["Find what was shared or featured that day and repeat it"]
                    if z > 0
                    else ["Check for a sync gap or platform outage on that day"]
                ),
            },
        )

    def _overlap_rule(self, overlap: AudienceOverlap, signal_date: date):
        if overlap.estimated_duplication <= self.settings.overlap_threshold:
            return
        yield (
            overlap.estimated_duplication * 2,
            signal_date,
            InsightType.AUDIENCE_OVERLAP,
            "duplication",
            {
                "title": f"About {format_percent(overlap.estimated_duplication, 0)} of views are repeat viewers",
                "description": (
                    f"Estimated unique reach is {format_number(overlap.estimated_unique_reach)}. "
                    "The same people are seeing this family on several platforms."
                ),
                "metrics": {
                    "estimated_duplication": overlap.estimated_duplication,
                    "estimated_unique_reach": overlap.estimated_unique_reach,
                },
                "actions": [
                    "Vary the angle per platform instead of reposting unchanged",
                    "Target platforms with less audience overlap",
                ],
            },
        )
