"""Metric standardization for ReachGraph.

Each platform reports daily metrics under its own field names and with its
own engagement economics. A StandardizationProfile maps those raw fields onto
canonical units and computes two comparable figures:

- engagement_score: weighted engagement actions scaled by the platform's
  engagement factor, comparable across platforms.
- content_value: a linear, best-effort estimate in USD. It is not a
  financial figure.

Unknown platforms fail closed so incomparable numbers never reach a rollup.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable

from reachgraph.config import get_settings
from reachgraph.config.defaults import CONTENT_TYPE_VALUE_MULTIPLIERS, DEFAULT_PLATFORM_PROFILES
from reachgraph.database.connection import get_connection
from reachgraph.database.models import (
    ContentType,
    DailyMetric,
    StandardizationProfile,
    StandardizedDailyMetric,
)
from reachgraph.database.queries import METRICS_SCOPE, bump_version, get_content_nodes, upsert_metrics
from reachgraph.exceptions import UnknownPlatformError
from reachgraph.utils.logging import get_logger

logger = get_logger(__name__)

COUNT_FIELDS = ("views", "likes", "comments", "shares", "saves", "watch_time_minutes")
CANONICAL_FIELDS = COUNT_FIELDS + ("engagements",)


def default_profiles() -> list[StandardizationProfile]:
    """Build the bundled platform profiles."""
    return [
        StandardizationProfile(platform=platform, **values)
        for platform, values in DEFAULT_PLATFORM_PROFILES.items()
    ]


def _to_number(value: Any, field_name: str, platform: str) -> float:
    """Coerce a raw metric value to a non-negative float."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).replace(",", "").strip())
        except ValueError:
            logger.warning(f"Non-numeric {platform} metric {field_name}={value!r}, using 0")
            return 0.0

    if number != number or number in (float("inf"), float("-inf")):
        logger.warning(f"Non-finite {platform} metric {field_name}={value!r}, using 0")
        return 0.0
    if number < 0:
        logger.warning(f"Negative {platform} metric {field_name}={value!r}, using 0")
        return 0.0
    return number


class ProfileRegistry:
    """Registry of standardization profiles keyed by platform."""

    def __init__(
        self,
        profiles: Iterable[StandardizationProfile] | None = None,
        value_per_view: float | None = None,
        value_per_engagement: float | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            profiles: Profiles to register. Defaults to the bundled ones.
            value_per_view: USD per weighted view. Defaults to settings.
            value_per_engagement: USD per engagement-score point. Defaults to settings.
        """
        settings = get_settings().standardization
        self.value_per_view = (
            value_per_view if value_per_view is not None else settings.value_per_view
        )
        self.value_per_engagement = (
            value_per_engagement
            if value_per_engagement is not None
            else settings.value_per_engagement
        )
        self._profiles: dict[str, StandardizationProfile] = {}

        for profile in profiles if profiles is not None else default_profiles():
            self.register(profile)

    def register(self, profile: StandardizationProfile) -> None:
        """Register or replace the profile for a platform."""
        if profile.platform in self._profiles:
            logger.info(f"Replacing standardization profile for {profile.platform}")
        self._profiles[profile.platform] = profile

    def get(self, platform: str) -> StandardizationProfile:
        """
        Get the profile for a platform.

        Raises:
            UnknownPlatformError: If no profile is registered.
        """
        key = platform.strip().lower()
        if key not in self._profiles:
            raise UnknownPlatformError(platform)
        return self._profiles[key]

    def has(self, platform: str) -> bool:
        """Check whether a platform has a profile."""
        return platform.strip().lower() in self._profiles

    def platforms(self) -> list[str]:
        """Get the registered platform keys."""
        return sorted(self._profiles)

    def standardize(
        self,
        platform: str,
        raw_metric: DailyMetric,
        content_type: ContentType | str | None = None,
    ) -> StandardizedDailyMetric:
        """
        Convert a raw daily metric into canonical units.

        Args:
            platform: Platform the metric was recorded on.
            raw_metric: Raw platform-native metrics for one day.
            content_type: Content type, used for the value multiplier.

        Returns:
            The standardized metric row.

        Raises:
            UnknownPlatformError: If the platform has no profile.
        """
        profile = self.get(platform)
        raw = raw_metric.metrics

        # Canonical field -> platform field; unmapped canonical fields read as-is
        source_fields = {name: profile.metric_mappings.get(name, name) for name in CANONICAL_FIELDS}
        consumed = set(source_fields.values())

        values = {
            name: _to_number(raw.get(source), source, profile.platform)
            for name, source in source_fields.items()
        }
        extra = {key: value for key, value in raw.items() if key not in consumed}

        if source_fields["engagements"] in raw:
            engagements = values["engagements"]
        else:
            engagements = values["likes"] + values["comments"] + values["shares"] + values["saves"]

        engagement_score = (
            values["likes"] * profile.like_weight
            + values["comments"] * profile.comment_weight
            + values["shares"] * profile.share_weight
            + values["saves"] * profile.engagement_weight
        ) * profile.platform_engagement_factor

        type_key = content_type.value if isinstance(content_type, ContentType) else content_type
        multiplier = CONTENT_TYPE_VALUE_MULTIPLIERS.get(type_key or "other", 1.0)

        content_value = (
            values["views"] * profile.view_weight * self.value_per_view
            + engagement_score * self.value_per_engagement
        ) * profile.platform_value_factor * multiplier

        return StandardizedDailyMetric(
            content_id=raw_metric.content_id,
            metric_date=raw_metric.metric_date,
            platform=profile.platform,
            views=values["views"],
            engagements=engagements,
            shares=values["shares"],
            comments=values["comments"],
            likes=values["likes"],
            saves=values["saves"],
            watch_time_minutes=values["watch_time_minutes"],
            engagement_score=round(engagement_score, 4),
            content_value=round(content_value, 2),
            extra=extra,
        )


_default_registry: ProfileRegistry | None = None


def get_registry() -> ProfileRegistry:
    """Get the default profile registry instance."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ProfileRegistry()
    return _default_registry


def standardize(
    platform: str,
    raw_metric: DailyMetric,
    content_type: ContentType | str | None = None,
) -> StandardizedDailyMetric:
    """Convenience function to standardize with the default registry."""
    return get_registry().standardize(platform, raw_metric, content_type)


@dataclass
class SyncResult:
    """Outcome of a metric sync batch."""

    synced: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Rows seen in the batch."""
        return self.synced + self.skipped


class MetricSync:
    """Upserts raw daily metrics together with their standardized form."""

    def __init__(self, registry: ProfileRegistry | None = None) -> None:
        self.registry = registry or get_registry()

    def sync(self, rows: Iterable[DailyMetric]) -> SyncResult:
        """
        Standardize and store a batch of raw metric rows.

        Rows are upserted by (content_id, metric_date), so re-syncing a day
        overwrites it. A row for an unknown content item or an unregistered
        platform is skipped and logged; the rest of the batch still lands.
        Each affected creator's metrics version is bumped in the same
        transaction as its rows.

        Args:
            rows: Raw metric rows from a platform connector.

        Returns:
            SyncResult with counts and per-row error messages.
        """
        rows = list(rows)
        result = SyncResult()
        if not rows:
            return result

        nodes = get_content_nodes(sorted({row.content_id for row in rows}))
        by_creator: dict[str, list[tuple[DailyMetric, StandardizedDailyMetric]]] = defaultdict(list)

        for row in rows:
            node = nodes.get(row.content_id)
            if node is None:
                message = f"Unknown content {row.content_id} on {row.metric_date}"
                logger.warning(f"Skipping metric row: {message}")
                result.skipped += 1
                result.errors.append(message)
                continue

            try:
                standardized = self.registry.standardize(node.platform, row, node.content_type)
            except UnknownPlatformError as e:
                message = f"{e} (content {row.content_id} on {row.metric_date})"
                logger.warning(f"Skipping metric row: {message}")
                result.skipped += 1
                result.errors.append(message)
                continue

            by_creator[node.creator_id].append((row, standardized))

        for creator_id, pairs in by_creator.items():
            with get_connection() as conn:
                for raw, standardized in pairs:
                    upsert_metrics(raw, standardized, conn=conn)
                version = bump_version(METRICS_SCOPE, creator_id, conn=conn)
            result.synced += len(pairs)
            logger.info(
                f"Synced {len(pairs)} metric row(s) for creator {creator_id} "
                f"(metrics version {version})"
            )

        return result
