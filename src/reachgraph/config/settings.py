"""Pydantic settings models for ReachGraph configuration."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reachgraph.config.defaults import (
    DEFAULT_ANOMALY_MIN_POINTS,
    DEFAULT_ANOMALY_Z_THRESHOLD,
    DEFAULT_BENCHMARK_HIGH_RATIO,
    DEFAULT_BENCHMARK_LOW_RATIO,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CONCENTRATION_THRESHOLD,
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_CONTENT_TYPE_RATIO,
    DEFAULT_DB_PATH,
    DEFAULT_GROWTH_THRESHOLD,
    DEFAULT_INSIGHT_CACHE_TTL_SECONDS,
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_MAX_SIZE_MB,
    DEFAULT_MAX_FAMILY_DEPTH,
    DEFAULT_MAX_INSIGHTS,
    DEFAULT_OVERLAP_INSIGHT_THRESHOLD,
    DEFAULT_OVERLAP_RATE,
    DEFAULT_PERIOD_DAYS,
    DEFAULT_RECENCY_HALF_LIFE_DAYS,
    DEFAULT_VALUE_PER_ENGAGEMENT,
    DEFAULT_VALUE_PER_VIEW,
    LOGS_DIR,
    REPORTS_DIR,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _unit_interval(name: str, v: float) -> float:
    if not 0.0 <= v <= 1.0:
        raise ValueError(f"{name} must be between 0 and 1, got {v}")
    return v


class DatabaseSettings(BaseModel):
    """SQLite storage location."""

    path: Path = DEFAULT_DB_PATH


class GraphSettings(BaseModel):
    """Relationship graph configuration."""

    max_family_depth: int = Field(default=DEFAULT_MAX_FAMILY_DEPTH, ge=1)
    lock_timeout_seconds: float = Field(default=DEFAULT_LOCK_TIMEOUT_SECONDS, gt=0)


class SuggestionSettings(BaseModel):
    """Relationship suggestion configuration."""

    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD

    @field_validator("confidence_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        """Validate the threshold is a probability."""
        return _unit_interval("confidence_threshold", v)


class StandardizationSettings(BaseModel):
    """Content value model coefficients."""

    value_per_view: float = Field(default=DEFAULT_VALUE_PER_VIEW, ge=0)
    value_per_engagement: float = Field(default=DEFAULT_VALUE_PER_ENGAGEMENT, ge=0)


class AggregationSettings(BaseModel):
    """Family rollup configuration."""

    cache_max_entries: int = Field(default=DEFAULT_CACHE_MAX_ENTRIES, ge=0)
    cache_ttl_seconds: float = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=0)
    default_overlap_rate: float = DEFAULT_OVERLAP_RATE
    default_period_days: int = Field(default=DEFAULT_PERIOD_DAYS, ge=1)

    @field_validator("default_overlap_rate")
    @classmethod
    def validate_overlap(cls, v: float) -> float:
        """Validate the fallback overlap rate."""
        return _unit_interval("default_overlap_rate", v)


class InsightSettings(BaseModel):
    """Insight rule thresholds."""

    growth_threshold: float = Field(default=DEFAULT_GROWTH_THRESHOLD, gt=0)
    concentration_threshold: float = DEFAULT_CONCENTRATION_THRESHOLD
    max_insights: int = Field(default=DEFAULT_MAX_INSIGHTS, ge=1)
    benchmark_high_ratio: float = Field(default=DEFAULT_BENCHMARK_HIGH_RATIO, gt=1)
    benchmark_low_ratio: float = Field(default=DEFAULT_BENCHMARK_LOW_RATIO, gt=0, lt=1)
    content_type_ratio: float = Field(default=DEFAULT_CONTENT_TYPE_RATIO, gt=1)
    anomaly_z_threshold: float = Field(default=DEFAULT_ANOMALY_Z_THRESHOLD, gt=0)
    anomaly_min_points: int = Field(default=DEFAULT_ANOMALY_MIN_POINTS, ge=3)
    overlap_threshold: float = DEFAULT_OVERLAP_INSIGHT_THRESHOLD
    recency_half_life_days: float = Field(default=DEFAULT_RECENCY_HALF_LIFE_DAYS, gt=0)
    cache_ttl_seconds: float = Field(default=DEFAULT_INSIGHT_CACHE_TTL_SECONDS, ge=0)

    @field_validator("concentration_threshold", "overlap_threshold")
    @classmethod
    def validate_share(cls, v: float) -> float:
        """Validate share thresholds."""
        return _unit_interval("threshold", v)


class ReportSettings(BaseModel):
    """Markdown report output."""

    output_directory: Path = REPORTS_DIR
    filename_format: str = "{root_id}-{date}.md"


class LoggingSettings(BaseModel):
    """Where and how much ReachGraph logs."""

    level: LogLevel = DEFAULT_LOG_LEVEL
    file: Path = LOGS_DIR / "reachgraph.log"
    max_size_mb: int = Field(default=DEFAULT_LOG_MAX_SIZE_MB, ge=1)
    backup_count: int = Field(default=DEFAULT_LOG_BACKUP_COUNT, ge=0)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        """Accept level names in any case."""
        return v.upper() if isinstance(v, str) else v


class Settings(BaseSettings):
    """Main settings class for ReachGraph."""

    model_config = SettingsConfigDict(
        env_prefix="REACHGRAPH_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    graph: GraphSettings = Field(default_factory=GraphSettings)
    suggestions: SuggestionSettings = Field(default_factory=SuggestionSettings)
    standardization: StandardizationSettings = Field(default_factory=StandardizationSettings)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    insights: InsightSettings = Field(default_factory=InsightSettings)
    reports: ReportSettings = Field(default_factory=ReportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def ensure_directories(self) -> None:
        """Create the database, reports and log directories."""
        self.database.path.parent.mkdir(parents=True, exist_ok=True)
        self.reports.output_directory.mkdir(parents=True, exist_ok=True)
        self.logging.file.parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process and create their directories."""
    settings = Settings()
    settings.ensure_directories()
    return settings
