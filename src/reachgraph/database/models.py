"""Pydantic models for database records."""

import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

SYSTEM_ACTOR = "system"


class ContentType(str, Enum):
    """Kind of content item, independent of platform."""

    VIDEO = "video"
    SHORT_VIDEO = "short_video"
    PHOTO = "photo"
    CAROUSEL = "carousel"
    STORY = "story"
    POST = "post"
    ARTICLE = "article"
    PODCAST = "podcast"
    OTHER = "other"


LONG_FORM_TYPES = frozenset({ContentType.VIDEO, ContentType.PODCAST, ContentType.ARTICLE})
SHORT_FORM_TYPES = frozenset(
    {ContentType.SHORT_VIDEO, ContentType.PHOTO, ContentType.STORY, ContentType.POST}
)


class RelationshipType(str, Enum):
    """How a derivative relates to its parent."""

    REPOST = "repost"
    CLIP = "clip"
    ADAPTATION = "adaptation"
    REFERENCE = "reference"


def _parse_json_map(v: Any) -> dict[str, Any]:
    if isinstance(v, str):
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return {}
    return v or {}


class ContentNode(BaseModel):
    """Model for a content item on one platform."""

    id: str
    creator_id: str
    platform: str
    external_id: str
    content_type: ContentType
    published_at: datetime
    title: str = ""
    description: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("platform")
    @classmethod
    def normalize_platform(cls, v: str) -> str:
        """Platform keys are stored lowercase."""
        v = v.strip().lower()
        if not v:
            raise ValueError("platform must not be empty")
        return v

    @field_validator("published_at")
    @classmethod
    def normalize_published_at(cls, v: datetime) -> datetime:
        """Store publish times as naive UTC; naive input is taken to be UTC."""
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, v: Any) -> str:
        """Treat a NULL title as empty."""
        return v or ""

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for database insertion."""
        return {
            "id": self.id,
            "creator_id": self.creator_id,
            "platform": self.platform,
            "external_id": self.external_id,
            "content_type": self.content_type.value,
            "published_at": self.published_at.isoformat(),
            "title": self.title,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
        }

    @property
    def published_date(self) -> date:
        """Get the publish date without time."""
        return self.published_at.date()

    @property
    def display_name(self) -> str:
        """Short label for tables and reports."""
        label = self.title or self.external_id
        return f"{label} ({self.platform})"


class RelationshipEdge(BaseModel):
    """Model for a parent -> derivative link between two content items."""

    source_id: str
    target_id: str
    creator_id: str
    relationship_type: RelationshipType
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    created_by: str = SYSTEM_ACTOR
    created_at: datetime = Field(default_factory=datetime.now)

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for database insertion."""
        return {
            "creator_id": self.creator_id,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "relationship_type": self.relationship_type.value,
            "confidence": self.confidence,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
        }

    @property
    def pair(self) -> tuple[str, str]:
        """The (source, target) key of this edge."""
        return (self.source_id, self.target_id)

    def same_attributes(self, relationship_type: RelationshipType, confidence: float) -> bool:
        """Check whether an add request would leave this edge unchanged."""
        return self.relationship_type == relationship_type and abs(self.confidence - confidence) < 1e-9


class DailyMetric(BaseModel):
    """Raw platform-native metrics for one content item on one day."""

    content_id: str
    metric_date: date
    metrics: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metrics", mode="before")
    @classmethod
    def parse_metrics(cls, v: Any) -> dict[str, Any]:
        """Parse metrics from JSON string if needed."""
        return _parse_json_map(v)

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for database insertion."""
        return {
            "content_id": self.content_id,
            "metric_date": self.metric_date.isoformat(),
            "raw_metrics": json.dumps(self.metrics, sort_keys=True),
            "synced_at": datetime.now().isoformat(),
        }


class StandardizedDailyMetric(BaseModel):
    """Metrics for one content item on one day, in canonical units."""

    content_id: str
    metric_date: date
    platform: str
    views: float = 0.0
    engagements: float = 0.0
    shares: float = 0.0
    comments: float = 0.0
    likes: float = 0.0
    saves: float = 0.0
    watch_time_minutes: float = 0.0
    engagement_score: float = 0.0
    content_value: float = 0.0
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("extra", mode="before")
    @classmethod
    def parse_extra(cls, v: Any) -> dict[str, Any]:
        """Parse extra fields from JSON string if needed."""
        return _parse_json_map(v)

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for database insertion."""
        return {
            "content_id": self.content_id,
            "metric_date": self.metric_date.isoformat(),
            "platform": self.platform,
            "views": self.views,
            "engagements": self.engagements,
            "shares": self.shares,
            "comments": self.comments,
            "likes": self.likes,
            "saves": self.saves,
            "watch_time_minutes": self.watch_time_minutes,
            "engagement_score": self.engagement_score,
            "content_value": self.content_value,
            "extra": json.dumps(self.extra, sort_keys=True),
            "standardized_at": datetime.now().isoformat(),
        }


class StandardizationProfile(BaseModel):
    """Per-platform coefficients that map raw metrics onto canonical units."""

    platform: str
    engagement_weight: float = Field(default=1.0, ge=0)
    view_weight: float = Field(default=1.0, ge=0)
    share_weight: float = Field(default=1.0, ge=0)
    comment_weight: float = Field(default=1.0, ge=0)
    like_weight: float = Field(default=1.0, ge=0)
    platform_engagement_factor: float = Field(default=1.0, ge=0)
    platform_value_factor: float = Field(default=1.0, ge=0)
    metric_mappings: dict[str, str] = Field(default_factory=dict)

    @field_validator("platform")
    @classmethod
    def normalize_platform(cls, v: str) -> str:
        """Platform keys are stored lowercase."""
        return v.strip().lower()


class PlatformOverlap(BaseModel):
    """Estimated share of audience common to two platforms."""

    platform_a: str
    platform_b: str
    overlap_rate: float = Field(ge=0.0, le=1.0)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def order_pair(self) -> "PlatformOverlap":
        """Store the pair lowercase and alphabetically ordered."""
        a = self.platform_a.strip().lower()
        b = self.platform_b.strip().lower()
        if a == b:
            raise ValueError("overlap needs two different platforms")
        self.platform_a, self.platform_b = sorted((a, b))
        return self

    @property
    def pair(self) -> tuple[str, str]:
        """The ordered platform pair."""
        return (self.platform_a, self.platform_b)

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for database insertion."""
        return {
            "platform_a": self.platform_a,
            "platform_b": self.platform_b,
            "overlap_rate": self.overlap_rate,
            "updated_at": self.updated_at.isoformat(),
        }


def platform_pair(a: str, b: str) -> tuple[str, str]:
    """Order a platform pair the way overlaps are keyed."""
    x, y = sorted((a.lower(), b.lower()))
    return (x, y)
