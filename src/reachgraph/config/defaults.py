"""Default configuration values for ReachGraph."""

from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).parent.parent.parent.parent
DATA_DIR = BASE_DIR / "data"
REPORTS_DIR = BASE_DIR / "reports"
LOGS_DIR = BASE_DIR / "logs"

# Database
DEFAULT_DB_PATH = DATA_DIR / "reachgraph.db"

# Graph defaults
DEFAULT_MAX_FAMILY_DEPTH = 10
DEFAULT_LOCK_TIMEOUT_SECONDS = 10.0

# Suggestion defaults
DEFAULT_CONFIDENCE_THRESHOLD = 0.6

# Standardization defaults (value model is a linear estimate in USD)
DEFAULT_VALUE_PER_VIEW = 0.001
DEFAULT_VALUE_PER_ENGAGEMENT = 0.01

# Aggregation defaults
DEFAULT_CACHE_MAX_ENTRIES = 256
DEFAULT_CACHE_TTL_SECONDS = 0  # 0 = no expiry, versions handle invalidation
DEFAULT_OVERLAP_RATE = 0.1
DEFAULT_PERIOD_DAYS = 28

# Insight defaults
DEFAULT_GROWTH_THRESHOLD = 0.2
DEFAULT_CONCENTRATION_THRESHOLD = 0.7
DEFAULT_MAX_INSIGHTS = 10
DEFAULT_BENCHMARK_HIGH_RATIO = 1.5
DEFAULT_BENCHMARK_LOW_RATIO = 0.5
DEFAULT_CONTENT_TYPE_RATIO = 1.5
DEFAULT_ANOMALY_Z_THRESHOLD = 2.5
DEFAULT_ANOMALY_MIN_POINTS = 7
DEFAULT_OVERLAP_INSIGHT_THRESHOLD = 0.25
DEFAULT_RECENCY_HALF_LIFE_DAYS = 7.0
DEFAULT_INSIGHT_CACHE_TTL_SECONDS = 1800

# Logging defaults
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_MAX_SIZE_MB = 10
DEFAULT_LOG_BACKUP_COUNT = 3

# =============================================================================
# STANDARDIZATION PROFILES - Per-platform weighting and field mappings
# =============================================================================
# metric_mappings map canonical field -> platform-native field name.
# Canonical fields without a mapping are read under their own name.

DEFAULT_PLATFORM_PROFILES: dict[str, dict] = {
    "youtube": {
        "engagement_weight": 1.0,
        "view_weight": 1.0,
        "share_weight": 1.5,
        "comment_weight": 1.2,
        "like_weight": 0.8,
        "platform_engagement_factor": 1.0,
        "platform_value_factor": 1.2,
        "metric_mappings": {
            "likes": "likes",
            "comments": "comments",
            "shares": "shares",
            "views": "views",
            "watch_time_minutes": "minutes_watched",
        },
    },
    "instagram": {
        "engagement_weight": 1.2,
        "view_weight": 0.9,
        "share_weight": 1.8,
        "comment_weight": 1.5,
        "like_weight": 1.0,
        "platform_engagement_factor": 1.2,
        "platform_value_factor": 1.4,
        "metric_mappings": {
            "likes": "likes",
            "comments": "comments",
            "shares": "shares",
            "saves": "bookmarks",
            "views": "impressions",
        },
    },
    "tiktok": {
        "engagement_weight": 1.3,
        "view_weight": 0.8,
        "share_weight": 2.0,
        "comment_weight": 1.4,
        "like_weight": 1.0,
        "platform_engagement_factor": 1.3,
        "platform_value_factor": 1.1,
        "metric_mappings": {
            "likes": "likes",
            "comments": "comments",
            "shares": "shares",
            "views": "views",
            "watch_time_minutes": "total_time_watched",
        },
    },
    "twitter": {
        "engagement_weight": 0.9,
        "view_weight": 0.7,
        "share_weight": 1.6,
        "comment_weight": 1.5,
        "like_weight": 0.7,
        "platform_engagement_factor": 0.9,
        "platform_value_factor": 0.8,
        "metric_mappings": {
            "likes": "favorites",
            "comments": "replies",
            "shares": "retweets",
            "views": "impressions",
        },
    },
    "linkedin": {
        "engagement_weight": 1.1,
        "view_weight": 0.8,
        "share_weight": 2.0,
        "comment_weight": 1.7,
        "like_weight": 0.9,
        "platform_engagement_factor": 0.9,
        "platform_value_factor": 1.5,
        "metric_mappings": {
            "likes": "likes",
            "comments": "comments",
            "shares": "shares",
            "views": "impressions",
        },
    },
}

# Content type value multipliers
CONTENT_TYPE_VALUE_MULTIPLIERS: dict[str, float] = {
    "video": 1.5,
    "short_video": 1.2,
    "photo": 1.0,
    "carousel": 1.3,
    "story": 0.7,
    "post": 1.0,
    "article": 1.4,
    "podcast": 1.8,
    "other": 1.0,
}

# =============================================================================
# AUDIENCE OVERLAP - Estimated share of audience common to two platforms
# =============================================================================
# Keys are alphabetically ordered platform pairs.

DEFAULT_PLATFORM_OVERLAPS: dict[tuple[str, str], float] = {
    ("instagram", "tiktok"): 0.35,
    ("instagram", "youtube"): 0.25,
    ("tiktok", "youtube"): 0.30,
    ("twitter", "youtube"): 0.15,
    ("instagram", "twitter"): 0.20,
    ("linkedin", "twitter"): 0.25,
    ("linkedin", "youtube"): 0.10,
    ("instagram", "linkedin"): 0.10,
    ("linkedin", "tiktok"): 0.05,
    ("tiktok", "twitter"): 0.15,
}

# Typical engagement rate (engagements / views) per platform
DEFAULT_ENGAGEMENT_BENCHMARKS: dict[str, float] = {
    "youtube": 0.04,
    "instagram": 0.06,
    "tiktok": 0.08,
    "twitter": 0.02,
    "linkedin": 0.03,
}
DEFAULT_ENGAGEMENT_BENCHMARK = 0.04
