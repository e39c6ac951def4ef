"""Shared test fixtures for ReachGraph."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import patch

import pytest

from reachgraph.database.models import ContentNode, DailyMetric
from reachgraph.processing.aggregation import Period
from reachgraph.processing.suggestions import StaticScorer

CREATOR = "creator-1"


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test fresh module-level instances."""
    monkeypatch.setattr("reachgraph.engine._default_engine", None)
    monkeypatch.setattr("reachgraph.processing.graph._default_builder", None)
    monkeypatch.setattr("reachgraph.processing.nodes._default_store", None)
    monkeypatch.setattr("reachgraph.processing.standardization._default_registry", None)


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test_reachgraph.db"


@pytest.fixture
def temp_db(temp_db_path: Path) -> Generator[Path, None, None]:
    """Create a temporary test database with schema, defaults and migrations."""
    from reachgraph.database.connection import initialize_database

    with patch("reachgraph.database.connection.get_db_path", return_value=temp_db_path):
        initialize_database(populate_defaults=True)
        yield temp_db_path


@pytest.fixture
def engine(temp_db: Path):
    """Engine with a deterministic scorer and no suggestions by default."""
    from reachgraph.engine import ReachGraphEngine

    return ReachGraphEngine(scorer=StaticScorer({}))


@pytest.fixture
def make_node(temp_db: Path) -> Callable[..., ContentNode]:
    """Factory that registers content items with unique external IDs."""
    from reachgraph.processing.nodes import NodeStore

    store = NodeStore()
    counter = {"n": 0}

    def _make(
        platform: str = "youtube",
        content_type: str = "video",
        published_at: datetime = datetime(2024, 5, 1, 12, 0),
        creator_id: str = CREATOR,
        title: str = "",
        description: str | None = None,
    ) -> ContentNode:
        counter["n"] += 1
        return store.create_node(
            creator_id,
            platform,
            f"ext-{counter['n']}",
            content_type,
            published_at,
            title=title,
            description=description,
        )

    return _make


@pytest.fixture
def may_period() -> Period:
    """A single past day, so no day is "not yet reported"."""
    return Period(start=date(2024, 5, 1), end=date(2024, 5, 1))


@pytest.fixture
def example_family(make_node: Callable[..., ContentNode]) -> tuple[ContentNode, ContentNode]:
    """
    Root on YouTube (1000 views, 100 engagements) with one Instagram repost
    (500 views, 80 engagements) and a 20% YouTube/Instagram overlap.
    """
    from reachgraph.processing.aggregation import set_platform_overlap
    from reachgraph.processing.graph import GraphBuilder
    from reachgraph.processing.standardization import MetricSync

    root = make_node("youtube", "video", title="Sourdough Guide")
    derivative = make_node("instagram", "short_video", title="Sourdough Guide teaser")

    GraphBuilder().add_edge(root.id, derivative.id, "repost", 0.9)
    set_platform_overlap("youtube", "instagram", 0.2)
    MetricSync().sync(
        [
            DailyMetric(
                content_id=root.id,
                metric_date=date(2024, 5, 1),
                metrics={"views": 1000, "engagements": 100},
            ),
            DailyMetric(
                content_id=derivative.id,
                metric_date=date(2024, 5, 1),
                metrics={"impressions": 500, "engagements": 80},
            ),
        ]
    )
    return root, derivative
