"""Relationship suggestion engine for ReachGraph.

Candidates are scored by an injected RelationshipScorer. Suggestions are
only ever surfaced: accepting one goes back through GraphBuilder.add_edge,
which re-validates against the graph as it is at that moment.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from reachgraph.config import get_settings
from reachgraph.database.models import (
    LONG_FORM_TYPES,
    SHORT_FORM_TYPES,
    SYSTEM_ACTOR,
    ContentNode,
    ContentType,
    RelationshipEdge,
    RelationshipType,
)
from reachgraph.database.queries import list_content_nodes
from reachgraph.exceptions import LowConfidenceError
from reachgraph.processing.graph import EdgeIndex, GraphBuilder, get_graph_builder
from reachgraph.utils.logging import get_logger
from reachgraph.utils.text import significant_words

logger = get_logger(__name__)

PROXIMITY_WINDOW_DAYS = 7
MAX_HEURISTIC_SCORE = 0.99


class RelationshipScorer(ABC):
    """Scores how likely two content items are parent and derivative."""

    @abstractmethod
    def score(self, a: ContentNode, b: ContentNode) -> float:
        """
        Score a pair of content items.

        Returns:
            Confidence in [0, 1] that one is derived from the other.
        """
        pass


def _word_similarity(first: str | None, second: str | None) -> float:
    words_a = set(significant_words(first))
    words_b = set(significant_words(second))
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / max(len(words_a), len(words_b))


def order_by_publication(a: ContentNode, b: ContentNode) -> tuple[ContentNode, ContentNode]:
    """Return (earlier, later); ties are broken by ID."""
    if (a.published_at, a.id) <= (b.published_at, b.id):
        return a, b
    return b, a


class HeuristicScorer(RelationshipScorer):
    """
    Rule-of-thumb scorer for repurposed content.

    Signals, added together and capped at 0.99:
    - shared significant title words (up to 0.3)
    - shared significant description words (up to 0.2)
    - publish-time proximity, fading to 0 over 7 days (up to 0.2)
    - long-form parent with a short-form derivative (0.2)
    - article parent with a post or photo derivative (0.2)
    - YouTube parent with an Instagram or TikTok derivative (0.15)
    - derivative published within 7 days of the parent (0.1)
    """

    def score(self, a: ContentNode, b: ContentNode) -> float:
        parent, child = order_by_publication(a, b)
        score = 0.0

        score += 0.3 * _word_similarity(parent.title, child.title)
        score += 0.2 * _word_similarity(parent.description, child.description)

        days_apart = abs((child.published_at - parent.published_at).total_seconds()) / 86400
        score += 0.2 * max(0.0, (PROXIMITY_WINDOW_DAYS - days_apart) / PROXIMITY_WINDOW_DAYS)

        if parent.content_type in (ContentType.VIDEO, ContentType.PODCAST) and child.content_type in (
            ContentType.SHORT_VIDEO,
            ContentType.PHOTO,
        ):
            score += 0.2

        if parent.content_type == ContentType.ARTICLE and child.content_type in (
            ContentType.POST,
            ContentType.PHOTO,
        ):
            score += 0.2

        if parent.platform == "youtube" and child.platform in ("instagram", "tiktok"):
            score += 0.15

        if days_apart <= PROXIMITY_WINDOW_DAYS:
            score += 0.1

        return round(min(score, MAX_HEURISTIC_SCORE), 4)


class StaticScorer(RelationshipScorer):
    """Deterministic scorer backed by a lookup table of ID pairs."""

    def __init__(self, scores: dict[tuple[str, str], float], default: float = 0.0) -> None:
        self.scores = dict(scores)
        self.default = default

    def score(self, a: ContentNode, b: ContentNode) -> float:
        if (a.id, b.id) in self.scores:
            return self.scores[(a.id, b.id)]
        return self.scores.get((b.id, a.id), self.default)


def infer_relationship_type(parent: ContentNode, child: ContentNode) -> RelationshipType:
    """Guess how a derivative relates to its parent from type and platform."""
    if parent.content_type in LONG_FORM_TYPES and child.content_type in SHORT_FORM_TYPES:
        return RelationshipType.CLIP
    if parent.content_type == child.content_type and parent.platform != child.platform:
        return RelationshipType.REPOST
    if parent.content_type != child.content_type:
        return RelationshipType.ADAPTATION
    return RelationshipType.REFERENCE


@dataclass
class RelationshipSuggestion:
    """A proposed parent -> derivative edge awaiting user acceptance."""

    source_id: str
    target_id: str
    suggested_type: RelationshipType
    confidence: float
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["suggested_type"] = self.suggested_type.value
        return data


class SuggestionEngine:
    """Proposes relationship edges for a content item."""

    def __init__(
        self,
        scorer: RelationshipScorer | None = None,
        graph: GraphBuilder | None = None,
        confidence_threshold: float | None = None,
    ) -> None:
        """
        Initialize the suggestion engine.

        Args:
            scorer: Pair scorer. Defaults to HeuristicScorer.
            graph: Graph builder used for lookups and acceptance.
            confidence_threshold: Minimum confidence. Defaults to settings.
        """
        self.scorer = scorer or HeuristicScorer()
        self.graph = graph or get_graph_builder()
        self.confidence_threshold = (
            confidence_threshold
            if confidence_threshold is not None
            else get_settings().suggestions.confidence_threshold
        )

    def _score(self, a: ContentNode, b: ContentNode) -> float:
        confidence = float(self.scorer.score(a, b))
        if not 0.0 <= confidence <= 1.0:
            clamped = min(max(confidence, 0.0), 1.0)
            logger.warning(
                f"Scorer returned {confidence} for {a.id}/{b.id}, clamping to {clamped}"
            )
            confidence = clamped
        return confidence

    @staticmethod
    def _check_threshold(confidence: float, threshold: float) -> None:
        if confidence < threshold:
            raise LowConfidenceError(confidence, threshold)

    @staticmethod
    def _blocked(index: EdgeIndex, parent_id: str, child_id: str) -> str | None:
        """Why an edge could not be added right now, or None."""
        existing_parent = index.parent_of(child_id)
        if existing_parent is not None and existing_parent != parent_id:
            return f"{child_id} already has parent {existing_parent}"
        if child_id in index.ancestors(parent_id):
            return f"{child_id} is an ancestor of {parent_id}"
        return None

    def suggest_relationships(
        self,
        content_id: str,
        candidate_pool: Iterable[ContentNode] | None = None,
        confidence_threshold: float | None = None,
    ) -> list[RelationshipSuggestion]:
        """
        Suggest edges between a content item and candidates.

        Args:
            content_id: Content item to find relatives for.
            candidate_pool: Candidates to score. Defaults to the creator's
                other content.
            confidence_threshold: Minimum confidence to keep.

        Returns:
            Suggestions sorted by descending confidence, at most one per
            derivative.

        Raises:
            InvalidReferenceError: If the content item does not exist.
        """
        threshold = (
            confidence_threshold if confidence_threshold is not None else self.confidence_threshold
        )
        node = self.graph.require_node(content_id)
        index = self.graph.load_index(node.creator_id)

        if candidate_pool is None:
            candidate_pool = list_content_nodes(creator_id=node.creator_id)

        best: dict[str, RelationshipSuggestion] = {}

        for candidate in candidate_pool:
            if candidate.id == node.id:
                continue
            if candidate.creator_id != node.creator_id:
                logger.debug(f"Ignoring candidate {candidate.id} from another creator")
                continue
            if (node.id, candidate.id) in index.edges or (candidate.id, node.id) in index.edges:
                continue

            try:
                confidence = self._score(node, candidate)
                self._check_threshold(confidence, threshold)
            except LowConfidenceError as e:
                logger.debug(f"Dropping candidate {candidate.id}: {e}")
                continue

            parent, child = order_by_publication(node, candidate)
            reason = self._blocked(index, parent.id, child.id)
            if reason is not None:
                logger.debug(f"Dropping candidate {candidate.id}: {reason}")
                continue

            suggestion = RelationshipSuggestion(
                source_id=parent.id,
                target_id=child.id,
                suggested_type=infer_relationship_type(parent, child),
                confidence=confidence,
                reasoning=self._describe(parent, child),
            )

            current = best.get(child.id)
            if current is None or suggestion.confidence > current.confidence:
                best[child.id] = suggestion

        suggestions = sorted(best.values(), key=lambda s: (-s.confidence, s.target_id))
        logger.debug(f"{len(suggestions)} suggestion(s) for {content_id} at threshold {threshold}")
        return suggestions

    @staticmethod
    def _describe(parent: ContentNode, child: ContentNode) -> str:
        days = (child.published_at - parent.published_at).days
        return (
            f"{child.content_type.value} on {child.platform} published {days} day(s) after "
            f"{parent.content_type.value} on {parent.platform}"
        )

    def accept_suggestion(
        self, suggestion: RelationshipSuggestion, created_by: str = SYSTEM_ACTOR
    ) -> RelationshipEdge:
        """Apply a suggestion. The graph re-validates it and may reject it."""
        return self.graph.add_edge(
            suggestion.source_id,
            suggestion.target_id,
            suggestion.suggested_type,
            suggestion.confidence,
            created_by,
        )
