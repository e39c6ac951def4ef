"""Relationship graph builder for ReachGraph.

Content items are stored as an arena of ContentNode records keyed by ID.
Relationships live in a separate edge index (child -> parent, parent ->
children). Each creator's edges must form a forest: every node has at most
one parent and no node is its own ancestor.

Edge mutations are serialized per creator. A process-local lock orders
callers in this process, and a BEGIN IMMEDIATE transaction orders them
across processes. The UNIQUE(target_id) index is the last line: even if two
writers slipped past validation, only one parent edge could be stored.
"""

from __future__ import annotations

import sqlite3
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generator

from reachgraph.config import get_settings
from reachgraph.database.connection import get_connection
from reachgraph.database.models import SYSTEM_ACTOR, ContentNode, RelationshipEdge, RelationshipType
from reachgraph.database.queries import (
    GRAPH_SCOPE,
    bump_version,
    delete_edge,
    get_content_node,
    get_content_nodes,
    get_edges_for_content,
    get_edges_for_creator,
    get_parent_edge,
    get_version,
    insert_edge,
    list_content_nodes,
)
from reachgraph.exceptions import (
    CycleError,
    FamilyTooDeepError,
    GraphError,
    InvalidReferenceError,
    MultipleParentsError,
)
from reachgraph.utils.logging import get_logger

logger = get_logger(__name__)

_creator_locks: dict[str, threading.Lock] = {}
_creator_locks_guard = threading.Lock()


def _creator_lock(creator_id: str) -> threading.Lock:
    with _creator_locks_guard:
        if creator_id not in _creator_locks:
            _creator_locks[creator_id] = threading.Lock()
        return _creator_locks[creator_id]


@dataclass
class EdgeIndex:
    """Snapshot of one creator's edges, indexed both ways."""

    creator_id: str
    version: int = 0
    child_to_parent: dict[str, str] = field(default_factory=dict)
    parent_to_children: dict[str, set[str]] = field(default_factory=dict)
    edges: dict[tuple[str, str], RelationshipEdge] = field(default_factory=dict)

    @classmethod
    def from_edges(
        cls, creator_id: str, edges: list[RelationshipEdge], version: int = 0
    ) -> EdgeIndex:
        """Build an index from a list of edges."""
        index = cls(creator_id=creator_id, version=version)
        for edge in edges:
            index.child_to_parent[edge.target_id] = edge.source_id
            index.parent_to_children.setdefault(edge.source_id, set()).add(edge.target_id)
            index.edges[edge.pair] = edge
        return index

    def parent_of(self, node_id: str) -> str | None:
        """Get a node's parent ID."""
        return self.child_to_parent.get(node_id)

    def children_of(self, node_id: str) -> list[str]:
        """Get a node's children in a stable order."""
        return sorted(self.parent_to_children.get(node_id, ()))

    def ancestors(self, node_id: str) -> list[str]:
        """Walk parent links upwards, nearest ancestor first."""
        chain: list[str] = []
        seen = {node_id}
        current = self.child_to_parent.get(node_id)
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            current = self.child_to_parent.get(current)
        return chain

    def root_of(self, node_id: str) -> str:
        """Get the root of the family containing a node."""
        chain = self.ancestors(node_id)
        return chain[-1] if chain else node_id


def _chain_to(index: EdgeIndex, node_id: str, ancestor_id: str) -> list[str]:
    chain = [node_id, *index.ancestors(node_id)]
    return chain[: chain.index(ancestor_id) + 1]


def _lowest_common(index: EdgeIndex, node_ids: list[str]) -> str | None:
    first, *rest = node_ids
    shared = [first, *index.ancestors(first)]
    for node_id in rest:
        lineage = {node_id, *index.ancestors(node_id)}
        shared = [candidate for candidate in shared if candidate in lineage]
    return shared[0] if shared else None


@dataclass
class ContentFamily:
    """A root content item plus every derivative reachable from it."""

    root_id: str
    creator_id: str
    nodes: dict[str, ContentNode]
    edges: list[RelationshipEdge]
    depths: dict[str, int]
    graph_version: int = 0

    @property
    def node_ids(self) -> list[str]:
        """Node IDs in traversal order."""
        return list(self.depths)

    @property
    def root(self) -> ContentNode:
        return self.nodes[self.root_id]

    @property
    def platforms(self) -> list[str]:
        """Distinct platforms in the family."""
        return sorted({node.platform for node in self.nodes.values()})

    @property
    def depth(self) -> int:
        """Deepest level below the root."""
        return max(self.depths.values(), default=0)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.depths

    def __len__(self) -> int:
        return len(self.depths)


class GraphBuilder:
    """Maintains the parent -> derivative edges between content nodes."""

    def __init__(
        self,
        max_depth: int | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        """
        Initialize the graph builder.

        Args:
            max_depth: Deepest family level get_family will traverse.
            lock_timeout: Seconds to wait for a creator's mutation lock.
        """
        settings = get_settings().graph
        self.max_depth = max_depth if max_depth is not None else settings.max_family_depth
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None else settings.lock_timeout_seconds
        )

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def load_index(self, creator_id: str, conn: sqlite3.Connection | None = None) -> EdgeIndex:
        """
        Read a creator's edge set and graph version as one snapshot.

        Args:
            creator_id: Creator whose graph to load.
            conn: Open transaction to read through. Without one, a read
                transaction is opened so both reads see the same state.
        """
        if conn is not None:
            return EdgeIndex.from_edges(
                creator_id,
                get_edges_for_creator(creator_id, conn=conn),
                get_version(GRAPH_SCOPE, creator_id, conn=conn),
            )

        with get_connection(begin="DEFERRED") as read_conn:
            return self.load_index(creator_id, conn=read_conn)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @contextmanager
    def _mutation(self, creator_id: str) -> Generator[sqlite3.Connection, None, None]:
        lock = _creator_lock(creator_id)
        if not lock.acquire(timeout=self.lock_timeout):
            raise GraphError(f"Timed out waiting for the graph lock of creator {creator_id}")
        try:
            with get_connection(begin="IMMEDIATE") as conn:
                yield conn
        finally:
            lock.release()

    def require_node(self, content_id: str, conn: sqlite3.Connection | None = None) -> ContentNode:
        """Get a node or raise InvalidReferenceError."""
        node = get_content_node(content_id, conn=conn)
        if node is None:
            raise InvalidReferenceError(f"Content {content_id} does not exist", content_id)
        return node

    def add_edge(
        self,
        source_id: str,
        target_id: str,
        relationship_type: RelationshipType | str,
        confidence: float = 1.0,
        created_by: str = SYSTEM_ACTOR,
    ) -> RelationshipEdge:
        """
        Link a parent content item to a derivative.

        Validation runs in this order:
        1. both nodes exist and belong to the same creator;
        2. the target has no other parent;
        3. the edge does not close a cycle;
        4. an identical existing edge is returned unchanged, a differing one
           is replaced through update_edge.

        Raises:
            InvalidReferenceError: Missing node or nodes of different creators.
            MultipleParentsError: Target already has a different parent.
            CycleError: Target is the source or one of its ancestors.
        """
        relationship_type = RelationshipType(relationship_type)
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"confidence must be between 0 and 1, got {confidence}")

        creator_id = self.require_node(source_id).creator_id

        with self._mutation(creator_id) as conn:
            source = self.require_node(source_id, conn)
            target = self.require_node(target_id, conn)
            if source.creator_id != target.creator_id:
                raise InvalidReferenceError(
                    f"Content {source_id} and {target_id} belong to different creators",
                    target_id,
                )

            index = self.load_index(creator_id, conn=conn)

            parent_id = index.parent_of(target_id)
            if parent_id is not None and parent_id != source_id:
                raise MultipleParentsError(target_id, parent_id)

            if target_id == source_id or target_id in index.ancestors(source_id):
                raise CycleError(source_id, target_id)

            existing = index.edges.get((source_id, target_id))
            if existing is not None:
                if existing.same_attributes(relationship_type, confidence):
                    logger.debug(f"Edge {source_id} -> {target_id} already present")
                    return existing
                return self._replace_edge(conn, existing, relationship_type, confidence, created_by)

            edge = RelationshipEdge(
                source_id=source_id,
                target_id=target_id,
                creator_id=creator_id,
                relationship_type=relationship_type,
                confidence=confidence,
                created_by=created_by,
            )
            self._insert(conn, edge)
            version = bump_version(GRAPH_SCOPE, creator_id, conn=conn)

        logger.info(
            f"Linked {source_id} -> {target_id} as {relationship_type.value} "
            f"({confidence:.2f}, by {created_by}, graph version {version})"
        )
        return edge

    def _insert(self, conn: sqlite3.Connection, edge: RelationshipEdge) -> None:
        try:
            insert_edge(edge, conn=conn)
        except sqlite3.IntegrityError as e:
            existing = get_parent_edge(edge.target_id, conn=conn)
            if existing is not None and existing.source_id != edge.source_id:
                raise MultipleParentsError(edge.target_id, existing.source_id) from e
            raise

    def _replace_edge(
        self,
        conn: sqlite3.Connection,
        existing: RelationshipEdge,
        relationship_type: RelationshipType,
        confidence: float,
        created_by: str,
    ) -> RelationshipEdge:
        delete_edge(existing.source_id, existing.target_id, conn=conn)
        edge = RelationshipEdge(
            source_id=existing.source_id,
            target_id=existing.target_id,
            creator_id=existing.creator_id,
            relationship_type=relationship_type,
            confidence=confidence,
            created_by=created_by,
        )
        self._insert(conn, edge)
        version = bump_version(GRAPH_SCOPE, existing.creator_id, conn=conn)
        logger.info(
            f"Replaced edge {edge.source_id} -> {edge.target_id}: "
            f"{existing.relationship_type.value} -> {relationship_type.value} "
            f"({confidence:.2f}, graph version {version})"
        )
        return edge

    def update_edge(
        self,
        source_id: str,
        target_id: str,
        relationship_type: RelationshipType | str | None = None,
        confidence: float | None = None,
        created_by: str = SYSTEM_ACTOR,
    ) -> RelationshipEdge:
        """
        Change the type or confidence of an edge by deleting and recreating it.

        Raises:
            InvalidReferenceError: If the edge does not exist.
        """
        creator_id = self.require_node(source_id).creator_id

        with self._mutation(creator_id) as conn:
            index = self.load_index(creator_id, conn=conn)
            existing = index.edges.get((source_id, target_id))
            if existing is None:
                raise InvalidReferenceError(
                    f"No relationship {source_id} -> {target_id}", target_id
                )

            new_type = (
                RelationshipType(relationship_type)
                if relationship_type is not None
                else existing.relationship_type
            )
            new_confidence = confidence if confidence is not None else existing.confidence
            if not 0.0 <= new_confidence <= 1.0:
                raise ValueError(f"confidence must be between 0 and 1, got {new_confidence}")

            if existing.same_attributes(new_type, new_confidence):
                return existing
            return self._replace_edge(conn, existing, new_type, new_confidence, created_by)

    def remove_edge(self, source_id: str, target_id: str) -> RelationshipEdge:
        """
        Delete an edge. The target's subtree becomes its own family.

        Raises:
            InvalidReferenceError: If the edge does not exist.
        """
        creator_id = self.require_node(source_id).creator_id

        with self._mutation(creator_id) as conn:
            index = self.load_index(creator_id, conn=conn)
            existing = index.edges.get((source_id, target_id))
            if existing is None:
                raise InvalidReferenceError(
                    f"No relationship {source_id} -> {target_id}", target_id
                )
            delete_edge(source_id, target_id, conn=conn)
            version = bump_version(GRAPH_SCOPE, creator_id, conn=conn)

        logger.info(f"Removed edge {source_id} -> {target_id} (graph version {version})")
        return existing

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_family(self, node_id: str, max_depth: int | None = None) -> ContentFamily:
        """
        Get the family containing a node.

        Walks to the root first, then traverses breadth-first over one edge
        snapshot, so a concurrent mutation is seen entirely or not at all.

        Args:
            node_id: Any node of the family.
            max_depth: Override for the configured maximum depth.

        Raises:
            InvalidReferenceError: If the node does not exist.
            FamilyTooDeepError: If the family is deeper than the limit.
        """
        node = self.require_node(node_id)
        index = self.load_index(node.creator_id)
        return self._build_family(index, index.root_of(node_id), max_depth)

    def get_families(self, creator_id: str, max_depth: int | None = None) -> list[ContentFamily]:
        """Get every family of a creator from a single snapshot."""
        with get_connection(begin="DEFERRED") as conn:
            index = self.load_index(creator_id, conn=conn)
            nodes = {node.id: node for node in list_content_nodes(creator_id=creator_id, conn=conn)}
        return [
            self._build_family(index, node_id, max_depth, nodes)
            for node_id in nodes
            if index.parent_of(node_id) is None
        ]

    def _build_family(
        self,
        index: EdgeIndex,
        root_id: str,
        max_depth: int | None = None,
        nodes: dict[str, ContentNode] | None = None,
    ) -> ContentFamily:
        limit = max_depth if max_depth is not None else self.max_depth
        depths: dict[str, int] = {root_id: 0}
        edges: list[RelationshipEdge] = []
        queue = deque([root_id])

        while queue:
            current = queue.popleft()
            for child_id in index.children_of(current):
                if child_id in depths:
                    continue
                depth = depths[current] + 1
                if depth > limit:
                    raise FamilyTooDeepError(root_id, limit)
                depths[child_id] = depth
                edges.append(index.edges[(current, child_id)])
                queue.append(child_id)

        if nodes is None:
            nodes = get_content_nodes(list(depths))
        family_nodes = {node_id: nodes[node_id] for node_id in depths if node_id in nodes}

        return ContentFamily(
            root_id=root_id,
            creator_id=index.creator_id,
            nodes=family_nodes,
            edges=edges,
            depths=depths,
            graph_version=index.version,
        )

    def get_relationships(self, content_id: str) -> list[RelationshipEdge]:
        """
        Get the edges that start or end at a node.

        Raises:
            InvalidReferenceError: If the node does not exist.
        """
        self.require_node(content_id)
        return get_edges_for_content(content_id)

    def get_parent(self, content_id: str) -> RelationshipEdge | None:
        """Get the edge from a node's parent, if it has one."""
        self.require_node(content_id)
        return get_parent_edge(content_id)

    def list_roots(self, creator_id: str) -> list[ContentNode]:
        """Get every family root of a creator, standalone items included."""
        with get_connection(begin="DEFERRED") as conn:
            index = self.load_index(creator_id, conn=conn)
            nodes = list_content_nodes(creator_id=creator_id, conn=conn)
        return [node for node in nodes if index.parent_of(node.id) is None]

    def common_ancestor(self, content_ids: list[str]) -> ContentNode | None:
        """
        Get the lowest node that is an ancestor of every given node.

        A node counts as its own ancestor, so one ID returns that node and
        a parent and its child return the parent.

        Returns:
            The shared ancestor, or None when the nodes are in different
            families or no IDs are given.

        Raises:
            InvalidReferenceError: If any node does not exist.
        """
        if not content_ids:
            return None

        with get_connection(begin="DEFERRED") as conn:
            nodes = [self.require_node(content_id, conn=conn) for content_id in content_ids]
            creators = {node.creator_id for node in nodes}
            if len(creators) > 1:
                return None

            index = self.load_index(creators.pop(), conn=conn)
            ancestor_id = _lowest_common(index, content_ids)
            if ancestor_id is None:
                return None
            return self.require_node(ancestor_id, conn=conn)

    def path_between(self, first_id: str, second_id: str) -> list[ContentNode]:
        """
        Get the chain of nodes linking two items, both ends included.

        Edges are followed in either direction: up from the first item to
        the lowest shared ancestor, then down to the second.

        Returns:
            Nodes from first_id to second_id, or an empty list when the
            items are not in the same family.

        Raises:
            InvalidReferenceError: If either node does not exist.
        """
        with get_connection(begin="DEFERRED") as conn:
            first = self.require_node(first_id, conn=conn)
            second = self.require_node(second_id, conn=conn)
            if first.creator_id != second.creator_id:
                return []

            index = self.load_index(first.creator_id, conn=conn)
            ancestor_id = _lowest_common(index, [first_id, second_id])
            if ancestor_id is None:
                return []

            up = _chain_to(index, first_id, ancestor_id)
            down = _chain_to(index, second_id, ancestor_id)
            path_ids = up + down[-2::-1]
            nodes = get_content_nodes(path_ids, conn=conn)

        return [nodes[node_id] for node_id in path_ids]


_default_builder: GraphBuilder | None = None


def get_graph_builder() -> GraphBuilder:
    """Get the default graph builder instance."""
    global _default_builder
    if _default_builder is None:
        _default_builder = GraphBuilder()
    return _default_builder
