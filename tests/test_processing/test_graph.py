"""Tests for the relationship graph builder."""

import random
import threading
from datetime import datetime, timedelta

import pytest

from reachgraph.database.models import RelationshipType
from reachgraph.database.queries import GRAPH_SCOPE, get_version
from reachgraph.exceptions import (
    CycleError,
    FamilyTooDeepError,
    GraphError,
    InvalidReferenceError,
    MultipleParentsError,
)
from reachgraph.processing.graph import EdgeIndex, GraphBuilder

CREATOR = "creator-1"


@pytest.fixture
def graph(temp_db) -> GraphBuilder:
    return GraphBuilder()


class TestEdgeIndex:
    """Tests for the in-memory edge index."""

    def test_ancestors_nearest_first(self, graph, make_node) -> None:
        """Test the ancestor walk order."""
        a, b, c = make_node(), make_node(), make_node()
        graph.add_edge(a.id, b.id, "clip")
        graph.add_edge(b.id, c.id, "clip")

        index = graph.load_index(CREATOR)

        assert index.ancestors(c.id) == [b.id, a.id]
        assert index.root_of(c.id) == a.id
        assert index.root_of(a.id) == a.id
        assert index.children_of(a.id) == [b.id]
        assert index.version == 2

    def test_empty_index(self) -> None:
        """Test lookups on an index without edges."""
        index = EdgeIndex.from_edges("nobody", [])
        assert index.parent_of("x") is None
        assert index.children_of("x") == []
        assert index.ancestors("x") == []


class TestAddEdge:
    """Tests for adding relationships."""

    def test_add_edge(self, graph, make_node) -> None:
        """Test a valid edge is stored and bumps the graph version."""
        root, clip = make_node(), make_node("tiktok", "short_video")

        edge = graph.add_edge(root.id, clip.id, "clip", 0.8, created_by="user-7")

        assert edge.relationship_type == RelationshipType.CLIP
        assert edge.confidence == 0.8
        assert edge.created_by == "user-7"
        assert graph.get_parent(clip.id).source_id == root.id
        assert get_version(GRAPH_SCOPE, CREATOR) == 1

    def test_missing_node(self, graph, make_node) -> None:
        """Test an unknown node is rejected."""
        root = make_node()

        with pytest.raises(InvalidReferenceError) as exc_info:
            graph.add_edge(root.id, "does-not-exist", "repost")

        assert exc_info.value.content_id == "does-not-exist"

    def test_cross_creator_rejected(self, graph, make_node) -> None:
        """Test nodes of different creators cannot be linked."""
        mine = make_node()
        theirs = make_node(creator_id="creator-2")

        with pytest.raises(InvalidReferenceError):
            graph.add_edge(mine.id, theirs.id, "repost")

    def test_second_parent_rejected(self, graph, make_node) -> None:
        """Test a node cannot get a second parent."""
        a, b, child = make_node(), make_node(), make_node()
        graph.add_edge(a.id, child.id, "repost")

        with pytest.raises(MultipleParentsError) as exc_info:
            graph.add_edge(b.id, child.id, "repost")

        assert exc_info.value.existing_parent_id == a.id
        assert exc_info.value.target_id == child.id

    def test_reverse_edge_is_cycle(self, graph, make_node) -> None:
        """Test linking a derivative back to its parent."""
        r, d = make_node(), make_node("instagram")
        graph.add_edge(r.id, d.id, "repost", 0.9)

        with pytest.raises(CycleError):
            graph.add_edge(d.id, r.id, "repost", 0.9)

    def test_longer_cycle(self, graph, make_node) -> None:
        """Test a cycle through several nodes is caught."""
        a, b, c = make_node(), make_node(), make_node()
        graph.add_edge(a.id, b.id, "clip")
        graph.add_edge(b.id, c.id, "clip")

        with pytest.raises(CycleError):
            graph.add_edge(c.id, a.id, "clip")

    def test_self_loop(self, graph, make_node) -> None:
        """Test a node cannot be its own parent."""
        a = make_node()
        with pytest.raises(CycleError):
            graph.add_edge(a.id, a.id, "reference")

    def test_multiple_parents_checked_before_cycle(self, graph, make_node) -> None:
        """Test the error order when both rules would fail."""
        a, b = make_node(), make_node()
        graph.add_edge(a.id, b.id, "clip")
        other = make_node()
        graph.add_edge(other.id, a.id, "clip")

        # a already has parent `other`, and b -> a would also close a cycle
        with pytest.raises(MultipleParentsError):
            graph.add_edge(b.id, a.id, "clip")

    def test_identical_edge_is_noop(self, graph, make_node) -> None:
        """Test re-adding the same edge changes nothing."""
        a, b = make_node(), make_node()
        first = graph.add_edge(a.id, b.id, "repost", 0.7)

        again = graph.add_edge(a.id, b.id, "repost", 0.7)

        assert again.created_at == first.created_at
        assert get_version(GRAPH_SCOPE, CREATOR) == 1

    def test_changed_attributes_replace_edge(self, graph, make_node) -> None:
        """Test a differing type recreates the edge."""
        a, b = make_node(), make_node()
        graph.add_edge(a.id, b.id, "repost", 0.7)

        updated = graph.add_edge(a.id, b.id, "adaptation", 0.95)

        assert updated.relationship_type == RelationshipType.ADAPTATION
        assert graph.get_parent(b.id).confidence == 0.95
        assert len(graph.get_relationships(a.id)) == 1
        assert get_version(GRAPH_SCOPE, CREATOR) == 2

    def test_confidence_out_of_range(self, graph, make_node) -> None:
        """Test confidence must be a probability."""
        a, b = make_node(), make_node()
        with pytest.raises(ValueError):
            graph.add_edge(a.id, b.id, "repost", 1.5)


class TestUpdateAndRemove:
    """Tests for changing and removing relationships."""

    def test_update_edge(self, graph, make_node) -> None:
        """Test updating only the confidence keeps the type."""
        a, b = make_node(), make_node()
        graph.add_edge(a.id, b.id, "clip", 0.6)

        edge = graph.update_edge(a.id, b.id, confidence=0.9)

        assert edge.relationship_type == RelationshipType.CLIP
        assert edge.confidence == 0.9

    def test_update_missing_edge(self, graph, make_node) -> None:
        """Test updating an edge that does not exist."""
        a, b = make_node(), make_node()
        with pytest.raises(InvalidReferenceError):
            graph.update_edge(a.id, b.id, confidence=0.9)

    def test_remove_edge_splits_family(self, graph, make_node) -> None:
        """Test the derivative's subtree becomes its own family."""
        a, b, c = make_node(), make_node(), make_node()
        graph.add_edge(a.id, b.id, "clip")
        graph.add_edge(b.id, c.id, "clip")

        removed = graph.remove_edge(a.id, b.id)

        assert removed.pair == (a.id, b.id)
        assert graph.get_family(c.id).root_id == b.id
        assert len(graph.get_family(a.id)) == 1
        assert get_version(GRAPH_SCOPE, CREATOR) == 3

    def test_remove_missing_edge(self, graph, make_node) -> None:
        """Test removing an edge that does not exist."""
        a, b = make_node(), make_node()
        with pytest.raises(InvalidReferenceError):
            graph.remove_edge(a.id, b.id)


class TestFamilies:
    """Tests for family traversal."""

    def test_family_from_any_member(self, graph, make_node) -> None:
        """Test traversal starts from the root whichever member is given."""
        root = make_node()
        clip1 = make_node("tiktok", "short_video")
        clip2 = make_node("instagram", "short_video")
        grandchild = make_node("twitter", "post")
        graph.add_edge(root.id, clip1.id, "clip")
        graph.add_edge(root.id, clip2.id, "clip")
        graph.add_edge(clip1.id, grandchild.id, "repost")

        family = graph.get_family(grandchild.id)

        assert family.root_id == root.id
        assert len(family) == 4
        assert family.depths[grandchild.id] == 2
        assert family.depth == 2
        assert family.platforms == ["instagram", "tiktok", "twitter", "youtube"]
        assert len(family.edges) == 3
        assert family.graph_version == 3

    def test_standalone_node_is_family(self, graph, make_node) -> None:
        """Test a node without edges is a family of one."""
        lone = make_node()
        family = graph.get_family(lone.id)
        assert family.root_id == lone.id
        assert family.node_ids == [lone.id]
        assert family.edges == []

    def test_too_deep(self, make_node, temp_db) -> None:
        """Test families deeper than the limit are refused."""
        graph = GraphBuilder(max_depth=2)
        chain = [make_node() for _ in range(4)]
        for parent, child in zip(chain, chain[1:]):
            graph.add_edge(parent.id, child.id, "repost")

        with pytest.raises(FamilyTooDeepError) as exc_info:
            graph.get_family(chain[0].id)

        assert exc_info.value.max_depth == 2
        assert len(graph.get_family(chain[0].id, max_depth=3)) == 4

    def test_list_roots_and_families(self, graph, make_node) -> None:
        """Test every root is listed, standalone items included."""
        a, b, lone = make_node(), make_node(), make_node()
        graph.add_edge(a.id, b.id, "clip")

        roots = {node.id for node in graph.list_roots(CREATOR)}
        families = graph.get_families(CREATOR)

        assert roots == {a.id, lone.id}
        assert sorted(len(f) for f in families) == [1, 2]

    def test_missing_node_family(self, graph) -> None:
        """Test asking for the family of an unknown node."""
        with pytest.raises(InvalidReferenceError):
            graph.get_family("nope")


    def test_families_read_nodes_in_edge_snapshot(self, graph, make_node, monkeypatch) -> None:
        """Test the node listing shares the transaction of the edge snapshot."""
        from reachgraph.processing import graph as graph_module

        a, b = make_node(), make_node()
        graph.add_edge(a.id, b.id, "clip")
        seen = []
        original = graph_module.list_content_nodes

        def recording(*args, **kwargs):
            seen.append(kwargs.get("conn"))
            return original(*args, **kwargs)

        monkeypatch.setattr(graph_module, "list_content_nodes", recording)

        graph.get_families(CREATOR)
        graph.list_roots(CREATOR)

        assert len(seen) == 2
        assert all(conn is not None for conn in seen)


class TestLineageQueries:
    """Tests for common ancestors and paths between items."""

    @pytest.fixture
    def tree(self, graph, make_node):
        root = make_node()
        clip1 = make_node("tiktok", "short_video")
        clip2 = make_node("instagram", "short_video")
        grandchild = make_node("twitter", "post")
        graph.add_edge(root.id, clip1.id, "clip")
        graph.add_edge(root.id, clip2.id, "clip")
        graph.add_edge(clip1.id, grandchild.id, "repost")
        return root, clip1, clip2, grandchild

    def test_common_ancestor_of_cousins(self, graph, tree) -> None:
        """Test siblings in different branches meet at the root."""
        root, _, clip2, grandchild = tree
        assert graph.common_ancestor([grandchild.id, clip2.id]).id == root.id

    def test_common_ancestor_includes_self(self, graph, tree) -> None:
        """Test a node is its own ancestor."""
        _, clip1, _, grandchild = tree
        assert graph.common_ancestor([clip1.id, grandchild.id]).id == clip1.id
        assert graph.common_ancestor([grandchild.id]).id == grandchild.id

    def test_common_ancestor_of_three(self, graph, tree) -> None:
        """Test more than two items."""
        root, clip1, clip2, grandchild = tree
        assert graph.common_ancestor([clip1.id, clip2.id, grandchild.id]).id == root.id

    def test_no_common_ancestor(self, graph, tree, make_node) -> None:
        """Test separate families and other creators share nothing."""
        root, _, _, _ = tree
        lone = make_node()
        stranger = make_node(creator_id="creator-2")

        assert graph.common_ancestor([root.id, lone.id]) is None
        assert graph.common_ancestor([root.id, stranger.id]) is None
        assert graph.common_ancestor([]) is None

    def test_common_ancestor_missing_node(self, graph, tree) -> None:
        """Test unknown IDs are rejected."""
        root, _, _, _ = tree
        with pytest.raises(InvalidReferenceError):
            graph.common_ancestor([root.id, "nope"])

    def test_path_across_branches(self, graph, tree) -> None:
        """Test the path climbs to the shared ancestor and back down."""
        root, clip1, clip2, grandchild = tree

        path = graph.path_between(grandchild.id, clip2.id)

        assert [node.id for node in path] == [grandchild.id, clip1.id, root.id, clip2.id]

    def test_path_down_and_up(self, graph, tree) -> None:
        """Test paths along one branch in either direction."""
        root, clip1, _, grandchild = tree

        assert [n.id for n in graph.path_between(root.id, grandchild.id)] == [
            root.id,
            clip1.id,
            grandchild.id,
        ]
        assert [n.id for n in graph.path_between(grandchild.id, root.id)] == [
            grandchild.id,
            clip1.id,
            root.id,
        ]

    def test_path_to_self(self, graph, tree) -> None:
        """Test a node is a path of one."""
        root, _, _, _ = tree
        assert [n.id for n in graph.path_between(root.id, root.id)] == [root.id]

    def test_no_path_between_families(self, graph, tree, make_node) -> None:
        """Test unrelated items have no path."""
        root, _, _, _ = tree
        assert graph.path_between(root.id, make_node().id) == []

    def test_path_missing_node(self, graph, tree) -> None:
        """Test unknown IDs are rejected."""
        root, _, _, _ = tree
        with pytest.raises(InvalidReferenceError):
            graph.path_between("nope", root.id)

class TestGraphInvariants:
    """Property-style checks of the forest invariants."""

    def test_random_insertions_stay_acyclic(self, graph, make_node) -> None:
        """Test random edge attempts never produce two parents or a cycle."""
        rng = random.Random(20240501)
        start = datetime(2024, 5, 1)
        nodes = [make_node(published_at=start + timedelta(hours=i)) for i in range(12)]
        types = list(RelationshipType)

        for _ in range(150):
            source, target = rng.sample(nodes, 2)
            try:
                graph.add_edge(source.id, target.id, rng.choice(types), round(rng.random(), 2))
            except GraphError:
                pass

            index = graph.load_index(CREATOR)
            assert len(index.child_to_parent) == len(index.edges)
            for node in nodes:
                seen = {node.id}
                current = index.parent_of(node.id)
                while current is not None:
                    assert current not in seen
                    seen.add(current)
                    current = index.parent_of(current)

        # Every node still resolves to a family whose members sum to all nodes
        families = graph.get_families(CREATOR, max_depth=len(nodes))
        assert sum(len(f) for f in families) == len(nodes)

    def test_concurrent_parents_for_one_target(self, graph, make_node) -> None:
        """Test racing add_edge calls leave exactly one parent."""
        target = make_node("instagram", "short_video")
        parents = [make_node() for _ in range(6)]
        barrier = threading.Barrier(len(parents))
        outcomes: list[str] = []
        lock = threading.Lock()

        def attempt(parent_id: str) -> None:
            barrier.wait()
            try:
                graph.add_edge(parent_id, target.id, "repost")
                result = "ok"
            except MultipleParentsError:
                result = "rejected"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt, args=(p.id,)) for p in parents]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("rejected") == len(parents) - 1
        assert len(graph.load_index(CREATOR).edges) == 1
        assert get_version(GRAPH_SCOPE, CREATOR) == 1
