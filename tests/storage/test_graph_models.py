"""
Test Graph Models
=================
"""

import pytest

from codekg.storage.graph.models import GraphEdge, GraphNode, SubGraph


def _subgraph() -> SubGraph:
    sub = SubGraph()
    for node_id in ("a", "b", "c"):
        sub.add_node(GraphNode(node_id, "Class", {"Class"}, {"name": node_id.upper()}))
    sub.add_edge(GraphEdge("a", "b", "USES"))
    sub.add_edge(GraphEdge("b", "c", "CALLS"))
    return sub


class TestSubGraph:
    """Referential integrity of SubGraph."""

    def test_dangling_edge_rejected(self):
        """Edges must connect nodes already in the subgraph."""
        sub = _subgraph()
        with pytest.raises(ValueError, match="outside the subgraph"):
            sub.add_edge(GraphEdge("a", "zzz", "USES"))

    def test_constructor_validates_edges(self):
        """The constructor applies the same edge check."""
        with pytest.raises(ValueError):
            SubGraph(nodes={}, edges=[GraphEdge("x", "y", "USES")])

    def test_restrict_to_drops_edges(self):
        """Restricting the node set drops edges that lose an endpoint."""
        sub = _subgraph().restrict_to(["a", "b"])

        assert set(sub.nodes) == {"a", "b"}
        assert [e.key for e in sub.edges] == [("a", "USES", "b")]
        assert sub.is_consistent()

    def test_neighbors_and_degree(self):
        """Neighbours and degree ignore edge direction."""
        sub = _subgraph()
        assert sorted(sub.neighbors("b")) == ["a", "c"]
        assert sub.degree("b") == 2
        assert sub.degree("a") == 1

    def test_node_name_falls_back_to_id(self):
        """A node without a name property is named by its id."""
        assert GraphNode("x-1", "Method").name == "x-1"

    def test_to_dict(self):
        """Serialized edges use from/to/type keys."""
        data = _subgraph().to_dict()
        assert len(data["nodes"]) == 3
        assert data["edges"][0] == {"from": "a", "to": "b", "type": "USES", "properties": {}}
