"""
Graph Models
============

Dataclasses for nodes, edges, subgraphs and raw search hits returned by a GraphStore.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple


class SearchSignal(str, Enum):
    """Which search produced a hit."""
    LEXICAL = "lexical"
    VECTOR = "vector"


@dataclass(frozen=True)
class SearchHit:
    """
    Single hit from a lexical or vector search.

    Attributes:
        node_id: Graph node identifier
        score: Raw score from the search backend (higher is better)
        signal: LEXICAL or VECTOR
    """
    node_id: str
    score: float
    signal: SearchSignal


@dataclass
class GraphNode:
    """
    Node of the code graph.

    Attributes:
        id: Unique node identifier
        type: Node type (Method, Class, Interface, ...)
        labels: Graph labels
        properties: Node properties (name, signature, summary, ...)
    """
    id: str
    type: str
    labels: Set[str] = field(default_factory=set)
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.properties.get("name", self.id))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "labels": sorted(self.labels),
            "properties": dict(self.properties),
        }


@dataclass
class GraphEdge:
    """Directed, typed relationship between two nodes."""
    from_id: str
    to_id: str
    type: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.from_id, self.type, self.to_id)

    def other_end(self, node_id: str) -> Optional[str]:
        if node_id == self.from_id:
            return self.to_id
        if node_id == self.to_id:
            return self.from_id
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_id,
            "to": self.to_id,
            "type": self.type,
            "properties": dict(self.properties),
        }


@dataclass
class SubGraph:
    """
    Node map plus edge list.

    Invariant: every edge's endpoints are keys of ``nodes``. ``add_edge``
    enforces it; build subgraphs through the methods, not by appending.
    """
    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    edges: List[GraphEdge] = field(default_factory=list)

    def __post_init__(self):
        for edge in self.edges:
            self._check_edge(edge)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def _check_edge(self, edge: GraphEdge) -> None:
        if edge.from_id not in self.nodes or edge.to_id not in self.nodes:
            raise ValueError(
                f"Edge {edge.from_id} -[{edge.type}]-> {edge.to_id} references a node outside the subgraph"
            )

    def add_node(self, node: GraphNode) -> None:
        self.nodes.setdefault(node.id, node)

    def add_edge(self, edge: GraphEdge) -> None:
        self._check_edge(edge)
        self.edges.append(edge)

    def neighbors(self, node_id: str) -> List[str]:
        result = []
        for edge in self.edges:
            other = edge.other_end(node_id)
            if other is not None and other != node_id:
                result.append(other)
        return result

    def degree(self, node_id: str) -> int:
        return sum(1 for e in self.edges if node_id in (e.from_id, e.to_id))

    def restrict_to(self, node_ids: Iterable[str]) -> "SubGraph":
        """Return a new SubGraph with only the given nodes and the edges between them."""
        keep = set(node_ids)
        nodes = {nid: node for nid, node in self.nodes.items() if nid in keep}
        edges = [e for e in self.edges if e.from_id in nodes and e.to_id in nodes]
        return SubGraph(nodes=nodes, edges=edges)

    def is_consistent(self) -> bool:
        return all(e.from_id in self.nodes and e.to_id in self.nodes for e in self.edges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes.values()],
            "edges": [e.to_dict() for e in self.edges],
        }

    def __repr__(self) -> str:
        return f"<SubGraph(nodes={len(self.nodes)}, edges={len(self.edges)})>"
