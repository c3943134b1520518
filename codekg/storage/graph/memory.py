"""
In-Memory GraphStore
====================

Dict-backed GraphStore for tests and small local graphs.

Nodes, edges and embeddings live in one owned store; a re-entrant lock guards
every read and write, so the store can be populated from one thread while
pipeline runs read from another.

Lexical scoring per term (best match over name, signature and text fields):
- exact name match: 1.0
- name prefix: 0.8
- wildcard (``*``/``?``) name match: 0.7
- substring of signature or text: 0.5
- fuzzy name match (difflib ratio >= 0.8): 0.4 * ratio

A node's lexical score is the sum over terms.
"""

import fnmatch
import threading
from difflib import SequenceMatcher
from typing import Dict, Iterable, List, Optional, Sequence

from codekg.similarity import cosine_similarity
from codekg.storage.graph.models import GraphEdge, GraphNode, SearchHit, SearchSignal
from codekg.storage.graph.store import GraphStore

EXACT_SCORE = 1.0
PREFIX_SCORE = 0.8
WILDCARD_SCORE = 0.7
TEXT_SCORE = 0.5
FUZZY_FACTOR = 0.4
FUZZY_MIN_RATIO = 0.8

TEXT_PROPERTIES = ("signature", "summary", "description", "content")


def _term_score(term: str, node: GraphNode) -> float:
    needle = term.lower()
    name = node.name.lower()

    if "*" in needle or "?" in needle:
        return WILDCARD_SCORE if fnmatch.fnmatchcase(name, needle) else 0.0
    if name == needle:
        return EXACT_SCORE
    if name.startswith(needle):
        return PREFIX_SCORE

    for prop in TEXT_PROPERTIES:
        value = node.properties.get(prop)
        if value and needle in str(value).lower():
            return TEXT_SCORE

    ratio = SequenceMatcher(None, needle, name).ratio()
    if ratio >= FUZZY_MIN_RATIO:
        return FUZZY_FACTOR * ratio
    return 0.0


class InMemoryGraphStore(GraphStore):
    """
    GraphStore over Python dicts.

    Example:
        store = InMemoryGraphStore()
        store.add_node(GraphNode("m1", "Method", {"Method"}, {"name": "login"}), embedding=[0.1, 0.9])
        store.add_node(GraphNode("c1", "Class", {"Class"}, {"name": "AuthService"}))
        store.add_edge(GraphEdge("c1", "m1", "CONTAINS"))
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._nodes: Dict[str, GraphNode] = {}
        self._edges: List[GraphEdge] = []
        self._edge_keys: set = set()
        self._embeddings: Dict[str, List[float]] = {}

    # ---- write side ----

    def add_node(self, node: GraphNode, embedding: Optional[Sequence[float]] = None) -> None:
        with self._lock:
            self._nodes[node.id] = node
            if embedding is not None:
                self._embeddings[node.id] = [float(x) for x in embedding]

    def add_edge(self, edge: GraphEdge) -> None:
        with self._lock:
            if edge.from_id not in self._nodes or edge.to_id not in self._nodes:
                raise ValueError(f"Unknown endpoint in edge {edge.key}")
            if edge.key in self._edge_keys:
                return
            self._edge_keys.add(edge.key)
            self._edges.append(edge)

    @property
    def node_count(self) -> int:
        with self._lock:
            return len(self._nodes)

    # ---- read side ----

    async def lexical_search(self, terms: Sequence[str], limit: int) -> List[SearchHit]:
        terms = [t for t in terms if t and t.strip()]
        if not terms:
            return []

        with self._lock:
            nodes = list(self._nodes.values())

        scores: Dict[str, float] = {}
        for node in nodes:
            total = sum(_term_score(term.strip(), node) for term in terms)
            if total > 0:
                scores[node.id] = total

        ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return [
            SearchHit(node_id=nid, score=score, signal=SearchSignal.LEXICAL)
            for nid, score in ordered[:limit]
        ]

    async def vector_search(self, embedding: Sequence[float], limit: int) -> List[SearchHit]:
        with self._lock:
            items = list(self._embeddings.items())

        scored = [(nid, cosine_similarity(embedding, vec)) for nid, vec in items]
        scored.sort(key=lambda item: (-item[1], item[0]))
        return [
            SearchHit(node_id=nid, score=score, signal=SearchSignal.VECTOR)
            for nid, score in scored[:limit]
        ]

    async def get_nodes(self, node_ids: Iterable[str]) -> Dict[str, GraphNode]:
        with self._lock:
            return {nid: self._nodes[nid] for nid in node_ids if nid in self._nodes}

    async def get_edges(
        self,
        node_ids: Iterable[str],
        relationship_types: Optional[Sequence[str]] = None,
    ) -> List[GraphEdge]:
        ids = set(node_ids)
        types = set(relationship_types) if relationship_types else None
        with self._lock:
            return [
                e for e in self._edges
                if (e.from_id in ids or e.to_id in ids)
                and (types is None or e.type in types)
            ]

    async def get_embeddings(self, node_ids: Iterable[str]) -> Dict[str, List[float]]:
        with self._lock:
            return {
                nid: list(self._embeddings[nid])
                for nid in node_ids
                if nid in self._embeddings
            }

    async def edge_exists(self, from_name: str, to_name: str, rel_type: str) -> bool:
        with self._lock:
            from_ids = self._ids_for_name(from_name)
            to_ids = self._ids_for_name(to_name)
            return any(
                e.type == rel_type and e.from_id in from_ids and e.to_id in to_ids
                for e in self._edges
            )

    def _ids_for_name(self, name: str) -> set:
        return {
            nid for nid, node in self._nodes.items()
            if nid == name or node.name == name
        }
