"""
GraphStore Interface
====================

Async interface the retrieval engine and the verifier consume.

All operations are read-only. Implementations must be safe for concurrent
calls from several pipeline runs.

Implementations:
- FalkorGraphStore: FalkorDB-backed (production)
- InMemoryGraphStore: dict-backed (tests, small local graphs)
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence

from codekg.storage.graph.models import GraphEdge, GraphNode, SearchHit, SubGraph


class GraphStore(ABC):
    """
    Abstract code-graph store.

    Example:
        store = InMemoryGraphStore()
        hits = await store.lexical_search(["login"], limit=10)
        sub = await store.expand([hits[0].node_id], max_hops=1, cap=50)
    """

    @abstractmethod
    async def lexical_search(self, terms: Sequence[str], limit: int) -> List[SearchHit]:
        """Exact/prefix/wildcard/fuzzy match of terms over names, signatures and text."""

    @abstractmethod
    async def vector_search(self, embedding: Sequence[float], limit: int) -> List[SearchHit]:
        """Top-K nodes by cosine similarity of their embedding to ``embedding``."""

    @abstractmethod
    async def get_nodes(self, node_ids: Iterable[str]) -> Dict[str, GraphNode]:
        """Fetch nodes by id. Unknown ids are omitted."""

    @abstractmethod
    async def get_edges(
        self,
        node_ids: Iterable[str],
        relationship_types: Optional[Sequence[str]] = None,
    ) -> List[GraphEdge]:
        """Edges with at least one endpoint in ``node_ids``, in either direction."""

    @abstractmethod
    async def get_embeddings(self, node_ids: Iterable[str]) -> Dict[str, List[float]]:
        """Stored embeddings for the given nodes. Nodes without one are omitted."""

    @abstractmethod
    async def edge_exists(self, from_name: str, to_name: str, rel_type: str) -> bool:
        """True if an edge of ``rel_type`` goes from the named component to the other."""

    async def expand(self, seed_ids: Sequence[str], max_hops: int, cap: int) -> SubGraph:
        """Bounded breadth-first expansion from ``seed_ids``."""
        from codekg.retrieval.expander import GraphExpander

        return await GraphExpander(self).expand(seed_ids, max_hops=max_hops, cap=cap)

    async def close(self) -> None:
        """Release resources. No-op by default."""
