"""
Retrieval Models
================

Dataclasses produced by the hybrid retrieval engine.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from codekg.storage.graph.models import SearchHit, SearchSignal, SubGraph


@dataclass(frozen=True)
class RankedResult:
    """
    One fused ranking entry.

    Attributes:
        node_id: Graph node id (unique within a ranking)
        lexical_score: Normalized lexical score [0-1], 0 if no lexical hit
        vector_score: Normalized vector score [0-1], 0 if no vector hit
        combined_score: Fused score, monotonic in both component scores
        has_lexical: Node was returned by lexical search
        has_vector: Node was returned by vector search
    """
    node_id: str
    lexical_score: float
    vector_score: float
    combined_score: float
    has_lexical: bool = False
    has_vector: bool = False

    @property
    def signals(self) -> List[SearchSignal]:
        result = []
        if self.has_lexical:
            result.append(SearchSignal.LEXICAL)
        if self.has_vector:
            result.append(SearchSignal.VECTOR)
        return result

    def __repr__(self) -> str:
        return (
            f"<RankedResult({self.node_id}, combined={self.combined_score:.3f}, "
            f"lex={self.lexical_score:.3f}, vec={self.vector_score:.3f})>"
        )


@dataclass
class ParallelSearchResult:
    """Both hit lists plus the branches that degraded."""
    lexical_hits: List[SearchHit] = field(default_factory=list)
    vector_hits: List[SearchHit] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return bool(self.failures)


@dataclass
class RetrievalResult:
    """
    Output of HybridRetriever.

    Attributes:
        seed_node_ids: Seeds admitted to the subgraph, by combined score desc
        subgraph: Expanded and re-ranked SubGraph
        score_map: Final score for every subgraph node
        ranked_results: Full fused ranking (before threshold)
        metadata: Stage counts, degradations, timings
    """
    seed_node_ids: List[str] = field(default_factory=list)
    subgraph: SubGraph = field(default_factory=SubGraph)
    score_map: Dict[str, float] = field(default_factory=dict)
    ranked_results: List[RankedResult] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        missing = [nid for nid in self.subgraph.nodes if nid not in self.score_map]
        if missing:
            raise ValueError(f"score_map is missing subgraph nodes: {missing[:5]}")

    @property
    def is_empty(self) -> bool:
        return not self.subgraph.nodes

    def nodes_by_score(self) -> List[str]:
        """Subgraph node ids by final score desc, ties by id."""
        return sorted(self.subgraph.nodes, key=lambda nid: (-self.score_map[nid], nid))

    def __repr__(self) -> str:
        return (
            f"<RetrievalResult(seeds={len(self.seed_node_ids)}, "
            f"nodes={len(self.subgraph.nodes)}, edges={len(self.subgraph.edges)})>"
        )
