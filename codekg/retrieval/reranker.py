"""
Re-Ranker
=========

Precision pass over the expanded SubGraph.

Computes query-to-node cosine similarity for expansion-only nodes and prunes
those below the relevance floor. Seeds are never removed.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import structlog

from codekg.similarity import cosine_similarity
from codekg.storage.graph.models import SubGraph

log = structlog.get_logger()


@dataclass
class RerankOutcome:
    """
    Result of a re-rank pass.

    Attributes:
        subgraph: Pruned SubGraph (same object when nothing changed)
        relevance: Similarity per scored node
        pruned_ids: Expansion-only nodes removed, in id order
        skipped: True when re-ranking did not run
        reason: Why it was skipped
    """
    subgraph: SubGraph
    relevance: Dict[str, float] = field(default_factory=dict)
    pruned_ids: List[str] = field(default_factory=list)
    skipped: bool = False
    reason: Optional[str] = None


class ReRanker:
    """
    Prunes weakly related expansion nodes.

    Example:
        reranker = ReRanker(store, relevance_floor=0.3, max_expansion_nodes=50)
        outcome = await reranker.rerank(subgraph, query_embedding, seed_ids)
    """

    def __init__(
        self,
        store,
        relevance_floor: float = 0.3,
        max_expansion_nodes: int = 50,
        keep_unembedded: bool = True,
        enabled: bool = True,
        timeout_seconds: float = 10.0,
    ):
        self.store = store
        self.relevance_floor = relevance_floor
        self.max_expansion_nodes = max_expansion_nodes
        self.keep_unembedded = keep_unembedded
        self.enabled = enabled
        self.timeout_seconds = timeout_seconds

    async def rerank(
        self,
        subgraph: SubGraph,
        query_embedding: Optional[Sequence[float]],
        seed_ids: Sequence[str],
    ) -> RerankOutcome:
        if not self.enabled:
            return RerankOutcome(subgraph=subgraph, skipped=True, reason="disabled")
        if query_embedding is None or len(query_embedding) == 0:
            return RerankOutcome(subgraph=subgraph, skipped=True, reason="no query embedding")

        seed_set = set(seed_ids)
        candidates = sorted(nid for nid in subgraph.nodes if nid not in seed_set)
        if not candidates:
            return RerankOutcome(subgraph=subgraph)

        try:
            embeddings = await asyncio.wait_for(
                self.store.get_embeddings(candidates), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            log.warning("Embedding fetch timed out, keeping unreranked subgraph")
            return RerankOutcome(subgraph=subgraph, skipped=True, reason="embedding fetch timeout")
        except Exception as e:
            log.warning(f"Embedding fetch failed, keeping unreranked subgraph: {e}")
            return RerankOutcome(subgraph=subgraph, skipped=True, reason=str(e))

        relevance: Dict[str, float] = {}
        survivors: List[str] = []
        unembedded: List[str] = []
        for node_id in candidates:
            vector = embeddings.get(node_id)
            if vector is None:
                if self.keep_unembedded:
                    unembedded.append(node_id)
                continue
            similarity = cosine_similarity(query_embedding, vector)
            relevance[node_id] = similarity
            if similarity >= self.relevance_floor:
                survivors.append(node_id)

        survivors.sort(key=lambda nid: (-relevance[nid], nid))
        survivors = survivors[:self.max_expansion_nodes]

        keep = seed_set | set(survivors) | set(unembedded)
        pruned = [nid for nid in candidates if nid not in keep]
        if not pruned:
            return RerankOutcome(subgraph=subgraph, relevance=relevance)

        log.debug(
            "Re-ranking pruned expansion nodes",
            pruned=len(pruned),
            kept=len(keep & set(subgraph.nodes)),
        )
        return RerankOutcome(
            subgraph=subgraph.restrict_to(keep),
            relevance=relevance,
            pruned_ids=pruned,
        )
