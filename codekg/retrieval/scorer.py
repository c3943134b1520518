"""
Node Scorer
===========

Importance score for every SubGraph node.

- seeds: combined_score + degree_weight * degree_factor
- expansion-only: min_seed_score * structural_weight(d) * (0.5 + 0.5 * degree_factor)

where structural_weight(d) = 1 / (1 + d), d = hop distance to the nearest seed
(undirected), and degree_factor = local degree / max local degree.

Expansion-only nodes sit at d >= 1, so their score is at most half of the
lowest seed score: direct evidence always outranks inferred context.
"""

from collections import deque
from typing import Dict, Mapping, Optional, Sequence

from codekg.retrieval.models import RankedResult
from codekg.storage.graph.models import SubGraph


def structural_weight(distance: int) -> float:
    return 1.0 / (1.0 + distance)


def hop_distances(subgraph: SubGraph, seed_ids: Sequence[str]) -> Dict[str, int]:
    """Multi-source BFS distances; nodes unreachable from any seed are omitted."""
    adjacency: Dict[str, list] = {nid: [] for nid in subgraph.nodes}
    for edge in subgraph.edges:
        adjacency[edge.from_id].append(edge.to_id)
        adjacency[edge.to_id].append(edge.from_id)

    distances: Dict[str, int] = {}
    queue = deque()
    for seed in seed_ids:
        if seed in subgraph.nodes and seed not in distances:
            distances[seed] = 0
            queue.append(seed)

    while queue:
        current = queue.popleft()
        for neighbor in adjacency[current]:
            if neighbor not in distances:
                distances[neighbor] = distances[current] + 1
                queue.append(neighbor)
    return distances


class NodeScorer:
    """
    Assigns importance scores from retrieval and structural signals.

    Example:
        scorer = NodeScorer(degree_weight=0.1)
        scores = scorer.score(subgraph, {r.node_id: r for r in ranked}, seed_ids)
    """

    def __init__(self, degree_weight: float = 0.1):
        self.degree_weight = degree_weight

    def score(
        self,
        subgraph: SubGraph,
        ranked_by_id: Mapping[str, RankedResult],
        seed_ids: Sequence[str],
        type_boosts: Optional[Mapping[str, float]] = None,
    ) -> Dict[str, float]:
        """
        Score every node of ``subgraph``.

        Args:
            subgraph: Expanded SubGraph
            ranked_by_id: Fused ranking entries by node id
            seed_ids: Seeds present in the subgraph; each must have a positive combined score
            type_boosts: Optional multipliers per node type, applied to expansion-only nodes

        Returns:
            node_id -> importance score, covering every subgraph node
        """
        seeds = [s for s in seed_ids if s in subgraph.nodes]
        if not seeds:
            return {nid: 0.0 for nid in subgraph.nodes}

        degrees = {nid: 0 for nid in subgraph.nodes}
        for edge in subgraph.edges:
            degrees[edge.from_id] += 1
            degrees[edge.to_id] += 1
        max_degree = max(degrees.values()) or 1

        distances = hop_distances(subgraph, seeds)
        unreachable = (max(distances.values()) if distances else 0) + 1

        seed_set = set(seeds)
        min_seed_score = min(ranked_by_id[s].combined_score for s in seeds)

        scores: Dict[str, float] = {}
        for node_id, node in subgraph.nodes.items():
            degree_factor = degrees[node_id] / max_degree
            if node_id in seed_set:
                scores[node_id] = (
                    ranked_by_id[node_id].combined_score + self.degree_weight * degree_factor
                )
                continue

            distance = max(1, distances.get(node_id, unreachable))
            base = min_seed_score * structural_weight(distance) * (0.5 + 0.5 * degree_factor)
            if type_boosts:
                # Boosts may not lift a node past half the weakest seed
                boost = type_boosts.get(node.type, 1.0)
                base = min(base * boost, min_seed_score * 0.5)
            scores[node_id] = base

        return scores
