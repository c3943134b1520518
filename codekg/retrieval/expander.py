"""
Graph Expander
==============

Bounded breadth-first expansion from ranked seed nodes.

Guarantees:
- never more than ``cap`` nodes
- terminates for any topology and any ``max_hops >= 0`` (visited set, hop bound, cap)
- deterministic: seeds are admitted in score order; within a hop, candidates
  are admitted by (best originating seed rank, node id)
- every stored edge whose two endpoints were both collected is returned,
  including edges between nodes admitted on the final hop (or between seeds
  when ``max_hops == 0``)
- a store failure or timeout mid-traversal returns the partial SubGraph

Example:
    expander = GraphExpander(store, timeout_seconds=5.0)
    subgraph = await expander.expand(["m-login", "c-auth"], max_hops=2, cap=50)
"""

import asyncio
from typing import Dict, List, Optional, Sequence

import structlog

from codekg.errors import ExpansionFailure
from codekg.storage.graph.models import GraphEdge, SubGraph

log = structlog.get_logger()


class GraphExpander:
    """
    BFS over a GraphStore with a node cap.

    Attributes:
        last_error: ExpansionFailure of the most recent expand() call, or None
    """

    def __init__(self, store, timeout_seconds: float = 10.0):
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.last_error: Optional[ExpansionFailure] = None

    async def expand(
        self,
        seed_ids: Sequence[str],
        max_hops: int,
        cap: int,
        relationship_types: Optional[Sequence[str]] = None,
    ) -> SubGraph:
        """
        Expand from seeds.

        Args:
            seed_ids: Seed ids ordered by score desc
            max_hops: Maximum hop distance from the seeds (0 = seeds only)
            cap: Maximum number of nodes collected
            relationship_types: Only traverse these edge types (None = all)

        Returns:
            SubGraph with every edge's endpoints inside its node set
        """
        self.last_error = None
        subgraph = SubGraph()
        if cap <= 0 or not seed_ids:
            return subgraph

        max_hops = max(0, max_hops)
        ordered_seeds = list(dict.fromkeys(seed_ids))
        origin_rank: Dict[str, int] = {}
        edges: Dict[tuple, GraphEdge] = {}

        try:
            seed_nodes = await self._call(self.store.get_nodes(ordered_seeds))
            for rank, seed_id in enumerate(ordered_seeds):
                if len(subgraph.nodes) >= cap:
                    break
                node = seed_nodes.get(seed_id)
                if node is None:
                    log.debug(f"Seed {seed_id} not found in store, skipped")
                    continue
                subgraph.add_node(node)
                origin_rank[seed_id] = rank

            frontier = list(subgraph.nodes)
            frontier_fetched = False
            hop = 0
            while frontier and hop < max_hops and len(subgraph.nodes) < cap:
                hop += 1
                hop_edges = await self._call(
                    self.store.get_edges(frontier, relationship_types)
                )
                frontier_fetched = True
                frontier_set = set(frontier)

                candidates: Dict[str, int] = {}
                for edge in hop_edges:
                    edges.setdefault(edge.key, edge)
                    for here, there in ((edge.from_id, edge.to_id), (edge.to_id, edge.from_id)):
                        if here not in frontier_set or there in subgraph.nodes:
                            continue
                        rank = origin_rank[here]
                        if there not in candidates or rank < candidates[there]:
                            candidates[there] = rank

                if not candidates:
                    break

                ordered = sorted(candidates, key=lambda nid: (candidates[nid], nid))
                fetched = await self._call(self.store.get_nodes(ordered))

                next_frontier: List[str] = []
                for node_id in ordered:
                    if len(subgraph.nodes) >= cap:
                        break
                    node = fetched.get(node_id)
                    if node is None:
                        continue
                    subgraph.add_node(node)
                    origin_rank[node_id] = candidates[node_id]
                    next_frontier.append(node_id)

                frontier = next_frontier
                frontier_fetched = False

            # nodes admitted on the last hop still need edges among themselves
            # and back to earlier nodes
            if frontier and not frontier_fetched:
                closing_edges = await self._call(
                    self.store.get_edges(frontier, relationship_types)
                )
                for edge in closing_edges:
                    edges.setdefault(edge.key, edge)

        except asyncio.TimeoutError:
            self.last_error = ExpansionFailure(
                f"timeout after {self.timeout_seconds}s", collected=len(subgraph.nodes)
            )
            log.warning(str(self.last_error))
        except Exception as e:
            self.last_error = ExpansionFailure(str(e), collected=len(subgraph.nodes))
            log.warning(str(self.last_error))

        for key in sorted(edges):
            edge = edges[key]
            if edge.from_id in subgraph.nodes and edge.to_id in subgraph.nodes:
                subgraph.add_edge(edge)

        log.debug(
            "Graph expansion completed",
            seeds=len(ordered_seeds),
            nodes=len(subgraph.nodes),
            edges=len(subgraph.edges),
            partial=self.last_error is not None,
        )
        return subgraph

    async def _call(self, coro):
        return await asyncio.wait_for(coro, timeout=self.timeout_seconds)
