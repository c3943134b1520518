"""
codekg Graph Storage
====================

Code graph access for retrieval and verification.

Components:
- GraphStore: async interface consumed by the retrieval engine
- FalkorDBClient / FalkorDBConfig: FalkorDB connection
- FalkorGraphStore: GraphStore over FalkorDB indexes
- InMemoryGraphStore: dict-backed GraphStore

Example:
    from codekg.storage.graph import FalkorDBClient, FalkorDBConfig, FalkorGraphStore

    client = FalkorDBClient(FalkorDBConfig(graph_name="codekg"))
    await client.connect()
    store = FalkorGraphStore(client)
"""

from codekg.storage.graph.config import FalkorDBConfig
from codekg.storage.graph.models import (
    GraphEdge,
    GraphNode,
    SearchHit,
    SearchSignal,
    SubGraph,
)
from codekg.storage.graph.store import GraphStore
from codekg.storage.graph.memory import InMemoryGraphStore

__all__ = [
    "FalkorDBConfig",
    "GraphEdge",
    "GraphNode",
    "SearchHit",
    "SearchSignal",
    "SubGraph",
    "GraphStore",
    "InMemoryGraphStore",
]
