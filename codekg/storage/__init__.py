"""
codekg Storage Layer
====================

Graph store interface and backends.
"""

from codekg.storage.graph import (
    FalkorDBConfig,
    GraphStore,
    InMemoryGraphStore,
)

__all__ = [
    "FalkorDBConfig",
    "GraphStore",
    "InMemoryGraphStore",
]
