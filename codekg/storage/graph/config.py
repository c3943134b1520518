"""
FalkorDB Configuration
======================

Connection settings for the FalkorDB code graph.

Supports configuration via environment variables for flexible deploys.

Usage:
    from codekg.storage.graph import FalkorDBConfig

    # Default (env vars or default values)
    config = FalkorDBConfig()

    # Explicit override
    config = FalkorDBConfig(host="localhost", port=6380, graph_name="codekg_prod")

Environment Variables:
    FALKORDB_HOST: Server host (default: localhost)
    FALKORDB_PORT: Server port (default: 6380)
    FALKORDB_GRAPH_NAME: Graph name (default: codekg)
    FALKORDB_PASSWORD: Password (default: empty)
    FALKORDB_MAX_CONNECTIONS: Worker pool size for driver calls (default: 10)
    FALKORDB_TIMEOUT_MS: Per-query timeout in ms (default: 5000)
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _get_env_str(key: str, default: str) -> str:
    """Read an environment variable as a string."""
    return os.environ.get(key, default)


def _get_env_int(key: str, default: int) -> int:
    """Read an environment variable as an int."""
    return int(os.environ.get(key, default))


def _get_env_list(key: str, default: str) -> List[str]:
    """Read a comma separated environment variable."""
    return [item.strip() for item in os.environ.get(key, default).split(",") if item.strip()]


@dataclass
class FalkorDBConfig:
    """
    FalkorDB connection settings.

    All fields support environment overrides.

    Attributes:
        host: FalkorDB host
        port: FalkorDB port (6380 for the FalkorDB container)
        graph_name: Name of the code graph
        max_connections: Size of the worker pool running driver calls
        timeout_ms: Per-query timeout in milliseconds
        password: Optional password
        node_id_property: Property holding the unique node id
        searchable_labels: Labels with a full-text index on name/signature/summary
        vector_labels: Labels with a vector index on ``embedding``
    """
    host: str = field(default_factory=lambda: _get_env_str("FALKORDB_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_env_int("FALKORDB_PORT", 6380))
    graph_name: str = field(default_factory=lambda: _get_env_str("FALKORDB_GRAPH_NAME", "codekg"))
    max_connections: int = field(default_factory=lambda: _get_env_int("FALKORDB_MAX_CONNECTIONS", 10))
    timeout_ms: int = field(default_factory=lambda: _get_env_int("FALKORDB_TIMEOUT_MS", 5000))
    password: Optional[str] = field(default_factory=lambda: _get_env_str("FALKORDB_PASSWORD", "") or None)
    node_id_property: str = "id"
    searchable_labels: List[str] = field(
        default_factory=lambda: _get_env_list("CODEKG_SEARCH_LABELS", "Method,Class,Interface,Description")
    )
    vector_labels: List[str] = field(
        default_factory=lambda: _get_env_list("CODEKG_VECTOR_LABELS", "Method,Class,Description")
    )

    def __post_init__(self):
        if self.max_connections < 1:
            raise ValueError(f"max_connections must be >= 1, got {self.max_connections}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
