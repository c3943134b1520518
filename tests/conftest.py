"""
codekg Test Configuration
=========================

Shared fixtures for all tests.

The ``code_graph_store`` fixture is a small authentication codebase:

    AuthService -CONTAINS-> login, validateCredentials
    login -CALLS-> validateCredentials -CALLS-> findByUsername
    AuthService -USES-> UserRepository -CONTAINS-> findByUsername
    ReportGenerator -CONTAINS-> renderPdf        (unrelated)
    CacheConfig                                  (isolated, unrelated)
"""

from typing import Callable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from codekg.interfaces import ExtractedTerms
from codekg.storage.graph.memory import InMemoryGraphStore
from codekg.storage.graph.models import GraphEdge, GraphNode


def _node(node_id: str, node_type: str, name: str, **props) -> GraphNode:
    return GraphNode(id=node_id, type=node_type, labels={node_type}, properties={"name": name, **props})


@pytest.fixture
def code_graph_store() -> InMemoryGraphStore:
    """In-memory graph of a small authentication codebase."""
    store = InMemoryGraphStore()

    store.add_node(_node(
        "c-auth", "Class", "AuthService",
        summary="Authentication service handling user login",
        signature="public class AuthService",
    ), embedding=[0.8, 0.2, 0.1, 0.0])
    store.add_node(_node(
        "m-login", "Method", "login",
        summary="Logs a user in after validating credentials",
        signature="public boolean login(String username, String password)",
    ), embedding=[0.9, 0.1, 0.0, 0.1])
    store.add_node(_node(
        "m-validate", "Method", "validateCredentials",
        summary="Checks username and password against the user store",
        signature="boolean validateCredentials(String username, String password)",
    ), embedding=[0.85, 0.15, 0.05, 0.0])
    store.add_node(_node(
        "c-userrepo", "Class", "UserRepository",
        summary="Loads users from the database",
    ), embedding=[0.5, 0.5, 0.0, 0.0])
    store.add_node(_node(
        "m-find", "Method", "findByUsername",
        signature="User findByUsername(String username)",
    ), embedding=[0.4, 0.6, 0.0, 0.0])
    store.add_node(_node(
        "c-report", "Class", "ReportGenerator",
        summary="Builds monthly sales reports",
    ), embedding=[0.0, 0.0, 1.0, 0.0])
    store.add_node(_node(
        "m-render", "Method", "renderPdf",
        summary="Renders a report as PDF",
    ), embedding=[0.0, 0.1, 0.9, 0.1])
    store.add_node(_node("c-cache", "Class", "CacheConfig"), embedding=[0.0, 0.0, 0.0, 1.0])

    store.add_edge(GraphEdge("c-auth", "m-login", "CONTAINS"))
    store.add_edge(GraphEdge("c-auth", "m-validate", "CONTAINS"))
    store.add_edge(GraphEdge("m-login", "m-validate", "CALLS"))
    store.add_edge(GraphEdge("m-validate", "m-find", "CALLS"))
    store.add_edge(GraphEdge("c-userrepo", "m-find", "CONTAINS"))
    store.add_edge(GraphEdge("c-auth", "c-userrepo", "USES"))
    store.add_edge(GraphEdge("c-report", "m-render", "CONTAINS"))
    return store


@pytest.fixture
def login_terms() -> ExtractedTerms:
    """Terms extracted from 'How does login validate credentials?'."""
    return ExtractedTerms(method_names=["login", "validate"], free_terms=["credentials"])


@pytest.fixture
def query_embedding() -> List[float]:
    """Embedding close to the authentication cluster."""
    return [1.0, 0.1, 0.0, 0.05]


class FakeEntityExtractor:
    """Returns fixed terms for any query."""

    def __init__(self, terms: ExtractedTerms):
        self.terms = terms

    def extract(self, query: str) -> ExtractedTerms:
        return self.terms


class FakeEmbeddingModel:
    """Returns a fixed vector for any text."""

    def __init__(self, vector: Optional[List[float]]):
        self.vector = vector
        self.calls = 0

    async def embed(self, text: str) -> List[float]:
        self.calls += 1
        return list(self.vector)


class ScriptedAnswerer:
    """
    Answerer returning canned replies.

    ``replies`` is either a list consumed in order (the last one repeats)
    or a callable mapping the prompt to a reply.
    """

    def __init__(self, replies):
        self.replies = replies
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if callable(self.replies):
            return self.replies(prompt)
        index = min(len(self.prompts) - 1, len(self.replies) - 1)
        return self.replies[index]


@pytest.fixture
def fake_extractor(login_terms) -> FakeEntityExtractor:
    return FakeEntityExtractor(login_terms)


@pytest.fixture
def fake_embedding_model(query_embedding) -> FakeEmbeddingModel:
    return FakeEmbeddingModel(query_embedding)


@pytest.fixture
def scripted_answerer() -> Callable[..., ScriptedAnswerer]:
    """Factory for ScriptedAnswerer instances."""
    return ScriptedAnswerer


# Mock FalkorDB client for unit tests
@pytest.fixture
def mock_falkordb():
    """Mock FalkorDB client for unit tests."""
    from codekg.storage.graph.config import FalkorDBConfig

    client = MagicMock()
    client.config = FalkorDBConfig(
        searchable_labels=["Method", "Class"],
        vector_labels=["Method"],
    )
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.query = AsyncMock(return_value=[])
    return client
