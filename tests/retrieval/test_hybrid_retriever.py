"""
Test HybridRetriever
====================

End-to-end retrieval over the in-memory code graph.
"""

from unittest.mock import AsyncMock

import numpy as np
import pytest

from codekg.config.settings import RetrievalSettings
from codekg.interfaces import ExtractedTerms
from codekg.retrieval.hybrid import HybridRetriever


LOGIN_SEEDS = ["m-login", "m-validate", "c-auth", "c-userrepo", "m-find"]


class TestLoginScenario:
    """'How does login validate credentials?' with both signals available."""

    @pytest.mark.asyncio
    async def test_seeds_ordered_by_combined_score(self, code_graph_store, login_terms, query_embedding):
        """Seeds come out in fused-score order and unrelated classes stay out."""
        retriever = HybridRetriever(code_graph_store)

        result = await retriever.retrieve("How does login validate credentials?", login_terms, query_embedding)

        assert result.seed_node_ids == LOGIN_SEEDS
        assert set(result.subgraph.nodes) == set(LOGIN_SEEDS)
        assert "c-report" not in result.subgraph.nodes
        assert "c-cache" not in result.subgraph.nodes

    @pytest.mark.asyncio
    async def test_score_map_covers_every_node(self, code_graph_store, login_terms, query_embedding):
        """Every returned node has a score and the best one is login."""
        result = await HybridRetriever(code_graph_store).retrieve("q", login_terms, query_embedding)

        assert set(result.score_map) == set(result.subgraph.nodes)
        assert result.subgraph.is_consistent()
        assert result.nodes_by_score()[0] == "m-login"

    @pytest.mark.asyncio
    async def test_deterministic(self, code_graph_store, login_terms, query_embedding):
        """Two identical calls produce identical results."""
        retriever = HybridRetriever(code_graph_store)

        first = await retriever.retrieve("q", login_terms, query_embedding)
        second = await retriever.retrieve("q", login_terms, query_embedding)

        assert first.seed_node_ids == second.seed_node_ids
        assert first.score_map == second.score_map
        assert first.subgraph.to_dict() == second.subgraph.to_dict()

    @pytest.mark.asyncio
    async def test_seed_limit(self, code_graph_store, login_terms, query_embedding):
        """initial_limit bounds the seed list."""
        retriever = HybridRetriever(code_graph_store, RetrievalSettings(initial_limit=2, expansion_depth=0))

        result = await retriever.retrieve("q", login_terms, query_embedding)

        assert result.seed_node_ids == ["m-login", "m-validate"]


class TestExpansionScoring:
    """Scores of nodes reached only through expansion."""

    @pytest.mark.asyncio
    async def test_expansion_only_nodes_rank_below_seeds(self, code_graph_store):
        """Expansion-only nodes score below the weakest seed."""
        retriever = HybridRetriever(code_graph_store)

        result = await retriever.retrieve("login", ExtractedTerms(method_names=["login"]), None)

        assert result.seed_node_ids == ["m-login", "c-auth"]
        expansion = set(result.subgraph.nodes) - set(result.seed_node_ids)
        assert expansion == {"m-validate", "c-userrepo"}
        weakest_seed = min(result.score_map[s] for s in result.seed_node_ids)
        assert all(result.score_map[n] < weakest_seed for n in expansion)
        assert result.metadata["rerank_skipped"] == "no query embedding"

    @pytest.mark.asyncio
    async def test_expansion_node_cap(self, code_graph_store):
        """expansion_node_cap bounds the subgraph size."""
        retriever = HybridRetriever(
            code_graph_store, RetrievalSettings(expansion_depth=3, expansion_node_cap=3)
        )

        result = await retriever.retrieve("login", ExtractedTerms(method_names=["login"]), None)

        assert len(result.subgraph.nodes) == 3


class TestNoResults:
    """Queries with nothing worth returning."""

    @pytest.mark.asyncio
    async def test_empty_result_when_nothing_matches(self, code_graph_store):
        """No hits give an empty result rather than an error."""
        result = await HybridRetriever(code_graph_store).retrieve(
            "q", ExtractedTerms(free_terms=["zzzqqq"]), None
        )

        assert result.is_empty
        assert result.seed_node_ids == []
        assert result.score_map == {}

    @pytest.mark.asyncio
    async def test_threshold_excludes_weak_seeds(self, code_graph_store, login_terms, query_embedding):
        """score_threshold drops weakly matched seeds."""
        retriever = HybridRetriever(code_graph_store, RetrievalSettings(score_threshold=0.7))

        result = await retriever.retrieve("q", login_terms, query_embedding)

        assert result.seed_node_ids == ["m-login", "m-validate"]


class TestDegradation:
    """Partial failures degrade instead of raising."""

    @pytest.mark.asyncio
    async def test_vector_failure_falls_back_to_lexical(self, code_graph_store, login_terms, query_embedding):
        """A vector index failure leaves lexical seeds."""
        code_graph_store.vector_search = AsyncMock(side_effect=ConnectionError("index offline"))

        result = await HybridRetriever(code_graph_store).retrieve("q", login_terms, query_embedding)

        assert result.metadata["search_failures"] == {"vector": "index offline"}
        assert result.seed_node_ids == ["m-login", "m-validate", "c-auth"]

    @pytest.mark.asyncio
    async def test_expansion_failure_keeps_seeds(self, code_graph_store, login_terms, query_embedding):
        """A traversal failure returns the seeds without edges."""
        code_graph_store.get_edges = AsyncMock(side_effect=RuntimeError("traversal aborted"))

        result = await HybridRetriever(code_graph_store).retrieve("q", login_terms, query_embedding)

        assert result.metadata["expansion_partial"] is True
        assert result.metadata["expansion_error"] == "traversal aborted"
        assert set(result.subgraph.nodes) == set(LOGIN_SEEDS)
        assert result.subgraph.edges == []

    @pytest.mark.asyncio
    async def test_embedding_failure_disables_vector_search(self, code_graph_store, fake_extractor):
        """An embedding error turns the vector branch off."""
        model = AsyncMock()
        model.embed = AsyncMock(side_effect=RuntimeError("model unavailable"))
        retriever = HybridRetriever(code_graph_store, entity_extractor=fake_extractor, embedding_model=model)

        result = await retriever.retrieve("How does login validate credentials?")

        assert result.metadata["embedding_error"] == "model unavailable"
        assert result.metadata["has_embedding"] is False
        assert result.seed_node_ids[0] == "m-login"


class TestCollaborators:
    """Injected extractor and embedding model."""

    @pytest.mark.asyncio
    async def test_uses_extractor_and_embedding_model(
        self, code_graph_store, fake_extractor, fake_embedding_model
    ):
        """Terms and the query vector come from the collaborators when not given."""
        retriever = HybridRetriever(
            code_graph_store,
            entity_extractor=fake_extractor,
            embedding_model=fake_embedding_model,
        )

        result = await retriever.retrieve("How does login validate credentials?")

        assert fake_embedding_model.calls == 1
        assert result.seed_node_ids == LOGIN_SEEDS
        assert result.metadata["terms"]["methods"] == ["login", "validate"]

    @pytest.mark.asyncio
    async def test_intent_strategy_recorded(self, code_graph_store, login_terms, query_embedding):
        """The classified intent is recorded when strategies are on."""
        retriever = HybridRetriever(code_graph_store, RetrievalSettings(intent_strategies_enabled=True))

        result = await retriever.retrieve("Who calls validateCredentials?", login_terms, query_embedding)

        assert result.metadata["intent"] == "usage"

    @pytest.mark.asyncio
    async def test_intent_strategy_off_by_default(self, code_graph_store, login_terms, query_embedding):
        """No intent is recorded with strategies off."""
        result = await HybridRetriever(code_graph_store).retrieve(
            "Who calls validateCredentials?", login_terms, query_embedding
        )
        assert "intent" not in result.metadata


class TestNumpyEmbeddings:
    """Query vectors given as numpy arrays."""

    @pytest.mark.asyncio
    async def test_numpy_query_embedding(self, code_graph_store, login_terms, query_embedding):
        """A numpy query vector gives the same result as the equivalent list."""
        retriever = HybridRetriever(code_graph_store)

        expected = await retriever.retrieve("q", login_terms, query_embedding)
        result = await retriever.retrieve("q", login_terms, np.asarray(query_embedding))

        assert result.seed_node_ids == LOGIN_SEEDS
        assert result.metadata["has_embedding"] is True
        assert result.score_map == expected.score_map

    @pytest.mark.asyncio
    async def test_embedding_model_returning_numpy(self, code_graph_store, fake_extractor, query_embedding):
        """An embedding model that returns a numpy array enables vector search."""
        model = AsyncMock()
        model.embed = AsyncMock(return_value=np.asarray(query_embedding))
        retriever = HybridRetriever(code_graph_store, entity_extractor=fake_extractor, embedding_model=model)

        result = await retriever.retrieve("How does login validate credentials?")

        assert result.metadata["has_embedding"] is True
        assert "embedding_error" not in result.metadata
        assert result.seed_node_ids == LOGIN_SEEDS

    @pytest.mark.asyncio
    async def test_empty_numpy_embedding_is_lexical_only(self, code_graph_store, login_terms):
        """An empty numpy vector means no embedding."""
        result = await HybridRetriever(code_graph_store).retrieve("q", login_terms, np.asarray([]))

        assert result.metadata["has_embedding"] is False
        assert result.seed_node_ids[0] == "m-login"
