"""
Test ParallelSearchExecutor
===========================

Concurrent branches and partial-failure tolerance.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from codekg.errors import SearchFailure
from codekg.interfaces import ExtractedTerms
from codekg.retrieval.search import ParallelSearchExecutor
from codekg.storage.graph.models import SearchHit, SearchSignal


def _store(lexical=None, vector=None):
    store = MagicMock()
    store.lexical_search = AsyncMock(return_value=lexical or [])
    store.vector_search = AsyncMock(return_value=vector or [])
    return store


TERMS = ExtractedTerms(method_names=["login"])


class TestParallelSearch:
    """Concurrent lexical and vector search."""

    @pytest.mark.asyncio
    async def test_both_branches_run(self):
        """Both searches run with their own limits."""
        store = _store(
            lexical=[SearchHit("a", 1.0, SearchSignal.LEXICAL)],
            vector=[SearchHit("b", 0.8, SearchSignal.VECTOR)],
        )
        executor = ParallelSearchExecutor(store, lexical_limit=7, vector_limit=9)

        result = await executor.search(TERMS, [0.1, 0.2])

        assert [h.node_id for h in result.lexical_hits] == ["a"]
        assert [h.node_id for h in result.vector_hits] == ["b"]
        assert not result.degraded
        store.lexical_search.assert_awaited_once_with(["login"], 7)
        store.vector_search.assert_awaited_once_with([0.1, 0.2], 9)

    @pytest.mark.asyncio
    async def test_hits_sorted(self):
        """Hits come back by score, ties by node id."""
        store = _store(lexical=[
            SearchHit("b", 1.0, SearchSignal.LEXICAL),
            SearchHit("c", 2.0, SearchSignal.LEXICAL),
            SearchHit("a", 1.0, SearchSignal.LEXICAL),
        ])
        result = await ParallelSearchExecutor(store).search(TERMS, None)

        assert [h.node_id for h in result.lexical_hits] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_vector_failure_degrades_to_lexical(self):
        """A vector error leaves lexical hits and records the failure."""
        store = _store(lexical=[SearchHit("a", 1.0, SearchSignal.LEXICAL)])
        store.vector_search.side_effect = ConnectionError("index offline")

        result = await ParallelSearchExecutor(store).search(TERMS, [0.1])

        assert [h.node_id for h in result.lexical_hits] == ["a"]
        assert result.vector_hits == []
        assert "index offline" in result.failures["vector"]

    @pytest.mark.asyncio
    async def test_lexical_search_failure_is_reported(self):
        """A SearchFailure is recorded under its branch."""
        store = _store(vector=[SearchHit("b", 0.8, SearchSignal.VECTOR)])
        store.lexical_search.side_effect = SearchFailure("lexical", "all labels failed")

        result = await ParallelSearchExecutor(store).search(TERMS, [0.1])

        assert result.failures == {"lexical": "all labels failed"}
        assert [h.node_id for h in result.vector_hits] == ["b"]

    @pytest.mark.asyncio
    async def test_timeout_degrades_branch(self):
        """A slow branch times out without blocking the other."""
        async def slow(*args, **kwargs):
            await asyncio.sleep(5)
            return []

        store = _store(lexical=[SearchHit("a", 1.0, SearchSignal.LEXICAL)])
        store.vector_search = slow

        result = await ParallelSearchExecutor(store, timeout_seconds=0.05).search(TERMS, [0.1])

        assert "timeout" in result.failures["vector"]
        assert len(result.lexical_hits) == 1

    @pytest.mark.asyncio
    async def test_missing_inputs_skip_branches(self):
        """No terms and no embedding means no store calls."""
        store = _store()

        result = await ParallelSearchExecutor(store).search(ExtractedTerms(), None)

        assert result.lexical_hits == [] and result.vector_hits == []
        store.lexical_search.assert_not_called()
        store.vector_search.assert_not_called()

    @pytest.mark.asyncio
    async def test_numpy_embedding_runs_vector_branch(self):
        """A numpy query vector reaches the store as a list of floats."""
        store = _store(vector=[SearchHit("b", 0.8, SearchSignal.VECTOR)])

        result = await ParallelSearchExecutor(store, vector_limit=9).search(
            TERMS, np.asarray([0.5, 0.25])
        )

        assert [h.node_id for h in result.vector_hits] == ["b"]
        store.vector_search.assert_awaited_once_with([0.5, 0.25], 9)
        sent = store.vector_search.await_args.args[0]
        assert all(type(x) is float for x in sent)

    @pytest.mark.asyncio
    async def test_empty_numpy_embedding_skips_vector_branch(self):
        """An empty numpy vector is treated as no embedding."""
        store = _store(lexical=[SearchHit("a", 1.0, SearchSignal.LEXICAL)])

        result = await ParallelSearchExecutor(store).search(TERMS, np.asarray([]))

        assert result.vector_hits == []
        store.vector_search.assert_not_called()
