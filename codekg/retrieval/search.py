"""
Parallel Search
===============

Runs lexical and vector search concurrently against a GraphStore.

Both branches are independent tasks joined with asyncio.gather; each is bounded
by a wall-clock timeout. A branch that raises or times out degrades to an empty
hit list and is reported in ``ParallelSearchResult.failures``; retrieval goes on
with the other signal.
"""

import asyncio
from typing import Awaitable, List, Optional, Sequence

import structlog

from codekg.errors import SearchFailure
from codekg.interfaces import ExtractedTerms
from codekg.retrieval.models import ParallelSearchResult
from codekg.storage.graph.models import SearchHit, SearchSignal
from codekg.storage.graph.store import GraphStore

log = structlog.get_logger()


class ParallelSearchExecutor:
    """
    Fork-join lexical + vector search.

    Example:
        executor = ParallelSearchExecutor(store, timeout_seconds=5.0)
        result = await executor.search(terms, query_embedding)
        result.lexical_hits, result.vector_hits, result.failures
    """

    def __init__(
        self,
        store: GraphStore,
        lexical_limit: int = 50,
        vector_limit: int = 50,
        timeout_seconds: float = 10.0,
    ):
        self.store = store
        self.lexical_limit = lexical_limit
        self.vector_limit = vector_limit
        self.timeout_seconds = timeout_seconds

    async def search(
        self,
        terms: Optional[ExtractedTerms],
        query_embedding: Optional[Sequence[float]],
    ) -> ParallelSearchResult:
        term_list = terms.all_terms() if terms else []

        lexical_task = (
            self._run_branch(
                SearchSignal.LEXICAL,
                self.store.lexical_search(term_list, self.lexical_limit),
            )
            if term_list else _no_hits()
        )
        vector_task = (
            self._run_branch(
                SearchSignal.VECTOR,
                self.store.vector_search([float(x) for x in query_embedding], self.vector_limit),
            )
            if query_embedding is not None and len(query_embedding) > 0 else _no_hits()
        )

        lexical_outcome, vector_outcome = await asyncio.gather(lexical_task, vector_task)

        result = ParallelSearchResult()
        for signal, outcome in (
            (SearchSignal.LEXICAL, lexical_outcome),
            (SearchSignal.VECTOR, vector_outcome),
        ):
            if isinstance(outcome, SearchFailure):
                result.failures[signal.value] = outcome.reason
                hits: List[SearchHit] = []
            else:
                hits = _sorted_hits(outcome)
            if signal is SearchSignal.LEXICAL:
                result.lexical_hits = hits
            else:
                result.vector_hits = hits

        log.debug(
            "Parallel search completed",
            lexical_hits=len(result.lexical_hits),
            vector_hits=len(result.vector_hits),
            failures=list(result.failures),
        )
        return result

    async def _run_branch(self, signal: SearchSignal, call: Awaitable[List[SearchHit]]):
        """Await one branch; failures come back as a SearchFailure value, not raised."""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            log.warning(f"{signal.value} search timed out after {self.timeout_seconds}s")
            return SearchFailure(signal.value, f"timeout after {self.timeout_seconds}s")
        except SearchFailure as e:
            log.warning(f"{signal.value} search failed: {e.reason}")
            return e
        except Exception as e:
            log.warning(f"{signal.value} search failed: {e}")
            return SearchFailure(signal.value, str(e))


async def _no_hits() -> List[SearchHit]:
    return []


def _sorted_hits(hits: List[SearchHit]) -> List[SearchHit]:
    return sorted(hits, key=lambda h: (-h.score, h.node_id))
