"""
Hybrid Retriever
================

Composes the retrieval engine:

    search -> combine -> threshold + limit -> expand -> score -> re-rank -> assemble

Final scores:
- seeds: seed_combined_weight * combined + seed_importance_weight * importance
- expansion-only: importance * expansion_discount

Partial failures (one search signal down, interrupted traversal, skipped
re-rank) are recorded in ``RetrievalResult.metadata``; retrieve() does not
raise for them.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

import structlog

from codekg.config.settings import RetrievalSettings
from codekg.interfaces import EmbeddingModel, EntityExtractor, ExtractedTerms
from codekg.retrieval.combiner import ResultCombiner
from codekg.retrieval.expander import GraphExpander
from codekg.retrieval.models import RankedResult, RetrievalResult
from codekg.retrieval.reranker import ReRanker
from codekg.retrieval.scorer import NodeScorer
from codekg.retrieval.search import ParallelSearchExecutor
from codekg.retrieval.strategy import QueryIntent, classify_intent, get_strategy
from codekg.storage.graph.store import GraphStore

log = structlog.get_logger()


class HybridRetriever:
    """
    Lexical + vector + graph retrieval over a code graph.

    Example:
        retriever = HybridRetriever(
            store,
            settings=RetrievalSettings(expansion_depth=2),
            entity_extractor=PatternEntityExtractor(),
            embedding_model=my_embedder,
        )
        result = await retriever.retrieve("How does login validate credentials?")
        for node_id in result.seed_node_ids:
            print(node_id, result.score_map[node_id])
    """

    def __init__(
        self,
        store: GraphStore,
        settings: Optional[RetrievalSettings] = None,
        entity_extractor: Optional[EntityExtractor] = None,
        embedding_model: Optional[EmbeddingModel] = None,
    ):
        self.store = store
        self.settings = settings or RetrievalSettings()
        self.entity_extractor = entity_extractor
        self.embedding_model = embedding_model

        s = self.settings
        self.search_executor = ParallelSearchExecutor(
            store,
            lexical_limit=s.lexical_limit,
            vector_limit=s.vector_limit,
            timeout_seconds=s.search_timeout_seconds,
        )
        self.combiner = ResultCombiner(s.fusion)
        self.expander = GraphExpander(store, timeout_seconds=s.expansion_timeout_seconds)
        self.scorer = NodeScorer(degree_weight=s.degree_weight)
        self.reranker = ReRanker(
            store,
            relevance_floor=s.relevance_floor,
            max_expansion_nodes=s.max_expansion_nodes,
            keep_unembedded=s.keep_unembedded,
            enabled=s.rerank_enabled,
            timeout_seconds=s.expansion_timeout_seconds,
        )

        log.info(
            "HybridRetriever initialized",
            expansion_depth=s.expansion_depth,
            node_cap=s.expansion_node_cap,
            lexical_weight=s.fusion.lexical_weight,
            vector_weight=s.fusion.vector_weight,
        )

    async def retrieve(
        self,
        query: str,
        terms: Optional[ExtractedTerms] = None,
        query_embedding: Optional[Sequence[float]] = None,
    ) -> RetrievalResult:
        """
        Retrieve the relevant SubGraph for a query.

        Args:
            query: Natural language question
            terms: Pre-extracted terms (extracted with entity_extractor if None)
            query_embedding: Query vector (computed with embedding_model if None)

        Returns:
            RetrievalResult; empty subgraph when nothing matched
        """
        start_time = time.time()
        s = self.settings
        metadata: Dict[str, Any] = {"query": query}

        if terms is None:
            terms = self._extract_terms(query, metadata)
        if query_embedding is None:
            query_embedding = await self._embed(query, metadata)
        if query_embedding is not None:
            # numpy arrays and other sequences become a plain list of floats
            query_embedding = [float(x) for x in query_embedding]
        metadata["terms"] = terms.to_dict()
        metadata["has_embedding"] = bool(query_embedding)

        fusion = s.fusion
        depth = s.expansion_depth
        relationship_types = None
        type_boosts = None
        if s.intent_strategies_enabled:
            intent = classify_intent(query)
            strategy = get_strategy(intent)
            if intent is not QueryIntent.GENERAL:
                fusion = strategy.fusion_weights(s.fusion)
                if strategy.expansion_depth is not None:
                    depth = strategy.expansion_depth
                relationship_types = strategy.relationship_types
                type_boosts = dict(strategy.type_boosts) or None
            metadata["intent"] = intent.value

        # 1. Search
        search = await self.search_executor.search(terms, query_embedding)
        metadata["lexical_hits"] = len(search.lexical_hits)
        metadata["vector_hits"] = len(search.vector_hits)
        if search.failures:
            metadata["search_failures"] = dict(search.failures)

        # 2. Combine
        ranked = self.combiner.combine(search.lexical_hits, search.vector_hits, weights=fusion)
        ranked_by_id = {r.node_id: r for r in ranked}

        # 3. Threshold + limit
        candidates = self._select_seeds(ranked)
        metadata["seed_candidates"] = len(candidates)
        if not candidates:
            log.info("No seeds above threshold", query=query[:50], threshold=s.score_threshold)
            metadata["retrieval_time_ms"] = (time.time() - start_time) * 1000
            return RetrievalResult(ranked_results=ranked, metadata=metadata)

        # 4. Expand
        subgraph = await self.expander.expand(
            candidates,
            max_hops=depth,
            cap=s.expansion_node_cap,
            relationship_types=relationship_types,
        )
        if self.expander.last_error is not None:
            metadata["expansion_error"] = self.expander.last_error.reason
            metadata["expansion_partial"] = True
        seed_ids = [nid for nid in candidates if nid in subgraph.nodes]
        metadata["dropped_seeds"] = len(candidates) - len(seed_ids)
        metadata["expanded_nodes"] = len(subgraph.nodes)

        # 5. Score
        importance = self.scorer.score(subgraph, ranked_by_id, seed_ids, type_boosts=type_boosts)

        # 6. Re-rank
        outcome = await self.reranker.rerank(subgraph, query_embedding, seed_ids)
        subgraph = outcome.subgraph
        metadata["pruned_nodes"] = len(outcome.pruned_ids)
        if outcome.skipped:
            metadata["rerank_skipped"] = outcome.reason

        # 7. Assemble
        seed_set = set(seed_ids)
        score_map: Dict[str, float] = {}
        for node_id in subgraph.nodes:
            if node_id in seed_set:
                score_map[node_id] = (
                    s.seed_combined_weight * ranked_by_id[node_id].combined_score
                    + s.seed_importance_weight * importance[node_id]
                )
            else:
                score_map[node_id] = importance[node_id] * s.expansion_discount

        metadata["final_nodes"] = len(subgraph.nodes)
        metadata["final_edges"] = len(subgraph.edges)
        metadata["retrieval_time_ms"] = (time.time() - start_time) * 1000

        log.info(
            "Hybrid retrieval completed",
            query=query[:50],
            seeds=len(seed_ids),
            nodes=len(subgraph.nodes),
            edges=len(subgraph.edges),
            degraded=bool(search.failures) or self.expander.last_error is not None,
        )

        return RetrievalResult(
            seed_node_ids=seed_ids,
            subgraph=subgraph,
            score_map=score_map,
            ranked_results=ranked,
            metadata=metadata,
        )

    def _select_seeds(self, ranked: List[RankedResult]) -> List[str]:
        s = self.settings
        selected = [
            r.node_id for r in ranked
            if r.combined_score >= s.score_threshold and r.combined_score > 0
        ]
        return selected[:s.initial_limit]

    def _extract_terms(self, query: str, metadata: Dict[str, Any]) -> ExtractedTerms:
        if self.entity_extractor is None:
            return ExtractedTerms()
        try:
            return self.entity_extractor.extract(query)
        except Exception as e:
            log.warning(f"Entity extraction failed, lexical search disabled: {e}")
            metadata["extraction_error"] = str(e)
            return ExtractedTerms()

    async def _embed(self, query: str, metadata: Dict[str, Any]) -> Optional[List[float]]:
        if self.embedding_model is None:
            return None
        try:
            return await asyncio.wait_for(
                self.embedding_model.embed(query),
                timeout=self.settings.embedding_timeout_seconds,
            )
        except asyncio.TimeoutError:
            log.warning("Query embedding timed out, vector search disabled")
            metadata["embedding_error"] = "timeout"
            return None
        except Exception as e:
            log.warning(f"Query embedding failed, vector search disabled: {e}")
            metadata["embedding_error"] = str(e)
            return None
