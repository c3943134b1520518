"""
codekg Hybrid Retrieval
=======================

Lexical + vector search fused, expanded over the graph, scored and re-ranked.

Components:
- ParallelSearchExecutor: concurrent lexical/vector search
- ResultCombiner: score fusion
- GraphExpander: bounded BFS
- NodeScorer: importance scores
- ReRanker: semantic pruning of expansion noise
- HybridRetriever: the composition
"""

from codekg.retrieval.combiner import ResultCombiner
from codekg.retrieval.expander import GraphExpander
from codekg.retrieval.hybrid import HybridRetriever
from codekg.retrieval.models import ParallelSearchResult, RankedResult, RetrievalResult
from codekg.retrieval.reranker import ReRanker, RerankOutcome
from codekg.retrieval.scorer import NodeScorer
from codekg.retrieval.search import ParallelSearchExecutor
from codekg.retrieval.strategy import QueryIntent, SearchStrategy, classify_intent, get_strategy

__all__ = [
    "ResultCombiner",
    "GraphExpander",
    "HybridRetriever",
    "ParallelSearchResult",
    "RankedResult",
    "RetrievalResult",
    "ReRanker",
    "RerankOutcome",
    "NodeScorer",
    "ParallelSearchExecutor",
    "QueryIntent",
    "SearchStrategy",
    "classify_intent",
    "get_strategy",
]
