"""
codekg: Question Answering over Code Knowledge Graphs
=====================================================

Hybrid lexical + vector + graph retrieval over a property graph of a codebase,
followed by a bounded generate -> verify -> refine loop that checks every
relationship the answer asserts against the graph.

Quick Start:
    from codekg import (
        HybridRetriever, InMemoryGraphStore, PatternEntityExtractor,
        QueryOrchestrator, load_settings,
    )

    settings = load_settings()
    retriever = HybridRetriever(store, settings.retrieval, PatternEntityExtractor())
    orchestrator = QueryOrchestrator(retriever, store, answerer, settings)
    result = await orchestrator.process_query("How does login validate credentials?")

Components:
- retrieval: ParallelSearchExecutor, ResultCombiner, GraphExpander, NodeScorer, ReRanker, HybridRetriever
- query: QueryExecutionContext, QueryPipeline, VerificationService, QueryOrchestrator
- storage: GraphStore, FalkorGraphStore, InMemoryGraphStore
- services: OpenRouterAnswerer, OpenRouterEmbedder
"""

__version__ = "0.1.0"

from codekg.config import CodeKGSettings, load_settings
from codekg.interfaces import ExtractedTerms
from codekg.query import (
    PatternEntityExtractor,
    QueryExecutionContext,
    QueryOrchestrator,
    QueryPipeline,
    QueryResult,
    RelationshipClaim,
    VerificationService,
)
from codekg.retrieval import HybridRetriever, RetrievalResult
from codekg.storage import GraphStore, InMemoryGraphStore

__all__ = [
    "CodeKGSettings",
    "load_settings",
    "ExtractedTerms",
    "PatternEntityExtractor",
    "QueryExecutionContext",
    "QueryOrchestrator",
    "QueryPipeline",
    "QueryResult",
    "RelationshipClaim",
    "VerificationService",
    "HybridRetriever",
    "RetrievalResult",
    "GraphStore",
    "InMemoryGraphStore",
]
