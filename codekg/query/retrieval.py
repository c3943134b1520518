"""
Retrieval Step
==============

RETRIEVE step: runs the HybridRetriever for the context's query.
"""

import structlog

from codekg.query.context import QueryExecutionContext
from codekg.retrieval.hybrid import HybridRetriever

log = structlog.get_logger()


class RetrievalService:
    """Adapts HybridRetriever to the pipeline step signature."""

    def __init__(self, retriever: HybridRetriever):
        self.retriever = retriever

    async def retrieve(self, context: QueryExecutionContext) -> QueryExecutionContext:
        result = await self.retriever.retrieve(context.original_query)
        context.retrieval_result = result
        context.metadata["seed_count"] = len(result.seed_node_ids)
        context.metadata["retrieved_nodes"] = len(result.subgraph.nodes)
        context.metadata["retrieved_edges"] = len(result.subgraph.edges)
        if "search_failures" in result.metadata:
            context.metadata["search_failures"] = result.metadata["search_failures"]

        if result.is_empty:
            log.info("Retrieval returned no nodes", execution_id=context.execution_id)
        return context
