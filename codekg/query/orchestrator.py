"""
Query Orchestrator
==================

Public entry point: question in, QueryResult out.

Builds one QueryExecutionContext and one QueryPipeline per query:

    retrieve -> distill -> generate -> verify -> (refine -> generate -> verify)* -> finalize

Never raises to the caller: failures come back as QueryResult(error=True).

Example:
    orchestrator = QueryOrchestrator(retriever, store, answerer=OpenRouterAnswerer())
    result = await orchestrator.process_query("How does login validate credentials?")
    print(result.summary, result.confidence, result.metadata["verified"])
"""

import asyncio
import time
import uuid
from typing import Optional

import structlog

from codekg.config.settings import CodeKGSettings
from codekg.interfaces import Answerer
from codekg.query.context import QueryExecutionContext
from codekg.query.distillation import ContextDistiller
from codekg.query.finalization import FinalizationService
from codekg.query.generation import GenerationService
from codekg.query.models import QueryResult
from codekg.query.pipeline import QueryPipeline
from codekg.query.refinement import RefinementService
from codekg.query.retrieval import RetrievalService
from codekg.query.verification import VerificationService
from codekg.retrieval.hybrid import HybridRetriever
from codekg.storage.graph.store import GraphStore

log = structlog.get_logger()


class QueryOrchestrator:
    """
    Wires the step services into a pipeline per query.

    Attributes:
        retrieval: RETRIEVE step
        distiller: DISTILL step
        generator: GENERATE step
        verifier: VERIFY step
        refiner: REFINE step
        finalizer: FINALIZE step
    """

    def __init__(
        self,
        retriever: HybridRetriever,
        store: GraphStore,
        answerer: Optional[Answerer] = None,
        settings: Optional[CodeKGSettings] = None,
        relevance_answerer: Optional[Answerer] = None,
    ):
        """
        Args:
            retriever: Configured HybridRetriever
            store: GraphStore used for claim verification
            answerer: LLM used for answer generation
            settings: Pipeline settings (defaults if None)
            relevance_answerer: LLM used for DISTILL relevance checks; None
                uses retrieval scores instead
        """
        self.settings = settings or CodeKGSettings()
        p = self.settings.pipeline

        self.retrieval = RetrievalService(retriever)
        self.distiller = ContextDistiller(
            relevance_answerer,
            max_concurrency=p.distill_max_concurrency,
            max_items=p.distill_max_items,
            timeout_seconds=p.distill_timeout_seconds,
        )
        self.generator = GenerationService(answerer, timeout_seconds=p.generation_timeout_seconds)
        self.verifier = VerificationService(
            store,
            timeout_seconds=p.claim_check_timeout_seconds,
            max_concurrency=p.verification_max_concurrency,
        )
        self.refiner = RefinementService()
        self.finalizer = FinalizationService(p.degraded_confidence_cap)

    def build_pipeline(self, context: QueryExecutionContext) -> QueryPipeline:
        p = self.settings.pipeline
        repeat = ("distill", "generate", "verify") if p.distill_on_refinement else ("generate", "verify")
        return (
            QueryPipeline.create(context, step_timeout=p.step_timeout_seconds)
            .step("retrieve", self.retrieval.retrieve)
            .step("distill", self.distiller.distill)
            .step("generate", self.generator.generate)
            .step("verify", self.verifier.verify)
            .refinement_loop("refine", self.refiner.refine, repeat=repeat)
            .final_step("finalize", self.finalizer.finalize)
        )

    async def process_query(
        self,
        query: str,
        max_refinements: Optional[int] = None,
    ) -> QueryResult:
        """
        Answer a question about the codebase.

        Args:
            query: Natural language question
            max_refinements: Override of pipeline.max_refinements

        Returns:
            QueryResult, with error=True if the pipeline could not answer
        """
        start_time = time.time()
        execution_id = str(uuid.uuid4())
        limit = self.settings.pipeline.max_refinements if max_refinements is None else max_refinements

        log.info("Processing query", execution_id=execution_id, query=query[:80])

        try:
            context = QueryExecutionContext(
                original_query=query,
                execution_id=execution_id,
                max_refinements=limit,
            )
            return await self.build_pipeline(context).execute()
        except Exception as e:
            log.error(f"Query processing failed: {e}", execution_id=execution_id)
            return QueryResult.failure(
                query,
                str(e),
                metadata={
                    "execution_id": execution_id,
                    "error_type": type(e).__name__,
                    "completed_steps": [],
                },
                processing_time_ms=(time.time() - start_time) * 1000,
            )

    def query(self, query: str, max_refinements: Optional[int] = None) -> QueryResult:
        """Synchronous wrapper around process_query()."""
        return asyncio.run(self.process_query(query, max_refinements=max_refinements))
