"""
codekg Query Pipeline
=====================

Question answering over the code graph with a bounded
generate -> verify -> refine loop.

Components:
- QueryExecutionContext: per-query state
- QueryPipeline: step state machine
- VerificationService: graph check of generated claims
- ContextDistiller, GenerationService, RefinementService, FinalizationService: steps
- QueryOrchestrator: entry point
"""

from codekg.query.context import QueryExecutionContext
from codekg.query.distillation import ContextDistiller
from codekg.query.entities import PatternEntityExtractor
from codekg.query.finalization import FinalizationService, compute_confidence
from codekg.query.generation import GenerationService
from codekg.query.models import QueryResult, RelationshipClaim, RelevantComponent, RelevantContext
from codekg.query.orchestrator import QueryOrchestrator
from codekg.query.pipeline import PipelineStep, QueryPipeline
from codekg.query.refinement import RefinementService
from codekg.query.retrieval import RetrievalService
from codekg.query.verification import VerificationReport, VerificationService

__all__ = [
    "QueryExecutionContext",
    "ContextDistiller",
    "PatternEntityExtractor",
    "FinalizationService",
    "compute_confidence",
    "GenerationService",
    "QueryResult",
    "RelationshipClaim",
    "RelevantComponent",
    "RelevantContext",
    "QueryOrchestrator",
    "PipelineStep",
    "QueryPipeline",
    "RefinementService",
    "RetrievalService",
    "VerificationReport",
    "VerificationService",
]
