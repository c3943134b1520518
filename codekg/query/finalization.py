"""
Finalization Service
====================

FINALIZE step: computes the overall confidence and annotates the answer.

Confidence:
    0.5 base
    +0.3 when verified
    +0.15 with more than 5 distilled components, +0.1 with more than 2
    +0.05 without refinements, -0.05 per refinement otherwise
    +0.1 when retrieval produced seeds
    clamped to [0, 1]; degraded answers capped at ``degraded_cap``
"""

import structlog

from codekg.query.context import QueryExecutionContext
from codekg.query.models import QueryResult

log = structlog.get_logger()


def compute_confidence(context: QueryExecutionContext, degraded_cap: float = 0.2) -> float:
    confidence = 0.5

    if context.verified:
        confidence += 0.3

    distilled = len(context.distilled_context or [])
    if distilled > 5:
        confidence += 0.15
    elif distilled > 2:
        confidence += 0.1

    if context.refinement_count == 0:
        confidence += 0.05
    else:
        confidence -= 0.05 * context.refinement_count

    if context.retrieval_result is not None and context.retrieval_result.seed_node_ids:
        confidence += 0.1

    confidence = min(1.0, max(0.0, confidence))

    answer = context.generated_answer
    if answer is not None and (answer.degraded or answer.metadata.get("no_context")):
        confidence = min(confidence, degraded_cap)
    return confidence


class FinalizationService:
    """Stamps the confidence and run annotations on the generated answer."""

    def __init__(self, degraded_confidence_cap: float = 0.2):
        self.degraded_confidence_cap = degraded_confidence_cap

    def finalize(self, context: QueryExecutionContext) -> QueryExecutionContext:
        if context.generated_answer is None:
            context.generated_answer = QueryResult(
                query=context.original_query,
                summary="No answer was generated for the query.",
                metadata={"no_answer": True},
            )

        answer = context.generated_answer
        answer.confidence = compute_confidence(context, self.degraded_confidence_cap)
        answer.metadata["refinement_iterations"] = context.refinement_count
        answer.metadata["verified"] = context.verified
        answer.metadata["execution_id"] = context.execution_id
        if context.retrieval_result is not None:
            answer.metadata["retrieval"] = {
                key: value
                for key, value in context.retrieval_result.metadata.items()
                if key != "query"
            }
        if not context.verified and context.verification_errors:
            answer.metadata["unverified_claims"] = sum(
                1 for claim in answer.relationships if not claim.verified
            )

        log.info(
            "Query finalized",
            execution_id=context.execution_id,
            confidence=round(answer.confidence, 3),
            verified=context.verified,
            refinements=context.refinement_count,
        )
        return context
