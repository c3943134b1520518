"""
Refinement Service
==================

REFINE step: prepares the context for another generate/verify cycle.
"""

import structlog

from codekg.query.context import QueryExecutionContext

log = structlog.get_logger()


class RefinementService:
    """Carries the last verification errors into the next generation prompt."""

    def refine(self, context: QueryExecutionContext) -> QueryExecutionContext:
        context.metadata["is_refinement"] = True
        context.metadata["refinement_iteration"] = context.refinement_count
        context.metadata["previous_errors"] = list(context.verification_errors)
        context.verified = False

        log.debug(
            "Refinement prepared",
            execution_id=context.execution_id,
            iteration=context.refinement_count,
            errors=len(context.verification_errors),
        )
        return context
