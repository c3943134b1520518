"""
Query Pipeline
==============

Step state machine over a QueryExecutionContext:

    RETRIEVE -> DISTILL -> GENERATE -> VERIFY -> {REFINE -> GENERATE -> VERIFY}* -> FINALIZE

- each step takes the context and returns it (sync or async callable)
- each step runs under a wall-clock timeout
- the refinement loop is an explicit bounded iteration: it runs while
  ``not verified and refinement_count < max_refinements``, so at most
  ``max_refinements + 1`` generate/verify cycles happen
- any step exception ends the run with an error QueryResult; execute() never raises
- the final step always runs last on a successful run

Example:
    pipeline = (
        QueryPipeline.create(context, step_timeout=60.0)
        .step("retrieve", retrieval.retrieve)
        .step("distill", distiller.distill)
        .step("generate", generator.generate)
        .step("verify", verifier.verify)
        .refinement_loop("refine", refiner.refine, repeat=("generate", "verify"))
        .final_step("finalize", finalizer.finalize)
    )
    result = await pipeline.execute()
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

import structlog

from codekg.errors import PipelineFailure
from codekg.query.context import QueryExecutionContext
from codekg.query.models import QueryResult

log = structlog.get_logger()

StepFunction = Callable[
    [QueryExecutionContext],
    Union[QueryExecutionContext, Awaitable[QueryExecutionContext]],
]
Predicate = Callable[[QueryExecutionContext], bool]


@dataclass
class PipelineStep:
    """Named step with an optional run condition."""
    name: str
    function: StepFunction
    condition: Optional[Predicate] = None

    def should_run(self, context: QueryExecutionContext) -> bool:
        return self.condition is None or bool(self.condition(context))


@dataclass
class RefinementLoop:
    """Refine step plus the steps re-run after it on every iteration."""
    refine: PipelineStep
    repeat: Tuple[str, ...]
    extra_condition: Optional[Predicate] = None

    def should_continue(self, context: QueryExecutionContext) -> bool:
        if not context.can_refine():
            return False
        return self.extra_condition is None or bool(self.extra_condition(context))


@dataclass
class _Plan:
    stages: List[Union[PipelineStep, RefinementLoop]] = field(default_factory=list)
    final: Optional[PipelineStep] = None


class QueryPipeline:
    """Builder and executor for the query step state machine."""

    def __init__(self, context: QueryExecutionContext, step_timeout: float = 120.0):
        self.context = context
        self.step_timeout = step_timeout
        self._plan = _Plan()
        self._steps_by_name: Dict[str, PipelineStep] = {}

    @classmethod
    def create(cls, context: QueryExecutionContext, step_timeout: float = 120.0) -> "QueryPipeline":
        return cls(context, step_timeout=step_timeout)

    # ---- builder ----

    def step(self, name: str, function: StepFunction) -> "QueryPipeline":
        return self._add(PipelineStep(name, function))

    def conditional_step(self, name: str, condition: Predicate, function: StepFunction) -> "QueryPipeline":
        return self._add(PipelineStep(name, function, condition))

    def refinement_loop(
        self,
        name: str,
        function: StepFunction,
        repeat: Tuple[str, ...] = ("generate", "verify"),
        condition: Optional[Predicate] = None,
    ) -> "QueryPipeline":
        """
        Add the bounded refinement loop.

        Args:
            name: Name of the refine step
            function: Refine step function
            repeat: Names of previously added steps re-run after each refine
            condition: Extra predicate; the loop bound always applies on top of it
        """
        missing = [n for n in repeat if n not in self._steps_by_name]
        if missing:
            raise ValueError(f"Refinement loop repeats unknown steps: {missing}")
        loop = RefinementLoop(PipelineStep(name, function), tuple(repeat), condition)
        self._plan.stages.append(loop)
        return self

    def final_step(self, name: str, function: StepFunction) -> "QueryPipeline":
        self._plan.final = PipelineStep(name, function)
        return self

    def _add(self, step: PipelineStep) -> "QueryPipeline":
        if step.name in self._steps_by_name:
            raise ValueError(f"Duplicate step name: {step.name}")
        self._steps_by_name[step.name] = step
        self._plan.stages.append(step)
        return self

    # ---- execution ----

    async def execute(self) -> QueryResult:
        """Run all steps. Always returns a QueryResult."""
        ctx = self.context
        log.info(
            "Pipeline execution started",
            execution_id=ctx.execution_id,
            query=ctx.original_query[:50],
        )

        try:
            for stage in self._plan.stages:
                if isinstance(stage, RefinementLoop):
                    ctx = await self._run_refinement_loop(stage, ctx)
                else:
                    ctx = await self._run_step(stage, ctx)

            if self._plan.final is not None:
                ctx = await self._run_step(self._plan.final, ctx)

            return self._build_result(ctx)

        except PipelineFailure as e:
            return self._handle_failure(ctx, e)
        except Exception as e:
            return self._handle_failure(ctx, PipelineFailure("pipeline", e))

    async def _run_refinement_loop(
        self, loop: RefinementLoop, ctx: QueryExecutionContext
    ) -> QueryExecutionContext:
        while loop.should_continue(ctx):
            iteration = ctx.increment_refinement_count()
            log.info(
                f"Refinement iteration {iteration}/{ctx.max_refinements}",
                execution_id=ctx.execution_id,
                errors=len(ctx.verification_errors),
            )
            ctx = await self._run_step(loop.refine, ctx)
            for name in loop.repeat:
                ctx = await self._run_step(self._steps_by_name[name], ctx)

        if not ctx.verified:
            log.warning(
                "Refinement exhausted without verification",
                execution_id=ctx.execution_id,
                refinements=ctx.refinement_count,
            )
        return ctx

    async def _run_step(self, step: PipelineStep, ctx: QueryExecutionContext) -> QueryExecutionContext:
        if not step.should_run(ctx):
            log.debug(f"Skipping step: {step.name}", execution_id=ctx.execution_id)
            return ctx

        log.debug(f"Executing step: {step.name}", execution_id=ctx.execution_id)
        try:
            outcome = step.function(ctx)
            if inspect.isawaitable(outcome):
                outcome = await asyncio.wait_for(outcome, timeout=self.step_timeout)
        except asyncio.TimeoutError as e:
            raise PipelineFailure(
                step.name, TimeoutError(f"step timed out after {self.step_timeout}s")
            ) from e
        except Exception as e:
            raise PipelineFailure(step.name, e) from e

        if not isinstance(outcome, QueryExecutionContext):
            raise PipelineFailure(
                step.name, TypeError(f"step returned {type(outcome).__name__}, expected context")
            )

        outcome.mark_step_complete(step.name)
        return outcome

    def _build_result(self, ctx: QueryExecutionContext) -> QueryResult:
        result = ctx.generated_answer
        if result is None:
            result = QueryResult(
                query=ctx.original_query,
                summary="No answer was generated for the query.",
                metadata={"no_answer": True},
            )
        result.processing_time_ms = ctx.processing_time_ms()
        result.metadata.update({
            "execution_id": ctx.execution_id,
            "completed_steps": list(ctx.completed_steps),
            "refinement_count": ctx.refinement_count,
            "verified": ctx.verified,
            "processing_time_ms": result.processing_time_ms,
        })
        if ctx.verification_errors:
            result.metadata["verification_errors"] = list(ctx.verification_errors)

        log.info(
            "Pipeline execution completed",
            execution_id=ctx.execution_id,
            verified=ctx.verified,
            refinements=ctx.refinement_count,
            time_ms=round(result.processing_time_ms, 1),
        )
        return result

    def _handle_failure(self, ctx: QueryExecutionContext, failure: PipelineFailure) -> QueryResult:
        log.error(
            f"Pipeline step '{failure.step_name}' failed: {failure.cause}",
            execution_id=ctx.execution_id,
            error_type=type(failure.cause).__name__,
        )
        metadata: Dict[str, Any] = {
            "execution_id": ctx.execution_id,
            "failed_step": failure.step_name,
            "error_type": type(failure.cause).__name__,
            "completed_steps": list(ctx.completed_steps),
            "refinement_count": ctx.refinement_count,
            "verified": False,
        }
        return QueryResult.failure(
            ctx.original_query,
            str(failure.cause),
            metadata=metadata,
            processing_time_ms=ctx.processing_time_ms(),
        )
