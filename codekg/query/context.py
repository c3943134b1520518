"""
Query Execution Context
=======================

State threaded through one pipeline run.

Created once per incoming query, mutated by each step, discarded once the
QueryResult is returned. ``refinement_count`` only grows and never exceeds
``max_refinements``.
"""

import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from codekg.query.models import QueryResult, RelevantContext
from codekg.retrieval.models import RetrievalResult


@dataclass
class QueryExecutionContext:
    """
    Mutable per-query state.

    Attributes:
        original_query: The user's question
        execution_id: Unique id of this run
        max_refinements: Upper bound on refinement iterations
        start_time: Wall-clock start
        retrieval_result: Output of RETRIEVE
        distilled_context: Output of DISTILL
        generated_answer: Output of GENERATE
        verified: Output of VERIFY
        verification_errors: Errors of the latest VERIFY
        refinement_count: Refinements performed so far
        metadata: Free-form step annotations
        completed_steps: Names of finished steps, in completion order
    """
    original_query: str
    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    max_refinements: int = 3
    start_time: datetime = field(default_factory=datetime.now)
    retrieval_result: Optional[RetrievalResult] = None
    distilled_context: Optional[List[RelevantContext]] = None
    generated_answer: Optional[QueryResult] = None
    verified: bool = False
    verification_errors: List[str] = field(default_factory=list)
    refinement_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    # deque.append is atomic, step completions may land from several tasks
    completed_steps: Deque[str] = field(default_factory=deque)
    _started: float = field(default_factory=time.monotonic, repr=False)

    def __post_init__(self):
        if self.max_refinements < 0:
            raise ValueError(f"max_refinements must be >= 0, got {self.max_refinements}")

    def can_refine(self) -> bool:
        return not self.verified and self.refinement_count < self.max_refinements

    def increment_refinement_count(self) -> int:
        if self.refinement_count >= self.max_refinements:
            raise RuntimeError(
                f"Refinement limit reached ({self.max_refinements}) for execution {self.execution_id}"
            )
        self.refinement_count += 1
        return self.refinement_count

    def mark_step_complete(self, step_name: str) -> None:
        self.completed_steps.append(step_name)

    def add_verification_error(self, message: str) -> None:
        self.verification_errors.append(message)

    def has_retrieval_results(self) -> bool:
        return self.retrieval_result is not None and not self.retrieval_result.is_empty

    def has_distilled_context(self) -> bool:
        return bool(self.distilled_context)

    def processing_time_ms(self) -> float:
        return (time.monotonic() - self._started) * 1000

    def __repr__(self) -> str:
        return (
            f"<QueryExecutionContext({self.execution_id[:8]}..., "
            f"verified={self.verified}, refinements={self.refinement_count}/{self.max_refinements}, "
            f"steps={list(self.completed_steps)})>"
        )
