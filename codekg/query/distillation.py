"""
Context Distiller
=================

DISTILL step: narrows the retrieved SubGraph to the components worth showing
the answer generator.

Candidates are method nodes and key classes (interfaces, abstract classes,
*Service / *Controller / *Repository / *Manager, or seeds). With an Answerer,
each candidate gets one relevance prompt; the fan-out is bounded by a
semaphore and joined with asyncio.gather. Without one, the retrieval score
is the relevance.
"""

import asyncio
from typing import List, Optional

import structlog

from codekg.interfaces import Answerer
from codekg.query.context import QueryExecutionContext
from codekg.query.llm_json import parse_json_object
from codekg.query.models import RelevantContext
from codekg.storage.graph.models import GraphNode

log = structlog.get_logger()

KEY_CLASS_SUFFIXES = ("Service", "Controller", "Repository", "Manager")
CLASS_TYPES = ("Class", "Interface", "Enum")

EVALUATION_ERROR_SCORE = 0.3
PARSE_ERROR_SCORE = 0.5

RELEVANCE_PROMPT = """Evaluate whether this code component helps answer the question.

Question: {query}

Component type: {type}
Component name: {name}
Signature: {signature}
Summary: {summary}

Reply with JSON only:
{{"relevant": true or false, "relevanceScore": 0.0 to 1.0, "reason": "short explanation"}}
"""


def _is_method(node: GraphNode) -> bool:
    return node.type == "Method" or "Method" in node.labels


def _is_key_class(node: GraphNode) -> bool:
    if node.type not in CLASS_TYPES and not (set(CLASS_TYPES) & node.labels):
        return False
    props = node.properties
    return (
        node.type == "Interface"
        or bool(props.get("isInterface"))
        or bool(props.get("isAbstract"))
        or node.name.endswith(KEY_CLASS_SUFFIXES)
    )


def _summary_of(node: GraphNode) -> str:
    props = node.properties
    return str(props.get("summary") or props.get("description") or props.get("businessLogic") or "")


class ContextDistiller:
    """
    Relevance filter over retrieved nodes.

    Example:
        distiller = ContextDistiller(answerer, max_concurrency=3, max_items=20)
        context = await distiller.distill(context)
        context.distilled_context[0].name
    """

    def __init__(
        self,
        answerer: Optional[Answerer] = None,
        max_concurrency: int = 3,
        max_items: int = 20,
        timeout_seconds: float = 30.0,
    ):
        self.answerer = answerer
        self.max_concurrency = max_concurrency
        self.max_items = max_items
        self.timeout_seconds = timeout_seconds

    async def distill(self, context: QueryExecutionContext) -> QueryExecutionContext:
        """Pipeline step: fill ``context.distilled_context``."""
        if not context.has_retrieval_results():
            context.distilled_context = []
            context.metadata["distilled_count"] = 0
            return context

        candidates = self.extract_candidates(context)
        if self.answerer is None:
            relevant = candidates
        else:
            relevant = await self._evaluate(context.original_query, candidates)

        relevant.sort(key=lambda c: (-c.relevance_score, c.name, c.node_id))
        context.distilled_context = relevant[:self.max_items]
        context.metadata["candidate_count"] = len(candidates)
        context.metadata["distilled_count"] = len(context.distilled_context)

        log.info(
            f"Distilled {len(context.distilled_context)} of {len(candidates)} candidates",
            execution_id=context.execution_id,
        )
        return context

    def extract_candidates(self, context: QueryExecutionContext) -> List[RelevantContext]:
        retrieval = context.retrieval_result
        seeds = set(retrieval.seed_node_ids)
        candidates = []
        for node_id in retrieval.nodes_by_score():
            node = retrieval.subgraph.nodes[node_id]
            if not (_is_method(node) or _is_key_class(node) or node_id in seeds):
                continue
            candidates.append(RelevantContext(
                node_id=node_id,
                name=node.name,
                type="method" if _is_method(node) else "class",
                summary=_summary_of(node),
                signature=str(node.properties.get("signature", "")),
                relevance_score=retrieval.score_map[node_id],
                reason="retrieval score",
            ))
        return candidates

    async def _evaluate(
        self, query: str, candidates: List[RelevantContext]
    ) -> List[RelevantContext]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(candidate: RelevantContext) -> Optional[RelevantContext]:
            async with semaphore:
                return await self._evaluate_one(query, candidate)

        outcomes = await asyncio.gather(*(bounded(c) for c in candidates))
        return [c for c in outcomes if c is not None]

    async def _evaluate_one(
        self, query: str, candidate: RelevantContext
    ) -> Optional[RelevantContext]:
        prompt = RELEVANCE_PROMPT.format(
            query=query,
            type=candidate.type,
            name=candidate.name,
            signature=candidate.signature or "n/a",
            summary=candidate.summary or "n/a",
        )
        try:
            reply = await asyncio.wait_for(
                self.answerer.generate(prompt), timeout=self.timeout_seconds
            )
        except Exception as e:
            log.warning(f"Relevance evaluation failed for {candidate.name}: {e}")
            candidate.relevance_score = EVALUATION_ERROR_SCORE
            candidate.reason = "Evaluation error"
            return candidate

        try:
            data = parse_json_object(reply)
        except ValueError as e:
            log.debug(f"Unparsable relevance reply for {candidate.name}: {e}")
            candidate.relevance_score = PARSE_ERROR_SCORE
            candidate.reason = "Unparsable relevance response"
            return candidate

        if not data.get("relevant", False):
            return None
        try:
            score = float(data.get("relevanceScore", PARSE_ERROR_SCORE))
        except (TypeError, ValueError):
            score = PARSE_ERROR_SCORE
        candidate.relevance_score = min(1.0, max(0.0, score))
        candidate.reason = str(data.get("reason", ""))
        return candidate
