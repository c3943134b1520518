"""
Generation Service
==================

GENERATE step: turns the distilled context into a structured answer.

The Answerer reply is opaque text expected to hold a JSON object:

    {
      "summary": "...",
      "components": [{"type": "method", "name": "...", "signature": "...",
                      "summary": "...", "relevanceScore": 0.9}],
      "relationships": [{"from": "...", "to": "...", "type": "CALLS"}],
      "metadata": {...}
    }

A failing call or an unparsable reply yields a flagged default answer built
from the distilled context (no claims, confidence 0, metadata["degraded"]).
"""

import asyncio
from typing import Any, Dict, List, Optional

import structlog

from codekg.errors import GenerationFailure
from codekg.interfaces import Answerer
from codekg.query.context import QueryExecutionContext
from codekg.query.llm_json import parse_json_object
from codekg.query.models import QueryResult, RelationshipClaim, RelevantComponent, RelevantContext

log = structlog.get_logger()

NO_CONTEXT_SUMMARY = "No relevant context found for the query."
DEFAULT_COMPONENT_RELEVANCE = 0.8

ANSWER_PROMPT = """You are answering a question about a codebase using only the components below.

Question: {query}

Relevant components:
{components}
{refinement}
Reply with a JSON object only, using this schema:
{{
  "summary": "natural language answer",
  "components": [{{"type": "method|class", "name": "...", "signature": "...", "summary": "...", "relevanceScore": 0.0}}],
  "relationships": [{{"from": "component name", "to": "component name", "type": "CALLS|CONTAINS|IMPLEMENTS|EXTENDS|USES"}}],
  "metadata": {{}}
}}
Only state relationships you can see in the components above.
"""

REFINEMENT_SECTION = """
Your previous answer contained relationships that do not exist in the code graph:
{errors}
Remove or correct them.
"""


def build_prompt(context: QueryExecutionContext) -> str:
    lines = []
    for i, item in enumerate(context.distilled_context or [], 1):
        line = f"{i}. [{item.type}] {item.name}"
        if item.signature:
            line += f" | {item.signature}"
        if item.summary:
            line += f" | {item.summary}"
        lines.append(line)

    refinement = ""
    previous = context.metadata.get("previous_errors") or []
    if context.metadata.get("is_refinement") and previous:
        refinement = REFINEMENT_SECTION.format(errors="\n".join(f"- {e}" for e in previous))

    return ANSWER_PROMPT.format(
        query=context.original_query,
        components="\n".join(lines),
        refinement=refinement,
    )


def _parse_components(items: Any) -> List[RelevantComponent]:
    components = []
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        try:
            relevance = float(item.get("relevanceScore", DEFAULT_COMPONENT_RELEVANCE))
        except (TypeError, ValueError):
            relevance = DEFAULT_COMPONENT_RELEVANCE
        components.append(RelevantComponent(
            type=str(item.get("type", "class")),
            name=str(item["name"]),
            signature=str(item.get("signature", "")),
            summary=str(item.get("summary", "")),
            relevance_score=relevance,
        ))
    return components


def _parse_relationships(items: Any) -> List[RelationshipClaim]:
    claims = []
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        claims.append(RelationshipClaim(
            from_component=str(item.get("from", "")),
            to_component=str(item.get("to", "")),
            relationship_type=str(item.get("type", "")),
        ))
    return claims


def _components_from_context(items: List[RelevantContext]) -> List[RelevantComponent]:
    return [
        RelevantComponent(
            type=item.type,
            name=item.name,
            signature=item.signature,
            summary=item.summary,
            relevance_score=item.relevance_score,
        )
        for item in items
    ]


class GenerationService:
    """
    Answer generator over an Answerer.

    Example:
        generator = GenerationService(answerer, timeout_seconds=60.0)
        context = await generator.generate(context)
        context.generated_answer.summary
    """

    def __init__(self, answerer: Optional[Answerer] = None, timeout_seconds: float = 60.0):
        self.answerer = answerer
        self.timeout_seconds = timeout_seconds

    async def generate(self, context: QueryExecutionContext) -> QueryExecutionContext:
        """Pipeline step: fill ``context.generated_answer``."""
        attempt = context.metadata.get("generation_attempt", 0) + 1
        context.metadata["generation_attempt"] = attempt

        if not context.has_distilled_context():
            context.generated_answer = QueryResult(
                query=context.original_query,
                summary=NO_CONTEXT_SUMMARY,
                confidence=0.0,
                metadata={"no_context": True},
            )
            return context

        try:
            context.generated_answer = await self._generate_answer(context)
        except GenerationFailure as e:
            log.warning(
                f"Generation degraded: {e.reason}",
                execution_id=context.execution_id,
                attempt=attempt,
            )
            context.generated_answer = self._degraded_answer(context, e)

        log.debug(
            "Answer generated",
            execution_id=context.execution_id,
            attempt=attempt,
            claims=len(context.generated_answer.relationships),
        )
        return context

    async def _generate_answer(self, context: QueryExecutionContext) -> QueryResult:
        if self.answerer is None:
            raise GenerationFailure("no answerer configured")
        prompt = build_prompt(context)
        try:
            reply = await asyncio.wait_for(
                self.answerer.generate(prompt), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise GenerationFailure(f"answerer timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            raise GenerationFailure(f"answerer call failed: {e}") from e

        try:
            data = parse_json_object(reply)
        except ValueError as e:
            raise GenerationFailure(f"unparsable response: {e}", raw_response=reply) from e

        metadata: Dict[str, Any] = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        return QueryResult(
            query=context.original_query,
            summary=str(data.get("summary", "")),
            components=_parse_components(data.get("components")),
            relationships=_parse_relationships(data.get("relationships")),
            metadata=dict(metadata),
        )

    def _degraded_answer(self, context: QueryExecutionContext, failure: GenerationFailure) -> QueryResult:
        metadata: Dict[str, Any] = {"degraded": True}
        if failure.raw_response is not None:
            metadata["parse_error"] = failure.reason
        else:
            metadata["generation_error"] = failure.reason
        return QueryResult(
            query=context.original_query,
            summary=(
                "Failed to generate a structured answer; "
                "listing the most relevant components instead."
            ),
            components=_components_from_context(context.distilled_context or []),
            relationships=[],
            confidence=0.0,
            metadata=metadata,
        )
