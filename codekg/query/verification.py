"""
Verification Service
====================

Checks the relationship claims of a generated answer against the code graph.

Per claim: one read-only existence check (edge of the claimed type from the
claimed source to the claimed target), under a timeout. A check that errors or
times out marks its claim unverified (fail-closed); the step itself succeeds.

success_rate = verified / total, and 1.0 when there are no claims.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from codekg.errors import VerificationFailure
from codekg.query.context import QueryExecutionContext
from codekg.query.models import RelationshipClaim
from codekg.storage.graph.store import GraphStore

log = structlog.get_logger()


@dataclass
class VerificationReport:
    """
    Outcome of checking a batch of claims.

    Attributes:
        verified: True when no claim is unverified
        total_claims: Claims checked
        verified_claims: Claims found in the graph
        errors: One message per unverified claim, in claim order
    """
    verified: bool
    total_claims: int
    verified_claims: int
    errors: List[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_claims == 0:
            return 1.0
        return self.verified_claims / self.total_claims


class VerificationService:
    """
    Graph-backed claim verifier.

    Example:
        service = VerificationService(store, timeout_seconds=5.0)
        report = await service.verify_claims([
            RelationshipClaim("AuthService", "login", "CONTAINS"),
        ])
        report.verified, report.success_rate
    """

    def __init__(
        self,
        store: GraphStore,
        timeout_seconds: float = 5.0,
        max_concurrency: int = 5,
    ):
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.max_concurrency = max_concurrency

    async def verify(self, context: QueryExecutionContext) -> QueryExecutionContext:
        """Pipeline step: verify the claims of ``context.generated_answer``."""
        attempt = context.metadata.get("verification_attempt", 0) + 1
        context.metadata["verification_attempt"] = attempt
        context.verification_errors = []

        answer = context.generated_answer
        if answer is None:
            context.verified = False
            context.add_verification_error("No result to verify")
            log.warning("No result to verify", execution_id=context.execution_id)
            return context

        report = await self.verify_claims(answer.relationships)

        context.verified = report.verified
        for message in report.errors:
            context.add_verification_error(message)

        context.metadata["total_relationships"] = report.total_claims
        context.metadata["verified_relationships"] = report.verified_claims
        context.metadata["verification_success_rate"] = report.success_rate
        answer.metadata["verification_success_rate"] = report.success_rate

        log.info(
            "Verification completed",
            execution_id=context.execution_id,
            attempt=attempt,
            verified=report.verified,
            claims=report.total_claims,
            success_rate=round(report.success_rate, 3),
        )
        return context

    async def verify_claims(self, claims: List[RelationshipClaim]) -> VerificationReport:
        """Check every claim and set its ``verified`` flag."""
        if not claims:
            return VerificationReport(verified=True, total_claims=0, verified_claims=0)

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(claim: RelationshipClaim) -> Optional[str]:
            async with semaphore:
                return await self._check_claim(claim)

        # gather keeps claim order, so error order is deterministic
        outcomes = await asyncio.gather(*(bounded(c) for c in claims))

        errors = [message for message in outcomes if message is not None]
        verified_count = sum(1 for c in claims if c.verified)
        return VerificationReport(
            verified=not errors,
            total_claims=len(claims),
            verified_claims=verified_count,
            errors=errors,
        )

    async def _check_claim(self, claim: RelationshipClaim) -> Optional[str]:
        """Return None when verified, otherwise the error message."""
        claim.verified = False
        source = (claim.from_component or "").strip()
        target = (claim.to_component or "").strip()
        rel_type = (claim.relationship_type or "").strip().upper()

        if not source or not target or not rel_type:
            return f"Incomplete relationship claim: {claim.describe()}"

        try:
            exists = await self._edge_exists(source, target, rel_type, claim)
        except VerificationFailure as e:
            log.warning(str(e))
            return str(e)

        if not exists:
            return f"Invalid relationship claim: {source} -> {target} ({rel_type})"

        claim.verified = True
        return None

    async def _edge_exists(
        self, source: str, target: str, rel_type: str, claim: RelationshipClaim
    ) -> bool:
        try:
            return bool(await asyncio.wait_for(
                self.store.edge_exists(source, target, rel_type),
                timeout=self.timeout_seconds,
            ))
        except asyncio.TimeoutError as e:
            raise VerificationFailure(
                claim.describe(), f"timeout after {self.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise VerificationFailure(claim.describe(), str(e)) from e
