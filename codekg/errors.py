"""
Error Taxonomy
==============

Exceptions raised at the failing boundary of each component.

Each class maps to one degradation policy, applied by the component that owns it:

- SearchFailure: one search signal unavailable, retrieval continues with the other
- ExpansionFailure: traversal interrupted, the partial SubGraph is kept
- VerificationFailure: a claim check errored, the claim counts as unverified
- GenerationFailure: the Answerer failed or replied garbage, a flagged default answer is used
- PipelineFailure: a pipeline step raised, the run ends with an error QueryResult

None of them reach callers of QueryOrchestrator.process_query().
"""

from typing import Optional


class CodeKGError(Exception):
    """Base class for all codekg errors."""


class SearchFailure(CodeKGError):
    """A lexical or vector search branch failed or timed out."""

    def __init__(self, signal: str, reason: str):
        self.signal = signal
        self.reason = reason
        super().__init__(f"{signal} search failed: {reason}")


class ExpansionFailure(CodeKGError):
    """Graph traversal was interrupted before completion."""

    def __init__(self, reason: str, collected: int = 0):
        self.reason = reason
        self.collected = collected
        super().__init__(f"Graph expansion interrupted after {collected} nodes: {reason}")


class VerificationFailure(CodeKGError):
    """A single relationship claim could not be checked."""

    def __init__(self, claim_description: str, reason: str):
        self.claim_description = claim_description
        self.reason = reason
        super().__init__(f"Could not verify relationship claim: {claim_description}: {reason}")


class GenerationFailure(CodeKGError):
    """The Answerer errored or returned an unparsable reply."""

    def __init__(self, reason: str, raw_response: Optional[str] = None):
        self.reason = reason
        self.raw_response = raw_response
        super().__init__(reason)


class PipelineFailure(CodeKGError):
    """A pipeline step raised an unexpected exception."""

    def __init__(self, step_name: str, cause: BaseException):
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Step '{step_name}' failed: {cause}")
