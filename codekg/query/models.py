"""
Query Models
============

Dataclasses exchanged by the query pipeline steps and returned to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class RelationshipClaim:
    """
    Relationship asserted by a generated answer.

    Produced by GENERATE, ``verified`` set by VERIFY.

    Attributes:
        from_component: Source component name (class or method)
        to_component: Target component name
        relationship_type: Edge type (CALLS, CONTAINS, IMPLEMENTS, ...)
        verified: True once found in the graph
    """
    from_component: str
    to_component: str
    relationship_type: str
    verified: bool = False

    def describe(self) -> str:
        return f"{self.from_component} -> {self.to_component} ({self.relationship_type})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_component,
            "to": self.to_component,
            "type": self.relationship_type,
            "verified": self.verified,
        }


@dataclass
class RelevantContext:
    """Candidate kept by DISTILL, with its relevance to the query."""
    node_id: str
    name: str
    type: str
    summary: str = ""
    signature: str = ""
    relevance_score: float = 0.0
    reason: str = ""

    def __post_init__(self):
        self.relevance_score = min(1.0, max(0.0, float(self.relevance_score)))


@dataclass
class RelevantComponent:
    """
    Component listed in a QueryResult.

    Attributes:
        type: "method" or "class"
        name: Component name
        signature: Method signature or class declaration
        summary: One-line description
        relevance_score: Relevance to the query [0-1]
    """
    type: str
    name: str
    signature: str = ""
    summary: str = ""
    relevance_score: float = 0.0

    def __post_init__(self):
        kind = (self.type or "").lower()
        self.type = kind if kind in ("method", "class") else "class"
        self.relevance_score = min(1.0, max(0.0, float(self.relevance_score)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "signature": self.signature,
            "summary": self.summary,
            "relevance_score": self.relevance_score,
        }


@dataclass
class QueryResult:
    """
    Final answer returned to callers.

    Degradation is communicated through ``confidence`` and ``metadata``;
    ``error`` is True only when the pipeline could not produce an answer.
    """
    query: str
    summary: str
    components: List[RelevantComponent] = field(default_factory=list)
    relationships: List[RelationshipClaim] = field(default_factory=list)
    confidence: float = 0.0
    processing_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: bool = False
    error_message: Optional[str] = None

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    @property
    def degraded(self) -> bool:
        return bool(self.metadata.get("degraded"))

    @classmethod
    def failure(
        cls,
        query: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        processing_time_ms: float = 0.0,
    ) -> "QueryResult":
        """Terminal error result."""
        meta = dict(metadata or {})
        meta["error"] = True
        meta["error_message"] = message
        return cls(
            query=query,
            summary=f"An error occurred while processing your query: {message}",
            confidence=0.0,
            processing_time_ms=processing_time_ms,
            metadata=meta,
            error=True,
            error_message=message,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "summary": self.summary,
            "components": [c.to_dict() for c in self.components],
            "relationships": [r.to_dict() for r in self.relationships],
            "confidence": round(self.confidence, 4),
            "processing_time_ms": round(self.processing_time_ms, 2),
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
            "error": self.error,
            "error_message": self.error_message,
        }
