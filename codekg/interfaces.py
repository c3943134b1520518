"""
Collaborator Interfaces
=======================

Protocols for the external collaborators the engine consumes, plus the
structured terms an EntityExtractor produces.

- EntityExtractor: query -> ExtractedTerms (sync)
- EmbeddingModel: text -> vector (async)
- Answerer: prompt -> text (async, output treated as opaque)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, runtime_checkable


@dataclass
class ExtractedTerms:
    """
    Structured terms extracted from a natural language query.

    Attributes:
        class_names: Type names (AuthService, UserRepository)
        method_names: Method names (login, validate)
        package_names: Dotted package names (com.acme.auth)
        free_terms: Remaining keywords (credentials)
    """
    class_names: List[str] = field(default_factory=list)
    method_names: List[str] = field(default_factory=list)
    package_names: List[str] = field(default_factory=list)
    free_terms: List[str] = field(default_factory=list)

    def all_terms(self) -> List[str]:
        """De-duplicated union in class, method, package, free order."""
        return list(dict.fromkeys(
            self.class_names + self.method_names + self.package_names + self.free_terms
        ))

    def is_empty(self) -> bool:
        return not self.all_terms()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "classes": list(self.class_names),
            "methods": list(self.method_names),
            "packages": list(self.package_names),
            "terms": list(self.free_terms),
        }


@runtime_checkable
class EntityExtractor(Protocol):
    def extract(self, query: str) -> ExtractedTerms:
        ...


@runtime_checkable
class EmbeddingModel(Protocol):
    async def embed(self, text: str) -> List[float]:
        ...


@runtime_checkable
class Answerer(Protocol):
    async def generate(self, prompt: str) -> str:
        ...
