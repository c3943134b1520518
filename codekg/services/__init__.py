"""
External service clients.
"""

from codekg.services.embeddings import EmbeddingConfig, OpenRouterEmbedder
from codekg.services.llm import LLMConfig, OpenRouterAnswerer

__all__ = ["EmbeddingConfig", "OpenRouterEmbedder", "LLMConfig", "OpenRouterAnswerer"]
