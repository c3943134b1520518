"""
OpenRouter Embedder
===================

EmbeddingModel implementation over an OpenAI-compatible ``/embeddings`` API.

The model must be the one used to embed the graph nodes, otherwise vector
search and re-ranking compare vectors from different spaces.

Environment Variables:
    OPENROUTER_API_KEY: API key (required for calls)
    CODEKG_EMBEDDING_MODEL: Model id (default: openai/text-embedding-3-small)
    CODEKG_EMBEDDING_BASE_URL: API base url (default: https://openrouter.ai/api/v1)
    CODEKG_EMBEDDING_TIMEOUT: Request timeout in seconds (default: 10)

Usage:
    embedder = OpenRouterEmbedder()
    vector = await embedder.embed("How does login validate credentials?")
    await embedder.close()
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

log = structlog.get_logger()


@dataclass
class EmbeddingConfig:
    """
    Embedder settings.

    Attributes:
        api_key: OpenRouter API key
        model: Embedding model id
        base_url: API base url
        dimensions: Requested vector size (None = model default)
        timeout_seconds: Total request timeout
    """
    api_key: Optional[str] = field(default_factory=lambda: os.environ.get("OPENROUTER_API_KEY") or None)
    model: str = field(
        default_factory=lambda: os.environ.get("CODEKG_EMBEDDING_MODEL", "openai/text-embedding-3-small")
    )
    base_url: str = field(
        default_factory=lambda: os.environ.get("CODEKG_EMBEDDING_BASE_URL", "https://openrouter.ai/api/v1")
    )
    dimensions: Optional[int] = None
    timeout_seconds: float = field(
        default_factory=lambda: float(os.environ.get("CODEKG_EMBEDDING_TIMEOUT", "10"))
    )

    def __post_init__(self):
        if self.dimensions is not None and self.dimensions <= 0:
            raise ValueError(f"dimensions must be positive, got {self.dimensions}")


class OpenRouterEmbedder:
    """``embed(text) -> vector`` over aiohttp, with a lazily created session."""

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.config = config or EmbeddingConfig()
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            )
        return self.session

    async def close(self):
        """Close the aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()

    def build_payload(self, text: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"model": self.config.model, "input": text}
        if self.config.dimensions is not None:
            payload["dimensions"] = self.config.dimensions
        return payload

    async def embed(self, text: str) -> List[float]:
        """
        Embed one text.

        Raises:
            ValueError: if no API key is configured
            RuntimeError: on a non-200 status or a reply without an embedding
        """
        if not self.config.api_key:
            raise ValueError("OpenRouter API key not provided")

        session = await self._get_session()
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "X-Title": "codekg",
        }

        async with session.post(
            f"{self.config.base_url}/embeddings",
            json=self.build_payload(text),
            headers=headers,
        ) as response:
            if response.status != 200:
                error_text = await response.text()
                log.error(f"Embedding API error {response.status}: {error_text[:200]}")
                raise RuntimeError(f"Embedding API error: {response.status} - {error_text[:200]}")

            data = await response.json()

        items = data.get("data") or []
        if not items or not items[0].get("embedding"):
            log.error("Invalid embedding response", keys=list(data))
            raise RuntimeError("Invalid response from embedding API")

        vector = [float(x) for x in items[0]["embedding"]]
        log.debug(f"Embedded query with {self.config.model} ({len(vector)} dims)")
        return vector
