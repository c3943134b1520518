"""
Test OpenRouterEmbedder
=======================

HTTP layer mocked at the aiohttp session.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from codekg.interfaces import EmbeddingModel
from codekg.services.embeddings import EmbeddingConfig, OpenRouterEmbedder


def _session(status=200, payload=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload or {})
    response.text = AsyncMock(return_value=text)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.closed = False
    session.post = MagicMock(return_value=context)
    session.close = AsyncMock()
    return session


def _embedder(session, **config):
    embedder = OpenRouterEmbedder(EmbeddingConfig(api_key="test-key", **config))
    embedder.session = session
    return embedder


class TestEmbeddingConfig:
    """Environment-driven defaults."""

    def test_env_defaults(self, monkeypatch):
        """Model, url and timeout come from the environment."""
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-env")
        monkeypatch.setenv("CODEKG_EMBEDDING_MODEL", "custom/embedder")
        monkeypatch.setenv("CODEKG_EMBEDDING_BASE_URL", "https://embed.test/v1")
        monkeypatch.setenv("CODEKG_EMBEDDING_TIMEOUT", "4")

        config = EmbeddingConfig()

        assert config.api_key == "sk-env"
        assert config.model == "custom/embedder"
        assert config.base_url == "https://embed.test/v1"
        assert config.timeout_seconds == 4.0

    def test_builtin_defaults(self, monkeypatch):
        """Built-in defaults apply when the environment is empty."""
        for var in (
            "OPENROUTER_API_KEY",
            "CODEKG_EMBEDDING_MODEL",
            "CODEKG_EMBEDDING_BASE_URL",
            "CODEKG_EMBEDDING_TIMEOUT",
        ):
            monkeypatch.delenv(var, raising=False)

        config = EmbeddingConfig()

        assert config.api_key is None
        assert config.model == "openai/text-embedding-3-small"
        assert config.base_url == "https://openrouter.ai/api/v1"
        assert config.dimensions is None

    def test_invalid_dimensions(self):
        """A non-positive vector size is rejected."""
        with pytest.raises(ValueError):
            EmbeddingConfig(dimensions=0)


class TestOpenRouterEmbedder:
    """Requests and error handling."""

    def test_satisfies_protocol(self):
        """The embedder satisfies the EmbeddingModel protocol."""
        assert isinstance(OpenRouterEmbedder(EmbeddingConfig(api_key="k")), EmbeddingModel)

    def test_payload_includes_dimensions_when_set(self):
        """dimensions is sent only when configured."""
        embedder = OpenRouterEmbedder(EmbeddingConfig(api_key="k", model="m", dimensions=4))

        assert embedder.build_payload("hello") == {"model": "m", "input": "hello", "dimensions": 4}

    @pytest.mark.asyncio
    async def test_embed_returns_float_vector(self):
        """The first embedding of the reply is returned as floats."""
        session = _session(payload={"data": [{"index": 0, "embedding": [1, 0.5, -0.25]}]})
        embedder = _embedder(session, base_url="https://embed.test/v1")

        vector = await embedder.embed("login")

        assert vector == [1.0, 0.5, -0.25]
        assert all(isinstance(x, float) for x in vector)
        assert session.post.call_args.args[0] == "https://embed.test/v1/embeddings"
        assert session.post.call_args.kwargs["json"]["input"] == "login"
        assert session.post.call_args.kwargs["headers"]["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_http_error(self):
        """A non-200 status raises RuntimeError."""
        embedder = _embedder(_session(status=503, text="unavailable"))

        with pytest.raises(RuntimeError, match="503"):
            await embedder.embed("login")

    @pytest.mark.asyncio
    async def test_missing_data(self):
        """A reply without embeddings raises RuntimeError."""
        embedder = _embedder(_session(payload={"data": []}))

        with pytest.raises(RuntimeError, match="Invalid response"):
            await embedder.embed("login")

    @pytest.mark.asyncio
    async def test_missing_key(self, monkeypatch):
        """Calls without an API key fail before any request."""
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)

        with pytest.raises(ValueError, match="API key"):
            await OpenRouterEmbedder(EmbeddingConfig()).embed("login")

    @pytest.mark.asyncio
    async def test_close(self):
        """close() closes the open session."""
        session = _session()
        embedder = _embedder(session)

        await embedder.close()

        session.close.assert_awaited_once()
