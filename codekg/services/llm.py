"""
OpenRouter Answerer
===================

Answerer implementation over the OpenRouter chat completions API.

Environment Variables:
    OPENROUTER_API_KEY: API key (required for calls)
    CODEKG_LLM_MODEL: Model id (default: google/gemini-2.5-flash)
    CODEKG_LLM_BASE_URL: API base url (default: https://openrouter.ai/api/v1)
    CODEKG_LLM_TIMEOUT: Request timeout in seconds (default: 30)

Usage:
    answerer = OpenRouterAnswerer()
    text = await answerer.generate("Summarize AuthService.login")
    await answerer.close()
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp
import structlog

log = structlog.get_logger()

DEFAULT_SYSTEM_PROMPT = (
    "You are a senior engineer answering questions about a codebase. "
    "Follow the requested output format exactly."
)


@dataclass
class LLMConfig:
    """
    Answerer settings.

    Attributes:
        api_key: OpenRouter API key
        model: Model id
        base_url: API base url
        temperature: Sampling temperature
        max_tokens: Max completion tokens
        timeout_seconds: Total request timeout
    """
    api_key: Optional[str] = field(default_factory=lambda: os.environ.get("OPENROUTER_API_KEY") or None)
    model: str = field(default_factory=lambda: os.environ.get("CODEKG_LLM_MODEL", "google/gemini-2.5-flash"))
    base_url: str = field(
        default_factory=lambda: os.environ.get("CODEKG_LLM_BASE_URL", "https://openrouter.ai/api/v1")
    )
    temperature: float = 0.1
    max_tokens: int = 4000
    timeout_seconds: float = field(default_factory=lambda: float(os.environ.get("CODEKG_LLM_TIMEOUT", "30")))

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be in [0, 2], got {self.temperature}")


class OpenRouterAnswerer:
    """
    ``generate(prompt) -> text`` over aiohttp.

    The session is created lazily and reused; call close() when done.
    """

    def __init__(self, config: Optional[LLMConfig] = None, system_prompt: str = DEFAULT_SYSTEM_PROMPT):
        self.config = config or LLMConfig()
        self.system_prompt = system_prompt
        self.session: Optional[aiohttp.ClientSession] = None
        self._last_usage: Dict[str, int] = {}

    def get_last_usage(self) -> Dict[str, int]:
        """Token usage of the last call."""
        return self._last_usage.copy()

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

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    async def generate(self, prompt: str) -> str:
        """
        Send one completion request.

        Raises:
            ValueError: if no API key is configured
            RuntimeError: on a non-200 status or a reply without choices
        """
        if not self.config.api_key:
            raise ValueError("OpenRouter API key not provided")

        session = await self._get_session()
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "X-Title": "codekg",
        }

        log.debug(f"Generating completion with model: {self.config.model}")

        async with session.post(
            f"{self.config.base_url}/chat/completions",
            json=self.build_payload(prompt),
            headers=headers,
        ) as response:
            if response.status != 200:
                error_text = await response.text()
                log.error(f"OpenRouter API error {response.status}: {error_text[:200]}")
                raise RuntimeError(f"OpenRouter API error: {response.status} - {error_text[:200]}")

            data = await response.json()

        if not data.get("choices"):
            log.error("Invalid OpenRouter response", keys=list(data))
            raise RuntimeError("Invalid response from OpenRouter API")

        completion = data["choices"][0]["message"]["content"] or ""
        usage = data.get("usage", {})
        self._last_usage = {
            "total_tokens": usage.get("total_tokens", 0),
            "prompt_tokens": usage.get("prompt_tokens", 0),
            "completion_tokens": usage.get("completion_tokens", 0),
        }
        log.debug(
            f"Completion received ({len(completion)} chars, {self._last_usage['total_tokens']} tokens)"
        )
        return completion
