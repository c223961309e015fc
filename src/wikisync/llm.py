"""Language model access for commit message generation."""

import logging
import os
from collections.abc import AsyncIterator

import httpx

from .config import AIConfig
from .constants import APP_NAME
from .interfaces import TextGenerator

logger = logging.getLogger(APP_NAME)


async def collect_text(result: str | AsyncIterator[str]) -> str:
    """Collapses a streamed reply into one string."""
    if isinstance(result, str):
        return result
    parts = [chunk async for chunk in result]
    return "".join(parts)


class OpenAICompatibleGenerator(TextGenerator):
    """Calls the `/chat/completions` endpoint of an OpenAI-compatible provider.

    The client is created lazily and reused across calls; `aclose` releases it.

    Attributes:
        base_url (str): The provider's API root, e.g. `https://api.openai.com/v1`.
        api_key (str | None): Bearer token, or None for local providers.
    """

    def __init__(self, base_url: str, api_key: str | None = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, ai: AIConfig) -> "OpenAICompatibleGenerator":
        return cls(ai.base_url, os.environ.get(ai.api_key_env))

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
            )
        return self._client

    async def generate(self, prompt: str, provider: str, model: str) -> str:
        """Sends one user message and returns the reply text.

        Raises:
            httpx.HTTPError: On transport failures and non-2xx responses.
        """
        logger.debug(f"Requesting completion from {provider}/{model}")
        response = await self._get_client().post(
            "/chat/completions",
            json={
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.2,
                "stream": False,
            },
        )
        response.raise_for_status()
        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            return ""
        return choices[0].get("message", {}).get("content") or ""

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
