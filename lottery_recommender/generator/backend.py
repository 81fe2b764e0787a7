"""Chat completion backend used for number generation."""

import asyncio
from typing import Protocol

import aiohttp
from loguru import logger

from lottery_recommender.config import settings
from lottery_recommender.errors import BackendTransportError


class ChatBackend(Protocol):
    async def complete(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.7,
        timeout: float | None = None,
    ) -> str:
        """Return the assistant text for a system + user prompt pair."""
        ...


class OpenAICompatibleBackend:
    """Calls ``POST {base_url}/chat/completions`` on an OpenAI compatible API."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        proxy: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.AI_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.AI_API_KEY
        self.proxy = proxy if proxy is not None else settings.AI_PROXY
        self.timeout = timeout or settings.AI_TIMEOUT
        if self.proxy:
            logger.info("Chat backend using proxy {}", self.proxy)

    async def complete(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.7,
        timeout: float | None = None,
    ) -> str:
        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "top_p": 1,
            "stream": False,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        logger.debug("Chat request: model={} temperature={}", model, temperature)

        try:
            async with aiohttp.ClientSession(headers=headers) as client:
                async with client.post(
                    f"{self.base_url}/chat/completions",
                    json=body,
                    proxy=self.proxy or None,
                    timeout=aiohttp.ClientTimeout(total=timeout or self.timeout),
                ) as resp:
                    if resp.status != 200:
                        detail = (await resp.text())[:300]
                        raise BackendTransportError(
                            f"Chat backend returned {resp.status}: {detail}"
                        )
                    data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BackendTransportError(f"Chat backend unreachable: {e!r}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise BackendTransportError(f"Unexpected chat response: {data!r}"[:300]) from e
        logger.debug("Chat response: {}", content)
        return content or ""
