"""OpenAI-compatible chat-completion client.

OpenAI, Gemini and Qwen all expose the OpenAI chat-completions wire format;
the only difference is the base URL and the key, both carried by ``AIProvider``.
"""

from __future__ import annotations

import asyncio
from typing import Any

import openai
import tiktoken
from openai import AsyncOpenAI

from pullwise.core.exceptions import LLMError
from pullwise.core.logging import get_logger
from pullwise.core.models import AIProvider
from pullwise.llm.base import LLMProvider, LLMResponse

logger = get_logger(__name__)


class OpenAICompatibleProvider(LLMProvider):
    """Adapter over the official async client for any OpenAI-compatible endpoint."""

    def __init__(self, provider: AIProvider, *, timeout: float = 120.0) -> None:
        self._provider = provider
        client_kwargs: dict[str, Any] = {
            "api_key": provider.api_key.get_secret_value(),
            "timeout": timeout,
            # Retries are a caller decision; a failed review is retried by re-triggering
            "max_retries": 0,
        }
        if provider.base_url:
            client_kwargs["base_url"] = provider.base_url
        self._client = AsyncOpenAI(**client_kwargs)
        # Loaded on first use; tiktoken may download the encoding file
        self._encoding: tiktoken.Encoding | None = None

    @property
    def provider(self) -> AIProvider:
        return self._provider

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": self._provider.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            kwargs["response_format"] = response_format

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            raise LLMError(f"{self._provider.name} API error: {e.status_code} {e.message}") from e
        except openai.APIError as e:
            raise LLMError(f"{self._provider.name} API error: {e}") from e

        choice = response.choices[0] if response.choices else None
        usage = response.usage

        logger.debug(
            "llm_completion",
            provider=self._provider.id,
            model=response.model or self._provider.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
        )

        return LLMResponse(
            content=choice.message.content if choice else None,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            model=response.model or self._provider.model,
        )

    def _count_tokens_sync(self, text: str) -> int:
        if self._encoding is None:
            # Gemini/Qwen models are unknown to tiktoken; cl100k_base is close enough for estimates
            try:
                self._encoding = tiktoken.encoding_for_model(self._provider.model)
            except KeyError:
                self._encoding = tiktoken.get_encoding("cl100k_base")
        return len(self._encoding.encode(text))

    async def count_tokens(self, text: str) -> int:
        """Count tokens using tiktoken, off the event loop."""
        return await asyncio.to_thread(self._count_tokens_sync, text)

    async def close(self) -> None:
        """Close the async client."""
        await self._client.close()
