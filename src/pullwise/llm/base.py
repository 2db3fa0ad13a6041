"""Abstract LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class LLMResponse(BaseModel):
    """Structured response from an LLM call."""

    content: str | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    model: str = ""


class LLMProvider(ABC):
    """Abstract base for chat-completion clients.

    One instance talks to one configured backend; the provider registry owns
    the instances and hands the same one to every review for that backend.
    """

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            temperature: Sampling temperature.
            max_tokens: Max tokens in the response.
            response_format: Optional format spec (e.g. {"type": "json_object"}).

        Returns:
            LLMResponse; ``content`` is None when the backend sent nothing.
        """
        ...

    @abstractmethod
    async def count_tokens(self, text: str) -> int:
        """Estimate the number of tokens in ``text``."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release any held resources."""
        ...
