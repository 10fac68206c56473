"""LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from larkbot.models import LLMResponse


class LLMProvider(ABC):
    """Abstract chat-completion backend used by the bot."""

    @abstractmethod
    async def generate(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """Generate a model response.

        Failures are raised as classified ``BotError`` instances.
        """
