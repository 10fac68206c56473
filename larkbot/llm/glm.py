"""GLM implementation of LLMProvider."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from larkbot.config import Settings
from larkbot.errors import BotError, ErrorKind, classify_http_error
from larkbot.llm.base import LLMProvider
from larkbot.models import LLMResponse, ToolCall

_LOGGER = logging.getLogger(__name__)


class GLMProvider(LLMProvider):
    """LLM provider using an OpenAI-compatible GLM chat endpoint."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def generate(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        payload: dict[str, Any] = {
            "model": self._settings.glm_model,
            "messages": messages,
            "temperature": self._settings.llm_temperature,
            "max_tokens": self._settings.llm_max_tokens,
        }
        if self._settings.glm_thinking:
            payload["thinking"] = {"type": self._settings.glm_thinking}
        if tools:
            payload["tools"] = tools

        started = time.perf_counter()
        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        try:
            async with httpx.AsyncClient(base_url=self._settings.glm_base_url, timeout=timeout) as client:
                response = await client.post(
                    "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self._settings.glm_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            error = classify_http_error(exc, ErrorKind.LLM)
            _LOGGER.error("LLM call failed: %r", error)
            raise error from exc

        choices = data.get("choices") or []
        if not choices:
            raise BotError(ErrorKind.LLM, "LLM response contained no choices")
        choice = choices[0].get("message") or {}
        finish_reason = choices[0].get("finish_reason")
        content = choice.get("content") or ""
        _LOGGER.info(
            "LLM response in %dms: finish_reason=%r content=%r tool_calls=%d",
            (time.perf_counter() - started) * 1000,
            finish_reason,
            content[:200],
            len(choice.get("tool_calls") or []),
        )

        parsed_tool_calls = [
            ToolCall.from_dict(tool_call)
            for tool_call in choice.get("tool_calls") or []
            if isinstance(tool_call, dict)
        ]
        return LLMResponse(content=content, tool_calls=parsed_tool_calls, raw=data)
