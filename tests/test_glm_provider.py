"""Tests for GLMProvider."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from larkbot.config import Settings
from larkbot.errors import BotError, ErrorKind
from larkbot.llm.glm import GLMProvider


def _settings() -> Settings:
    return Settings(LARK_APP_ID="app", LARK_APP_SECRET="secret", GLM_API_KEY="glm-key", LLM_TEMPERATURE=0.3)


def _mock_response(data: dict) -> MagicMock:
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = data
    resp.raise_for_status = MagicMock()
    return resp


def _error_response(status_code: int, body: str) -> MagicMock:
    request = httpx.Request("POST", "https://api.z.ai/api/paas/v4/chat/completions")
    resp = MagicMock()
    resp.status_code = status_code
    resp.raise_for_status = MagicMock(
        side_effect=httpx.HTTPStatusError(
            "error", request=request, response=httpx.Response(status_code, text=body, request=request)
        )
    )
    return resp


def _mock_client(response: MagicMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client.post = AsyncMock(return_value=response)
    return mock_client


@pytest.mark.asyncio
async def test_generate_sends_model_settings_and_tools():
    mock_client = _mock_client(_mock_response({"choices": [{"message": {"content": "Hi"}, "finish_reason": "stop"}]}))
    tools = [{"type": "function", "function": {"name": "t", "description": "d", "parameters": {}}}]

    with patch("larkbot.llm.glm.httpx.AsyncClient", return_value=mock_client):
        response = await GLMProvider(_settings()).generate([{"role": "user", "content": "Hi"}], tools=tools)

    assert response.content == "Hi"
    assert response.tool_calls == []
    payload = mock_client.post.call_args.kwargs["json"]
    assert payload["model"] == "glm-4.7"
    assert payload["temperature"] == 0.3
    assert payload["max_tokens"] == 4096
    assert payload["tools"] == tools
    assert payload["thinking"] == {"type": "enabled"}
    assert mock_client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer glm-key"


@pytest.mark.asyncio
async def test_generate_omits_thinking_when_disabled():
    mock_client = _mock_client(_mock_response({"choices": [{"message": {"content": "Hi"}}]}))
    settings = Settings(LARK_APP_ID="app", LARK_APP_SECRET="secret", GLM_API_KEY="glm-key", GLM_THINKING="")

    with patch("larkbot.llm.glm.httpx.AsyncClient", return_value=mock_client):
        await GLMProvider(settings).generate([{"role": "user", "content": "Hi"}])

    assert "thinking" not in mock_client.post.call_args.kwargs["json"]


@pytest.mark.asyncio
async def test_generate_omits_tools_when_none():
    mock_client = _mock_client(_mock_response({"choices": [{"message": {"content": "Hi"}}]}))

    with patch("larkbot.llm.glm.httpx.AsyncClient", return_value=mock_client):
        await GLMProvider(_settings()).generate([{"role": "user", "content": "Hi"}])

    assert "tools" not in mock_client.post.call_args.kwargs["json"]


@pytest.mark.asyncio
async def test_generate_parses_tool_calls_without_decoding_arguments():
    data = {
        "choices": [
            {
                "message": {
                    "content": None,
                    "tool_calls": [
                        {
                            "id": "call_1",
                            "type": "function",
                            "function": {"name": "im.v1.chat.get", "arguments": '{"path": {"chat_id": "c1"}}'},
                        }
                    ],
                },
                "finish_reason": "tool_calls",
            }
        ]
    }
    mock_client = _mock_client(_mock_response(data))

    with patch("larkbot.llm.glm.httpx.AsyncClient", return_value=mock_client):
        response = await GLMProvider(_settings()).generate([{"role": "user", "content": "chat?"}])

    assert response.content == ""
    assert len(response.tool_calls) == 1
    call = response.tool_calls[0]
    assert (call.id, call.name, call.arguments) == ("call_1", "im.v1.chat.get", '{"path": {"chat_id": "c1"}}')


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "body", "kind", "retryable"),
    [
        (429, '{"error": {"code": "1302", "message": "rate limit"}}', ErrorKind.RATE_LIMIT, True),
        (429, '{"error": {"code": "1113", "message": "insufficient balance"}}', ErrorKind.QUOTA, False),
        (500, "internal error", ErrorKind.LLM, True),
        (400, "bad request", ErrorKind.LLM, False),
    ],
)
async def test_generate_classifies_http_errors(status_code, body, kind, retryable):
    mock_client = _mock_client(_error_response(status_code, body))

    with patch("larkbot.llm.glm.httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(BotError) as excinfo:
            await GLMProvider(_settings()).generate([{"role": "user", "content": "Hi"}])

    assert excinfo.value.kind is kind
    assert excinfo.value.retryable is retryable


@pytest.mark.asyncio
async def test_generate_wraps_network_errors():
    mock_client = _mock_client(_mock_response({}))
    mock_client.post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

    with patch("larkbot.llm.glm.httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(BotError) as excinfo:
            await GLMProvider(_settings()).generate([{"role": "user", "content": "Hi"}])

    assert excinfo.value.kind is ErrorKind.LLM
    assert excinfo.value.retryable is True


@pytest.mark.asyncio
async def test_generate_rejects_response_without_choices():
    mock_client = _mock_client(_mock_response({"choices": []}))

    with patch("larkbot.llm.glm.httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(BotError) as excinfo:
            await GLMProvider(_settings()).generate([{"role": "user", "content": "Hi"}])

    assert excinfo.value.kind is ErrorKind.LLM
