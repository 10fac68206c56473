"""Lark OpenAPI client used for replies and tool execution."""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from larkbot.config import Settings
from larkbot.errors import BotError, ErrorKind
from larkbot.models import ToolResult
from larkbot.tools.catalog import ToolDescriptor

LOGGER = logging.getLogger(__name__)

_TOKEN_PATH = "/open-apis/auth/v3/tenant_access_token/internal"
_SEND_PATH = "/open-apis/im/v1/messages"
# Refresh the tenant token this many seconds before Lark expires it.
_TOKEN_REFRESH_MARGIN_SECONDS = 60
_RATE_LIMIT_CODE = 99991400


class PlatformClient(ABC):
    """Chat-platform operations the bot depends on."""

    @abstractmethod
    async def send_text(self, chat_id: str, text: str) -> None:
        """Post a plain-text message to a chat."""

    @abstractmethod
    async def invoke(self, descriptor: ToolDescriptor, arguments: dict[str, Any]) -> ToolResult:
        """Run a remote operation and report its outcome as text."""


class LarkClient(PlatformClient):
    """PlatformClient backed by the Lark (Feishu) OpenAPI."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._token: str | None = None
        self._token_expires_at = 0.0

    async def send_text(self, chat_id: str, text: str) -> None:
        data = await self._request(
            "POST",
            _SEND_PATH,
            params={"receive_id_type": "chat_id"},
            json_body={
                "receive_id": chat_id,
                "msg_type": "text",
                "content": json.dumps({"text": text}, ensure_ascii=False),
            },
        )
        code = data.get("code", 0)
        if code != 0:
            kind = ErrorKind.RATE_LIMIT if code == _RATE_LIMIT_CODE else ErrorKind.PLATFORM
            raise BotError(kind, f"Lark send failed (code {code}): {data.get('msg', '')}", retryable=kind is ErrorKind.RATE_LIMIT)

    async def invoke(self, descriptor: ToolDescriptor, arguments: dict[str, Any]) -> ToolResult:
        path_args = arguments.get("path") or {}
        try:
            path = descriptor.path.format(**path_args)
        except (KeyError, IndexError) as exc:
            return ToolResult(content=f"Missing path parameter {exc} for {descriptor.name}", is_error=True)

        data = await self._request(
            descriptor.http_method,
            path,
            params=arguments.get("params") or None,
            json_body=arguments.get("data") if descriptor.http_method != "GET" else None,
        )
        code = data.get("code", 0)
        if code != 0:
            return ToolResult(content=f"Lark API error {code}: {data.get('msg', '')}", is_error=True)
        return ToolResult(content=json.dumps(data.get("data", {}), ensure_ascii=False, indent=2))

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        token = await self._tenant_token()
        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(base_url=self._settings.lark_domain, timeout=timeout) as client:
            response = await client.request(
                method,
                path,
                params=params,
                json=json_body,
                headers={"Authorization": f"Bearer {token}"},
            )
        if response.status_code == 429:
            raise BotError(ErrorKind.RATE_LIMIT, f"Lark rate limited on {path}")
        response.raise_for_status()
        return response.json()

    async def _tenant_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(base_url=self._settings.lark_domain, timeout=timeout) as client:
            response = await client.post(
                _TOKEN_PATH,
                json={"app_id": self._settings.lark_app_id, "app_secret": self._settings.lark_app_secret},
            )
        response.raise_for_status()
        data = response.json()
        if data.get("code", 0) != 0:
            raise BotError(ErrorKind.PLATFORM, f"Lark auth failed (code {data.get('code')}): {data.get('msg', '')}", retryable=False)

        self._token = data["tenant_access_token"]
        expires_in = int(data.get("expire", 7200))
        self._token_expires_at = time.monotonic() + max(expires_in - _TOKEN_REFRESH_MARGIN_SECONDS, 0)
        LOGGER.info("Fetched Lark tenant access token (expires in %ds)", expires_in)
        return self._token
