"""Reply delivery with bounded exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from larkbot.errors import BotError, ErrorKind, classify_http_error
from larkbot.lark_client import PlatformClient

LOGGER = logging.getLogger(__name__)


class ReplySender:
    """Sends text to a chat, retrying retryable failures."""

    def __init__(
        self,
        platform: PlatformClient,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._platform = platform
        self._max_retries = max(1, max_retries)
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    async def send(self, chat_id: str, text: str) -> None:
        """Deliver ``text`` or raise ``BotError(DELIVERY)`` with the last cause."""

        last_error: BotError | None = None
        for attempt in range(1, self._max_retries + 1):
            try:
                await self._platform.send_text(chat_id, text)
                if attempt > 1:
                    LOGGER.info("Message to chat %s delivered on attempt %d", chat_id, attempt)
                return
            except Exception as exc:  # noqa: BLE001
                last_error = classify_http_error(exc, ErrorKind.PLATFORM)

            if not last_error.retryable:
                LOGGER.error("Non-retryable send failure for chat %s: %r", chat_id, last_error)
                break
            if attempt < self._max_retries:
                delay = self._backoff_seconds * 2 ** (attempt - 1)
                LOGGER.warning(
                    "Send to chat %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    chat_id,
                    attempt,
                    self._max_retries,
                    delay,
                    last_error,
                )
                await self._sleep(delay)

        raise BotError(
            ErrorKind.DELIVERY,
            f"Failed to deliver message to chat {chat_id}: {last_error}",
            cause=last_error,
        )
