"""In-process conversation store."""

from __future__ import annotations

import logging
import time
from typing import Callable

from larkbot.models import ConversationMessage
from larkbot.storage.base import ConversationStore

LOGGER = logging.getLogger(__name__)


class MemoryConversationStore(ConversationStore):
    """Dict-backed store living for the process lifetime.

    Histories are copied on the way in and out so callers never share a
    list with the store.
    """

    def __init__(self, max_conversations: int = 100, clock: Callable[[], float] = time.time) -> None:
        self._max_conversations = max_conversations
        self._clock = clock
        self._conversations: dict[str, list[ConversationMessage]] = {}
        self._timestamps: dict[str, float] = {}

    async def get_history(self, chat_id: str) -> list[ConversationMessage]:
        return list(self._conversations.get(chat_id, []))

    async def set_history(self, chat_id: str, messages: list[ConversationMessage]) -> None:
        self._conversations[chat_id] = list(messages)
        self._timestamps[chat_id] = self._clock()

    async def delete_history(self, chat_id: str) -> None:
        self._conversations.pop(chat_id, None)
        self._timestamps.pop(chat_id, None)

    async def get_all_chat_ids(self) -> list[str]:
        return list(self._conversations)

    async def get_timestamp(self, chat_id: str) -> float | None:
        return self._timestamps.get(chat_id)

    async def set_timestamp(self, chat_id: str, timestamp: float) -> None:
        self._timestamps[chat_id] = timestamp

    async def cleanup(self, ttl_seconds: float) -> int:
        now = self._clock()
        expired = [
            chat_id
            for chat_id in list(self._conversations)
            if now - self._timestamps.get(chat_id, 0.0) > ttl_seconds
        ]
        for chat_id in expired:
            await self.delete_history(chat_id)

        overflow = len(self._conversations) - self._max_conversations
        evicted: list[str] = []
        if overflow > 0:
            oldest_first = sorted(self._conversations, key=lambda cid: self._timestamps.get(cid, 0.0))
            evicted = oldest_first[:overflow]
            for chat_id in evicted:
                await self.delete_history(chat_id)

        removed = len(expired) + len(evicted)
        if removed:
            LOGGER.info("Memory cleanup removed %d conversations (%d expired, %d evicted)", removed, len(expired), len(evicted))
        return removed
