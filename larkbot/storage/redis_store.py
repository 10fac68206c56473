"""Redis-backed conversation store for multi-instance deployments."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from redis.exceptions import RedisError

from larkbot.models import ConversationMessage
from larkbot.storage.base import ConversationStore

LOGGER = logging.getLogger(__name__)

HISTORY_PREFIX = "conversation:"
TIMESTAMP_PREFIX = "timestamp:"
CHAT_IDS_KEY = "chatids"


class RedisConversationStore(ConversationStore):
    """Store keeping each chat under TTL-bearing keys.

    Every write carries ``ex=ttl_seconds`` so idle chats expire in Redis even
    when ``cleanup`` is never called. Backend errors are logged and degrade
    to an empty history rather than failing the message.
    """

    def __init__(
        self,
        client: Any,
        ttl_seconds: int,
        max_conversations: int = 100,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = client
        self._ttl_seconds = ttl_seconds
        self._max_conversations = max_conversations
        self._clock = clock

    async def get_history(self, chat_id: str) -> list[ConversationMessage]:
        try:
            raw = await self._redis.get(HISTORY_PREFIX + chat_id)
        except RedisError:
            LOGGER.exception("Failed to get history for chat %s from Redis", chat_id)
            return []
        if not raw:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
                raise ValueError("history is not a list of messages")
            return [ConversationMessage.from_dict(item) for item in data]
        except (TypeError, ValueError):
            LOGGER.warning("Discarding unreadable history for chat %s", chat_id)
            return []

    async def set_history(self, chat_id: str, messages: list[ConversationMessage]) -> None:
        payload = json.dumps([m.to_dict() for m in messages], ensure_ascii=False)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(HISTORY_PREFIX + chat_id, payload, ex=self._ttl_seconds)
                pipe.set(TIMESTAMP_PREFIX + chat_id, str(self._clock()), ex=self._ttl_seconds)
                pipe.sadd(CHAT_IDS_KEY, chat_id)
                await pipe.execute()
        except RedisError:
            LOGGER.exception("Failed to save history for chat %s to Redis", chat_id)
            return
        LOGGER.debug("Saved %d messages for chat %s to Redis", len(messages), chat_id)

    async def delete_history(self, chat_id: str) -> None:
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(HISTORY_PREFIX + chat_id, TIMESTAMP_PREFIX + chat_id)
                pipe.srem(CHAT_IDS_KEY, chat_id)
                await pipe.execute()
        except RedisError:
            LOGGER.exception("Failed to delete history for chat %s from Redis", chat_id)

    async def get_all_chat_ids(self) -> list[str]:
        try:
            members = await self._redis.smembers(CHAT_IDS_KEY)
        except RedisError:
            LOGGER.exception("Failed to list chat ids from Redis")
            return []
        return [m.decode() if isinstance(m, bytes) else str(m) for m in members or []]

    async def get_timestamp(self, chat_id: str) -> float | None:
        try:
            raw = await self._redis.get(TIMESTAMP_PREFIX + chat_id)
        except RedisError:
            LOGGER.exception("Failed to get timestamp for chat %s from Redis", chat_id)
            return None
        try:
            return float(raw) if raw is not None else None
        except (TypeError, ValueError):
            return None

    async def set_timestamp(self, chat_id: str, timestamp: float) -> None:
        try:
            await self._redis.set(TIMESTAMP_PREFIX + chat_id, str(timestamp), ex=self._ttl_seconds)
        except RedisError:
            LOGGER.exception("Failed to set timestamp for chat %s in Redis", chat_id)

    async def cleanup(self, ttl_seconds: float) -> int:
        chat_ids = await self.get_all_chat_ids()
        now = self._clock()
        removed = 0
        alive: list[tuple[float, str]] = []
        for chat_id in chat_ids:
            timestamp = await self.get_timestamp(chat_id)
            # A missing timestamp means Redis already expired the keys.
            if timestamp is None or now - timestamp > ttl_seconds:
                await self.delete_history(chat_id)
                removed += 1
            else:
                alive.append((timestamp, chat_id))

        overflow = len(alive) - self._max_conversations
        if overflow > 0:
            for _, chat_id in sorted(alive)[:overflow]:
                await self.delete_history(chat_id)
                removed += 1

        LOGGER.info("Redis cleanup removed %d of %d conversations", removed, len(chat_ids))
        return removed
