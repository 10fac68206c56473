"""Backend selection for conversation storage."""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as redis_async

from larkbot.config import Settings
from larkbot.storage.base import ConversationStore
from larkbot.storage.memory import MemoryConversationStore
from larkbot.storage.redis_store import RedisConversationStore

LOGGER = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> Any | None:
    """Return an asyncio Redis client when REDIS_URL is configured."""

    if not settings.redis_url:
        return None
    try:
        return redis_async.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.request_timeout_seconds,
            socket_timeout=settings.request_timeout_seconds,
        )
    except ValueError:
        LOGGER.warning("Invalid REDIS_URL, falling back to in-process storage", exc_info=True)
        return None


def create_store(settings: Settings, redis_client: Any | None = None) -> ConversationStore:
    """Pick the Redis backend when a client is available, otherwise memory."""

    if redis_client is not None:
        LOGGER.info("Using Redis conversation storage")
        return RedisConversationStore(
            redis_client,
            ttl_seconds=settings.conversation_ttl_seconds,
            max_conversations=settings.max_conversations,
        )
    LOGGER.info("Using in-process conversation storage")
    return MemoryConversationStore(max_conversations=settings.max_conversations)
