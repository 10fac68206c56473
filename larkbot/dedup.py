"""Idempotency guard against redelivered webhook events."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

from larkbot.config import Settings

LOGGER = logging.getLogger(__name__)

DEDUP_PREFIX = "dedup:"


class DedupGuard(ABC):
    """Decides whether an event id is seen for the first time in the window."""

    @abstractmethod
    async def should_process(self, event_id: str | None) -> bool:
        """Return True for a first sighting (and record it), False for a repeat.

        Events without an id are always processed.
        """


class MemoryDedupGuard(DedupGuard):
    """Process-local guard; expired entries are swept lazily on each call."""

    def __init__(self, window_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._window_seconds = window_seconds
        self._clock = clock
        self._seen: dict[str, float] = {}

    async def should_process(self, event_id: str | None) -> bool:
        if not event_id:
            return True
        now = self._clock()
        self._sweep(now)
        if event_id in self._seen:
            LOGGER.info("Skipping duplicate event %s", event_id)
            return False
        self._seen[event_id] = now
        return True

    def _sweep(self, now: float) -> None:
        expired = [key for key, first_seen in self._seen.items() if now - first_seen >= self._window_seconds]
        for key in expired:
            del self._seen[key]


class RedisDedupGuard(DedupGuard):
    """Guard shared by every instance through an atomic SET NX EX."""

    def __init__(self, client: Any, window_seconds: int) -> None:
        self._redis = client
        self._window_seconds = window_seconds

    async def should_process(self, event_id: str | None) -> bool:
        if not event_id:
            return True
        try:
            was_set = await self._redis.set(DEDUP_PREFIX + event_id, "1", ex=self._window_seconds, nx=True)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Dedup check failed for event %s, processing anyway: %s", event_id, exc)
            return True
        if not was_set:
            LOGGER.info("Skipping duplicate event %s", event_id)
            return False
        return True


def create_dedup_guard(settings: Settings, redis_client: Any | None = None) -> DedupGuard:
    if redis_client is not None:
        return RedisDedupGuard(redis_client, window_seconds=settings.dedup_window_seconds)
    return MemoryDedupGuard(window_seconds=settings.dedup_window_seconds)
