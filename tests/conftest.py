from __future__ import annotations

from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError


class FakeRedis:
    """Just enough of redis.asyncio.Redis (decode_responses=True) for the stores."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expiries: dict[str, int | None] = {}
        self.sets: dict[str, set[str]] = {}
        self.fail = False
        self.transactions = 0

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("redis is down")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.values.get(key)

    async def set(self, key: str, value: Any, ex: int | None = None, nx: bool = False) -> bool | None:
        self._check()
        if nx and key in self.values:
            return None
        self.values[key] = str(value)
        self.expiries[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            self.expiries.pop(key, None)
        return removed

    async def sadd(self, key: str, *members: str) -> int:
        self._check()
        self.sets.setdefault(key, set()).update(members)
        return len(members)

    async def srem(self, key: str, *members: str) -> int:
        self._check()
        self.sets.setdefault(key, set()).difference_update(members)
        return len(members)

    async def smembers(self, key: str) -> set[str]:
        self._check()
        return set(self.sets.get(key, set()))

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    def expire_now(self, key: str) -> None:
        self.values.pop(key, None)
        self.expiries.pop(key, None)


class FakePipeline:
    """MULTI/EXEC stand-in: queued commands apply together on ``execute`` or not at all."""

    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._queued: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self._queued.clear()

    def __getattr__(self, name: str) -> Any:
        if name not in ("set", "delete", "sadd", "srem"):
            raise AttributeError(name)

        def queue(*args: Any, **kwargs: Any) -> FakePipeline:
            self._queued.append((name, args, kwargs))
            return self

        return queue

    async def execute(self) -> list[Any]:
        redis = self._redis
        redis._check()
        snapshot = (dict(redis.values), dict(redis.expiries), {k: set(v) for k, v in redis.sets.items()})
        try:
            results = [await getattr(redis, name)(*args, **kwargs) for name, args, kwargs in self._queued]
        except Exception:
            redis.values, redis.expiries, redis.sets = snapshot
            raise
        finally:
            self._queued.clear()
        redis.transactions += 1
        return results


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
