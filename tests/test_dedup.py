import pytest

from larkbot.config import Settings
from larkbot.dedup import DEDUP_PREFIX, MemoryDedupGuard, RedisDedupGuard, create_dedup_guard


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_memory_guard_blocks_repeat_within_window():
    guard = MemoryDedupGuard(window_seconds=300, clock=FakeClock())

    assert await guard.should_process("evt-1") is True
    assert await guard.should_process("evt-1") is False
    assert await guard.should_process("evt-2") is True


@pytest.mark.asyncio
async def test_memory_guard_allows_event_again_after_window():
    clock = FakeClock()
    guard = MemoryDedupGuard(window_seconds=300, clock=clock)
    await guard.should_process("evt-1")

    clock.now = 299
    assert await guard.should_process("evt-1") is False
    clock.now = 300
    assert await guard.should_process("evt-1") is True


@pytest.mark.asyncio
async def test_memory_guard_sweeps_expired_entries():
    clock = FakeClock()
    guard = MemoryDedupGuard(window_seconds=10, clock=clock)
    for i in range(5):
        await guard.should_process(f"evt-{i}")

    clock.now = 20
    await guard.should_process("fresh")

    assert list(guard._seen) == ["fresh"]


@pytest.mark.asyncio
@pytest.mark.parametrize("event_id", [None, ""])
async def test_guard_fails_open_without_event_id(event_id, fake_redis):
    memory = MemoryDedupGuard(window_seconds=300)
    shared = RedisDedupGuard(fake_redis, window_seconds=300)

    for guard in (memory, shared):
        assert await guard.should_process(event_id) is True
        assert await guard.should_process(event_id) is True


@pytest.mark.asyncio
async def test_redis_guard_uses_set_nx_with_expiry(fake_redis):
    guard = RedisDedupGuard(fake_redis, window_seconds=120)

    assert await guard.should_process("evt-1") is True
    assert await guard.should_process("evt-1") is False
    assert fake_redis.expiries[DEDUP_PREFIX + "evt-1"] == 120


@pytest.mark.asyncio
async def test_redis_guard_is_shared_between_instances(fake_redis):
    first = RedisDedupGuard(fake_redis, window_seconds=120)
    second = RedisDedupGuard(fake_redis, window_seconds=120)

    assert await first.should_process("evt-1") is True
    assert await second.should_process("evt-1") is False


@pytest.mark.asyncio
async def test_redis_guard_fails_open_on_backend_error(fake_redis):
    fake_redis.fail = True
    guard = RedisDedupGuard(fake_redis, window_seconds=120)

    assert await guard.should_process("evt-1") is True
    assert await guard.should_process("evt-1") is True


def test_create_dedup_guard_selects_backend(fake_redis):
    settings = Settings(LARK_APP_ID="app", LARK_APP_SECRET="secret", GLM_API_KEY="key")

    assert isinstance(create_dedup_guard(settings), MemoryDedupGuard)
    assert isinstance(create_dedup_guard(settings, fake_redis), RedisDedupGuard)
