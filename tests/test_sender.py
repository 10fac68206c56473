from unittest.mock import AsyncMock, MagicMock

import pytest

from larkbot.errors import BotError, ErrorKind
from larkbot.sender import ReplySender


def _platform(side_effect=None) -> MagicMock:
    platform = MagicMock()
    platform.send_text = AsyncMock(side_effect=side_effect)
    return platform


@pytest.mark.asyncio
async def test_send_succeeds_first_time():
    platform = _platform()
    sleep = AsyncMock()

    await ReplySender(platform, sleep=sleep).send("chat-123", "Hello")

    platform.send_text.assert_awaited_once_with("chat-123", "Hello")
    sleep.assert_not_called()


@pytest.mark.asyncio
async def test_send_retries_then_succeeds():
    platform = _platform([RuntimeError("Network error"), None])
    sleep = AsyncMock()

    await ReplySender(platform, max_retries=3, backoff_seconds=1.0, sleep=sleep).send("chat-123", "Hello")

    assert platform.send_text.await_count == 2
    sleep.assert_awaited_once_with(1.0)


@pytest.mark.asyncio
async def test_send_raises_delivery_error_after_max_retries():
    cause = RuntimeError("Network error")
    platform = _platform(cause)
    sleep = AsyncMock()

    with pytest.raises(BotError) as excinfo:
        await ReplySender(platform, max_retries=3, backoff_seconds=1.0, sleep=sleep).send("chat-123", "Hello")

    assert excinfo.value.kind is ErrorKind.DELIVERY
    assert excinfo.value.cause.cause is cause
    assert platform.send_text.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_send_honors_custom_retry_count():
    platform = _platform(RuntimeError("Network error"))

    with pytest.raises(BotError):
        await ReplySender(platform, max_retries=2, sleep=AsyncMock()).send("chat-123", "Hello")

    assert platform.send_text.await_count == 2


@pytest.mark.asyncio
async def test_non_retryable_failure_aborts_immediately():
    platform = _platform(BotError(ErrorKind.PLATFORM, "bad receive_id", retryable=False))
    sleep = AsyncMock()

    with pytest.raises(BotError) as excinfo:
        await ReplySender(platform, max_retries=3, sleep=sleep).send("chat-123", "Hello")

    assert excinfo.value.kind is ErrorKind.DELIVERY
    assert platform.send_text.await_count == 1
    sleep.assert_not_called()


@pytest.mark.asyncio
async def test_rate_limit_is_retried():
    platform = _platform([BotError(ErrorKind.RATE_LIMIT, "slow down"), None])

    await ReplySender(platform, sleep=AsyncMock()).send("chat-123", "Hello")

    assert platform.send_text.await_count == 2
