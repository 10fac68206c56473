"""Application entrypoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import uvicorn

from larkbot.bot import ConversationBot, build_bot
from larkbot.config import load_settings

LOGGER = logging.getLogger(__name__)


class BotHandle:
    """Lazily built, process-wide bot instance.

    A failed build is not cached; the next ``get`` tries again.
    """

    def __init__(self, factory: Callable[[], ConversationBot] | None = None) -> None:
        self._factory = factory or (lambda: build_bot(load_settings()))
        self._bot: ConversationBot | None = None
        self._lock = asyncio.Lock()

    async def get(self) -> ConversationBot:
        if self._bot is not None:
            return self._bot
        async with self._lock:
            if self._bot is None:
                LOGGER.info("Initializing bot")
                self._bot = self._factory()
        return self._bot

    def reset(self) -> None:
        """Drop the cached bot so the next ``get`` rebuilds it."""

        self._bot = None


def main() -> None:
    """Run the webhook server."""

    from larkbot.server import create_app

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )
    app = create_app(
        BotHandle(lambda: build_bot(settings)),
        webhook_path=settings.webhook_path,
        verification_token=settings.lark_verification_token,
    )
    LOGGER.info("Starting Lark bot on %s:%d%s", settings.server_host, settings.port, settings.webhook_path)
    uvicorn.run(app, host=settings.server_host, port=settings.port)


if __name__ == "__main__":
    main()
