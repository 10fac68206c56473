"""FastAPI webhook surface for Lark event subscriptions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request

from larkbot.main import BotHandle

LOGGER = logging.getLogger(__name__)

MESSAGE_RECEIVE_EVENT = "im.message.receive_v1"


def create_app(
    handle: BotHandle | None = None,
    webhook_path: str = "/webhook/event",
    verification_token: str = "",
) -> FastAPI:
    """Build the app; message events are handled after the response is sent."""

    handle = handle or BotHandle()
    app = FastAPI(title="Lark LLM Bot")
    app.state.bot_handle = handle

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "ok",
            "service": "larkbot",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post(webhook_path)
    async def webhook(request: Request, background_tasks: BackgroundTasks) -> dict[str, Any]:
        try:
            payload = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object")

        if "encrypt" in payload:
            LOGGER.warning("Received an encrypted event; disable event encryption for this bot")
            return {"ok": False}

        header = payload.get("header") if isinstance(payload.get("header"), dict) else {}
        token = header.get("token") or payload.get("token")
        if verification_token and token != verification_token:
            raise HTTPException(status_code=403, detail="Invalid verification token")

        if payload.get("type") == "url_verification":
            return {"challenge": payload.get("challenge", "")}

        event_type = header.get("event_type")
        if event_type and event_type != MESSAGE_RECEIVE_EVENT:
            LOGGER.debug("Ignoring event type %s", event_type)
            return {"ok": True}

        try:
            bot = await handle.get()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Bot initialization failed")
            raise HTTPException(status_code=503, detail="Bot is not available") from exc

        background_tasks.add_task(bot.handle_event, payload)
        return {"ok": True}

    return app


app = create_app()
