"""Conversation orchestration for inbound Lark messages."""

from __future__ import annotations

import json
import logging
import re
import time
import uuid
from typing import Any

from larkbot.config import Settings, disabled_tool_names, enabled_tool_prefixes
from larkbot.dedup import DedupGuard, create_dedup_guard
from larkbot.errors import BotError, ErrorKind, user_message_for
from larkbot.lark_client import LarkClient
from larkbot.llm.base import LLMProvider
from larkbot.llm.glm import GLMProvider
from larkbot.models import ConversationMessage, InboundEvent, ToolCall, parse_event
from larkbot.sender import ReplySender
from larkbot.storage.base import ConversationStore
from larkbot.storage.factory import create_redis_client, create_store
from larkbot.tools.catalog import ToolCatalog
from larkbot.tools.executor import ToolExecutor
from larkbot.tools.lark_tools import default_descriptors

LOGGER = logging.getLogger(__name__)

# A run of mentions together with the spaces and tabs around it.
MENTION_PATTERN = re.compile(r"[ \t]*(?:(?:@_user_\d+|@_all)[ \t]*)+")
EMPTY_REPLY = "Sorry, I could not generate a response."


class ConversationBot:
    """Handles one inbound message event end to end.

    The store is the only state shared across events; each cycle loads the
    chat's history, runs at most one tool round and writes the trimmed
    history back before replying.
    """

    def __init__(
        self,
        store: ConversationStore,
        dedup: DedupGuard,
        llm: LLMProvider,
        catalog: ToolCatalog,
        executor: ToolExecutor,
        sender: ReplySender,
        conversation_ttl_seconds: float = 3600,
        context_window_messages: int = 10,
        tool_context_window_messages: int = 20,
        history_cap_messages: int = 20,
        history_cap_with_tools_messages: int = 30,
    ) -> None:
        self._store = store
        self._dedup = dedup
        self._llm = llm
        self._catalog = catalog
        self._executor = executor
        self._sender = sender
        self._conversation_ttl_seconds = conversation_ttl_seconds
        self._context_window_messages = context_window_messages
        self._tool_context_window_messages = tool_context_window_messages
        self._history_cap_messages = history_cap_messages
        self._history_cap_with_tools_messages = history_cap_with_tools_messages

    async def handle_event(self, payload: dict[str, Any]) -> None:
        """Process one webhook payload. Never raises."""

        event = parse_event(payload)
        if event is None:
            LOGGER.info("Ignoring payload without a usable message")
            return
        try:
            if not await self._dedup.should_process(event.dedup_key):
                return
        except Exception:  # noqa: BLE001
            LOGGER.exception("Dedup guard failed for event %s, processing anyway", event.dedup_key)

        started = time.perf_counter()
        try:
            await self._handle(event)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error handling message %s in chat %s", event.message_id, event.chat_id)
            await self._send_apology(event.chat_id, exc)
        finally:
            LOGGER.info(
                "Handled message %s in chat %s in %dms",
                event.message_id,
                event.chat_id,
                (time.perf_counter() - started) * 1000,
            )

    async def _handle(self, event: InboundEvent) -> None:
        await self._cleanup()

        text = normalize_mentions(extract_text(event.content))
        if not text:
            LOGGER.info("Ignoring empty message %s in chat %s", event.message_id, event.chat_id)
            return
        LOGGER.info("[%s] in chat %s: %r", event.sender_id or "unknown", event.chat_id, text[:200])

        history = await self._store.get_history(event.chat_id)
        history.append(ConversationMessage(role="user", content=text))

        response = await self._llm.generate(
            self._build_context(history, self._context_window_messages),
            tools=self._catalog.function_definitions or None,
        )

        used_tools = bool(response.tool_calls)
        if used_tools:
            tool_calls = [
                ToolCall(id=tc.id or f"call_{uuid.uuid4().hex[:12]}", name=tc.name, arguments=tc.arguments)
                for tc in response.tool_calls
            ]
            history.append(ConversationMessage(role="assistant", content=response.content, tool_calls=tool_calls))
            for tool_call in tool_calls:
                LOGGER.info("Executing tool %s for chat %s", tool_call.name, event.chat_id)
                try:
                    result = await self._executor.execute(tool_call.name, tool_call.arguments)
                except Exception as exc:  # noqa: BLE001
                    raise BotError(
                        ErrorKind.TOOL,
                        f"Tool {tool_call.name} crashed: {exc}",
                        cause=exc,
                        tool_name=tool_call.name,
                    ) from exc
                history.append(
                    ConversationMessage(role="tool", content=result, tool_call_id=tool_call.id, name=tool_call.name)
                )
            final_response = await self._llm.generate(
                self._build_context(history, self._tool_context_window_messages)
            )
            reply = final_response.content
        else:
            reply = response.content

        reply = reply.strip() or EMPTY_REPLY
        history.append(ConversationMessage(role="assistant", content=reply))

        cap = self._history_cap_with_tools_messages if used_tools else self._history_cap_messages
        await self._store.set_history(event.chat_id, trim_history(history, cap))

        try:
            await self._sender.send(event.chat_id, reply)
        except BotError as exc:
            # History is already saved; the user only misses this reply.
            LOGGER.error("Could not deliver reply to chat %s: %r", event.chat_id, exc)
            return
        LOGGER.info("[Bot] to chat %s: %r", event.chat_id, reply[:100])

    def _build_context(self, history: list[ConversationMessage], window: int) -> list[dict[str, Any]]:
        if len(self._catalog):
            tools_section = f"Available tools:\n{self._catalog.describe()}"
        else:
            tools_section = "No tools are available; answer from the conversation alone."
        system_content = (
            "You are an AI assistant bot in Lark (Feishu). Answer the user's questions helpfully "
            "and concisely, in the language they write in. Use a tool only when the request needs "
            "data or an action in Lark, and never claim to have performed an action without "
            "calling the tool. If a tool result starts with 'Error:', explain the failure briefly. "
            "Say so honestly when you do not know something.\n\n"
            f"{tools_section}"
        )
        return [{"role": "system", "content": system_content}, *(m.to_dict() for m in trim_history(history, window))]

    async def _cleanup(self) -> None:
        try:
            await self._store.cleanup(self._conversation_ttl_seconds)
        except Exception:  # noqa: BLE001
            LOGGER.warning("Conversation cleanup failed", exc_info=True)

    async def _send_apology(self, chat_id: str, exc: BaseException) -> None:
        if isinstance(exc, BotError) and exc.kind is ErrorKind.DELIVERY:
            LOGGER.error("Could not notify chat %s about the failure", chat_id)
            return
        try:
            await self._sender.send(chat_id, user_message_for(exc))
        except Exception:  # noqa: BLE001
            LOGGER.exception("Failed to send error message to chat %s", chat_id)


def extract_text(content: str) -> str:
    """Return the ``text`` of a JSON message envelope, or the raw content."""

    if not content:
        return ""
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        return content
    if isinstance(parsed, dict):
        text = parsed.get("text")
        return text if isinstance(text, str) else ""
    return content


def normalize_mentions(text: str) -> str:
    """Strip mention placeholders, keeping the user's line breaks."""

    return MENTION_PATTERN.sub(_mention_gap, text).strip()


def _mention_gap(match: re.Match[str]) -> str:
    # Mid-line mentions leave one space; one at a line edge leaves nothing.
    start, end = match.span()
    text = match.string
    at_line_start = start == 0 or text[start - 1] == "\n"
    at_line_end = end == len(text) or text[end] == "\n"
    return "" if at_line_start or at_line_end else " "


def trim_history(history: list[ConversationMessage], limit: int) -> list[ConversationMessage]:
    """Keep the newest ``limit`` messages without a leading orphan tool result."""

    trimmed = history[-limit:] if limit > 0 else []
    while trimmed and trimmed[0].role == "tool":
        trimmed = trimmed[1:]
    return trimmed


def build_bot(settings: Settings) -> ConversationBot:
    """Wire a ConversationBot from configuration."""

    redis_client = create_redis_client(settings)
    platform = LarkClient(settings)
    catalog = ToolCatalog(
        default_descriptors(),
        enabled_prefixes=enabled_tool_prefixes(settings),
        disabled_names=disabled_tool_names(settings),
    )
    LOGGER.info("Tool catalog ready with %d tools", len(catalog))
    return ConversationBot(
        store=create_store(settings, redis_client),
        dedup=create_dedup_guard(settings, redis_client),
        llm=GLMProvider(settings),
        catalog=catalog,
        executor=ToolExecutor(catalog, platform),
        sender=ReplySender(
            platform,
            max_retries=settings.send_max_retries,
            backoff_seconds=settings.send_backoff_seconds,
        ),
        conversation_ttl_seconds=settings.conversation_ttl_seconds,
        context_window_messages=settings.context_window_messages,
        tool_context_window_messages=settings.tool_context_window_messages,
        history_cap_messages=settings.history_cap_messages,
        history_cap_with_tools_messages=settings.history_cap_with_tools_messages,
    )
