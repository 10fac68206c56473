"""Core domain models used across layers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from larkbot.errors import BotError, ErrorKind

ROLES = ("system", "user", "assistant", "tool")


@dataclass(slots=True)
class ToolCall:
    """Tool invocation requested by the model.

    ``arguments`` is kept exactly as the model sent it, either a JSON string
    or an already-decoded object.
    """

    id: str
    name: str
    arguments: str | dict[str, Any] = field(default_factory=dict)
    kind: str = "function"

    def to_dict(self) -> dict[str, Any]:
        arguments = self.arguments
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments, ensure_ascii=False)
        return {
            "id": self.id,
            "type": self.kind,
            "function": {"name": self.name, "arguments": arguments},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        function_data = data.get("function") or {}
        return cls(
            id=str(data.get("id") or ""),
            name=str(function_data.get("name") or ""),
            arguments=function_data.get("arguments") or {},
            kind=str(data.get("type") or "function"),
        )


@dataclass(slots=True)
class ConversationMessage:
    """One entry of a chat's prompt history."""

    role: str
    content: str
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationMessage:
        role = data.get("role")
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role!r}")
        raw_calls = data.get("tool_calls")
        return cls(
            role=role,
            content=str(data.get("content") or ""),
            tool_calls=[ToolCall.from_dict(tc) for tc in raw_calls] if raw_calls else None,
            tool_call_id=data.get("tool_call_id"),
            name=data.get("name"),
        )


@dataclass(slots=True)
class LLMResponse:
    """Result from an LLM generation request."""

    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    raw: dict[str, Any] | None = None


@dataclass(slots=True)
class ToolResult:
    """Outcome of a remote operation as reported by the platform client."""

    content: str
    is_error: bool = False


@dataclass(slots=True)
class InboundEvent:
    """Message-receive event normalized from a webhook payload."""

    chat_id: str
    content: str
    event_id: str | None = None
    message_id: str | None = None
    message_type: str | None = None
    sender_id: str | None = None

    @property
    def dedup_key(self) -> str | None:
        return self.event_id or self.message_id or None


def parse_event(payload: dict[str, Any]) -> InboundEvent | None:
    """Normalize a message-receive payload, or return None when unusable.

    Accepts both the v2 envelope (``{"header": ..., "event": ...}``) and a
    bare event body carrying ``message``/``sender`` at the top level.
    """

    if not isinstance(payload, dict):
        return None

    event_id = payload.get("event_id")
    body: dict[str, Any] = payload
    header = payload.get("header")
    if isinstance(header, dict):
        event_id = header.get("event_id") or event_id
        if isinstance(payload.get("event"), dict):
            body = payload["event"]

    message = body.get("message")
    if not isinstance(message, dict):
        return None
    chat_id = message.get("chat_id")
    if not isinstance(chat_id, str) or not chat_id:
        return None

    sender_id: str | None = None
    sender = body.get("sender")
    if isinstance(sender, dict) and isinstance(sender.get("sender_id"), dict):
        ids = sender["sender_id"]
        sender_id = ids.get("user_id") or ids.get("open_id")

    content = message.get("content")
    return InboundEvent(
        chat_id=chat_id,
        content=content if isinstance(content, str) else "",
        event_id=str(event_id) if event_id else None,
        message_id=message.get("message_id") or None,
        message_type=message.get("message_type"),
        sender_id=sender_id,
    )


def normalize_arguments(raw: str | dict[str, Any] | None) -> dict[str, Any]:
    """Return tool arguments as a dict, decoding JSON text when needed."""

    if raw is None:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise BotError(ErrorKind.VALIDATION, f"Tool arguments are not valid JSON: {exc}", cause=exc) from exc
        if not isinstance(parsed, dict):
            raise BotError(ErrorKind.VALIDATION, "Tool arguments must be a JSON object")
        return parsed
    raise BotError(ErrorKind.VALIDATION, f"Unsupported tool arguments type: {type(raw).__name__}")
