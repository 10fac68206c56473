"""Error taxonomy shared by the LLM, tool, and delivery layers."""

from __future__ import annotations

from enum import Enum

import httpx


class ErrorKind(str, Enum):
    """Closed set of failure kinds the bot distinguishes."""

    LLM = "llm"
    RATE_LIMIT = "rate_limit"
    QUOTA = "quota"
    TOOL = "tool"
    PLATFORM = "platform"
    DELIVERY = "delivery"
    VALIDATION = "validation"


GENERIC_APOLOGY = "Sorry, something went wrong while handling your message. Please try again."
RATE_LIMIT_APOLOGY = "Sorry, I'm receiving too many requests right now. Please wait a moment and try again."
QUOTA_APOLOGY = (
    "Sorry, the AI service quota has been used up. Please contact your administrator."
)
PLATFORM_APOLOGY = "Sorry, I had trouble communicating with Lark. Please try again shortly."
TOOL_APOLOGY = "Sorry, the tool '{tool_name}' failed while handling your request. Please try again."

_RETRYABLE_BY_DEFAULT = {
    ErrorKind.LLM: True,
    ErrorKind.RATE_LIMIT: True,
    ErrorKind.QUOTA: False,
    ErrorKind.TOOL: False,
    ErrorKind.PLATFORM: True,
    ErrorKind.DELIVERY: False,
    ErrorKind.VALIDATION: False,
}

# Markers in LLM error bodies that mean billing or quota exhaustion rather than throttling.
_QUOTA_MARKERS = ("1113", "insufficient_quota", "balance")


class BotError(Exception):
    """Tagged bot failure carrying its kind, retryability and cause."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        retryable: bool | None = None,
        cause: BaseException | None = None,
        tool_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.retryable = _RETRYABLE_BY_DEFAULT[kind] if retryable is None else retryable
        self.cause = cause
        self.tool_name = tool_name

    @property
    def user_message(self) -> str:
        if self.kind is ErrorKind.RATE_LIMIT:
            return RATE_LIMIT_APOLOGY
        if self.kind is ErrorKind.QUOTA:
            return QUOTA_APOLOGY
        if self.kind is ErrorKind.TOOL:
            return TOOL_APOLOGY.format(tool_name=self.tool_name or "unknown")
        if self.kind in (ErrorKind.PLATFORM, ErrorKind.DELIVERY):
            return PLATFORM_APOLOGY
        return GENERIC_APOLOGY

    def __repr__(self) -> str:
        return f"BotError(kind={self.kind.value!r}, message={str(self)!r}, retryable={self.retryable})"


def classify_http_error(exc: BaseException, default_kind: ErrorKind) -> BotError:
    """Map an arbitrary exception raised by an HTTP call onto a BotError."""

    if isinstance(exc, BotError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        body = _response_text(exc.response)
        if status == 402 or (status == 429 and _mentions_quota(body)):
            return BotError(ErrorKind.QUOTA, f"Quota exhausted ({status}): {body[:200]}", cause=exc)
        if status == 429:
            return BotError(ErrorKind.RATE_LIMIT, f"Rate limited ({status}): {body[:200]}", cause=exc)
        return BotError(
            default_kind,
            f"HTTP {status}: {body[:200]}",
            retryable=status >= 500,
            cause=exc,
        )
    if isinstance(exc, httpx.TransportError):
        return BotError(default_kind, f"Network error: {exc}", retryable=True, cause=exc)
    return BotError(default_kind, str(exc) or exc.__class__.__name__, cause=exc)


def user_message_for(exc: BaseException) -> str:
    """Return the apology text shown in chat for a failure."""

    if isinstance(exc, BotError):
        return exc.user_message
    return GENERIC_APOLOGY


def _mentions_quota(body: str) -> bool:
    lowered = body.lower()
    return any(marker in lowered for marker in _QUOTA_MARKERS)


def _response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return ""
