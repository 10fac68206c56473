"""Conversation store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from larkbot.models import ConversationMessage


class ConversationStore(ABC):
    """Per-chat message history with last-update timestamps.

    Timestamps are epoch seconds. ``set_history`` refreshes the timestamp as
    a side effect in every backend.
    """

    @abstractmethod
    async def get_history(self, chat_id: str) -> list[ConversationMessage]:
        """Return the chat's history, or an empty list when unknown."""

    @abstractmethod
    async def set_history(self, chat_id: str, messages: list[ConversationMessage]) -> None:
        """Replace the chat's history and refresh its timestamp."""

    @abstractmethod
    async def delete_history(self, chat_id: str) -> None:
        """Remove both history and timestamp."""

    @abstractmethod
    async def get_all_chat_ids(self) -> list[str]:
        """Return every chat id with stored history, in no particular order."""

    @abstractmethod
    async def get_timestamp(self, chat_id: str) -> float | None:
        """Return the last-update time, or None when unknown."""

    @abstractmethod
    async def set_timestamp(self, chat_id: str, timestamp: float) -> None:
        """Overwrite the last-update time."""

    @abstractmethod
    async def cleanup(self, ttl_seconds: float) -> int:
        """Delete chats idle for longer than ``ttl_seconds`` and return how many.

        Backends also evict the oldest chats beyond their conversation cap;
        those count toward the returned number.
        """
