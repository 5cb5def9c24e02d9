"""Base interfaces for conversational language model endpoints."""

from __future__ import annotations

from abc import ABC, abstractmethod

__all__ = ["ConversationEndpoint", "ConversationSession"]


class ConversationSession(ABC):
    """A single multi-turn conversation bound to one instruction."""

    @abstractmethod
    async def send(self, text: str) -> str:
        """Send one user turn and return the assistant's reply.

        Implementations raise :class:`citechat.errors.SendError` on failure.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the session; further calls to :meth:`send` are invalid."""


class ConversationEndpoint(ABC):
    """Factory for conversation sessions."""

    @abstractmethod
    async def open_session(self, instruction: str) -> ConversationSession:
        """Open a new session grounded by ``instruction``."""
