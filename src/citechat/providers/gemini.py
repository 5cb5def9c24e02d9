"""Conversation endpoint backed by Google Gemini chats."""
from __future__ import annotations

import logging
from typing import Any, Optional

from google import genai
from google.genai import types

from citechat.config import Settings
from citechat.errors import SendError

from .base import ConversationEndpoint, ConversationSession

LOGGER = logging.getLogger(__name__)


class GeminiSession(ConversationSession):
    """Wraps a ``google-genai`` async chat."""

    def __init__(self, chat: Any, model: str) -> None:
        self._chat: Optional[Any] = chat
        self.model = model

    async def send(self, text: str) -> str:
        if self._chat is None:
            raise SendError("session is closed")
        try:
            response = await self._chat.send_message(text)
        except Exception as error:
            LOGGER.warning("Gemini (%s) request failed: %s", self.model, error)
            raise SendError(f"Gemini request failed: {error}", cause=error) from error

        reply = getattr(response, "text", None)
        if not reply:
            raise SendError(f"Gemini ({self.model}) returned no text")
        return reply

    async def close(self) -> None:
        # Chats hold no server-side state; dropping the reference is enough.
        self._chat = None


class GeminiEndpoint(ConversationEndpoint):
    """Opens one Gemini chat per session, grounded by a system instruction."""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        temperature: Optional[float] = None,
        client: Optional[genai.Client] = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._client = client or genai.Client(api_key=api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiEndpoint":
        """Build the endpoint; raises ``ConfigurationError`` without an API key."""

        return cls(settings.require_api_key(), settings.model, temperature=settings.temperature)

    async def open_session(self, instruction: str) -> GeminiSession:
        config = types.GenerateContentConfig(
            system_instruction=instruction,
            temperature=self.temperature,
        )
        chat = self._client.aio.chats.create(model=self.model, config=config)
        LOGGER.info("Opened Gemini chat on %s (instruction %d chars)", self.model, len(instruction))
        return GeminiSession(chat, self.model)
