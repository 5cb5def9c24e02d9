"""Scripted conversation endpoint for tests and offline development."""
from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Union

from citechat.errors import SendError

from .base import ConversationEndpoint, ConversationSession

# A reply is a string, an exception to raise, or a callable of the user text.
Reply = Union[str, BaseException, Callable[[str], str]]


@dataclass
class MockConversationSession(ConversationSession):
    """Session that answers from the endpoint's reply script."""

    endpoint: "MockConversationEndpoint"
    instruction: str
    received: List[str] = field(default_factory=list)
    closed: bool = False

    async def send(self, text: str) -> str:
        if self.closed:
            raise SendError("session is closed")
        self.received.append(text)
        reply = self.endpoint.next_reply()
        delay = self.endpoint.latency(text) if self.endpoint.latency else 0.0
        if delay:
            await asyncio.sleep(delay)
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(text)
        return reply

    async def close(self) -> None:
        self.closed = True


class MockConversationEndpoint(ConversationEndpoint):
    """Return scripted replies, falling back to a deterministic echo."""

    def __init__(
        self,
        replies: Optional[List[Reply]] = None,
        *,
        latency: Optional[Callable[[str], float]] = None,
        open_error: Optional[BaseException] = None,
    ) -> None:
        self._replies: Deque[Reply] = deque(replies or [])
        self.latency = latency
        self.open_error = open_error
        self.sessions: List[MockConversationSession] = []

    def queue(self, *replies: Reply) -> None:
        self._replies.extend(replies)

    def next_reply(self) -> Reply:
        if self._replies:
            return self._replies.popleft()
        return lambda text: f"MOCK_ANSWER: {text[:100]}"

    @property
    def send_count(self) -> int:
        return sum(len(session.received) for session in self.sessions)

    async def open_session(self, instruction: str) -> MockConversationSession:
        if self.open_error is not None:
            raise self.open_error
        session = MockConversationSession(endpoint=self, instruction=instruction)
        self.sessions.append(session)
        return session
