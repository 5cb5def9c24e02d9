"""Conversation endpoint interfaces and implementations."""
from __future__ import annotations

from .base import ConversationEndpoint, ConversationSession
from .mock import MockConversationEndpoint, MockConversationSession

__all__ = [
    "ConversationEndpoint",
    "ConversationSession",
    "MockConversationEndpoint",
    "MockConversationSession",
]
