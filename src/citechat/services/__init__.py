"""Service layer orchestrating topics and their sessions."""

from .sessions import SEND_ERROR_MESSAGE, Message, Role, SessionManager, TopicActivity, TopicState

__all__ = ["Message", "Role", "SEND_ERROR_MESSAGE", "SessionManager", "TopicActivity", "TopicState"]
