"""Exceptions shared across the citechat package."""
from __future__ import annotations


class CiteChatError(RuntimeError):
    """Base exception for citechat failures."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class ConfigurationError(CiteChatError):
    """Raised when a required credential or setting is missing."""


class ExtractionError(CiteChatError):
    """Raised when a document cannot be turned into page text."""

    def __init__(self, message: str, *, file_name: str, cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.file_name = file_name


class UploadError(CiteChatError):
    """Raised when an upload cannot be committed to a topic."""

    def __init__(self, message: str, *, file_name: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.file_name = file_name


class PersistenceError(CiteChatError):
    """Describes a failed write to durable storage.

    Returned rather than raised by :class:`citechat.store.TopicStore`.
    """


class SendError(CiteChatError):
    """Raised by a conversation session when a turn cannot be completed."""
