"""Per-topic conversational sessions grounded in uploaded documents."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from citechat.citations import Citation, parse_citations
from citechat.errors import ExtractionError, UploadError
from citechat.highlight import ViewRequest, resolve_view
from citechat.ingest import Document, PageText, PageTextExtractor, UploadedFile
from citechat.logging_config import AUDIT_LOGGER_NAME
from citechat.prompt_builder import (
    build_instruction,
    build_rehydrate_greeting,
    build_source_text,
    build_upload_greeting,
    display_file_name,
)
from citechat.providers.base import ConversationEndpoint, ConversationSession
from citechat.resources import ViewableResource
from citechat.store import TopicStore
from citechat.telemetry import (
    emit_citation_resolve,
    emit_exception,
    emit_message_request,
    emit_message_result,
    emit_session_event,
    emit_upload_event,
)

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

SEND_ERROR_MESSAGE = "Sorry, I ran into an error. Please try again."


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TopicActivity(str, Enum):
    """What a topic is busy with. Shown in the UI; not a lock."""

    IDLE = "idle"
    UPLOADING = "uploading"
    SENDING = "sending"


@dataclass(slots=True, frozen=True)
class Message:
    role: Role
    text: str
    citations: List[Citation] = field(default_factory=list)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role=Role.USER, text=text)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        parsed = parse_citations(text)
        return cls(role=Role.ASSISTANT, text=parsed.display_text, citations=parsed.citations)


@dataclass
class TopicState:
    """Everything the process holds for one topic.

    A topic is Empty (no session, no source text, no messages) or Loaded
    (session open, source text present, seeded with a greeting).
    """

    topic_id: str
    label: str
    source_text: str = ""
    file_names: List[str] = field(default_factory=list)
    session: Optional[ConversationSession] = None
    messages: List[Message] = field(default_factory=list)
    resources: Dict[str, ViewableResource] = field(default_factory=dict)
    pages: Dict[str, List[PageText]] = field(default_factory=dict)
    activity: TopicActivity = TopicActivity.IDLE

    @property
    def loaded(self) -> bool:
        return self.session is not None

    @property
    def display_name(self) -> str:
        return display_file_name(self.file_names)


class SessionManager:
    """Owns one grounded conversation per topic.

    ``send`` and ``create_or_replace`` are serialised per topic with an
    :class:`asyncio.Lock`; different topics proceed independently. ``reset``
    does not wait: a send still in flight finishes, but its reply is dropped
    once the session it was sent to is no longer the active one.
    """

    def __init__(
        self,
        *,
        endpoint: ConversationEndpoint,
        store: TopicStore,
        topics: Mapping[str, str],
        extractor: Optional[PageTextExtractor] = None,
    ) -> None:
        self._endpoint = endpoint
        self._store = store
        self._extractor = extractor or PageTextExtractor()
        self._topics: Dict[str, TopicState] = {
            topic_id: TopicState(topic_id=topic_id, label=label) for topic_id, label in topics.items()
        }
        self._locks: Dict[str, asyncio.Lock] = {topic_id: asyncio.Lock() for topic_id in topics}

    def topics(self) -> List[TopicState]:
        return list(self._topics.values())

    def get(self, topic_id: str) -> TopicState:
        try:
            return self._topics[topic_id]
        except KeyError:
            raise KeyError(f"Unknown topic: {topic_id}") from None

    # Lifecycle ------------------------------------------------------------------

    async def create_or_replace(self, topic_id: str, uploads: Sequence[UploadedFile]) -> TopicState:
        """Ground ``topic_id`` in ``uploads``, replacing any previous session.

        Nothing is committed, in memory or in the store, unless every file
        extracts and a new session opens.
        """

        topic = self.get(topic_id)
        if not uploads:
            raise UploadError("No files were uploaded")
        seen: set[str] = set()
        for upload in uploads:
            if upload.file_name in seen:
                raise UploadError(f"Duplicate file name: {upload.file_name}", file_name=upload.file_name)
            seen.add(upload.file_name)

        async with self._locks[topic_id]:
            topic.activity = TopicActivity.UPLOADING
            try:
                return await self._create_or_replace(topic, uploads)
            finally:
                topic.activity = TopicActivity.IDLE

    async def _create_or_replace(self, topic: TopicState, uploads: Sequence[UploadedFile]) -> TopicState:
        started = time.perf_counter()
        file_names = [upload.file_name for upload in uploads]
        emit_upload_event(
            "upload.start",
            topic_id=topic.topic_id,
            file_names=file_names,
            size_bytes=sum(upload.size_bytes for upload in uploads),
        )

        documents = await self._extract_all(topic.topic_id, uploads)
        source_text = build_source_text(documents)
        instruction = build_instruction(topic.label, file_names, source_text)
        try:
            session = await self._endpoint.open_session(instruction)
        except Exception as error:
            emit_exception(module=f"{__name__}.open_session", error=error, topic_id=topic.topic_id)
            raise UploadError(f"Could not start a conversation: {error}", cause=error) from error

        resources: Dict[str, ViewableResource] = {}
        try:
            for upload in uploads:
                resources[upload.file_name] = ViewableResource.from_bytes(
                    upload.file_name, upload.data, upload.mime_type
                )
        except OSError as error:
            _release_all(resources.values())
            await self._close_session(topic.topic_id, session)
            raise UploadError(f"Could not keep uploaded files for viewing: {error}", cause=error) from error

        self._store.save(topic.topic_id, source_text, file_names)

        previous_session = topic.session
        previous_resources = list(topic.resources.values())
        topic.source_text = source_text
        topic.file_names = file_names
        topic.session = session
        topic.messages = [Message.assistant(build_upload_greeting(topic.label, file_names))]
        topic.resources = resources
        topic.pages = {document.file_name: list(document.pages) for document in documents}

        await self._close_session(topic.topic_id, previous_session)
        _release_all(previous_resources)

        emit_session_event(
            "session.open",
            topic_id=topic.topic_id,
            instruction_len=len(instruction),
            file_names=file_names,
        )
        emit_upload_event(
            "upload.complete",
            topic_id=topic.topic_id,
            file_names=file_names,
            pages=sum(document.page_count for document in documents),
            source_chars=len(source_text),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        AUDIT_LOGGER.info(
            {
                "event": "upload",
                "topic_id": topic.topic_id,
                "file_names": file_names,
                "pages": [document.page_count for document in documents],
            }
        )
        return topic

    async def _extract_all(self, topic_id: str, uploads: Sequence[UploadedFile]) -> List[Document]:
        documents: List[Document] = []
        for upload in uploads:
            try:
                document = await asyncio.to_thread(
                    self._extractor.extract, upload.data, upload.file_name, upload.mime_type
                )
            except ExtractionError as error:
                LOGGER.warning("Upload to %s rejected: %s", topic_id, error)
                raise UploadError(
                    f"Failed to process {upload.file_name}: {error}",
                    file_name=upload.file_name,
                    cause=error,
                ) from error
            documents.append(document)
        return documents

    async def rehydrate(self, topic_id: str) -> TopicState:
        """Rebuild a topic's session from the store.

        Only the grounding survives a restart: earlier turns are not restored
        and viewable resources stay empty until the files are uploaded again.
        """

        topic = self.get(topic_id)
        stored = self._store.load(topic_id)
        if stored is None:
            LOGGER.debug("No persisted state for topic %s", topic_id)
            return topic

        async with self._locks[topic_id]:
            instruction = build_instruction(topic.label, stored.file_names, stored.source_text)
            session = await self._endpoint.open_session(instruction)
            previous_session = topic.session
            topic.source_text = stored.source_text
            topic.file_names = list(stored.file_names)
            topic.session = session
            topic.messages = [Message.assistant(build_rehydrate_greeting(stored.file_names))]
            await self._close_session(topic_id, previous_session)

        emit_session_event(
            "session.rehydrate",
            topic_id=topic_id,
            instruction_len=len(instruction),
            file_names=stored.file_names,
        )
        return topic

    async def rehydrate_all(self) -> List[TopicState]:
        """Rehydrate every catalogued topic; one failure does not stop the rest."""

        loaded: List[TopicState] = []
        for topic_id in self._topics:
            try:
                topic = await self.rehydrate(topic_id)
            except Exception as error:
                emit_exception(module=f"{__name__}.rehydrate", error=error, topic_id=topic_id)
                continue
            if topic.loaded:
                loaded.append(topic)
        return loaded

    async def reset(self, topic_id: str) -> TopicState:
        topic = self.get(topic_id)
        self._store.clear(topic_id)
        session = topic.session
        resources = list(topic.resources.values())
        topic.source_text = ""
        topic.file_names = []
        topic.session = None
        topic.messages = []
        topic.resources = {}
        topic.pages = {}
        await self._close_session(topic_id, session)
        _release_all(resources)
        LOGGER.info("Topic %s reset", topic_id)
        return topic

    async def shutdown(self) -> None:
        """Close every session and release every resource handle."""

        for topic in self._topics.values():
            session, topic.session = topic.session, None
            await self._close_session(topic.topic_id, session)
            _release_all(topic.resources.values())
            topic.resources = {}
            topic.pages = {}

    # Conversation -----------------------------------------------------------------

    async def send(self, topic_id: str, user_text: str) -> Optional[Message]:
        """Send a user turn and return the assistant message that was appended.

        Returns ``None`` without contacting the endpoint when the topic is
        Empty, or when the topic was reset or replaced while waiting.
        Endpoint failures never escape: they become a visible error message.
        """

        topic = self.get(topic_id)
        if topic.session is None:
            return None

        async with self._locks[topic_id]:
            session = topic.session
            if session is None:
                return None

            topic.messages.append(Message.user(user_text))
            topic.activity = TopicActivity.SENDING
            req_id = uuid.uuid4().hex
            emit_message_request(req_id=req_id, topic_id=topic_id, text_preview=user_text, text_len=len(user_text))
            started = time.perf_counter()
            try:
                reply_text = await session.send(user_text)
                reply = Message.assistant(reply_text)
                fallback = False
            except Exception as error:
                emit_exception(module=f"{__name__}.send", error=error, req_id=req_id, topic_id=topic_id)
                reply = Message.assistant(SEND_ERROR_MESSAGE)
                fallback = True
            finally:
                topic.activity = TopicActivity.IDLE

            discarded = topic.session is not session
            emit_message_result(
                req_id=req_id,
                topic_id=topic_id,
                duration_ms=(time.perf_counter() - started) * 1000.0,
                answer_preview=reply.text,
                citations=len(reply.citations),
                fallback=fallback,
                discarded=discarded,
            )
            if discarded:
                LOGGER.info("Dropping reply for topic %s: session was replaced", topic_id)
                return None
            topic.messages.append(reply)
            return reply

    # Citations ----------------------------------------------------------------------

    def resolve_citation(self, topic_id: str, citation: Citation) -> Optional[ViewRequest]:
        topic = self.get(topic_id)
        view = resolve_view(topic, citation)
        emit_citation_resolve(
            topic_id=topic_id,
            file_name=citation.file_name,
            page=citation.page,
            found=view is not None,
        )
        return view

    # Helpers ------------------------------------------------------------------------

    async def _close_session(self, topic_id: str, session: Optional[ConversationSession]) -> None:
        if session is None:
            return
        try:
            await session.close()
        except Exception as error:
            emit_exception(module=f"{__name__}.close", error=error, topic_id=topic_id)


def _release_all(resources: Iterable[ViewableResource]) -> None:
    for resource in resources:
        resource.release()


__all__ = [
    "Message",
    "Role",
    "SEND_ERROR_MESSAGE",
    "SessionManager",
    "TopicActivity",
    "TopicState",
]
