"""HTTP routes exposing topic uploads, conversation and citation lookup."""
from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from citechat.citations import Citation
from citechat.errors import ConfigurationError, UploadError
from citechat.ingest import UploadedFile
from citechat.services.sessions import Message, SessionManager, TopicState

SOURCE_NOT_VIEWABLE = "Source not currently viewable. Upload the file again to view it."

router = APIRouter(prefix="/topics", tags=["topics"])

_manager: Optional[SessionManager] = None
_configuration_error: Optional[ConfigurationError] = None


def configure(manager: Optional[SessionManager] = None, error: Optional[ConfigurationError] = None) -> None:
    """Install the process-wide session manager, or the reason there is none."""

    global _manager, _configuration_error
    _manager = manager
    _configuration_error = error


def current_manager() -> Optional[SessionManager]:
    return _manager


def configuration_error() -> Optional[ConfigurationError]:
    return _configuration_error


def get_session_manager() -> SessionManager:
    if _configuration_error is not None:
        raise HTTPException(status_code=503, detail=str(_configuration_error))
    if _manager is None:
        raise HTTPException(status_code=503, detail="Session manager is not initialised")
    return _manager


class CitationModel(BaseModel):
    file_name: str
    page: int = Field(..., ge=1)
    quoted_text: str


class MessageModel(BaseModel):
    role: str
    text: str
    citations: List[CitationModel]


class TopicSummary(BaseModel):
    topic_id: str
    label: str
    loaded: bool
    activity: str
    display_name: str


class TopicDetail(TopicSummary):
    file_names: List[str]
    viewable_files: List[str]
    messages: List[MessageModel]


class SendRequest(BaseModel):
    text: str = Field(..., min_length=1, description="User message.")


class SendResponse(BaseModel):
    message: Optional[MessageModel]
    topic: TopicDetail


class ViewResponse(BaseModel):
    file_name: str
    page: int
    highlight_text: str
    url: str
    highlight_start: Optional[int] = None
    highlight_end: Optional[int] = None


def _serialize_message(message: Message) -> MessageModel:
    return MessageModel(
        role=message.role.value,
        text=message.text,
        citations=[
            CitationModel(file_name=item.file_name, page=item.page, quoted_text=item.quoted_text)
            for item in message.citations
        ],
    )


def _summary(topic: TopicState) -> TopicSummary:
    return TopicSummary(
        topic_id=topic.topic_id,
        label=topic.label,
        loaded=topic.loaded,
        activity=topic.activity.value,
        display_name=topic.display_name,
    )


def _detail(topic: TopicState) -> TopicDetail:
    return TopicDetail(
        **_summary(topic).model_dump(),
        file_names=list(topic.file_names),
        viewable_files=[name for name, resource in topic.resources.items() if not resource.released],
        messages=[_serialize_message(message) for message in topic.messages],
    )


def _topic_or_404(manager: SessionManager, topic_id: str) -> TopicState:
    try:
        return manager.get(topic_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown topic: {topic_id}") from exc


@router.get("", response_model=List[TopicSummary])
def list_topics(manager: SessionManager = Depends(get_session_manager)) -> List[TopicSummary]:
    return [_summary(topic) for topic in manager.topics()]


@router.get("/{topic_id}", response_model=TopicDetail)
def read_topic(topic_id: str, manager: SessionManager = Depends(get_session_manager)) -> TopicDetail:
    return _detail(_topic_or_404(manager, topic_id))


@router.post("/{topic_id}/documents", response_model=TopicDetail)
async def upload_documents(
    topic_id: str,
    files: List[UploadFile] = File(...),
    manager: SessionManager = Depends(get_session_manager),
) -> TopicDetail:
    """Replace the topic's documents and start a fresh grounded conversation."""

    _topic_or_404(manager, topic_id)
    uploads = [
        UploadedFile(
            file_name=upload.filename or "upload",
            data=await upload.read(),
            mime_type=upload.content_type,
        )
        for upload in files
    ]
    try:
        topic = await manager.create_or_replace(topic_id, uploads)
    except UploadError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _detail(topic)


@router.post("/{topic_id}/messages", response_model=SendResponse)
async def send_message(
    topic_id: str,
    request: SendRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SendResponse:
    topic = _topic_or_404(manager, topic_id)
    reply = await manager.send(topic_id, request.text)
    return SendResponse(
        message=_serialize_message(reply) if reply is not None else None,
        topic=_detail(topic),
    )


@router.delete("/{topic_id}", response_model=TopicDetail)
async def reset_topic(topic_id: str, manager: SessionManager = Depends(get_session_manager)) -> TopicDetail:
    _topic_or_404(manager, topic_id)
    return _detail(await manager.reset(topic_id))


@router.post("/{topic_id}/citations/resolve", response_model=ViewResponse)
def resolve_citation(
    topic_id: str,
    citation: CitationModel,
    manager: SessionManager = Depends(get_session_manager),
) -> ViewResponse:
    _topic_or_404(manager, topic_id)
    view = manager.resolve_citation(
        topic_id,
        Citation(file_name=citation.file_name, page=citation.page, quoted_text=citation.quoted_text),
    )
    if view is None:
        raise HTTPException(status_code=404, detail=SOURCE_NOT_VIEWABLE)
    return ViewResponse(
        file_name=view.file_name,
        page=view.page,
        highlight_text=view.highlight_text,
        url=f"/topics/{quote(topic_id)}/files/{quote(view.file_name)}",
        highlight_start=view.highlight_span[0] if view.highlight_span else None,
        highlight_end=view.highlight_span[1] if view.highlight_span else None,
    )


@router.get("/{topic_id}/files/{file_name:path}")
def read_file(topic_id: str, file_name: str, manager: SessionManager = Depends(get_session_manager)) -> FileResponse:
    topic = _topic_or_404(manager, topic_id)
    resource = topic.resources.get(file_name)
    if resource is None or resource.released:
        raise HTTPException(status_code=404, detail=SOURCE_NOT_VIEWABLE)
    return FileResponse(
        resource.path,
        media_type=resource.mime_type or "application/octet-stream",
        filename=file_name,
    )
