"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import traceback
from typing import Any, Iterable, Optional

LOGGER = logging.getLogger("citechat.telemetry")


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    req_id: str | None = None,
    topic_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if req_id:
        event["req_id"] = req_id
    if topic_id:
        event["topic_id"] = topic_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_upload_event(
    step: str,
    *,
    topic_id: str,
    file_names: Iterable[str],
    size_bytes: int | None = None,
    pages: int | None = None,
    source_chars: int | None = None,
    duration_ms: float | None = None,
) -> None:
    details = {
        "files": list(file_names),
        "size_bytes": size_bytes,
        "pages": pages,
        "source_chars": source_chars,
    }
    log_event(LOGGER, step, topic_id=topic_id, duration_ms=duration_ms, details=details)


def emit_session_event(
    step: str,
    *,
    topic_id: str,
    instruction_len: int,
    file_names: Iterable[str],
) -> None:
    details = {"instruction_len": instruction_len, "files": list(file_names)}
    log_event(LOGGER, step, topic_id=topic_id, details=details)


def emit_message_request(*, req_id: str, topic_id: str, text_preview: str, text_len: int) -> None:
    details = {"text_preview": text_preview[:120], "text_len": text_len}
    log_event(LOGGER, "message.send", req_id=req_id, topic_id=topic_id, details=details)


def emit_message_result(
    *,
    req_id: str,
    topic_id: str,
    duration_ms: float,
    answer_preview: str,
    citations: int,
    fallback: bool,
    discarded: bool = False,
) -> None:
    details = {
        "answer_preview": answer_preview[:120],
        "citations": citations,
        "fallback": fallback,
        "discarded": discarded,
    }
    log_event(
        LOGGER,
        "message.result",
        req_id=req_id,
        topic_id=topic_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_persistence_error(*, topic_id: str, operation: str, error: BaseException) -> None:
    log_event(
        LOGGER,
        "persistence.error",
        level="warning",
        topic_id=topic_id,
        details={"operation": operation},
        exc=error,
    )


def emit_citation_resolve(*, topic_id: str, file_name: str, page: int, found: bool) -> None:
    details = {"file": file_name, "page": page, "found": found}
    log_event(LOGGER, "citation.resolve", topic_id=topic_id, details=details)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    req_id: str | None = None,
    topic_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        req_id=req_id,
        topic_id=topic_id,
        details=details,
        exc=error,
    )
