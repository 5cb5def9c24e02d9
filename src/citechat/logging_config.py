"""JSON logging for the service and the upload audit trail."""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

AUDIT_LOGGER_NAME = "citechat.upload.audit"
AUDIT_FILE_NAME = "upload_audit.log"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

# SDK and HTTP client loggers are chatty at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "google_genai", "multipart")


class MinimalJSONFormatter(logging.Formatter):
    """One JSON object per line.

    Telemetry events are logged as dicts and merged into the object as-is.
    Plain messages land under ``message``. Values that JSON cannot encode are
    written with ``str()``.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line: Dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }

        if isinstance(record.msg, dict):
            line.update(record.msg)
        else:
            message = record.getMessage()
            if message:
                line["message"] = message

        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)

        line.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        )
        return json.dumps(line, ensure_ascii=False, default=str)


def build_logging_config(log_dir: Path | str = "logs", level: str = "INFO") -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping used by :func:`configure_logging`.

    Upload audit records go only to ``<log_dir>/upload_audit.log``; everything
    else goes to stderr.
    """

    audit_path = Path(log_dir) / AUDIT_FILE_NAME
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": MinimalJSONFormatter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
            "upload_audit": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": str(audit_path),
                "maxBytes": 5 * 1024 * 1024,
                "backupCount": 3,
                "encoding": "utf-8",
                "formatter": "json",
            },
        },
        "root": {"level": level.upper(), "handlers": ["console"]},
        "loggers": {
            AUDIT_LOGGER_NAME: {
                "level": "INFO",
                "handlers": ["upload_audit"],
                "propagate": False,
            },
            **{name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        },
    }


def configure_logging(log_dir: Path | str = "logs", level: str = "INFO") -> None:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, level))
