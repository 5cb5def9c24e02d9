"""Decide how an uploaded file should be read."""
from __future__ import annotations

from enum import Enum
from pathlib import PurePath
from typing import Dict, Optional


class DocumentFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"


_MIME_FORMATS: Dict[str, DocumentFormat] = {
    "application/pdf": DocumentFormat.PDF,
    "application/x-pdf": DocumentFormat.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
    "text/plain": DocumentFormat.TXT,
    "text/markdown": DocumentFormat.TXT,
}

_SUFFIX_FORMATS: Dict[str, DocumentFormat] = {
    ".pdf": DocumentFormat.PDF,
    ".docx": DocumentFormat.DOCX,
    ".txt": DocumentFormat.TXT,
    ".md": DocumentFormat.TXT,
}

# DOCX is a zip container; any zip upload is handed to python-docx, which
# rejects the ones that are not Word documents.
_SIGNATURES = (
    (b"%PDF-", DocumentFormat.PDF),
    (b"PK\x03\x04", DocumentFormat.DOCX),
)


class DocumentFormatDetector:
    """Pick a :class:`DocumentFormat` for an upload.

    Browsers often send ``application/octet-stream`` or nothing at all, so a
    declared MIME type is only trusted when it names a supported format.
    After that the leading bytes are checked, then the file suffix.
    """

    @classmethod
    def detect(cls, file_name: str, mime_type: Optional[str] = None, head: bytes = b"") -> DocumentFormat:
        if mime_type:
            declared = _MIME_FORMATS.get(mime_type.split(";", 1)[0].strip().lower())
            if declared is not None:
                return declared

        for signature, document_format in _SIGNATURES:
            if head.startswith(signature):
                return document_format

        suffix_format = _SUFFIX_FORMATS.get(PurePath(file_name).suffix.lower())
        if suffix_format is not None:
            return suffix_format

        raise ValueError(
            f"Unsupported file format: {file_name} ({mime_type or 'no content type'}). "
            "Upload PDF, DOCX or plain text."
        )
