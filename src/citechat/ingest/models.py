"""Data models produced by document extraction."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(slots=True, frozen=True)
class PageText:
    """Text extracted from a single physical page, kept verbatim."""

    page_number: int
    text: str


@dataclass(slots=True)
class Document:
    """An uploaded document split into its pages."""

    file_name: str
    pages: List[PageText] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass(slots=True, frozen=True)
class UploadedFile:
    """Raw bytes of a file handed to an upload."""

    file_name: str
    data: bytes
    mime_type: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)
