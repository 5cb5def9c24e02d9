"""Extraction of citation markers from assistant responses."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final, List

CITATION_FORMAT: Final[str] = '[source: <fileName>, page: <pageNumber>, text: "<verbatim quote>"]'

# File names and quotes may hold brackets of their own, but never another
# `[source:`, so an unterminated marker cannot swallow the next one. The quote
# runs up to the first `"]`.
_CITATION_RE: Final[re.Pattern[str]] = re.compile(
    r"\[source:\s*(?P<file_name>(?:(?!\[source:).)+?)\s*,\s*page:\s*(?P<page>\d+)\s*,\s*text:\s*"
    r'"(?P<quoted_text>(?:(?!"\s*\]|\[source:).)*)"\s*\]',
    re.DOTALL,
)


@dataclass(slots=True, frozen=True)
class Citation:
    """A source file, page and exact quote claimed by the assistant."""

    file_name: str
    page: int
    quoted_text: str


@dataclass(slots=True, frozen=True)
class ParsedResponse:
    display_text: str
    citations: List[Citation] = field(default_factory=list)


def format_citation(citation: Citation) -> str:
    """Render a citation in the marker format the assistant is told to use."""
    return f'[source: {citation.file_name}, page: {citation.page}, text: "{citation.quoted_text}"]'


def parse_citations(response_text: str) -> ParsedResponse:
    """Find citation markers left to right.

    The text is returned untouched; citations are an annotation on top of it.
    Markers with a missing field or a page below 1 are left as plain text.
    """

    citations: List[Citation] = []
    for match in _CITATION_RE.finditer(response_text or ""):
        page = int(match.group("page"))
        if page < 1:
            continue
        citations.append(
            Citation(
                file_name=match.group("file_name"),
                page=page,
                quoted_text=match.group("quoted_text"),
            )
        )
    return ParsedResponse(display_text=response_text or "", citations=citations)


__all__ = ["CITATION_FORMAT", "Citation", "ParsedResponse", "format_citation", "parse_citations"]
