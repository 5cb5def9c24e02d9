"""Mapping citations onto viewable pages."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

from citechat.citations import Citation
from citechat.resources import ViewableResource

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from citechat.services.sessions import TopicState

_WHITESPACE_RUN_RE = re.compile(r"\s+")


@dataclass(slots=True, frozen=True)
class ViewRequest:
    """What the page renderer needs to show and highlight a citation."""

    file_name: str
    page: int
    highlight_text: str
    resource: ViewableResource
    highlight_span: Optional[Tuple[int, int]] = None


def resolve_view(topic: "TopicState", citation: Citation) -> Optional[ViewRequest]:
    """Return a :class:`ViewRequest`, or ``None`` when the file is not viewable.

    Files are only viewable while their upload is held in memory; after a
    restart the topic can still answer but needs a re-upload to show pages.
    When the quote is found on the cited page its offsets are included.
    """

    resource = topic.resources.get(citation.file_name)
    if resource is None or resource.released:
        return None
    span = None
    for page in topic.pages.get(citation.file_name, ()):
        if page.page_number == citation.page:
            span = locate_highlight(page.text, citation.quoted_text)
            break
    return ViewRequest(
        file_name=citation.file_name,
        page=citation.page,
        highlight_text=citation.quoted_text,
        resource=resource,
        highlight_span=span,
    )


def _collapse(text: str) -> Tuple[str, List[int]]:
    """Collapse whitespace runs to one space, keeping an offset map.

    ``offsets[i]`` is the index in ``text`` of character ``i`` of the result.
    """

    chars: List[str] = []
    offsets: List[int] = []
    position = 0
    for match in _WHITESPACE_RUN_RE.finditer(text):
        for index in range(position, match.start()):
            chars.append(text[index])
            offsets.append(index)
        chars.append(" ")
        offsets.append(match.start())
        position = match.end()
    for index in range(position, len(text)):
        chars.append(text[index])
        offsets.append(index)
    return "".join(chars), offsets


def locate_highlight(page_text: str, quoted_text: str) -> Optional[Tuple[int, int]]:
    """Find ``quoted_text`` in ``page_text`` ignoring whitespace differences.

    Matching is case-sensitive. Returns ``(start, end)`` offsets into the
    original ``page_text``, or ``None`` if there is no match.
    """

    needle = _WHITESPACE_RUN_RE.sub(" ", quoted_text or "").strip()
    if not needle or not page_text:
        return None

    haystack, offsets = _collapse(page_text)
    index = haystack.find(needle)
    if index < 0:
        return None
    start = offsets[index]
    end = offsets[index + len(needle) - 1] + 1
    return start, end


__all__ = ["ViewRequest", "locate_highlight", "resolve_view"]
