"""Shared fixtures: generated PDFs and an in-memory session manager."""
from __future__ import annotations

from typing import Callable, List, Sequence

import pytest

from citechat.providers import MockConversationEndpoint
from citechat.services.sessions import SessionManager
from citechat.store import MemoryKeyValueBackend, TopicStore

TOPICS = {"glazing": "Glazing", "cnc": "CNC machining"}


def build_pdf(pages: Sequence[str]) -> bytes:
    """Return a minimal PDF with one Helvetica text line per page."""

    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        (
            "<< /Type /Pages /Kids ["
            + " ".join(f"{4 + 2 * index} 0 R" for index in range(len(pages)))
            + f"] /Count {len(pages)} >>"
        ).encode("ascii"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for index, text in enumerate(pages):
        escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        stream = f"BT /F1 12 Tf 20 150 Td ({escaped}) Tj ET".encode("latin-1")
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 300 300] "
                f"/Contents {5 + 2 * index} 0 R /Resources << /Font << /F1 3 0 R >> >> >>"
            ).encode("ascii")
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    output = bytearray(b"%PDF-1.4\n")
    offsets: List[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"

    xref_offset = len(output)
    output += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode("ascii")
    output += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("ascii")
    return bytes(output)


@pytest.fixture
def make_pdf() -> Callable[[Sequence[str]], bytes]:
    return build_pdf


@pytest.fixture
def endpoint() -> MockConversationEndpoint:
    return MockConversationEndpoint()


@pytest.fixture
def backend() -> MemoryKeyValueBackend:
    return MemoryKeyValueBackend()


@pytest.fixture
def store(backend: MemoryKeyValueBackend) -> TopicStore:
    return TopicStore(backend)


@pytest.fixture
def manager(endpoint: MockConversationEndpoint, store: TopicStore) -> SessionManager:
    return SessionManager(endpoint=endpoint, store=store, topics=TOPICS)
