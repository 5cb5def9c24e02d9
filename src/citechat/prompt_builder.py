"""Utilities for grounding a conversation in a topic's uploaded documents."""
from __future__ import annotations

from typing import Iterable, List, Sequence

from citechat.citations import CITATION_FORMAT, Citation, format_citation
from citechat.ingest.models import Document

PAGE_SEPARATOR = "\n---\n"
DOCUMENT_SEPARATOR = "\n\n"

_INSTRUCTION_TEMPLATE = """You are an expert, instructive assistant for the topic "{topic_label}". Your task is to answer questions only and exclusively on the basis of the supplied documents.
**Answering rules:**
1.  **Complete and thorough:** Give complete, accurate and detailed answers. Explain concepts in plain language, as if teaching a beginner.
2.  **Exact citations:** Whenever you use information from a document, you **must** end the sentence with its source in exactly this format: {citation_format}. The quote must be copied verbatim from the document text, character for character, so that it can be highlighted in the document. Use the page number given by the "Page N:" header above the quoted text. For example: {citation_example}
3.  **Honesty:** If the answer is not in the documents, say clearly that the requested information was not found in the documents. Do not use outside knowledge.
4.  **Structured:** Where possible, use numbered or bulleted lists to organise answers and make them easier to read.

The user has uploaded the following files: {file_names}.
Document text:
---
{source_text}
---
"""


def build_source_text(documents: Iterable[Document]) -> str:
    """Concatenate documents with explicit document and page markers.

    Page text is inserted verbatim; citation quotes are matched against it.
    """

    sections: List[str] = []
    for document in documents:
        page_contents = PAGE_SEPARATOR.join(f"Page {page.page_number}:\n{page.text}" for page in document.pages)
        sections.append(
            f"Document start: {document.file_name}{PAGE_SEPARATOR}"
            f"{page_contents}{PAGE_SEPARATOR}"
            f"Document end: {document.file_name}"
        )
    return DOCUMENT_SEPARATOR.join(sections)


def _citation_example(file_names: Sequence[str]) -> str:
    file_name = file_names[0] if file_names else "document.pdf"
    return format_citation(Citation(file_name=file_name, page=1, quoted_text="exact words from page 1"))


def build_instruction(topic_label: str, file_names: Sequence[str], source_text: str) -> str:
    """Compose the instruction that binds a session to the topic's documents."""

    if not source_text:
        raise ValueError("source_text must not be empty")

    return _INSTRUCTION_TEMPLATE.format(
        topic_label=topic_label,
        citation_format=CITATION_FORMAT,
        citation_example=_citation_example(file_names),
        file_names=", ".join(file_names),
        source_text=source_text,
    )


def display_file_name(file_names: Sequence[str]) -> str:
    if len(file_names) > 1:
        return f"{len(file_names)} files uploaded"
    return file_names[0] if file_names else ""


def build_upload_greeting(topic_label: str, file_names: Sequence[str]) -> str:
    count = len(file_names)
    noun = "document" if count == 1 else "documents"
    return (
        f"I have read {count} {noun} ({', '.join(file_names)}). "
        f"Ask me anything about {topic_label}."
    )


def build_rehydrate_greeting(file_names: Sequence[str]) -> str:
    return f'Ready to answer questions about "{display_file_name(file_names)}". How can I help you?'


__all__ = [
    "build_instruction",
    "build_rehydrate_greeting",
    "build_source_text",
    "build_upload_greeting",
    "display_file_name",
]
