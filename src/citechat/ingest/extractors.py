"""Extractors turning uploaded bytes into page-addressable text."""
from __future__ import annotations

import codecs
import io
import logging
from typing import List, Optional

from docx import Document as DocxDocument
from PyPDF2 import PdfReader

from citechat.errors import ExtractionError

from .format_detection import DocumentFormat, DocumentFormatDetector
from .models import Document, PageText

LOGGER = logging.getLogger(__name__)


class PDFExtractor:
    """Extract one :class:`PageText` per physical PDF page."""

    def extract(self, data: bytes) -> List[PageText]:
        reader = PdfReader(io.BytesIO(data))
        pages: List[PageText] = []
        for index, page in enumerate(reader.pages, start=1):
            try:
                text = page.extract_text() or ""
            except Exception as error:  # pragma: no cover - depends on PDF internals
                LOGGER.warning("Failed to extract text from PDF page %s: %s", index, error)
                text = ""
            pages.append(PageText(page_number=index, text=text))
        return pages


class DocxExtractor:
    """Extract text from Microsoft Word documents as a single page.

    Every paragraph becomes one line, empty paragraphs included, so blank
    lines in the document survive as blank lines in the page text.
    """

    def extract(self, data: bytes) -> List[PageText]:
        document = DocxDocument(io.BytesIO(data))
        text = "\n".join(paragraph.text for paragraph in document.paragraphs)
        return [PageText(page_number=1, text=text)]


class TextExtractor:
    """Extract text from plaintext documents as a single page."""

    def extract(self, data: bytes) -> List[PageText]:
        return [PageText(page_number=1, text=self._decode(data))]

    @staticmethod
    def _decode(data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            pass
        # Without a byte order mark, UTF-16 accepts almost any even-length input.
        if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            try:
                return data.decode("utf-16")
            except UnicodeDecodeError:
                LOGGER.debug("Text payload has a UTF-16 byte order mark but does not decode")
        LOGGER.debug("Text payload is not UTF-8; using latin-1")
        return data.decode("latin-1")


class PageTextExtractor:
    """Dispatch uploads to the matching extractor and validate the result.

    Page text is returned exactly as the backend produced it. Later stages
    quote from it verbatim, so no normalisation happens here.
    """

    def __init__(self) -> None:
        self.pdf_extractor = PDFExtractor()
        self.docx_extractor = DocxExtractor()
        self.text_extractor = TextExtractor()

    def extract(self, data: bytes, file_name: str, mime_type: Optional[str] = None) -> Document:
        try:
            document_format = DocumentFormatDetector.detect(file_name, mime_type, data[:8])
        except ValueError as error:
            raise ExtractionError(str(error), file_name=file_name, cause=error) from error

        LOGGER.info("Extracting %s as %s", file_name, document_format.value)
        try:
            pages = self._extract_pages(data, document_format)
        except Exception as error:
            raise ExtractionError(
                f"Could not read {file_name} as {document_format.value}: {error}",
                file_name=file_name,
                cause=error,
            ) from error

        if not pages:
            raise ExtractionError(f"{file_name} contains no pages", file_name=file_name)
        if not any(page.text.strip() for page in pages):
            raise ExtractionError(f"{file_name} contains no extractable text", file_name=file_name)

        LOGGER.info("Extracted %s pages from %s", len(pages), file_name)
        return Document(file_name=file_name, pages=pages)

    def _extract_pages(self, data: bytes, document_format: DocumentFormat) -> List[PageText]:
        if document_format is DocumentFormat.PDF:
            return self.pdf_extractor.extract(data)
        if document_format is DocumentFormat.DOCX:
            return self.docx_extractor.extract(data)
        if document_format is DocumentFormat.TXT:
            return self.text_extractor.extract(data)
        raise ValueError(f"Unsupported document format: {document_format}")
