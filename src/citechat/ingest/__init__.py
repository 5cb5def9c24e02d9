"""Document extraction: uploaded bytes to page-addressable text."""
from __future__ import annotations

from .extractors import DocxExtractor, PageTextExtractor, PDFExtractor, TextExtractor
from .format_detection import DocumentFormat, DocumentFormatDetector
from .models import Document, PageText, UploadedFile

__all__ = [
    "Document",
    "DocumentFormat",
    "DocumentFormatDetector",
    "DocxExtractor",
    "PDFExtractor",
    "PageText",
    "PageTextExtractor",
    "TextExtractor",
    "UploadedFile",
]
