import codecs
import io

import pytest
from docx import Document as DocxDocument

from citechat.errors import ExtractionError
from citechat.ingest import DocumentFormat, DocumentFormatDetector, PageTextExtractor


def test_pdf_pages_are_numbered_in_order(make_pdf) -> None:
    data = make_pdf(["Hello world.", "Goodbye.", "Third page"])

    document = PageTextExtractor().extract(data, "datasheet.pdf")

    assert document.file_name == "datasheet.pdf"
    assert [page.page_number for page in document.pages] == [1, 2, 3]
    assert "Hello world." in document.pages[0].text
    assert "Goodbye." in document.pages[1].text
    assert "Third page" in document.pages[2].text


def test_blank_pages_keep_their_slot(make_pdf) -> None:
    document = PageTextExtractor().extract(make_pdf(["Intro", "", "Outro"]), "gaps.pdf")

    assert [page.page_number for page in document.pages] == [1, 2, 3]
    assert document.pages[1].text.strip() == ""


def test_pdf_without_pages_is_rejected(make_pdf) -> None:
    with pytest.raises(ExtractionError) as info:
        PageTextExtractor().extract(make_pdf([]), "empty.pdf")

    assert info.value.file_name == "empty.pdf"


def test_pdf_without_text_is_rejected(make_pdf) -> None:
    with pytest.raises(ExtractionError):
        PageTextExtractor().extract(make_pdf(["", "   "]), "blank.pdf")


def test_garbage_bytes_are_rejected() -> None:
    with pytest.raises(ExtractionError) as info:
        PageTextExtractor().extract(b"definitely not a pdf", "broken.pdf")

    assert info.value.file_name == "broken.pdf"
    assert info.value.__cause__ is not None


def test_unsupported_format_is_rejected() -> None:
    with pytest.raises(ExtractionError):
        PageTextExtractor().extract(b"\x89PNG", "diagram.png")


def test_text_file_is_preserved_verbatim() -> None:
    raw = "Line one\r\n  indented\tline two\n\n"

    document = PageTextExtractor().extract(raw.encode("utf-8"), "notes.txt")

    assert len(document.pages) == 1
    assert document.pages[0].page_number == 1
    assert document.pages[0].text == raw


@pytest.mark.parametrize("text", ("café", "café ok", "Größe: 4 mm"))
def test_text_file_falls_back_to_latin1(text: str) -> None:
    document = PageTextExtractor().extract(text.encode("latin-1"), "legacy.txt")

    assert document.pages[0].text == text


@pytest.mark.parametrize("encoding", ("utf-16", "utf-16-le", "utf-16-be"))
def test_text_file_with_utf16_bom(encoding: str) -> None:
    text = "Tempered at 650 °C"
    data = text.encode(encoding)
    if encoding != "utf-16":
        data = (codecs.BOM_UTF16_LE if encoding.endswith("le") else codecs.BOM_UTF16_BE) + data

    document = PageTextExtractor().extract(data, "notes.txt")

    assert document.pages[0].text == text


def test_docx_is_a_single_page() -> None:
    docx = DocxDocument()
    docx.add_paragraph("First paragraph.")
    docx.add_paragraph("")
    docx.add_paragraph("Second paragraph.")
    buffer = io.BytesIO()
    docx.save(buffer)

    document = PageTextExtractor().extract(buffer.getvalue(), "manual.docx")

    assert [page.page_number for page in document.pages] == [1]
    assert document.pages[0].text == "First paragraph.\n\nSecond paragraph."


@pytest.mark.parametrize(
    ("file_name", "mime_type", "head", "expected"),
    (
        ("a.pdf", None, b"", DocumentFormat.PDF),
        ("a.bin", "application/pdf", b"", DocumentFormat.PDF),
        ("A.DOCX", None, b"", DocumentFormat.DOCX),
        ("readme.txt", None, b"", DocumentFormat.TXT),
        ("notes.md", "text/markdown", b"", DocumentFormat.TXT),
        ("notes", "text/plain; charset=utf-8", b"", DocumentFormat.TXT),
        ("scan", "application/octet-stream", b"%PDF-1.7", DocumentFormat.PDF),
        ("manual", None, b"PK\x03\x04", DocumentFormat.DOCX),
    ),
)
def test_format_detection(file_name: str, mime_type, head: bytes, expected: DocumentFormat) -> None:
    assert DocumentFormatDetector.detect(file_name, mime_type, head) is expected


def test_unknown_format_names_the_file() -> None:
    with pytest.raises(ValueError, match="diagram.png"):
        DocumentFormatDetector.detect("diagram.png", "image/png", b"\x89PNG")


def test_pdf_without_extension_is_read_by_signature(make_pdf) -> None:
    document = PageTextExtractor().extract(make_pdf(["Hello world."]), "upload", "application/octet-stream")

    assert "Hello world." in document.pages[0].text
