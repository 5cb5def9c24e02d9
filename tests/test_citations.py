import pytest

from citechat.citations import Citation, format_citation, parse_citations


def test_parses_citations_in_order_and_keeps_text() -> None:
    text = (
        'The glass is tempered [source: datasheet.pdf, page: 1, text: "Hello world."]. '
        'It ends politely [source: datasheet.pdf, page: 2, text: "Goodbye."].'
    )

    parsed = parse_citations(text)

    assert parsed.display_text == text
    assert parsed.citations == [
        Citation(file_name="datasheet.pdf", page=1, quoted_text="Hello world."),
        Citation(file_name="datasheet.pdf", page=2, quoted_text="Goodbye."),
    ]


def test_no_citations() -> None:
    parsed = parse_citations("The information was not found in the documents.")

    assert parsed.citations == []


@pytest.mark.parametrize(
    "fragment",
    (
        '[source: datasheet.pdf, text: "missing page"]',
        '[source: datasheet.pdf, page: two, text: "bad page"]',
        '[source: datasheet.pdf, page: 0, text: "page zero"]',
        "[source: datasheet.pdf, page: 3]",
        '[page: 3, text: "no source"]',
        '[source: datasheet.pdf, page: 3, text: "never closed',
    ),
)
def test_malformed_markers_are_plain_text(fragment: str) -> None:
    parsed = parse_citations(f"Before {fragment} after")

    assert parsed.citations == []
    assert parsed.display_text == f"Before {fragment} after"


def test_unterminated_marker_does_not_swallow_the_next_one() -> None:
    text = '[source: a.pdf, page: 1, text: "dangling ... [source: b.pdf, page: 2, text: "kept"]'

    parsed = parse_citations(text)

    assert parsed.citations == [Citation(file_name="b.pdf", page=2, quoted_text="kept")]


def test_tolerates_spacing_and_multiline_quotes() -> None:
    text = '[source:  manual v2.pdf ,page:12,  text: "first line\nsecond line" ]'

    parsed = parse_citations(text)

    assert parsed.citations == [
        Citation(file_name="manual v2.pdf", page=12, quoted_text="first line\nsecond line")
    ]


@pytest.mark.parametrize(
    "citation",
    (
        Citation(file_name="datasheet.pdf", page=2, quoted_text="Goodbye."),
        Citation(file_name="شکوریت.pdf", page=7, quoted_text="دمای کوره ۶۵۰ درجه"),
        Citation(file_name="report, final.pdf", page=3, quoted_text='He said "tempered" twice.'),
        Citation(file_name="a.txt", page=1, quoted_text="array[0] = (x, y)"),
        Citation(file_name="Datasheet [rev2].pdf", page=3, quoted_text="Goodbye."),
        Citation(file_name="[draft] notes.txt", page=1, quoted_text="Hello world."),
    ),
)
def test_formatted_citation_parses_back(citation: Citation) -> None:
    parsed = parse_citations(f"Answer sentence {format_citation(citation)} more.")

    assert parsed.citations == [citation]


def test_bracketed_file_name_after_a_dangling_marker() -> None:
    text = (
        '[source: a.pdf, page: 1, text: "dangling ... '
        '[source: Datasheet [rev2].pdf, page: 4, text: "Furnace at 650 degrees."]'
    )

    parsed = parse_citations(text)

    assert parsed.citations == [
        Citation(file_name="Datasheet [rev2].pdf", page=4, quoted_text="Furnace at 650 degrees.")
    ]
