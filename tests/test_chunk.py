from memento.chunk import Chunk, chunk_page
from memento.page import Page

ABOVE_50_WORDS = (
    "one two three four five six seven eight nine ten "
    "eleven twelve thirteen fourteen fifteen sixteen seventeen eighteen nineteen twenty "
    "twentyone twentytwo twentythree twentyfour twentyfive twentysix twentyseven twentyeight twentynine thirty "
    "thirtyone thirtytwo thirtythree thirtyfour thirtyfive thirtysix thirtyseven thirtyeight thirtynine forty "
    "fortyone fortytwo fortythree fortyfour fortyfive fortysix fortyseven fortyeight fortynine fifty "
    "fiftyone"
)

BELOW_50_WORDS = "This is a short section with only a few words total."


def page_from(name: str, raw: str) -> Page:
    """Build a page from raw markdown: '# Title' line, blank gap, then the body."""
    lines = raw.split("\n")
    title = lines[0][2:] if lines[0].startswith("# ") else name
    rest = lines[1:]
    while rest and rest[0].strip() == "":
        rest = rest[1:]
    return Page(name=name, title=title, body="\n".join(rest), lines=len(lines))


def total_lines(raw: str) -> int:
    return raw.count("\n") + 1


def contains_any(chunks: list[Chunk], text: str) -> bool:
    return any(text in c.text for c in chunks)


def test_title_only_produces_single_chunk():
    chunks = chunk_page(page_from("empty-page", "# Empty Page"))
    assert len(chunks) == 1
    assert "# Empty Page" in chunks[0].text
    assert chunks[0].start_line == 1
    assert chunks[0].end_line == 1


def test_empty_body_produces_single_chunk():
    chunks = chunk_page(page_from("my-page", "# My Page\n\n"))
    assert len(chunks) == 1
    assert chunks[0].text.startswith("# My Page")


def test_small_page_no_headings_single_chunk():
    chunks = chunk_page(page_from("small-page", "# Small Page\n\n" + BELOW_50_WORDS))
    assert len(chunks) == 1
    assert chunks[0].text.startswith("# Small Page\n")
    assert BELOW_50_WORDS in chunks[0].text


def test_no_headings_no_paragraphs_single_chunk():
    chunks = chunk_page(page_from("my-page", "# My Page\n\n" + ABOVE_50_WORDS))
    assert len(chunks) == 1


def test_all_chunks_prefixed_with_title():
    raw = (
        "# My Page\n\n"
        "## Section One\n" + ABOVE_50_WORDS + "\n\n"
        "## Section Two\n" + ABOVE_50_WORDS
    )
    chunks = chunk_page(page_from("my-page", raw))
    assert len(chunks) >= 2
    assert all(c.text.startswith("# My Page\n") for c in chunks)


def test_section_heading_creates_split():
    raw = "# Doc\n\n## First\n" + ABOVE_50_WORDS + "\n\n## Second\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) >= 2
    assert contains_any(chunks, "## First")
    assert contains_any(chunks, "## Second")


def test_intro_chunk_before_first_heading():
    raw = "# My Page\n\n" + ABOVE_50_WORDS + "\n\n## Section\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("my-page", raw))
    assert len(chunks) >= 2
    assert "fortyone" in chunks[0].text
    assert "## Section" not in chunks[0].text


def test_h2_and_h3_both_are_split_points():
    raw = "# Doc\n\n## H2 Section\n" + ABOVE_50_WORDS + "\n\n### H3 Subsection\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) >= 2
    assert contains_any(chunks, "## H2 Section")
    assert contains_any(chunks, "### H3 Subsection")


def test_single_h1_not_a_split_point():
    raw = "# Title\n\n" + ABOVE_50_WORDS + "\n\n# Another H1\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("title", raw))
    assert chunks
    assert all(c.text.startswith("# Title\n") for c in chunks)


def test_paragraph_fallback_when_no_headings():
    raw = "# My Page\n\n" + ABOVE_50_WORDS + "\n\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("my-page", raw))
    assert len(chunks) >= 2


def test_paragraph_fallback_small_chunks_merge():
    raw = "# Doc\n\n" + BELOW_50_WORDS + "\n\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) == 1
    assert BELOW_50_WORDS in chunks[0].text
    assert ABOVE_50_WORDS in chunks[0].text


def test_triple_newline_counts_as_paragraph_break():
    raw = "# Doc\n\n" + ABOVE_50_WORDS + "\n\n\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) >= 2


def test_paragraph_fallback_not_used_when_headings_exist():
    raw = "# Doc\n\n## Only Section\n" + ABOVE_50_WORDS + "\n\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    section_chunks = [c for c in chunks if "## Only Section" in c.text]
    assert section_chunks
    for c in section_chunks:
        assert c.text.count("fiftyone") >= 2


def test_small_chunk_merges_forward_into_next():
    raw = "# Doc\n\n## Small Section\n" + BELOW_50_WORDS + "\n\n## Large Section\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) == 1
    assert "## Small Section" in chunks[0].text
    assert "## Large Section" in chunks[0].text


def test_small_last_chunk_merges_backward_into_previous():
    raw = "# Doc\n\n## Large Section\n" + ABOVE_50_WORDS + "\n\n## Small Section\n" + BELOW_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) == 1
    assert "## Large Section" in chunks[0].text
    assert "## Small Section" in chunks[0].text


def test_all_small_sections_produce_single_chunk():
    raw = (
        "# Doc\n\n"
        "## Section One\n" + BELOW_50_WORDS + "\n\n"
        "## Section Two\n" + BELOW_50_WORDS + "\n\n"
        "## Section Three\n" + BELOW_50_WORDS
    )
    assert len(chunk_page(page_from("doc", raw))) == 1


def test_small_chunk_merge_preserves_full_line_range():
    raw = "# Doc\n\n## Small Section\n" + BELOW_50_WORDS + "\n\n## Large Section\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) == 1
    assert chunks[0].start_line == 1
    assert chunks[0].end_line == total_lines(raw)


def test_small_last_chunk_merge_preserves_full_line_range():
    raw = "# Doc\n\n## Large Section\n" + ABOVE_50_WORDS + "\n\n## Small Section\n" + BELOW_50_WORDS
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) == 1
    assert chunks[0].start_line == 1
    assert chunks[0].end_line == total_lines(raw)


def test_heading_inside_fenced_code_block_not_a_split():
    raw = (
        "# Doc\n\n"
        "## Real Section\n" + ABOVE_50_WORDS + "\n\n"
        "```\n## Fake Heading\n```\n\n" + ABOVE_50_WORDS
    )
    chunks = chunk_page(page_from("doc", raw))
    assert len(chunks) == 1
    assert "## Fake Heading" in chunks[0].text
    assert "## Real Section" in chunks[0].text


def test_first_chunk_starts_at_line_1():
    chunks = chunk_page(page_from("my-page", "# My Page\n\n" + ABOVE_50_WORDS))
    assert chunks[0].start_line == 1


def test_section_chunk_startline_matches_heading_line():
    raw = "# My Page\n\n" + ABOVE_50_WORDS + "\n\n## Section\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("my-page", raw))
    assert len(chunks) >= 2
    section_line = raw.split("\n").index("## Section") + 1
    section_chunk = next(c for c in chunks if "## Section" in c.text)
    assert section_chunk.start_line == section_line == 5


def test_last_chunk_ends_at_last_line_of_page():
    raw = (
        "# My Page\n\n"
        "## Section One\n" + ABOVE_50_WORDS + "\n\n"
        "## Section Two\n" + ABOVE_50_WORDS
    )
    chunks = chunk_page(page_from("my-page", raw))
    assert chunks[-1].end_line == total_lines(raw)


def test_section_chunks_have_ascending_line_ranges():
    raw = (
        "# My Page\n\n" + ABOVE_50_WORDS + "\n\n"
        "## Section One\n" + ABOVE_50_WORDS + "\n\n"
        "## Section Two\n" + ABOVE_50_WORDS
    )
    chunks = chunk_page(page_from("my-page", raw))
    assert len(chunks) >= 2
    for prev, cur in zip(chunks, chunks[1:]):
        assert cur.start_line > prev.start_line
    assert all(c.end_line >= c.start_line for c in chunks)


def test_chunk_line_ranges_cover_full_page():
    raw = "# My Page\n\n" + ABOVE_50_WORDS + "\n\n## Section\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("my-page", raw))
    assert chunks[0].start_line == 1
    assert chunks[-1].end_line == total_lines(raw)


def test_exact_ranges_for_intro_and_section():
    raw = "# My Page\n\n" + ABOVE_50_WORDS + "\n\n## Section\n" + ABOVE_50_WORDS
    chunks = chunk_page(page_from("my-page", raw))
    assert [(c.start_line, c.end_line) for c in chunks] == [(1, 4), (5, 6)]
    assert chunks[0].text == "# My Page\n" + ABOVE_50_WORDS + "\n"