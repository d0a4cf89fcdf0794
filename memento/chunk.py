"""Split pages into heading- or paragraph-based chunks with line-range tracking."""

from __future__ import annotations

import re
from dataclasses import dataclass

from memento.page import Page

# Section headings are ``##`` or deeper; a single ``#`` is the page title.
_SECTION_HEADING = re.compile(r"^#{2,} ")

MIN_CHUNK_TOKENS = 50


@dataclass(frozen=True)
class Chunk:
    """A portion of a page, prefixed with the page's ``# Title`` line.

    ``start_line`` and ``end_line`` are 1-indexed and inclusive, counted in the
    page's original content.
    """

    text: str
    start_line: int
    end_line: int


@dataclass
class _RawChunk:
    body: str
    start_line: int
    end_line: int

    def joined(self, other: _RawChunk) -> _RawChunk:
        return _RawChunk(self.body + "\n" + other.body, self.start_line, other.end_line)


def _token_count(text: str) -> int:
    return len(text.split())


def _heading_indices(body_lines: list[str]) -> list[int]:
    """Body-line indices of section headings, ignoring fenced code blocks."""
    indices = []
    in_fence = False
    for i, line in enumerate(body_lines):
        if line.startswith("```"):
            in_fence = not in_fence
        if not in_fence and _SECTION_HEADING.match(line):
            indices.append(i)
    return indices


def _split_on_headings(body_lines: list[str], body_start: int, headings: list[int]) -> list[_RawChunk]:
    chunks = []
    first = headings[0]
    if first > 0:
        chunks.append(_RawChunk("\n".join(body_lines[:first]), body_start, body_start + first - 1))
    bounds = headings[1:] + [len(body_lines)]
    for start, end in zip(headings, bounds):
        chunks.append(
            _RawChunk("\n".join(body_lines[start:end]), body_start + start, body_start + end - 1)
        )
    return chunks


def _split_on_paragraphs(body_lines: list[str], body_start: int) -> list[_RawChunk]:
    """Split on runs of one or more empty lines."""
    chunks = []
    current: list[str] = []
    current_start = body_start
    in_blank_run = False

    for i, line in enumerate(body_lines):
        if line == "":
            if not in_blank_run and current:
                chunks.append(_RawChunk("\n".join(current), current_start, body_start + i - 1))
                current = []
            in_blank_run = True
        else:
            if in_blank_run:
                current_start = body_start + i
                in_blank_run = False
            current.append(line)

    last_line = body_start + len(body_lines) - 1
    if current:
        chunks.append(_RawChunk("\n".join(current), current_start, last_line))
    if not chunks:
        chunks.append(_RawChunk("\n".join(body_lines), body_start, last_line))
    return chunks


def _merge_small(chunks: list[_RawChunk], min_tokens: int) -> list[_RawChunk]:
    """Merge undersized chunks forward, or backward when the chunk is last."""
    while len(chunks) > 1:
        small = next(
            (i for i, c in enumerate(chunks) if _token_count(c.body) < min_tokens), None
        )
        if small is None:
            break
        at = small if small + 1 < len(chunks) else small - 1
        chunks = chunks[:at] + [chunks[at].joined(chunks[at + 1])] + chunks[at + 2 :]
    return chunks


def chunk_page(page: Page) -> list[Chunk]:
    """Split a page into chunks on section headings, or on paragraphs when there are none.

    Every chunk text starts with the page's ``# Title`` line; chunks whose body
    has fewer than fifty tokens are merged with a neighbour.
    """
    title_line = "# " + page.title
    if page.body == "":
        return [Chunk(title_line, 1, page.lines)]

    body_lines = page.body.split("\n")
    body_start = page.lines - len(body_lines) + 1

    headings = _heading_indices(body_lines)
    if headings:
        raw = _split_on_headings(body_lines, body_start, headings)
    else:
        raw = _split_on_paragraphs(body_lines, body_start)

    raw[0].start_line = 1
    raw[-1].end_line = page.lines
    raw = _merge_small(raw, MIN_CHUNK_TOKENS)

    return [Chunk(title_line + "\n" + rc.body, rc.start_line, rc.end_line) for rc in raw]