"""Page record shared by the index structures, plus page-name normalisation."""

from __future__ import annotations

from dataclasses import dataclass


def normalize_page_name(name: str) -> str:
    """Return the case- and whitespace-insensitive key for a page name."""
    return name.strip().lower()


@dataclass(frozen=True)
class Page:
    """A parsed wiki page.

    ``lines`` is the number of lines in the page's original content, with the
    ``# Title`` heading counted as line 1.
    """

    name: str
    title: str
    body: str = ""
    wiki_links: tuple[str, ...] = ()
    lines: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "wiki_links", tuple(self.wiki_links))