"""Bidirectional wikilink graph."""

from __future__ import annotations

from memento.page import Page, normalize_page_name


class Graph:
    """Tracks outbound and inbound wikilinks between pages, case-insensitively."""

    def __init__(self) -> None:
        # Outbound targets per source, kept in the order they appear in the page.
        self._outbound: dict[str, list[str]] = {}
        self._inbound: dict[str, set[str]] = {}
        self._canonical: dict[str, str] = {}

    def _drop_outbound(self, key: str) -> None:
        for target in self._outbound.pop(key, ()):
            referrers = self._inbound.get(target)
            if referrers is not None:
                referrers.discard(key)

    def add(self, page: Page) -> None:
        """Add or replace a page and its outbound wikilinks."""
        key = normalize_page_name(page.name)
        self._canonical[key] = page.name
        self._drop_outbound(key)

        targets: dict[str, None] = {}
        for link in page.wiki_links:
            target = normalize_page_name(link)
            if not target:
                continue
            targets.setdefault(target, None)
            self._canonical.setdefault(target, link)
        self._outbound[key] = list(targets)

        for target in targets:
            self._inbound.setdefault(target, set()).add(key)

    def remove(self, name: str) -> None:
        """Remove a page and its outbound link relationships."""
        key = normalize_page_name(name)
        self._drop_outbound(key)
        self._canonical.pop(key, None)

    def _display(self, key: str) -> str:
        return self._canonical.get(key, key)

    def links_to(self, name: str) -> list[str]:
        """Canonical names of the pages ``name`` links to, in source order."""
        return [self._display(t) for t in self._outbound.get(normalize_page_name(name), ())]

    def linked_from(self, name: str) -> list[str]:
        """Canonical names of the pages that link to ``name``."""
        return [self._display(r) for r in self._inbound.get(normalize_page_name(name), ())]