"""Composite search index: BM25, trigram fallback, link graph and optional vectors."""

from __future__ import annotations

import hashlib
import logging
import os
import re
from dataclasses import dataclass

from memento.bm25 import BM25, _words, tokenize, tokenize_field, tokenize_links
from memento.cache import CacheEntry, CacheError, save_cache
from memento.graph import Graph
from memento.page import Page, normalize_page_name
from memento.porter import porter_stem
from memento.trigram import Trigram
from memento.vector import EmbeddingModel, VectorIndex, VectorResult

logger = logging.getLogger(__name__)

# Score multiplier for pages surfaced only through a link from a direct match.
# Must exceed RELEVANCE_RATIO so such pages survive the threshold.
GRAPH_BOOST_DAMPENED = 0.6
# Applied to direct matches that are also linked with another direct match.
GRAPH_BOOST_MULTIPLIER = 1.5
# Results scoring below this fraction of the top score are dropped.
RELEVANCE_RATIO = 0.5
# Minimum trigram similarity for fuzzy query expansion.
TRIGRAM_FUZZY_THRESHOLD = 0.4
# BM25 result count below which the trigram fallback runs.
TRIGRAM_MIN_RESULTS = 3
# Maximum snippet length in UTF-8 bytes.
MAX_SNIPPET_LEN = 300
# Minimum cosine similarity for a vector result to take part in the merge.
VECTOR_MIN_SCORE = 0.3
VECTOR_SEARCH_LIMIT = 20


@dataclass(frozen=True)
class Result:
    """A single search result.

    ``is_direct`` is True when the page matched the query itself (by keyword
    or by meaning), False when it was surfaced only through the link graph.
    """

    page: str
    score: float
    snippet: str
    line: int
    is_direct: bool


def _content_hash(page: Page) -> str:
    digest = hashlib.sha256((page.name + "\x00" + page.body).encode("utf-8")).digest()
    return digest[:8].hex()


def _collect_page_terms(page: Page) -> set[str]:
    return (
        set(tokenize_field(page.title).tf)
        | set(tokenize_links(page.wiki_links).tf)
        | set(tokenize_field(page.body).tf)
    )


def _truncate(text: str) -> str:
    data = text.encode("utf-8")
    if len(data) <= MAX_SNIPPET_LEN:
        return text
    return data[:MAX_SNIPPET_LEN].decode("utf-8", "ignore")


def _first_paragraph_snippet(page: Page) -> tuple[str, int]:
    first, _, _ = page.body.strip().partition("\n\n")
    return _truncate(first.strip()), 2


def _count_term_matches(text: str, query_terms: list[str]) -> int:
    wanted = set(query_terms)
    return len({s for s in map(porter_stem, _words(text.lower())) if s in wanted})


def _density_snippet(page: Page, query_terms: list[str]) -> tuple[str, int]:
    lines = page.body.split("\n")
    best_idx = 0
    best_count = -1
    for i, line in enumerate(lines):
        count = _count_term_matches(line, query_terms)
        if count > best_count:
            best_count = count
            best_idx = i
    start = max(0, best_idx - 1)
    end = min(len(lines), best_idx + 2)
    # Line 1 is the heading; the body starts at line 2.
    return _truncate(" ".join(lines[start:end])), best_idx + 2


def _vector_snippet(page: Page, line_hint: int) -> tuple[str, int]:
    lines = page.body.split("\n")
    body_idx = max(0, min(line_hint - 2, len(lines) - 1))
    start = max(0, body_idx - 1)
    end = min(len(lines), body_idx + 2)
    snippet = _truncate(" ".join(lines[start:end]).strip())
    if snippet:
        return snippet, line_hint
    return _first_paragraph_snippet(page)


def _referrer_snippet(ref_page: Page, target_name: str) -> tuple[str, int]:
    body = ref_page.body
    pattern = re.compile(r"\[\[" + re.escape(target_name) + r"\]\]", re.IGNORECASE)
    match = pattern.search(body)
    if match is None:
        return _truncate(body.split("\n", 1)[0]), 2

    start = max(0, match.start() - 125)
    end = min(len(body), match.end() + 125)
    snippet = body[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(body):
        snippet += "..."
    return snippet, body.count("\n", 0, match.start()) + 2


class Index:
    """Composite search index over wiki pages.

    With an embedding model, keyword and vector results are merged; without
    one, a trigram fuzzy fallback rescues queries with few keyword hits. When
    ``cache_path`` is set and a model is present, chunk embeddings are written
    through to that cache file on every change.
    """

    def __init__(
        self,
        model: EmbeddingModel | None = None,
        cache_path: str | os.PathLike[str] | None = "",
    ) -> None:
        self._bm25 = BM25()
        self._trigram = Trigram()
        self._graph = Graph()
        self._pages: dict[str, Page] = {}
        self._model = model
        self._cache_path = os.fspath(cache_path) if cache_path else ""
        self._cache_entries: dict[str, CacheEntry] = {}
        self._vector = VectorIndex(model) if model is not None else None

    def _index_text(self, page: Page) -> None:
        self._bm25.add(page)
        self._graph.add(page)
        self._pages[page.name.lower()] = page
        for term in _collect_page_terms(page):
            self._trigram.add(term)

    def add(self, page: Page) -> None:
        """Index a page, replacing any existing entry with the same name."""
        self._index_text(page)
        if self._vector is None:
            return
        try:
            self._vector.add(page)
        except Exception:
            logger.exception("index: embedding page %r failed", page.name)
        if self._cache_path:
            norm = normalize_page_name(page.name)
            self._cache_entries[norm] = CacheEntry(
                page_name=page.name,
                content_hash=_content_hash(page),
                chunks=tuple(self._vector.chunks_for(norm)),
            )
            self._save_cache()

    def add_from_cache(self, page: Page, entry: CacheEntry) -> None:
        """Index a page using precomputed chunk vectors instead of embedding it."""
        self._index_text(page)
        if self._vector is not None:
            self._vector.add_from_cache(page, entry.chunks)
            self._cache_entries[normalize_page_name(page.name)] = entry

    def remove(self, name: str) -> None:
        """Remove a page from every sub-index."""
        self._bm25.remove(name)
        self._graph.remove(name)
        self._pages.pop(name.lower(), None)
        if self._vector is None:
            return
        self._vector.remove(name)
        if self._cache_path:
            self._cache_entries.pop(normalize_page_name(name), None)
            self._save_cache()

    def links_to(self, name: str) -> list[str]:
        """Canonical names of the pages ``name`` links to."""
        return self._graph.links_to(name)

    def linked_from(self, name: str) -> list[str]:
        """Canonical names of the pages that link to ``name``."""
        return self._graph.linked_from(name)

    def _save_cache(self) -> None:
        if not self._cache_path or self._model is None:
            return
        try:
            save_cache(
                self._cache_path,
                list(self._cache_entries.values()),
                self._model.model_id,
                self._model.sentex_version,
                self._model.dimensions,
            )
        except CacheError as exc:
            logger.warning("index: cache write-through failed: %s", exc)

    def search(self, query: str, limit: int = 0) -> list[Result]:
        """Run the full search pipeline and return up to ``limit`` results (all if <= 0)."""
        if not query or not self._pages:
            return []
        query_terms = tokenize(query)
        if not query_terms:
            return []

        bm25_raw = self._bm25.search_terms(query_terms, 0)

        vec_results: list[VectorResult] = []
        if self._vector is not None:
            vec_results = self._run_vector_search(query)
        elif len(bm25_raw) < TRIGRAM_MIN_RESULTS:
            expanded = self._expand_terms(query_terms)
            if len(expanded) > len(query_terms):
                bm25_raw = self._bm25.search_terms(expanded, 0)

        bm25_scores = {r.name: r.score for r in bm25_raw}
        line_hints = {vr.page: vr.line for vr in vec_results}

        if self._vector is not None:
            direct = self._merge_scores(bm25_scores, vec_results)
        else:
            direct = bm25_scores

        final, referrers = self._graph_boost(direct)

        top = max(final.values(), default=0.0)
        if top > 0:
            threshold = top * RELEVANCE_RATIO
            final = {name: s for name, s in final.items() if s >= threshold}

        ranked = sorted(final.items(), key=lambda item: item[1], reverse=True)
        if limit > 0:
            ranked = ranked[:limit]

        results = []
        for name, score in ranked:
            page = self._pages.get(name.lower())
            if page is None:
                continue
            bm25_hit = bm25_scores.get(name, 0.0) > 0
            vec_hit = name in line_hints
            is_direct = bm25_hit or (self._vector is not None and vec_hit)
            if not bm25_hit and vec_hit:
                snippet, line = _vector_snippet(page, line_hints[name])
            else:
                snippet, line = self._build_snippet(
                    page, query_terms, is_direct, referrers.get(name, "")
                )
            results.append(Result(name, score, snippet, line, is_direct))
        return results

    def _run_vector_search(self, query: str) -> list[VectorResult]:
        assert self._vector is not None
        return [
            vr
            for vr in self._vector.search(query, VECTOR_SEARCH_LIMIT)
            if vr.score >= VECTOR_MIN_SCORE
        ]

    @staticmethod
    def _merge_scores(
        bm25_scores: dict[str, float], vec_results: list[VectorResult]
    ) -> dict[str, float]:
        """Normalise and merge keyword and vector scores.

        Vector results gate the merged set; keyword scores only boost pages
        that vector search also found. With no vector results, normalised
        keyword scores pass through.
        """
        bm25_top = max(bm25_scores.values(), default=0.0)
        bm25_top = max(bm25_top, 0.0)
        if not vec_results:
            if bm25_top > 0:
                return {name: s / bm25_top for name, s in bm25_scores.items()}
            return dict(bm25_scores)

        vec_top = max(0.0, max(vr.score for vr in vec_results))
        merged: dict[str, float] = {}
        for vr in vec_results:
            norm_vec = vr.score / vec_top if vec_top > 0 else vr.score
            norm_bm25 = 0.0
            if vr.page in bm25_scores and bm25_top > 0:
                norm_bm25 = bm25_scores[vr.page] / bm25_top
            merged[vr.page] = max(norm_vec, norm_bm25)
        return merged

    def _expand_terms(self, terms: list[str]) -> list[str]:
        expanded = dict.fromkeys(terms)
        for term in terms:
            for match in self._trigram.fuzzy_match(term, TRIGRAM_FUZZY_THRESHOLD):
                expanded.setdefault(match, None)
        return list(expanded)

    def _graph_boost(
        self, direct: dict[str, float]
    ) -> tuple[dict[str, float], dict[str, str]]:
        """Add one-hop neighbours of direct matches and boost linked direct matches.

        Returns the final scores and, for graph-only pages, the direct match
        that surfaced them.
        """
        final = dict(direct)
        referrers: dict[str, str] = {}
        for src, src_score in direct.items():
            neighbours = self._graph.links_to(src) + self._graph.linked_from(src)
            for other in neighbours:
                if other in direct:
                    boosted = direct[other] * GRAPH_BOOST_MULTIPLIER
                    if boosted > final.get(other, 0.0):
                        final[other] = boosted
                else:
                    dampened = src_score * GRAPH_BOOST_DAMPENED
                    if dampened > final.get(other, 0.0):
                        final[other] = dampened
                        referrers[other] = src
        return final, referrers

    def _build_snippet(
        self, page: Page, query_terms: list[str], is_direct: bool, referrer: str
    ) -> tuple[str, int]:
        if not is_direct and referrer:
            ref_page = self._pages.get(referrer.lower())
            if ref_page is not None:
                return _referrer_snippet(ref_page, page.name)

        title_tf = tokenize_field(page.title).tf
        if any(title_tf[term] > 0 for term in query_terms):
            return _first_paragraph_snippet(page)
        return _density_snippet(page, query_terms)