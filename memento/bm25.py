"""Weighted-field BM25 inverted index over page titles, wikilinks and bodies."""

from __future__ import annotations

import math
import unicodedata
from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from memento.page import Page
from memento.porter import porter_stem

BM25_K1 = 1.5
BM25_B = 0.75
WEIGHT_TITLE = 10.0
WEIGHT_LINKS = 3.0
WEIGHT_BODY = 1.0

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to",
        "for", "of", "with", "by", "from", "is", "it", "as", "be", "was",
        "are", "not", "that", "this", "have", "had", "has", "will", "would",
        "could", "should", "may", "might", "do", "does", "did", "he", "she",
        "we", "they", "you", "i", "its", "also", "been", "were", "their",
        "there", "when", "which", "some", "no", "if", "so", "up", "out",
        "about", "into", "than", "then", "over", "such", "after", "before",
        "can", "all", "other", "more", "very", "any", "what", "how", "who",
        "my", "your",
    }
)


@dataclass
class FieldData:
    """Term frequencies and token count of one field of one document."""

    tf: Counter[str] = field(default_factory=Counter)
    length: int = 0


@dataclass(frozen=True)
class SearchResult:
    """A single BM25 search hit."""

    name: str
    score: float


@dataclass
class _DocEntry:
    name: str
    title: FieldData
    links: FieldData
    body: FieldData

    def terms(self) -> set[str]:
        return set(self.title.tf) | set(self.links.tf) | set(self.body.tf)


def _is_word_char(ch: str) -> bool:
    return ch.isalpha() or unicodedata.category(ch) == "Nd"


def _words(text: str) -> Iterator[str]:
    """Split ``text`` on every character that is neither a letter nor a digit."""
    current: list[str] = []
    for ch in text:
        if _is_word_char(ch):
            current.append(ch)
        elif current:
            yield "".join(current)
            current = []
    if current:
        yield "".join(current)


def _stems(words: Iterable[str]) -> Iterator[str]:
    for word in words:
        if word in STOP_WORDS:
            continue
        stem = porter_stem(word)
        if stem:
            yield stem


def tokenize(text: str) -> list[str]:
    """Lowercase, split, drop stop words and stem; unique terms in first-seen order."""
    return list(dict.fromkeys(_stems(_words(text.lower()))))


def tokenize_field(text: str) -> FieldData:
    """Tokenize a title or body, counting every occurrence of each term."""
    stems = list(_stems(_words(text.lower())))
    return FieldData(Counter(stems), len(stems))


def tokenize_links(links: Iterable[str]) -> FieldData:
    """Tokenize wikilink targets into single terms plus multi-word compound phrases."""
    tf: Counter[str] = Counter()
    length = 0
    for link in links:
        words = link.lower().split()
        stemmed = list(_stems(words))
        tf.update(stemmed)
        length += len(stemmed)
        if len(words) > 1 and len(stemmed) > 1:
            tf[" ".join(stemmed)] += 1
            length += 1
    return FieldData(tf, length)


def _bm25_tf(tf: int, doc_len: int, avg_len: float) -> float:
    if tf == 0:
        return 0.0
    norm = BM25_K1 * (1 - BM25_B + BM25_B * doc_len / avg_len)
    return tf * (BM25_K1 + 1) / (tf + norm)


def _avg_len(total: int, n: int) -> float:
    if n == 0:
        return 1.0
    avg = total / n
    return avg if avg != 0 else 1.0


class BM25:
    """Weighted-field BM25 index keyed case-insensitively by page name."""

    def __init__(self) -> None:
        self._docs: dict[str, _DocEntry] = {}
        self._doc_freq: Counter[str] = Counter()
        self._total_title = 0
        self._total_links = 0
        self._total_body = 0

    def __len__(self) -> int:
        return len(self._docs)

    def add(self, page: Page) -> None:
        """Index a page, replacing any existing entry with the same name."""
        key = page.name.lower()
        old = self._docs.get(key)
        if old is not None:
            self._forget(old)

        entry = _DocEntry(
            name=page.name,
            title=tokenize_field(page.title),
            links=tokenize_links(page.wiki_links),
            body=tokenize_field(page.body),
        )
        self._docs[key] = entry
        self._total_title += entry.title.length
        self._total_links += entry.links.length
        self._total_body += entry.body.length
        self._doc_freq.update(entry.terms())

    def remove(self, name: str) -> None:
        """Remove a page by name; unknown names are ignored."""
        entry = self._docs.pop(name.lower(), None)
        if entry is not None:
            self._forget(entry)

    def _forget(self, entry: _DocEntry) -> None:
        self._total_title -= entry.title.length
        self._total_links -= entry.links.length
        self._total_body -= entry.body.length
        for term in entry.terms():
            self._doc_freq[term] -= 1
            if self._doc_freq[term] <= 0:
                del self._doc_freq[term]

    def search(self, query: str, limit: int = 0) -> list[SearchResult]:
        """Return up to ``limit`` pages ranked by BM25 score (all when ``limit`` <= 0)."""
        terms = tokenize(query)
        if not terms:
            return []
        return self.search_terms(terms, limit)

    def search_terms(self, terms: Iterable[str], limit: int = 0) -> list[SearchResult]:
        """Score documents for already-stemmed terms and return them ranked."""
        n = len(self._docs)
        if n == 0:
            return []

        avg_title = _avg_len(self._total_title, n)
        avg_links = _avg_len(self._total_links, n)
        avg_body = _avg_len(self._total_body, n)

        scores: dict[str, float] = {}
        for term in terms:
            df = self._doc_freq.get(term, 0)
            if df == 0:
                continue
            idf = math.log((n - df + 0.5) / (df + 0.5) + 1)
            for entry in self._docs.values():
                score = 0.0
                score += WEIGHT_TITLE * _bm25_tf(entry.title.tf[term], entry.title.length, avg_title) * idf
                score += WEIGHT_LINKS * _bm25_tf(entry.links.tf[term], entry.links.length, avg_links) * idf
                score += WEIGHT_BODY * _bm25_tf(entry.body.tf[term], entry.body.length, avg_body) * idf
                if score > 0:
                    scores[entry.name] = scores.get(entry.name, 0.0) + score

        results = sorted(
            (SearchResult(name, score) for name, score in scores.items()),
            key=lambda r: r.score,
            reverse=True,
        )
        if limit > 0:
            results = results[:limit]
        return results