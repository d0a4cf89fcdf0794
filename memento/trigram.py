"""Trigram sets, Jaccard similarity and a fuzzy term matcher."""

from __future__ import annotations


def trigrams(term: str) -> list[str]:
    """Return the unique 3-character sliding windows of ``term``, in order.

    Terms shorter than three characters yield the term itself; an empty term
    yields nothing.
    """
    if not term:
        return []
    if len(term) < 3:
        return [term]
    return list(dict.fromkeys(term[i : i + 3] for i in range(len(term) - 2)))


def _trigram_set(term: str) -> frozenset[str]:
    return frozenset(trigrams(term))


def _jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    if not a and not b:
        return 1.0
    union = len(a | b)
    if union == 0:
        return 0.0
    return len(a & b) / union


def similarity(a: str, b: str) -> float:
    """Jaccard similarity of the trigram sets of two strings."""
    return _jaccard(_trigram_set(a), _trigram_set(b))


class Trigram:
    """In-memory fuzzy-match index based on trigram Jaccard similarity."""

    def __init__(self) -> None:
        self._terms: dict[str, frozenset[str]] = {}

    def add(self, term: str) -> None:
        """Add a term to the index."""
        self._terms[term] = _trigram_set(term)

    def fuzzy_match(self, query: str, threshold: float) -> list[str]:
        """Return indexed terms whose similarity with ``query`` is at least ``threshold``."""
        if not query:
            return []
        query_set = _trigram_set(query)
        return [
            term
            for term, term_set in self._terms.items()
            if _jaccard(query_set, term_set) >= threshold
        ]