"""Per-chunk embedding storage with cosine-similarity search."""

from __future__ import annotations

import math
from array import array
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from memento.cache import CachedChunk
from memento.chunk import chunk_page
from memento.page import Page, normalize_page_name


class EmbeddingModel(Protocol):
    """A sentence-embedding model usable by the vector index."""

    model_id: str
    sentex_version: str
    dimensions: int

    def embed(self, text: str) -> Sequence[float]:
        """Return the embedding vector for ``text``."""
        ...

    def embed_batch(self, texts: Sequence[str]) -> Sequence[Sequence[float]]:
        """Return one embedding vector per text, in order."""
        ...


@dataclass(frozen=True)
class VectorResult:
    """A page found by vector search, with its best chunk's score and start line."""

    page: str
    score: float
    line: int


@dataclass(frozen=True)
class _StoredChunk:
    page: str
    norm_page: str
    line: int
    end_line: int
    vector: tuple[float, ...]


def _normalize(vector: Iterable[float]) -> tuple[float, ...]:
    """Return a unit-length single-precision copy; the zero vector is kept as is."""
    values = array("f", vector)
    total = math.fsum(x * x for x in values)
    if total == 0:
        return tuple(values)
    inv = 1.0 / math.sqrt(total)
    return tuple(array("f", (x * inv for x in values)))


def _dot(a: Sequence[float], b: Sequence[float]) -> float:
    return sum(x * y for x, y in zip(a, b))


class VectorIndex:
    """Stores chunk embeddings and finds pages by cosine similarity.

    Page names are matched case-insensitively.
    """

    def __init__(self, model: EmbeddingModel) -> None:
        self._model = model
        self._chunks: list[_StoredChunk] = []

    def _remove_norm(self, norm_name: str) -> None:
        self._chunks = [c for c in self._chunks if c.norm_page != norm_name]

    def add(self, page: Page) -> None:
        """Chunk and embed a page, replacing any chunks stored for it.

        Errors raised by the model propagate; the page's old chunks are gone by then.
        """
        norm_name = normalize_page_name(page.name)
        self._remove_norm(norm_name)

        chunks = chunk_page(page)
        if not chunks:
            return
        vectors = self._model.embed_batch([c.text for c in chunks])
        self._chunks.extend(
            _StoredChunk(page.name, norm_name, c.start_line, c.end_line, _normalize(vec))
            for c, vec in zip(chunks, vectors)
        )

    def add_from_cache(self, page: Page, chunks: Iterable[CachedChunk]) -> None:
        """Store precomputed chunk vectors for a page, replacing its old chunks."""
        norm_name = normalize_page_name(page.name)
        self._remove_norm(norm_name)
        self._chunks.extend(
            _StoredChunk(page.name, norm_name, c.start_line, c.end_line, _normalize(c.vector))
            for c in chunks
        )

    def chunks_for(self, norm_name: str) -> list[CachedChunk]:
        """Stored chunks of a page, by normalized name, in cacheable form."""
        return [
            CachedChunk(c.line, c.end_line, c.vector)
            for c in self._chunks
            if c.norm_page == norm_name
        ]

    def remove(self, name: str) -> None:
        """Remove every chunk of the named page."""
        self._remove_norm(normalize_page_name(name))

    def search(self, query: str, limit: int = 0) -> list[VectorResult]:
        """Rank pages by their best chunk's cosine similarity to ``query``.

        Each page appears at most once. Returns an empty list when nothing is
        stored or the query cannot be embedded.
        """
        if not self._chunks:
            return []
        try:
            query_vec = _normalize(self._model.embed(query))
        except Exception:
            return []

        best: dict[str, VectorResult] = {}
        for chunk in self._chunks:
            score = _dot(query_vec, chunk.vector)
            current = best.get(chunk.norm_page)
            if current is None or score > current.score:
                best[chunk.norm_page] = VectorResult(chunk.page, score, chunk.line)

        results = sorted(best.values(), key=lambda r: r.score, reverse=True)
        if limit > 0:
            results = results[:limit]
        return results