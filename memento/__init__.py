"""In-memory search index for markdown wiki pages: BM25, trigram fuzzy matching, wikilink graph boost, optional vector search and an embedding cache."""

__version__ = "0.1.0"