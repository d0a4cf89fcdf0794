# memento

An in-memory search index for a collection of markdown wiki pages. Each page
has a `# Title` line, a body, and `[[wikilinks]]` to other pages.

A search in `memento.composite.Index` runs in these layers:

- **BM25**, with field weights (title ×10, wikilinks ×3, body ×1), Porter
  stemming and stop-word removal. A multi-word wikilink is also indexed as a
  compound phrase.
- **Trigram fuzzy matching**. When no embedding model is set and BM25 returns
  fewer than three pages, the query terms are expanded with indexed terms whose
  trigram similarity is at least 0.4, so typos such as `enchaner` still match.
- **Vector search** (optional, replaces the trigram fallback). You supply an
  embedding model. Pages are split into chunks at `##`-or-deeper section
  headings (or at paragraph breaks when there are none), and each chunk is
  embedded. The best chunk of each page scores by cosine similarity with the
  query; pages below 0.3 are ignored. Only pages found by vector search take
  part, boosted by their normalised BM25 score; if vector search finds
  nothing, normalised BM25 scores are used alone.
- **Wikilink graph boost**. Pages one link away from a direct match are added
  at 0.6 of the match's score. A direct match that is linked with another
  direct match gets 1.5 times its score.
- **Relevance threshold**. Results that score below half of the top score are
  dropped.

Each `Result` carries `page`, `score`, `snippet` (at most 300 bytes), `line`
(1-indexed, the title being line 1) and `is_direct` (False for pages found only
through the link graph; their snippet shows the `[[link]]` in the referring
page).

## Installation

```
pip install .
```

The package needs only the standard library.

## Usage

```python
from memento.page import Page
from memento.composite import Index

index = Index()
index.add(Page(name="Enchanter", title="Enchanter",
               body="The enchanter is the primary mez class.",
               wiki_links=[], lines=3))
index.add(Page(name="Crowd Control", title="Crowd Control",
               body="Crowd control relies on the [[Enchanter]].",
               wiki_links=["Enchanter"], lines=3))

for result in index.search("enchanter", 10):
    print(result.page, round(result.score, 3), result.line, result.snippet)

print(index.links_to("Crowd Control"))   # ['Enchanter']
print(index.linked_from("Enchanter"))    # ['Crowd Control']
```

`Page.lines` is the number of lines in the page's original content, counting
the `# Title` line. A `limit` of 0 or less returns all results. Page names are
matched case-insensitively; `Index.remove(name)` drops a page from every layer.

### Vector search and the embedding cache

Pass an object that meets the `memento.vector.EmbeddingModel` protocol: it has
`model_id`, `sentex_version` and `dimensions` attributes and `embed(text)` and
`embed_batch(texts)` methods. Errors raised while embedding a page are logged
and the page stays searchable by keyword.

```python
index = Index(model, ".memento-vectors")
```

With a cache path, the chunk embeddings of all pages are written to that file
(through a temporary file and a rename) each time a page is added or removed.
On the next start, read the file with
`memento.cache.load_cache(path, model_id, sentex_version, dims)` and restore
pages without embedding them again with `Index.add_from_cache(page, entry)`.
A missing file, or one written for a different model id, version or number of
dimensions, loads as an empty list. A corrupt file raises
`memento.cache.CacheError`. `memento.cache.save_cache` writes a file directly.

### Building blocks

Each layer can also be used on its own:

- `memento.bm25.BM25` (`add`, `remove`, `search`, `search_terms`) and the
  tokenizers `tokenize`, `tokenize_field`, `tokenize_links`
- `memento.trigram.Trigram` (`add`, `fuzzy_match`), `trigrams`, `similarity`
- `memento.graph.Graph` (`add`, `remove`, `links_to`, `linked_from`)
- `memento.chunk.chunk_page`, returning `Chunk` objects
- `memento.vector.VectorIndex` (`add`, `add_from_cache`, `chunks_for`,
  `remove`, `search`)
- `memento.porter.porter_stem`
- `memento.page.normalize_page_name`

## What it does not do

- It does not read or parse markdown files: you build each `Page` yourself,
  with its title, body, wikilink targets and line count.
- It ships no embedding model; vector search needs one that you provide.
- It has no command-line tool and no server; it is a library only.

## Running the tests

```
pip install .[test]
pytest
```