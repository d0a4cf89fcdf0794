[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memento"
version = "0.1.0"
description = "Search index for markdown wiki pages: BM25, trigram fuzzy matching, wikilink graph boost and optional vector search"
requires-python = ">=3.10"
dependencies = []
keywords = ["search", "bm25", "trigram", "wikilinks", "markdown", "index", "embeddings", "porter-stemmer"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Indexing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["memento"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
