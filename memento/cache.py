"""On-disk cache of per-page chunk embeddings, written atomically."""

from __future__ import annotations

import contextlib
import io
import os
import struct
import tempfile
from array import array
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

_MAGIC = b"MMVC"
# Bumped when the on-disk format changes incompatibly.
CACHE_VERSION = 1

_U32 = struct.Struct("<I")
_I64 = struct.Struct("<q")
_CHUNK_HEAD = struct.Struct("<qqI")


class CacheError(Exception):
    """The cache file could not be written, read or decoded."""


@dataclass(frozen=True)
class CachedChunk:
    """Embedding vector and 1-indexed line range of one chunk.

    The vector is stored with single (32-bit) float precision.
    """

    start_line: int
    end_line: int
    vector: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "vector", tuple(array("f", self.vector)))


@dataclass(frozen=True)
class CacheEntry:
    """Cached embeddings for a single page."""

    page_name: str
    content_hash: str
    chunks: tuple[CachedChunk, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "chunks", tuple(self.chunks))


def _write_str(out: io.BytesIO, text: str) -> None:
    data = text.encode("utf-8")
    out.write(_U32.pack(len(data)))
    out.write(data)


def _encode(entries: list[CacheEntry], model_id: str, sentex_version: str, dims: int) -> bytes:
    out = io.BytesIO()
    out.write(_MAGIC)
    _write_str(out, model_id)
    _write_str(out, sentex_version)
    out.write(_I64.pack(dims))
    out.write(_U32.pack(CACHE_VERSION))
    out.write(_U32.pack(len(entries)))
    for entry in entries:
        _write_str(out, entry.page_name)
        _write_str(out, entry.content_hash)
        out.write(_U32.pack(len(entry.chunks)))
        for chunk in entry.chunks:
            out.write(_CHUNK_HEAD.pack(chunk.start_line, chunk.end_line, len(chunk.vector)))
            out.write(struct.pack(f"<{len(chunk.vector)}f", *chunk.vector))
    return out.getvalue()


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise CacheError("unexpected end of data")
        piece = self._data[self._pos:end]
        self._pos = end
        return piece

    def unpack(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.take(fmt.size))

    def u32(self) -> int:
        return self.unpack(_U32)[0]

    def string(self) -> str:
        return self.take(self.u32()).decode("utf-8")


def _decode_entries(reader: _Reader) -> list[CacheEntry]:
    entries = []
    for _ in range(reader.u32()):
        page_name = reader.string()
        content_hash = reader.string()
        chunks = []
        for _ in range(reader.u32()):
            start, end, dim = reader.unpack(_CHUNK_HEAD)
            vector = struct.unpack(f"<{dim}f", reader.take(4 * dim))
            chunks.append(CachedChunk(start, end, vector))
        entries.append(CacheEntry(page_name, content_hash, tuple(chunks)))
    return entries


def save_cache(
    path: str | os.PathLike[str],
    entries: Iterable[CacheEntry],
    model_id: str,
    sentex_version: str,
    dims: int,
) -> None:
    """Write ``entries`` to ``path`` as a full rewrite, via a temp file and rename."""
    path = Path(path)
    try:
        payload = _encode(list(entries), model_id, sentex_version, dims)
    except (struct.error, OverflowError, UnicodeEncodeError) as exc:
        raise CacheError(f"cache: encode: {exc}") from exc

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=".memento-vectors-tmp-", dir=path.parent)
    except OSError as exc:
        raise CacheError(f"cache: create temp file: {exc}") from exc

    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
        os.replace(tmp_name, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise CacheError(f"cache: write: {exc}") from exc


def load_cache(
    path: str | os.PathLike[str],
    model_id: str,
    sentex_version: str,
    dims: int,
) -> list[CacheEntry]:
    """Read the cache at ``path``.

    Returns an empty list when the file does not exist or was written for a
    different model, library version, dimension count or format version.
    Raises CacheError when the file exists but cannot be read or decoded.
    """
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise CacheError(f"cache: open: {exc}") from exc

    reader = _Reader(data)
    try:
        if reader.take(len(_MAGIC)) != _MAGIC:
            raise CacheError("bad magic")
        header = (reader.string(), reader.string(), reader.unpack(_I64)[0], reader.u32())
    except (CacheError, struct.error, UnicodeDecodeError) as exc:
        raise CacheError(f"cache: decode header: {exc}") from exc

    if header != (model_id, sentex_version, dims, CACHE_VERSION):
        return []

    try:
        return _decode_entries(reader)
    except (CacheError, struct.error, UnicodeDecodeError) as exc:
        raise CacheError(f"cache: decode entries: {exc}") from exc