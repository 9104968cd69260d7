"""Shared document cache keyed by repository identity.

Repositories that share an identity share one entry, so a write through any
of them is seen by all. Every mutating call made through a
``CachingFileSystem`` bumps the entry's generation; the next read rebuilds
the full record set.
"""

from __future__ import annotations

import functools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterator

from ..models import DocumentRecord, FileInfo
from ..storage.fs import FileSystem

logger = logging.getLogger(__name__)


@dataclass
class LoadError:
    """A document that could not be parsed while building the record set."""

    path: str
    message: str


@dataclass
class CacheEntry:
    generation: int = 0
    records: list[DocumentRecord] | None = None
    load_errors: list[LoadError] = field(default_factory=list)


class DocumentCache:
    """Thread-safe map of identity -> cached record set."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, CacheEntry] = {}

    def _entry(self, identity: str) -> CacheEntry:
        entry = self._entries.get(identity)
        if entry is None:
            entry = self._entries[identity] = CacheEntry()
        return entry

    def generation(self, identity: str) -> int:
        with self._lock:
            return self._entry(identity).generation

    def lookup(self, identity: str) -> CacheEntry | None:
        """The entry for ``identity`` if it holds a built record set."""
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None or entry.records is None:
                return None
            return entry

    def store(
        self,
        identity: str,
        generation: int,
        records: list[DocumentRecord],
        load_errors: list[LoadError],
    ) -> bool:
        """Store a build started at ``generation``.

        Dropped (returns False) if the identity was invalidated meanwhile.
        """
        with self._lock:
            entry = self._entry(identity)
            if entry.generation != generation:
                return False
            entry.records = records
            entry.load_errors = load_errors
            return True

    def invalidate(self, identity: str) -> None:
        with self._lock:
            entry = self._entry(identity)
            entry.generation += 1
            entry.records = None
            entry.load_errors = []
        logger.debug("invalidated document cache for %s", identity)

    def clear(self) -> None:
        with self._lock:
            for identity in list(self._entries):
                self.invalidate(identity)


_shared_cache = DocumentCache()


def shared_cache() -> DocumentCache:
    """The process-wide cache used when no cache is injected."""
    return _shared_cache


def _invalidating(method: Callable) -> Callable:
    @functools.wraps(method)
    def wrapper(self: "CachingFileSystem", *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        finally:
            self.cache.invalidate(self.identity)

    return wrapper


class CachingFileSystem(FileSystem):
    """File-system handle that invalidates the cache after every write."""

    def __init__(self, inner: FileSystem, cache: DocumentCache, identity: str):
        self.inner = inner
        self.cache = cache
        self.identity = identity

    @property
    def root(self) -> str:
        return self.inner.root

    def read_file(self, path: str) -> str:
        return self.inner.read_file(path)

    def exists(self, path: str) -> bool:
        return self.inner.exists(path)

    def is_dir(self, path: str) -> bool:
        return self.inner.is_dir(path)

    def is_file(self, path: str) -> bool:
        return self.inner.is_file(path)

    def stat(self, path: str) -> FileInfo:
        return self.inner.stat(path)

    def read_dir(self, path: str) -> list[FileInfo]:
        return self.inner.read_dir(path)

    def walk(self, path: str = ".") -> Iterator[FileInfo]:
        return self.inner.walk(path)

    @_invalidating
    def write_file(self, path: str, data: str) -> None:
        self.inner.write_file(path, data)

    @_invalidating
    def mkdir_all(self, path: str) -> None:
        self.inner.mkdir_all(path)

    @_invalidating
    def remove(self, path: str) -> None:
        self.inner.remove(path)

    @_invalidating
    def remove_all(self, path: str) -> None:
        self.inner.remove_all(path)

    @_invalidating
    def rename(self, old_path: str, new_path: str) -> None:
        self.inner.rename(old_path, new_path)
