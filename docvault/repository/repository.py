"""Repository: the document set of a tree, cached and looked up by id."""

from __future__ import annotations

import copy
import fnmatch
import logging
from typing import Mapping, Sequence

from ..document.document import collection_of, content_path, parse_document
from ..errors import FrontmatterError
from ..models import (
    CONFIG_FILE,
    DEFAULT_IGNORE,
    DEFAULT_INDEX_FILE,
    SCHEMA_FILE,
    CollectionSchema,
    DocumentRecord,
    FileInfo,
)
from ..storage.fs import FileSystem
from .cache import CachingFileSystem, DocumentCache, LoadError, shared_cache
from .filters import Filter
from .id_lookup import find_by_id_in_records

logger = logging.getLogger(__name__)

_NEVER_DOCUMENTS = {SCHEMA_FILE, CONFIG_FILE, "README.md"}


class Repository:
    """Document access over a file system.

    Records are built once per cache generation and shared by every
    repository with the same ``identity``. Callers always receive copies.
    Writes must go through ``file_system`` so the cache is invalidated.
    """

    def __init__(
        self,
        fs: FileSystem,
        *,
        cache: DocumentCache | None = None,
        identity: str | None = None,
        schemas: Mapping[str, CollectionSchema] | None = None,
        ignore: Sequence[str] = DEFAULT_IGNORE,
    ):
        self._inner = fs
        self.cache = cache if cache is not None else shared_cache()
        self.identity = identity or fs.root
        self.schemas: dict[str, CollectionSchema] = dict(schemas or {})
        self.ignore = list(ignore)
        self._fs = CachingFileSystem(fs, self.cache, self.identity)

    @property
    def file_system(self) -> CachingFileSystem:
        return self._fs

    def index_file_for(self, collection: str) -> str:
        schema = self.schemas.get(collection)
        return schema.effective_index_file if schema else DEFAULT_INDEX_FILE

    def invalidate(self) -> None:
        self.cache.invalidate(self.identity)

    # --- queries -------------------------------------------------------------

    def collect_all(self, *filters: Filter) -> list[DocumentRecord]:
        """All records passing every filter, in path order, as copies."""
        records = self._records()
        return [copy.deepcopy(r) for r in records if all(f(r) for f in filters)]

    def find_by_id(self, token: str) -> DocumentRecord:
        """The one record matching ``token`` (see ``find_by_id_in_records``)."""
        return copy.deepcopy(find_by_id_in_records(self._records(), token))

    def load_errors(self) -> list[LoadError]:
        self._records()
        entry = self.cache.lookup(self.identity)
        return list(entry.load_errors) if entry else []

    # --- building ------------------------------------------------------------

    def _records(self) -> list[DocumentRecord]:
        entry = self.cache.lookup(self.identity)
        if entry is not None and entry.records is not None:
            return entry.records

        generation = self.cache.generation(self.identity)
        records, errors = self._build()
        if not self.cache.store(self.identity, generation, records, errors):
            logger.debug("discarded stale build for %s", self.identity)
        return records

    def _build(self) -> tuple[list[DocumentRecord], list[LoadError]]:
        records: list[DocumentRecord] = []
        errors: list[LoadError] = []
        self._scan(".", 0, records, errors)
        records.sort(key=lambda r: r.path)
        logger.debug("built %d records for %s (%d load errors)", len(records), self.identity, len(errors))
        return records, errors

    def _ignored(self, entry: FileInfo) -> bool:
        if entry.name.startswith("."):
            return True
        return any(fnmatch.fnmatch(entry.name, p) or fnmatch.fnmatch(entry.path, p) for p in self.ignore)

    def _scan(self, path: str, depth: int, records: list[DocumentRecord], errors: list[LoadError]) -> None:
        for entry in self._inner.read_dir(path):
            if self._ignored(entry):
                continue
            if entry.is_dir:
                index_file = self.index_file_for(collection_of(entry.path))
                # A directory below a collection holding the index file is a
                # folder document; everything inside it belongs to it.
                if depth >= 1 and self._inner.is_file(f"{entry.path}/{index_file}"):
                    self._load(entry, True, records, errors)
                else:
                    self._scan(entry.path, depth + 1, records, errors)
            elif self._is_document_file(entry):
                self._load(entry, False, records, errors)

    def _is_document_file(self, entry: FileInfo) -> bool:
        if not entry.name.endswith(".md") or entry.name in _NEVER_DOCUMENTS:
            return False
        return entry.name != self.index_file_for(collection_of(entry.path))

    def _load(
        self,
        entry: FileInfo,
        is_folder: bool,
        records: list[DocumentRecord],
        errors: list[LoadError],
    ) -> None:
        index_file = self.index_file_for(collection_of(entry.path))
        source = f"{entry.path}/{index_file}" if is_folder else entry.path
        try:
            raw = self._inner.read_file(source)
            document = parse_document(raw, entry.path, is_folder)
        except (FrontmatterError, UnicodeDecodeError, OSError) as e:
            logger.warning("skipping unreadable document %s: %s", source, e)
            errors.append(LoadError(path=entry.path, message=str(e)))
            return
        records.append(DocumentRecord(path=entry.path, document=document, info=entry))


def record_content_path(repo: Repository, record: DocumentRecord) -> str:
    """File that holds the text of ``record``."""
    return content_path(record.document, repo.index_file_for(collection_of(record.path)))
