"""Relationship graph: wiki-link and reference edges between documents."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from ..document.document import collection_of, document_id
from ..document.wikilink import extract_links
from ..errors import ResolutionError
from ..models import ID_FIELD, CollectionSchema, DocumentRecord, RelationshipEdge
from ..repository.filters import exclude_templates
from ..repository.id_lookup import find_by_id_in_records, matches_target, resolve_link_target
from ..repository.repository import Repository


@dataclass
class RelationshipView:
    target: DocumentRecord
    outgoing: list[RelationshipEdge] = field(default_factory=list)
    incoming: list[RelationshipEdge] = field(default_factory=list)


@dataclass
class Stats:
    total: int
    by_collection: dict[str, int]


def _node_id(record: DocumentRecord) -> str:
    return document_id(record.document) or record.path


def dedupe_edges(edges: Iterable[RelationshipEdge]) -> list[RelationshipEdge]:
    """Drop repeated edges, keeping first-seen order."""
    seen: set[tuple[str, str, str, str]] = set()
    out = []
    for edge in edges:
        if edge.key in seen:
            continue
        seen.add(edge.key)
        out.append(edge)
    return out


class RelationshipService:
    def __init__(self, schemas: Mapping[str, CollectionSchema], repository: Repository):
        self.schemas = schemas
        self.repository = repository

    def _documents(self) -> list[DocumentRecord]:
        return self.repository.collect_all(exclude_templates())

    def outgoing(self, record: DocumentRecord, pool: Sequence[DocumentRecord]) -> list[RelationshipEdge]:
        """Edges from ``record`` to the single document each link resolves to."""
        others = [r for r in pool if r.path != record.path]
        source = _node_id(record)
        edges = []

        for link in extract_links(record.document.content):
            if not link.valid:
                continue
            target = resolve_link_target(others, link.target, self.schemas)
            if target is not None:
                edges.append(RelationshipEdge(source, _node_id(target), "wiki"))

        schema = self.schemas.get(collection_of(record.path))
        if schema is not None:
            for name in schema.references:
                value = record.document.metadata.get(name)
                if not isinstance(value, str) or not value:
                    continue
                target = resolve_link_target(others, value, self.schemas)
                if target is not None:
                    edges.append(RelationshipEdge(source, _node_id(target), "reference", name))
        return edges

    def incoming(self, target: DocumentRecord, pool: Sequence[DocumentRecord]) -> list[RelationshipEdge]:
        """Edges from any other document whose links or `*_id` fields match ``target``."""
        target_id = _node_id(target)
        edges = []
        for record in pool:
            if record.path == target.path:
                continue
            source = _node_id(record)
            for link in extract_links(record.document.content):
                if link.valid and matches_target(target, link.target, self.schemas):
                    edges.append(RelationshipEdge(source, target_id, "wiki"))
            for name, value in record.document.metadata.items():
                if name != ID_FIELD and name.endswith("_id") and isinstance(value, str) and value:
                    if matches_target(target, value, self.schemas):
                        edges.append(RelationshipEdge(source, target_id, "reference", name))
        return dedupe_edges(edges)

    def get_relationships(self, token: str) -> RelationshipView:
        documents = self._documents()
        target = find_by_id_in_records(documents, token)
        return RelationshipView(
            target=target,
            outgoing=dedupe_edges(self.outgoing(target, documents)),
            incoming=self.incoming(target, documents),
        )

    def _all_edges(self, sources: Sequence[DocumentRecord], pool: Sequence[DocumentRecord]) -> list[RelationshipEdge]:
        edges: list[RelationshipEdge] = []
        for record in sources:
            edges.extend(self.outgoing(record, pool))
        return dedupe_edges(edges)

    def build_graph(self, scope: str | None = None) -> list[RelationshipEdge]:
        """Edges of the whole corpus, one collection, or one document.

        A collection scope restricts the sources but resolves targets
        against every document. An id scope gives that document's outgoing
        and incoming edges. Any other scope yields the full graph.
        """
        documents = self._documents()
        if not scope:
            return self._all_edges(documents, documents)

        if scope in self.schemas:
            sources = [r for r in documents if collection_of(r.path) == scope]
            return self._all_edges(sources, documents)

        try:
            center = find_by_id_in_records(documents, scope)
        except ResolutionError:
            return self._all_edges(documents, documents)
        return dedupe_edges(self.outgoing(center, documents) + self.incoming(center, documents))

    def stats(self) -> Stats:
        documents = self._documents()
        counts = Counter(collection_of(r.path) for r in documents)
        return Stats(total=len(documents), by_collection=dict(sorted(counts.items())))
