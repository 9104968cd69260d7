"""Id and link-target resolution over a record set.

``find_by_id_in_records`` implements strict lookup: the union of exact-id,
id-prefix and short-id-prefix matches must be exactly one record.

``resolve_candidates`` implements link resolution as an ordered list of
strategies. The first strategy that matches anything decides the candidate
set; callers treat one candidate as resolved and several as ambiguous.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

from ..document.document import collection_of, display_name, document_id
from ..errors import AmbiguousIDError, DocumentNotFoundError, ResolutionError
from ..models import CollectionSchema, DocumentRecord

# Short ids are trailing slices of 4..16 characters
SHORT_ID_LENGTHS = range(4, 17)


@dataclass(frozen=True)
class IDToken:
    raw: str
    scope: str | None
    needle: str  # lowercased


def parse_id_token(token: str) -> IDToken:
    """Split an optional `collection/` scope off ``token`` and lowercase it."""
    trimmed = token.strip()
    if not trimmed:
        raise ResolutionError(token, "document id must not be empty")
    scope, sep, rest = trimmed.partition("/")
    if not sep:
        return IDToken(raw=trimmed, scope=None, needle=trimmed.lower())
    if not scope or not rest:
        raise ResolutionError(token, f"invalid id format: {token}")
    return IDToken(raw=trimmed, scope=scope, needle=rest.strip().lower())


def _short_ids(full_id: str) -> list[str]:
    return [full_id[-n:] for n in SHORT_ID_LENGTHS if len(full_id) >= n]


def matches_id(full_id: str, needle: str) -> bool:
    """Exact, prefix, or short-id-prefix match (both already lowercased)."""
    if not full_id or not needle:
        return False
    if full_id.startswith(needle):
        return True
    return any(s.startswith(needle) for s in _short_ids(full_id))


def _in_scope(record: DocumentRecord, scope: str | None) -> bool:
    return scope is None or collection_of(record.path) == scope


def _candidates(records: Sequence[DocumentRecord]) -> list[tuple[str, str]]:
    return [(r.path, document_id(r.document)) for r in records]


def find_by_id_in_records(records: Sequence[DocumentRecord], token: str) -> DocumentRecord:
    """The single record matching ``token``.

    Raises:
        DocumentNotFoundError: No record matches.
        AmbiguousIDError: More than one record matches; carries the
            (path, id) candidates.
    """
    parsed = parse_id_token(token)
    matches = [
        r
        for r in records
        if _in_scope(r, parsed.scope) and matches_id(document_id(r.document).lower(), parsed.needle)
    ]
    if not matches:
        raise DocumentNotFoundError(token)
    if len(matches) > 1:
        raise AmbiguousIDError(token, _candidates(matches))
    return matches[0]


# --- link resolution ---------------------------------------------------------

MatchStrategy = Callable[[DocumentRecord, IDToken, Mapping[str, CollectionSchema]], bool]


def _names(record: DocumentRecord, schemas: Mapping[str, CollectionSchema]) -> set[str]:
    doc = record.document
    names = {display_name(doc, schemas.get(collection_of(record.path))).lower()}
    basename = record.path.rsplit("/", 1)[-1]
    names.add((basename[:-3] if basename.endswith(".md") else basename).lower())
    return names


def _exact_id(record, token, schemas) -> bool:
    return document_id(record.document).lower() == token.needle


def _id_prefix(record, token, schemas) -> bool:
    doc_id = document_id(record.document).lower()
    return bool(doc_id) and doc_id.startswith(token.needle)


def _short_id_prefix(record, token, schemas) -> bool:
    return any(s.startswith(token.needle) for s in _short_ids(document_id(record.document).lower()))


def _collection_name(record, token, schemas) -> bool:
    return token.scope is not None and token.needle in _names(record, schemas)


def _bare_name(record, token, schemas) -> bool:
    return token.scope is None and token.needle in _names(record, schemas)


# Evaluated in order; the first strategy with any match wins
LINK_STRATEGIES: tuple[tuple[str, MatchStrategy], ...] = (
    ("exact-id", _exact_id),
    ("id-prefix", _id_prefix),
    ("short-id-prefix", _short_id_prefix),
    ("collection-name", _collection_name),
    ("name", _bare_name),
)


def resolve_candidates(
    records: Sequence[DocumentRecord],
    token: str,
    schemas: Mapping[str, CollectionSchema] | None = None,
) -> list[DocumentRecord]:
    """Records a link token points at, by the first strategy that matches."""
    try:
        parsed = parse_id_token(token)
    except ResolutionError:
        return []
    schemas = schemas or {}
    pool = [r for r in records if _in_scope(r, parsed.scope)]
    for _, strategy in LINK_STRATEGIES:
        matches = [r for r in pool if strategy(r, parsed, schemas)]
        if matches:
            return matches
    return []


def resolve_link_target(
    records: Sequence[DocumentRecord],
    token: str,
    schemas: Mapping[str, CollectionSchema] | None = None,
) -> DocumentRecord | None:
    """The record a link token resolves to, or None if missing or ambiguous."""
    matches = resolve_candidates(records, token, schemas)
    return matches[0] if len(matches) == 1 else None


def matches_target(
    record: DocumentRecord,
    token: str,
    schemas: Mapping[str, CollectionSchema] | None = None,
) -> bool:
    """Whether ``token`` could refer to ``record`` under any strategy."""
    try:
        parsed = parse_id_token(token)
    except ResolutionError:
        return False
    if not _in_scope(record, parsed.scope):
        return False
    schemas = schemas or {}
    return any(strategy(record, parsed, schemas) for _, strategy in LINK_STRATEGIES)
