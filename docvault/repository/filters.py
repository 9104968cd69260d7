"""Record filters: predicates over ``DocumentRecord``."""

from __future__ import annotations

from typing import Any, Callable

from ..document.document import collection_of
from ..models import TEMPLATES_COLLECTION, DocumentRecord

Filter = Callable[[DocumentRecord], bool]


def by_collection(collection: str) -> Filter:
    return lambda record: collection_of(record.path) == collection


def by_field(field: str, value: Any) -> Filter:
    """Exact metadata match."""
    return lambda record: field in record.document.metadata and record.document.metadata[field] == value


def has_field(field: str) -> Filter:
    return lambda record: field in record.document.metadata


def exclude_templates() -> Filter:
    return lambda record: collection_of(record.path) != TEMPLATES_COLLECTION


def all_of(*filters: Filter) -> Filter:
    return lambda record: all(f(record) for f in filters)


def any_of(*filters: Filter) -> Filter:
    return lambda record: any(f(record) for f in filters)


def negate(f: Filter) -> Filter:
    return lambda record: not f(record)
