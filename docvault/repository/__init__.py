"""Document repository, shared cache, filters, and id resolution."""

from .cache import CachingFileSystem, DocumentCache, LoadError, shared_cache
from .filters import (
    Filter,
    all_of,
    any_of,
    by_collection,
    by_field,
    exclude_templates,
    has_field,
    negate,
)
from .id_lookup import (
    find_by_id_in_records,
    matches_target,
    parse_id_token,
    resolve_candidates,
    resolve_link_target,
)
from .repository import Repository, record_content_path

__all__ = [
    "CachingFileSystem",
    "DocumentCache",
    "LoadError",
    "shared_cache",
    "Filter",
    "all_of",
    "any_of",
    "by_collection",
    "by_field",
    "exclude_templates",
    "has_field",
    "negate",
    "find_by_id_in_records",
    "matches_target",
    "parse_id_token",
    "resolve_candidates",
    "resolve_link_target",
    "Repository",
    "record_content_path",
]
