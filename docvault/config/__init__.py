"""Repository configuration, collection schemas, and field rules."""

from .aliases import generate_alias, resolve_alias, validate_aliases
from .fields import (
    coerce_field,
    normalize_date_input,
    normalize_datetime_input,
    validate_field_default,
    validate_field_value,
)
from .repo_config import (
    default_repo_config_content,
    find_repository_root,
    parse_repo_config,
    serialize_repo_config,
)
from .schema import (
    discover_collections,
    generate_default_slug,
    parse_collection_schema,
    serialize_collection_schema,
)

__all__ = [
    "generate_alias",
    "resolve_alias",
    "validate_aliases",
    "coerce_field",
    "normalize_date_input",
    "normalize_datetime_input",
    "validate_field_default",
    "validate_field_value",
    "default_repo_config_content",
    "find_repository_root",
    "parse_repo_config",
    "serialize_repo_config",
    "discover_collections",
    "generate_default_slug",
    "parse_collection_schema",
    "serialize_collection_schema",
]
