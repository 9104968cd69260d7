"""Collection schemas: `_schema.yaml` parsing, serialization, and discovery."""

from __future__ import annotations

from typing import Any

import yaml

from ..errors import SchemaError
from ..models import SCHEMA_FILE, CollectionSchema, FieldDefinition
from ..storage.fs import FileSystem
from .fields import validate_field_default

MIN_SHORT_ID_LENGTH = 4
MAX_SHORT_ID_LENGTH = 16


def _parse_field(raw: Any) -> FieldDefinition:
    if not isinstance(raw, dict):
        return FieldDefinition()

    definition = FieldDefinition(type=raw.get("type") if isinstance(raw.get("type"), str) else "string")
    if isinstance(raw.get("required"), bool):
        definition.required = raw["required"]
    if isinstance(raw.get("description"), str):
        definition.description = raw["description"]
    if "default" in raw:
        definition.default = raw["default"]
    if isinstance(raw.get("enum_values"), list):
        definition.enum_values = [v for v in raw["enum_values"] if isinstance(v, str)]
    if isinstance(raw.get("pattern"), str):
        definition.pattern = raw["pattern"]
    for key in ("min", "max", "weight"):
        value = raw.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            setattr(definition, key, value)
    return definition


def parse_collection_schema(content: str) -> CollectionSchema:
    """Parse `_schema.yaml` text.

    Raises:
        SchemaError: On invalid YAML, a missing slug, an out-of-range
            short_id_length, or a field default that fails its type.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SchemaError(f"invalid {SCHEMA_FILE}: {e}") from e
    if not isinstance(data, dict):
        raise SchemaError(f"invalid {SCHEMA_FILE}: empty or not a mapping")
    if not isinstance(data.get("slug"), str):
        raise SchemaError(f"invalid {SCHEMA_FILE}: missing required 'slug' field")

    fields = {}
    if isinstance(data.get("fields"), dict):
        fields = {str(name): _parse_field(raw) for name, raw in data["fields"].items()}

    references = {}
    if isinstance(data.get("references"), dict):
        references = {str(k): v for k, v in data["references"].items() if isinstance(v, str)}

    short_id_length = data.get("short_id_length")
    if not isinstance(short_id_length, int) or isinstance(short_id_length, bool):
        short_id_length = None
    if short_id_length is not None and not MIN_SHORT_ID_LENGTH <= short_id_length <= MAX_SHORT_ID_LENGTH:
        raise SchemaError(
            f"invalid {SCHEMA_FILE}: short_id_length must be between "
            f"{MIN_SHORT_ID_LENGTH} and {MAX_SHORT_ID_LENGTH}"
        )

    for name, definition in fields.items():
        error = validate_field_default(name, definition)
        if error:
            raise SchemaError(f"invalid {SCHEMA_FILE}: {error}")

    return CollectionSchema(
        slug=data["slug"],
        short_id_length=short_id_length,
        title_field=data.get("title_field") if isinstance(data.get("title_field"), str) else None,
        index_file=data.get("index_file") if isinstance(data.get("index_file"), str) else None,
        fields=fields,
        references=references,
    )


def _field_to_dict(definition: FieldDefinition) -> dict[str, Any]:
    out: dict[str, Any] = {"type": definition.type}
    if definition.required:
        out["required"] = True
    if definition.description:
        out["description"] = definition.description
    if definition.default is not None:
        out["default"] = definition.default
    if definition.enum_values:
        out["enum_values"] = list(definition.enum_values)
    if definition.pattern:
        out["pattern"] = definition.pattern
    for key in ("min", "max", "weight"):
        if getattr(definition, key) is not None:
            out[key] = getattr(definition, key)
    return out


def serialize_collection_schema(schema: CollectionSchema) -> str:
    data: dict[str, Any] = {"slug": schema.slug}
    if schema.short_id_length is not None:
        data["short_id_length"] = schema.short_id_length
    if schema.title_field:
        data["title_field"] = schema.title_field
    if schema.index_file:
        data["index_file"] = schema.index_file
    if schema.fields:
        data["fields"] = {name: _field_to_dict(d) for name, d in schema.fields.items()}
    if schema.references:
        data["references"] = dict(schema.references)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, width=float("inf"))


def discover_collections(fs: FileSystem) -> dict[str, CollectionSchema]:
    """Every top-level directory holding a `_schema.yaml`, keyed by name."""
    collections: dict[str, CollectionSchema] = {}
    for entry in fs.read_dir("."):
        if not entry.is_dir:
            continue
        schema_path = f"{entry.name}/{SCHEMA_FILE}"
        if fs.is_file(schema_path):
            try:
                collections[entry.name] = parse_collection_schema(fs.read_file(schema_path))
            except SchemaError as e:
                raise SchemaError(f"{schema_path}: {e}") from e
    return collections


def generate_default_slug(fields: dict[str, FieldDefinition]) -> str:
    """Default slug for a new collection: short id plus a name-like field."""
    for name in ("title", "name", "subject"):
        if name in fields:
            return f"{{{{short_id}}}}-{{{{{name}}}}}"
    return "{{short_id}}"
