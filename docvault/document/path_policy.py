"""Canonical path computation for documents.

The canonical path is a pure function of the schema, the id, and the field
values (plus today's date when the document has no `date`).
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping

from ..models import TITLE_FIELD, CollectionSchema, Document
from .document import document_id, extract_title, short_id
from .slug import generate_filename, slugify
from .template import render_template


def _today() -> str:
    return date.today().isoformat()


def _date_value(value: Any) -> str:
    if isinstance(value, str) and value:
        return value
    return _today()


def build_template_values(
    fields: Mapping[str, Any],
    schema: CollectionSchema,
    doc_id: str,
    content: str = "",
) -> dict[str, str]:
    """Template values for a slug: short_id, date, _title, and every set field."""
    values = {
        "short_id": short_id(doc_id, schema.effective_short_id_length),
        "date": _date_value(fields.get("date")),
        TITLE_FIELD: extract_title(content),
    }
    for key, value in fields.items():
        if value is None or key == "date":
            continue
        values[key] = _stringify(value)
    return values


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return "-".join(_stringify(v) for v in value)
    return str(value)


def generate_document_filename(schema: CollectionSchema, values: Mapping[str, str]) -> str:
    """Render the schema slug with slugified values into a `.md` filename."""
    slugged = {key: slugify(value) for key, value in values.items()}
    return generate_filename(render_template(schema.slug, slugged))


def strip_md(path: str) -> str:
    return path[:-3] if path.endswith(".md") else path


def expected_path(doc: Document, schema: CollectionSchema, collection: str) -> str:
    """Canonical repository-relative path for ``doc`` in ``collection``.

    Folder documents, and every document of a schema with an index file,
    map to the directory path without the `.md` suffix.
    """
    values = build_template_values(doc.metadata, schema, document_id(doc), doc.content)
    path = f"{collection}/{generate_document_filename(schema, values)}"
    if doc.is_folder or schema.index_file:
        return strip_md(path)
    return path
