"""Document accessors: collection, ids, title, and display name."""

from __future__ import annotations

import re

from ..models import (
    DEFAULT_INDEX_FILE,
    DEFAULT_SHORT_ID_LENGTH,
    ID_FIELD,
    TITLE_FIELD,
    CollectionSchema,
    Document,
)
from .frontmatter import parse_frontmatter, serialize_frontmatter
from .template import extract_placeholders

_HEADING = re.compile(r"^#{1,6}[ \t]+(.+?)(?:[ \t]+#+[ \t]*)?$")

# Fallback metadata fields for a display name, in priority order
_NAME_FIELDS = ("name", TITLE_FIELD, "title", "subject", "summary")


def collection_of(path: str) -> str:
    """First path component. Root-level documents are their own collection."""
    return path.split("/", 1)[0]


def document_id(doc: Document) -> str:
    value = doc.metadata.get(ID_FIELD)
    return value if isinstance(value, str) else ""


def short_id(full_id: str, length: int = DEFAULT_SHORT_ID_LENGTH) -> str:
    """Trailing ``length`` characters of an id; the whole id if shorter."""
    if len(full_id) < length:
        return full_id
    return full_id[-length:]


def document_short_id(doc: Document, length: int = DEFAULT_SHORT_ID_LENGTH) -> str:
    return short_id(document_id(doc), length)


def content_path(doc: Document, index_file: str = DEFAULT_INDEX_FILE) -> str:
    """Path of the file holding the document text."""
    if doc.is_folder:
        return f"{doc.path}/{index_file}"
    return doc.path


def extract_title(content: str) -> str:
    """Text of the first Markdown heading, if it is the first non-blank line."""
    for line in content.lstrip().splitlines():
        if not line.strip():
            continue
        match = _HEADING.match(line.rstrip("\r"))
        return match.group(1).strip() if match else ""
    return ""


def display_name(doc: Document, schema: CollectionSchema | None = None) -> str:
    """Human-facing name of a document.

    Priority: the schema's title field, the first slug placeholder with a
    value, then name/_title/title/subject/summary, the first heading, the
    filename, the short id, and finally "Untitled".
    """
    meta = doc.metadata
    if schema is not None:
        if schema.title_field:
            value = meta.get(schema.title_field)
            if isinstance(value, str) and value:
                return value
        for placeholder in extract_placeholders(schema.slug):
            if placeholder in ("short_id", "date"):
                continue
            value = meta.get(placeholder)
            if isinstance(value, str) and value:
                return value

    for name in _NAME_FIELDS:
        value = meta.get(name)
        if isinstance(value, str) and value:
            return value

    title = extract_title(doc.content)
    if title:
        return title

    basename = doc.path.rsplit("/", 1)[-1]
    if basename and basename != DEFAULT_INDEX_FILE:
        stem = basename[:-3] if basename.endswith(".md") else basename
        if stem:
            return stem

    length = schema.effective_short_id_length if schema else DEFAULT_SHORT_ID_LENGTH
    return document_short_id(doc, length) or "Untitled"


def parse_document(raw: str, path: str, is_folder: bool = False) -> Document:
    """Parse document text. The virtual title is added when a heading exists."""
    metadata, content = parse_frontmatter(raw)
    title = extract_title(content)
    if title:
        metadata[TITLE_FIELD] = title
    return Document(path=path, metadata=metadata, content=content, is_folder=is_folder)


def build_document(doc: Document) -> str:
    return serialize_frontmatter(doc.metadata, doc.content)
