"""Document format: frontmatter, templates, slugs, paths, and wiki links."""

from .document import (
    build_document,
    collection_of,
    display_name,
    document_id,
    document_short_id,
    extract_title,
    parse_document,
    short_id,
)
from .frontmatter import parse_frontmatter, serialize_frontmatter
from .path_policy import build_template_values, expected_path, generate_document_filename
from .slug import generate_filename, slugify
from .template import extract_placeholders, render_template
from .wikilink import WikiLink, extract_links, parse_link

__all__ = [
    "build_document",
    "collection_of",
    "display_name",
    "document_id",
    "document_short_id",
    "extract_title",
    "parse_document",
    "short_id",
    "parse_frontmatter",
    "serialize_frontmatter",
    "build_template_values",
    "expected_path",
    "generate_document_filename",
    "generate_filename",
    "slugify",
    "extract_placeholders",
    "render_template",
    "WikiLink",
    "extract_links",
    "parse_link",
]
