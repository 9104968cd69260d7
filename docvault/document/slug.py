"""Slug and filename generation."""

from __future__ import annotations

import re

from ..errors import PathError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to one hyphen, trim hyphens."""
    return _NON_ALNUM.sub("-", value.lower()).strip("-")


def generate_filename(rendered: str) -> str:
    """Turn rendered slug output into a relative `.md` filename.

    Each `/`-separated segment is slugified on its own.
    """
    stem = rendered[:-3] if rendered.endswith(".md") else rendered
    result = "/".join(slugify(segment) for segment in stem.split("/")) + ".md"
    basename = result.rsplit("/", 1)[-1]
    if basename.startswith("."):
        raise PathError(result, "generated filename must not start with '.'")
    return result
