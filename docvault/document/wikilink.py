"""Wiki-link parsing and rewriting.

Links look like `[[token]]` or `[[token:title]]`; ``token`` may be scoped as
`collection/idOrName`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

MAX_LINK_LENGTH = 200

# Match [[anything-but-closing-brackets]]
WIKILINK_PATTERN = re.compile(r"\[\[([^\]]*)\]\]")


@dataclass
class WikiLink:
    raw: str
    token: str = ""
    title: str | None = None
    collection: str | None = None
    invalid_reason: str | None = None

    @property
    def valid(self) -> bool:
        return self.invalid_reason is None

    @property
    def target(self) -> str:
        """Token including its collection scope, as written."""
        if self.collection:
            return f"{self.collection}/{self.token}"
        return self.token


def parse_link(inner: str) -> WikiLink:
    """Parse the text between `[[` and `]]`."""
    inner = inner.strip()
    if not inner:
        return WikiLink(raw=inner, invalid_reason="empty or malformed wiki link")
    if len(inner) > MAX_LINK_LENGTH:
        return WikiLink(raw=inner, invalid_reason=f"wiki link exceeds {MAX_LINK_LENGTH} characters")
    if "[[" in inner or "]]" in inner or "[" in inner:
        return WikiLink(raw=inner, invalid_reason="nested brackets are not allowed")

    lhs, sep, title = inner.partition(":")
    target = lhs.strip()
    collection = None
    if "/" in target:
        collection, _, target = target.partition("/")
        collection = collection.strip() or None
    token = target.strip()
    if not token:
        return WikiLink(raw=inner, invalid_reason="wiki link id is empty")

    return WikiLink(
        raw=inner,
        token=token,
        title=title.strip() or None if sep else None,
        collection=collection,
    )


def extract_links(content: str) -> list[WikiLink]:
    """All wiki links in ``content`` in document order, invalid ones included."""
    return [parse_link(match.group(1)) for match in WIKILINK_PATTERN.finditer(content)]


def rewrite_link_titles(content: str, title_for: Callable[[WikiLink], str | None]) -> tuple[str, int]:
    """Rewrite titled links whose title differs from ``title_for(link)``.

    ``title_for`` returns the current title for a link, or None when the link
    cannot be resolved (left untouched). Returns (new content, links changed).
    """
    changed = 0

    def replace(match: re.Match[str]) -> str:
        nonlocal changed
        link = parse_link(match.group(1))
        if not link.valid or link.title is None:
            return match.group(0)
        expected = title_for(link)
        if expected is None or expected == link.title:
            return match.group(0)
        changed += 1
        return f"[[{link.target}:{expected}]]"

    return WIKILINK_PATTERN.sub(replace, content), changed
