"""Frontmatter parsing and serialization.

A document is an optional YAML block between `---` lines followed by a
Markdown body. Timestamp-like scalars always load as strings, and any string
that looks like an ISO-8601 date is double-quoted on output so it survives a
round trip unchanged.
"""

from __future__ import annotations

import re
from typing import Any

import yaml
from frontmatter.default_handlers import YAMLHandler

from ..errors import FrontmatterError
from ..models import CREATED_AT_FIELD, ID_FIELD, TITLE_FIELD

DATETIME_LIKE = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2})?")

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _StringTimestampLoader(yaml.SafeLoader):
    """SafeLoader without the implicit timestamp resolver."""


_StringTimestampLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class _QuotingDumper(yaml.SafeDumper):
    """SafeDumper that double-quotes date-like strings."""


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    if DATETIME_LIKE.match(value):
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style='"')
    return dumper.represent_str(value)


_QuotingDumper.add_representer(str, _represent_str)


class DocumentYAMLHandler(YAMLHandler):
    """YAML frontmatter handler with string timestamps and stable key order."""

    def load(self, fm: str, **kwargs: object) -> Any:
        kwargs.setdefault("Loader", _StringTimestampLoader)
        return super().load(fm, **kwargs)

    def export(self, metadata: dict[str, object], **kwargs: object) -> str:
        kwargs.setdefault("Dumper", _QuotingDumper)
        kwargs.setdefault("sort_keys", False)
        kwargs.setdefault("width", float("inf"))
        return super().export(metadata, **kwargs)


_handler = DocumentYAMLHandler()


def _split(raw: str) -> tuple[str, str] | None:
    """Split raw text into (yaml, rest). None means there is no frontmatter."""
    if raw.startswith("---\r\n"):
        body_start = 5
    elif raw.startswith("---\n"):
        body_start = 4
    else:
        return None

    # The closing delimiter may follow the opener directly ("---\n---\n").
    pos = body_start
    while pos <= len(raw):
        end = raw.find("\n", pos)
        line = raw[pos:] if end == -1 else raw[pos:end]
        if line.rstrip("\r") == "---":
            yaml_text = raw[body_start:pos]
            rest = "" if end == -1 else raw[end + 1 :]
            return yaml_text, rest
        if end == -1:
            break
        pos = end + 1

    raise FrontmatterError("unclosed frontmatter: opening --- with no closing ---")


def _strip_separator(content: str) -> str:
    if content.startswith("\r\n"):
        return content[2:]
    if content.startswith("\n"):
        return content[1:]
    return content


def parse_frontmatter(raw: str) -> tuple[dict[str, Any], str]:
    """Parse document text into (metadata, content).

    Raises:
        FrontmatterError: If the opening delimiter is never closed or the
            YAML block is not a mapping.
    """
    split = _split(raw)
    if split is None:
        return {}, raw

    yaml_text, rest = split
    content = _strip_separator(rest)
    if not yaml_text.strip():
        return {}, content

    try:
        data = _handler.load(yaml_text)
    except yaml.YAMLError as e:
        raise FrontmatterError(f"invalid frontmatter YAML: {e}") from e

    if data is None:
        return {}, content
    if not isinstance(data, dict):
        raise FrontmatterError("frontmatter must be a mapping")
    return data, content


def order_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Order fields: `_id`, `_created_at`, then the rest alphabetically."""
    ordered: dict[str, Any] = {}
    for key in (ID_FIELD, CREATED_AT_FIELD):
        if key in metadata:
            ordered[key] = metadata[key]
    for key in sorted((k for k in metadata if k not in (ID_FIELD, CREATED_AT_FIELD)), key=str):
        ordered[key] = metadata[key]
    return ordered


def serialize_frontmatter(metadata: dict[str, Any], content: str) -> str:
    """Serialize metadata and content back into document text.

    The virtual title is dropped. Empty metadata yields the content verbatim.
    """
    persisted = {k: v for k, v in metadata.items() if k != TITLE_FIELD}
    if not persisted:
        return content

    yaml_text = _handler.export(order_metadata(persisted))
    result = f"---\n{yaml_text}\n---\n"
    if content:
        # parse strips exactly one separator line, so always emit one
        result += "\n"
    return result + content
