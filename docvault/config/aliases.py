"""Collection aliases: short names that resolve to a collection."""

from __future__ import annotations

from typing import Iterable

from ..errors import ConfigError

# Well-known alias overrides
WELL_KNOWN_ALIASES = {"templates": "tpl"}

_CONSONANTS = set("bcdfghjklmnpqrstvwxyz")


def generate_alias(name: str) -> str:
    """Suggest an alias: a well-known override, else up to three consonants,
    else the first three characters."""
    lower = name.lower()
    if lower in WELL_KNOWN_ALIASES:
        return WELL_KNOWN_ALIASES[lower]
    consonants = "".join(c for c in lower if c in _CONSONANTS)
    if consonants:
        return consonants[:3]
    return lower[:3]


def resolve_alias(name_or_alias: str, aliases: dict[str, str], collections: Iterable[str]) -> str:
    """Canonical collection for a name or alias; the input if neither matches."""
    if name_or_alias in set(collections):
        return name_or_alias
    return aliases.get(name_or_alias, name_or_alias)


def validate_aliases(aliases: dict[str, str], collections: Iterable[str]) -> None:
    """Raise ``ConfigError`` when an alias shadows a collection name."""
    names = set(collections)
    for alias in aliases:
        if alias in names:
            raise ConfigError(f"alias '{alias}' conflicts with collection name")
