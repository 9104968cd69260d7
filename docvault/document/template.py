r"""Template engine for `{{field}}` and `{{field | filter}}` placeholders.

`\{{` renders a literal `{{`.
"""

from __future__ import annotations

import re

from ..errors import TemplateError

# year/month/day slice fixed offsets out of YYYY-MM-DD[THH:MM:SS...] values
_DATE_SLICES = {
    "year": (0, 4),
    "month": (5, 7),
    "day": (8, 10),
}

_PLACEHOLDER_PATTERN = re.compile(r"(?<!\\)\{\{(.+?)\}\}")


def _parse_placeholder(placeholder: str) -> tuple[str, str | None]:
    name, sep, filter_name = placeholder.partition("|")
    if not sep:
        return name.strip(), None
    return name.strip(), filter_name.strip()


def _apply_filter(value: str, filter_name: str) -> str:
    if filter_name in _DATE_SLICES:
        start, end = _DATE_SLICES[filter_name]
        if len(value) < end:
            raise TemplateError(f"cannot extract date part from value: {value}")
        return value[start:end]
    if filter_name == "upper":
        return value.upper()
    if filter_name == "lower":
        return value.lower()
    raise TemplateError(f"unknown template filter: {filter_name}")


def render_template(template: str, values: dict[str, str]) -> str:
    """Replace every placeholder in ``template`` with its value.

    Raises:
        TemplateError: On an unterminated placeholder, a field missing from
            ``values``, or an unknown filter.
    """
    out: list[str] = []
    i = 0
    while i < len(template):
        if template.startswith("\\{{", i):
            out.append("{{")
            i += 3
            continue

        if template.startswith("{{", i):
            end = template.find("}}", i + 2)
            if end == -1:
                raise TemplateError("unclosed template placeholder")
            name, filter_name = _parse_placeholder(template[i + 2 : end])
            if name not in values:
                raise TemplateError(f"missing template field: {name}")
            value = values[name]
            if filter_name:
                value = _apply_filter(value, filter_name)
            out.append(value)
            i = end + 2
            continue

        out.append(template[i])
        i += 1

    return "".join(out)


def extract_placeholders(template: str) -> list[str]:
    """Field names referenced by ``template``, in order, without duplicates."""
    fields: list[str] = []
    for match in _PLACEHOLDER_PATTERN.finditer(template):
        name, _ = _parse_placeholder(match.group(1))
        if name not in fields:
            fields.append(name)
    return fields
