"""Document commands - list, show, and create documents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.table import Table

from ..document.template import extract_placeholders
from ..errors import FieldValidationError
from ..models import ID_FIELD
from ..repository.filters import by_collection
from ..services.export import rows_from_records, to_csv
from ..services.search import matches_query
from .common import open_manager, reports_errors


def _parse_field_options(options: Sequence[str]) -> dict[str, str]:
    fields = {}
    for option in options:
        key, sep, value = option.partition("=")
        if not sep or not key.strip():
            raise FieldValidationError(f"invalid --field '{option}': expected key=value")
        fields[key.strip()] = value
    return fields


@reports_errors
def run_list(
    root: Path | None,
    *,
    collection: str | None = None,
    query: str | None = None,
    fmt: str = "table",
) -> int:
    mgr = open_manager(root)
    filters = []
    if collection:
        filters.append(by_collection(mgr.documents.resolve_collection(collection)))
    if query:
        filters.append(lambda record: matches_query(record, query))
    records = mgr.documents.list(filters)
    rows = rows_from_records(records, mgr.schemas)

    if fmt == "json":
        data = [
            {
                "path": row.path,
                "collection": row.collection,
                "id": row.id,
                "name": row.name,
                "metadata": record.document.metadata,
            }
            for row, record in zip(rows, records)
        ]
        print(json.dumps(data, indent=2, default=str))
    elif fmt == "csv":
        print(to_csv(rows), end="")
    else:
        table = Table(title=f"Documents ({len(rows)})")
        table.add_column("path", style="cyan", no_wrap=True)
        table.add_column("collection", style="magenta")
        table.add_column("id", style="dim")
        table.add_column("name")
        for row in rows:
            table.add_row(row.path, row.collection, row.id, row.name)
        Console().print(table)
    return 0


@reports_errors
def run_show(root: Path | None, token: str) -> int:
    mgr = open_manager(root)
    text = mgr.documents.read_raw_by_id(token)
    print(text, end="" if text.endswith("\n") else "\n")
    return 0


@reports_errors
def run_create(
    root: Path | None,
    collection: str,
    args: Sequence[str] = (),
    *,
    field_options: Sequence[str] = (),
    content: str = "",
    template: str | None = None,
) -> int:
    """Create a document from positional slug values and ``--field`` options."""
    console = Console(stderr=True)
    mgr = open_manager(root)
    name = mgr.documents.resolve_collection(collection)
    schema = mgr.schemas.get(name)

    fields: dict[str, str] = {}
    if args and schema is not None:
        variables = [v for v in extract_placeholders(schema.slug) if v != "short_id" and not v.startswith("_")]
        if len(args) > len(variables):
            raise FieldValidationError(f"too many arguments: slug for '{name}' takes {', '.join(variables) or 'none'}")
        fields.update(zip(variables, args))
    fields.update(_parse_field_options(field_options))

    template_content = None
    if template:
        matches = [t for t in mgr.templates.templates_for(name) if t.name == template]
        if not matches:
            raise FieldValidationError(f"no template named '{template}' for collection '{name}'")
        template_content = matches[0].content

    with mgr.write_lock():
        record = mgr.documents.create(name, fields, content=content, template_content=template_content)

    console.print(f"Created {record.path}", style="green")
    print(record.document.metadata[ID_FIELD])
    return 0
