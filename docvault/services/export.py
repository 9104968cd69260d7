"""Text exports: relationship graphs (DOT, Mermaid) and record tables (CSV, fixed width)."""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from ..document.document import collection_of, display_name, document_id
from ..models import CollectionSchema, DocumentRecord, RelationshipEdge

TABLE_COLUMNS = ("path", "collection", "id", "name")

_MERMAID_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


@dataclass
class ExportRow:
    path: str
    collection: str
    id: str
    name: str

    def values(self) -> tuple[str, str, str, str]:
        return (self.path, self.collection, self.id, self.name)


def rows_from_records(
    records: Iterable[DocumentRecord],
    schemas: Mapping[str, CollectionSchema] | None = None,
) -> list[ExportRow]:
    schemas = schemas or {}
    rows = []
    for record in records:
        collection = collection_of(record.path)
        rows.append(
            ExportRow(
                path=record.path,
                collection=collection,
                id=document_id(record.document),
                name=display_name(record.document, schemas.get(collection)),
            )
        )
    return rows


# --- graphs ----------------------------------------------------------------------


def to_dot(edges: Sequence[RelationshipEdge], title: str | None = None) -> str:
    """Graphviz digraph: solid wiki edges, dashed reference edges labelled by field."""

    def esc(s: str) -> str:
        return s.replace("\\", "\\\\").replace('"', '\\"')

    lines = ["digraph docvault {", "  rankdir=LR;"]
    if title:
        lines.append(f'  label="{esc(title)}";')
        lines.append("  labelloc=t;")

    nodes = sorted({e.source for e in edges} | {e.target for e in edges})
    for node in nodes:
        lines.append(f'  "{esc(node)}";')

    for edge in edges:
        if edge.type == "reference":
            label = f', label="{esc(edge.field)}"' if edge.field else ""
            lines.append(f'  "{esc(edge.source)}" -> "{esc(edge.target)}" [style=dashed{label}];')
        else:
            lines.append(f'  "{esc(edge.source)}" -> "{esc(edge.target)}";')

    lines.append("}")
    return "\n".join(lines) + "\n"


def _mermaid_id(node: str) -> str:
    return "n_" + _MERMAID_UNSAFE.sub("_", node)


def to_mermaid(edges: Sequence[RelationshipEdge]) -> str:
    """Mermaid flowchart: `-->` for wiki links, `-.->` for references."""
    lines = ["graph TD"]
    nodes = sorted({e.source for e in edges} | {e.target for e in edges})
    for node in nodes:
        label = node.replace('"', "'")
        lines.append(f'  {_mermaid_id(node)}["{label}"]')

    for edge in edges:
        src, dst = _mermaid_id(edge.source), _mermaid_id(edge.target)
        if edge.type == "reference":
            label = f"|{edge.field}|" if edge.field else ""
            lines.append(f"  {src} -.->{label} {dst}")
        else:
            lines.append(f"  {src} --> {dst}")
    return "\n".join(lines) + "\n"


# --- tables ----------------------------------------------------------------------


def to_csv(rows: Sequence[ExportRow]) -> str:
    """Header plus one quoted line per row; embedded quotes are doubled."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(TABLE_COLUMNS)
    for row in rows:
        writer.writerow(row.values())
    return buf.getvalue()


def to_table(rows: Sequence[ExportRow]) -> str:
    """Columns padded to the widest cell, separated by two spaces."""
    header = tuple(c.upper() for c in TABLE_COLUMNS)
    body = [row.values() for row in rows]
    widths = [max(len(cell) for cell in column) for column in zip(header, *body)]

    def line(cells: Sequence[str]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    return "\n".join(line(cells) for cells in [header, *body]) + "\n"
