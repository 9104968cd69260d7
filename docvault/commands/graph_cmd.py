"""Graph commands - relationship graph export, per-document relationships, stats."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..document.document import collection_of, display_name, document_id
from ..services.export import to_dot, to_mermaid
from .common import open_manager, reports_errors


@reports_errors
def run_graph(
    root: Path | None,
    *,
    scope: str | None = None,
    fmt: str = "dot",
    out: Path | None = None,
) -> int:
    """Export the relationship graph as Graphviz DOT or Mermaid."""
    console = Console(stderr=True)
    mgr = open_manager(root)
    if scope:
        scope = mgr.documents.resolve_collection(scope)
    edges = mgr.relationships.build_graph(scope)

    if fmt == "mermaid":
        text = to_mermaid(edges)
    else:
        text = to_dot(edges, title=f"docvault: {scope}" if scope else None)

    if out:
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote graph output to {out} ({len(edges)} edges)", style="green")
    else:
        print(text, end="" if text.endswith("\n") else "\n")
    return 0


@reports_errors
def run_relationships(root: Path | None, token: str) -> int:
    console = Console()
    mgr = open_manager(root)
    view = mgr.relationships.get_relationships(token)
    doc = view.target.document
    name = display_name(doc, mgr.schemas.get(collection_of(view.target.path)))

    console.print(f"{name} ({document_id(doc)})", style="bold", markup=False)
    console.print(f"Path: {view.target.path}", style="dim", markup=False)
    console.print()

    for title, edges, column in (
        ("Outgoing", view.outgoing, "target"),
        ("Incoming", view.incoming, "source"),
    ):
        table = Table(title=f"{title} ({len(edges)})")
        table.add_column(column, style="cyan", no_wrap=True)
        table.add_column("type", style="magenta")
        table.add_column("field", style="dim")
        for edge in edges:
            table.add_row(getattr(edge, column), edge.type, edge.field or "")
        console.print(table)
    return 0


@reports_errors
def run_stats(root: Path | None) -> int:
    console = Console()
    mgr = open_manager(root)
    stats = mgr.relationships.stats()

    table = Table(title="Repository Summary")
    table.add_column("Collection", style="cyan")
    table.add_column("Documents", justify="right")
    for name, count in stats.by_collection.items():
        table.add_row(name, str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{stats.total}[/bold]")
    console.print(table)
    return 0
