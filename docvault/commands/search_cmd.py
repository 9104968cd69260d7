"""Search command - ranked full-text or structured field search."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..document.document import collection_of, display_name, document_id
from .common import open_manager, reports_errors


@reports_errors
def run_search(root: Path | None, query: str, *, top: bool = False, limit: int = 20) -> int:
    console = Console()
    err = Console(stderr=True)
    mgr = open_manager(root)

    def name_of(record) -> str:
        return display_name(record.document, mgr.schemas.get(collection_of(record.path)))

    if top:
        best = mgr.search.get_top_result(query)
        if best.result is not None:
            record = best.result.record
            print(f"{document_id(record.document)}\t{record.path}\t{name_of(record)}")
            return 0
        if best.ambiguous:
            err.print(f"Ambiguous: {len(best.ambiguous)} equally ranked results", style="yellow")
            for result in best.ambiguous:
                err.print(f"  {result.record.path}", style="dim")
            return 1
        err.print(f"No results for: {query}", style="yellow")
        return 1

    results = mgr.search.search(query)
    if not results:
        err.print(f"No results for: {query}", style="yellow")
        return 0

    table = Table(title=f"Search: {query}")
    table.add_column("tier", justify="right")
    table.add_column("path", style="cyan", no_wrap=True)
    table.add_column("name")
    table.add_column("matched", style="dim")
    for result in results[:limit]:
        fields = ", ".join(sorted({m.field for m in result.matches}))
        table.add_row(str(result.tier), result.record.path, name_of(result.record), fields)
    console.print(table)
    if len(results) > limit:
        err.print(f"... and {len(results) - limit} more", style="dim")
    return 0
