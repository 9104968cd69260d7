"""Watch command - keep the document cache coherent with external edits."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..watcher import run_watch_loop
from .common import open_manager, reports_errors


@reports_errors
def run_watch(root: Path | None) -> int:
    """
    Watch the repository and invalidate the cache after external changes.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)
    mgr = open_manager(root)

    console.print(f"[bold]Watching[/bold] {mgr.root}")
    console.print(f"  Collections: {', '.join(sorted(mgr.schemas)) or '(none)'}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    change_count = 0

    def on_change(kind: str, path: Path) -> None:
        nonlocal change_count
        change_count += 1
        timestamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{timestamp}[/dim] {kind:<8} {path}")

    run_watch_loop(mgr.root, mgr.repository, on_change)
    console.print()
    console.print(f"[bold]Stopped.[/bold] Saw {change_count} changes.")
    return 0
