"""Init command - create a repository config."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..manager import Manager
from .common import reports_errors


@reports_errors
def run_init(path: Path) -> int:
    console = Console(stderr=True)
    root = Manager.init(path)
    console.print(f"Initialized docvault repository in {root.resolve()}", style="green")
    return 0
