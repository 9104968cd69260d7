"""Check command - validate the repository and optionally repair it."""

from __future__ import annotations

import json
from collections import defaultdict
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..services.validation import CheckResult
from .common import open_manager, reports_errors


@reports_errors
def run_check(
    root: Path | None,
    *,
    collection: str | None = None,
    fix: bool = False,
    prune_attachments: bool = False,
    output_json: bool = False,
) -> int:
    """Run validation.

    Returns:
        Exit code (0 = no errors, 1 = errors found)
    """
    console = Console(stderr=True)
    mgr = open_manager(root)

    if fix:
        with mgr.write_lock():
            result = mgr.validation.check(collection, fix=True, prune_attachments=prune_attachments)
        # Report what is left after repairs
        remaining = mgr.validation.check(collection)
        remaining.fixed = result.fixed
        remaining.issues.extend(i for i in result.issues if i.code == "fix.failed")
        result = remaining
    else:
        result = mgr.validation.check(collection)

    if output_json:
        print(json.dumps(_to_json(result), indent=2))
    else:
        _print_result(console, result, fix)

    return 1 if result.errors else 0


def _to_json(result: CheckResult) -> dict:
    return {
        "scanned": result.scanned,
        "fixed": result.fixed,
        "issues": [
            {
                "severity": i.severity,
                "path": i.path,
                "code": i.code,
                "message": i.message,
                "fixable": i.fixable,
            }
            for i in result.issues
        ],
    }


def _print_result(console: Console, result: CheckResult, fix: bool) -> None:
    by_code = defaultdict(list)
    for issue in result.issues:
        by_code[issue.code].append(issue)

    for code in sorted(by_code):
        console.print(f"\n  Rule: {code}", style="bold")
        for issue in by_code[code]:
            style = "red" if issue.severity == "error" else "yellow"
            hint = " (fixable)" if issue.fixable and not fix else ""
            console.print(f"    {issue.severity.upper()}: {issue.path} - {issue.message}{hint}", style=style, markup=False)

    console.print()
    table = Table(title="Check Summary", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Documents scanned", str(result.scanned))
    table.add_row("Errors", str(len(result.errors)))
    table.add_row("Warnings", str(len(result.warnings)))
    if fix:
        table.add_row("Fixes applied", str(result.fixed))
    console.print(table)

    console.print()
    if result.errors:
        console.print(f"{len(result.errors)} error(s)", style="bold red")
    elif result.warnings:
        console.print(f"{len(result.warnings)} warning(s)", style="yellow")
    else:
        console.print("No errors or warnings", style="bold green")
