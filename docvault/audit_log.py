"""
Audit log of repairs applied to a repository.

Every fix pass that commits at least one change appends one JSON Lines entry
to `.docvault/audit.log` under the repository root:

- what ran (operation name, timestamp)
- each committed change, in order
- counts by change kind
"""

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

AUDIT_DIR = ".docvault"


@dataclass
class Change:
    """One committed repair."""
    kind: str  # e.g. "rename", "wiki-title", "prune", "collapse"
    path: str
    detail: str = ""


@dataclass
class AuditEntry:
    """One fix pass as recorded in the log."""
    timestamp: str
    operation: str
    changes: list[Change] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def counts(self) -> dict[str, int]:
        return dict(Counter(c.kind for c in self.changes))

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "changes": [{"kind": c.kind, "path": c.path, "detail": c.detail} for c in self.changes],
            "counts": self.counts,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        """Inverse of `to_dict`; `counts` is recomputed."""
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            changes=[Change(**c) for c in data.get("changes", [])],
            metadata=data.get("metadata", {}),
        )


def get_audit_log_path(root: Path) -> Path:
    """Location of the audit log for the repository at `root`."""
    return Path(root) / AUDIT_DIR / "audit.log"


def log_operation(
    root: Path,
    operation: str,
    changes: list[Change],
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    """
    Append an operation to the audit log.

    Args:
        root: Repository root directory
        operation: Name of the operation (e.g., "check-fix")
        changes: Committed changes, in the order they were applied
        metadata: Additional context (e.g., the collection scope)

    Returns:
        The created audit entry
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        changes=list(changes),
        metadata=metadata or {},
    )

    log_path = get_audit_log_path(root)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # one object per line
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict()) + "\n")

    return entry


def read_audit_log(root: Path, last_n: int | None = None) -> list[AuditEntry]:
    """
    Load logged fix passes.

    Args:
        root: Repository root directory
        last_n: Keep only this many of the newest entries

    Returns:
        List of audit entries, oldest first
    """
    log_path = get_audit_log_path(root)
    if not log_path.exists():
        return []

    entries = []
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(AuditEntry.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, TypeError):
                    continue  # partial or hand-edited line

    if last_n is not None:
        return entries[-last_n:]
    return entries


def format_audit_entry(entry: AuditEntry) -> str:
    """Render an entry as indented plain text."""
    lines = [f"[{entry.timestamp}] {entry.operation}"]
    if entry.counts:
        summary = ", ".join(f"{n} {kind}" for kind, n in sorted(entry.counts.items()))
        lines.append(f"  Changes: {summary}")
    for change in entry.changes:
        detail = f" ({change.detail})" if change.detail else ""
        lines.append(f"  {change.kind}: {change.path}{detail}")
    for key, value in entry.metadata.items():
        lines.append(f"  {key}: {value}")
    return "\n".join(lines)
