"""Tests for the fix audit log."""

from pathlib import Path

from docvault.audit_log import Change, format_audit_entry, get_audit_log_path, log_operation, read_audit_log


def test_log_and_read_entries(tmp_path: Path):
    changes = [
        Change("rename", "companies/a.md", "companies/a-9g5fav.md"),
        Change("wiki-title", "notes/plan.md", "2 link(s)"),
        Change("rename", "companies/b.md", "companies/b-bx2kq7.md"),
    ]
    entry = log_operation(tmp_path, "check-fix", changes, {"collection": "companies"})
    log_operation(tmp_path, "check-fix", [Change("prune", "companies/x/old.pdf")])

    assert get_audit_log_path(tmp_path) == tmp_path / ".docvault" / "audit.log"
    entries = read_audit_log(tmp_path)
    assert len(entries) == 2
    assert entries[0].changes == changes
    assert entries[0].counts == {"rename": 2, "wiki-title": 1}
    assert entries[0].metadata == {"collection": "companies"}
    assert entries[0].timestamp == entry.timestamp
    assert [e.operation for e in read_audit_log(tmp_path, last_n=1)] == ["check-fix"]
    assert read_audit_log(tmp_path, last_n=1)[0].counts == {"prune": 1}


def test_missing_log_and_malformed_lines(tmp_path: Path):
    assert read_audit_log(tmp_path) == []

    log_operation(tmp_path, "check-fix", [Change("collapse", "companies/x", "companies/x.md")])
    with get_audit_log_path(tmp_path).open("a", encoding="utf-8") as f:
        f.write("not json\n\n{\"operation\": \"missing timestamp\"}\n")
    assert [e.operation for e in read_audit_log(tmp_path)] == ["check-fix"]


def test_format_entry(tmp_path: Path):
    entry = log_operation(
        tmp_path,
        "check-fix",
        [Change("rename", "companies/a.md", "companies/a-9g5fav.md"), Change("prune", "companies/x/y.pdf")],
        {"prune_attachments": True},
    )
    text = format_audit_entry(entry)
    assert text.splitlines() == [
        f"[{entry.timestamp}] check-fix",
        "  Changes: 1 prune, 1 rename",
        "  rename: companies/a.md (companies/a-9g5fav.md)",
        "  prune: companies/x/y.pdf",
        "  prune_attachments: True",
    ]
