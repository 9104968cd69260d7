"""Tests for the relationship graph, stats, and text exports."""

import pytest

from conftest import ACME_ID, BETA_ID, NOTE_ID, doc_text, put
from docvault.models import RelationshipEdge
from docvault.services.export import ExportRow, rows_from_records, to_csv, to_dot, to_mermaid, to_table
from docvault.services.relationships import RelationshipService, dedupe_edges

NOTE = doc_text(
    {"_id": NOTE_ID, "title": "Plan", "company_id": ACME_ID},
    "# Plan\n\nSee [[9g5fav:Acme Corp]], [[bx2kq7]], [[9g5fav]] and [[missing123]].\n",
)

WIKI_ACME = RelationshipEdge(NOTE_ID, ACME_ID, "wiki")
WIKI_BETA = RelationshipEdge(NOTE_ID, BETA_ID, "wiki")
REF_ACME = RelationshipEdge(NOTE_ID, ACME_ID, "reference", "company_id")


@pytest.fixture
def relationships(memfs, repository) -> RelationshipService:
    put(memfs, "notes/plan.md", NOTE)
    put(memfs, "templates/invoice.md", doc_text({"_id": "01hq3k5m7n9p2r4s6t8wtpl001", "name": "i", "for": "co"}, "[[9g5fav]]\n"))
    repository.invalidate()
    return RelationshipService(repository.schemas, repository)


def test_outgoing_and_incoming(relationships: RelationshipService):
    view = relationships.get_relationships("cd3mn4")
    assert view.target.path == "notes/plan.md"
    assert view.outgoing == [WIKI_ACME, WIKI_BETA, REF_ACME]
    assert view.incoming == []

    view = relationships.get_relationships(ACME_ID)
    assert view.outgoing == []
    assert view.incoming == [WIKI_ACME, REF_ACME]


def test_full_graph_excludes_templates(relationships: RelationshipService):
    assert relationships.build_graph() == [WIKI_ACME, WIKI_BETA, REF_ACME]


def test_collection_and_document_scopes(relationships: RelationshipService):
    assert relationships.build_graph("companies") == []
    assert relationships.build_graph("notes") == [WIKI_ACME, WIKI_BETA, REF_ACME]
    assert relationships.build_graph(BETA_ID) == [WIKI_BETA]
    assert relationships.build_graph("no-such-thing") == [WIKI_ACME, WIKI_BETA, REF_ACME]


def test_stats(relationships: RelationshipService):
    stats = relationships.stats()
    assert stats.total == 3
    assert stats.by_collection == {"companies": 2, "notes": 1}


def test_dedupe_edges_keeps_first_seen_order():
    assert dedupe_edges([WIKI_BETA, WIKI_ACME, WIKI_BETA, REF_ACME]) == [WIKI_BETA, WIKI_ACME, REF_ACME]


# --- exports ---------------------------------------------------------------------


def test_to_dot():
    dot = to_dot([WIKI_ACME, REF_ACME], title="notes")
    lines = dot.splitlines()
    assert lines[0] == "digraph docvault {"
    assert '  label="notes";' in lines
    assert f'  "{NOTE_ID}" -> "{ACME_ID}";' in lines
    assert f'  "{NOTE_ID}" -> "{ACME_ID}" [style=dashed, label="company_id"];' in lines
    assert lines[-1] == "}"


def test_to_dot_escapes_quotes():
    dot = to_dot([RelationshipEdge('a"b', "c", "wiki")])
    assert '"a\\"b" -> "c";' in dot


def test_to_mermaid():
    text = to_mermaid([WIKI_BETA, REF_ACME])
    lines = text.splitlines()
    assert lines[0] == "graph TD"
    assert f'  n_{ACME_ID}["{ACME_ID}"]' in lines
    assert f"  n_{NOTE_ID} --> n_{BETA_ID}" in lines
    assert f"  n_{NOTE_ID} -.->|company_id| n_{ACME_ID}" in lines
    assert "  n_notes_plan_md" in to_mermaid([RelationshipEdge("notes/plan.md", "x", "wiki")])


def test_rows_and_csv(repository):
    rows = rows_from_records(repository.collect_all(), repository.schemas)
    assert rows[0] == ExportRow("companies/acme-corp-9g5fav.md", "companies", ACME_ID, "Acme Corp")

    text = to_csv([ExportRow("a.md", "a.md", "1", 'Say "hi", then')])
    assert text == '"path","collection","id","name"\n"a.md","a.md","1","Say ""hi"", then"\n'


def test_table_pads_columns():
    text = to_table([ExportRow("companies/a.md", "companies", "1", "A"), ExportRow("b.md", "b.md", "22", "Beta")])
    assert text.splitlines() == [
        "PATH            COLLECTION  ID  NAME",
        "companies/a.md  companies   1   A",
        "b.md            b.md        22  Beta",
    ]
