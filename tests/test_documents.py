"""Tests for document create/update/delete/attach/upsert and templates."""

from pathlib import Path

import pytest

from conftest import ACME_ID, BETA_ID, company, doc_text, put
from docvault.errors import DocumentNotFoundError, FieldValidationError, SchemaError
from docvault.ids import is_valid_id
from docvault.services.documents import DocumentExistsError, DocumentService
from docvault.services.templates import TemplateService


@pytest.fixture
def service(repository) -> DocumentService:
    return DocumentService(repository.schemas, {"co": "companies"}, repository)


def test_create_writes_canonical_path(service: DocumentService):
    record = service.create("companies", {"name": "Gamma Ltd", "country": "de"})
    doc_id = record.document.metadata["_id"]

    assert is_valid_id(doc_id)
    assert record.path == f"companies/gamma-ltd-{doc_id[-6:]}.md"
    assert record.document.metadata["country"] == "DE"
    assert record.document.metadata["_created_at"].endswith("Z")
    assert service.read_by_id(doc_id).path == record.path


def test_create_resolves_aliases(service: DocumentService):
    record = service.create("co", {"name": "Delta"})
    assert record.path.startswith("companies/delta-")


@pytest.mark.parametrize("fields", [{"name": "X", "_id": "abc"}, {"name": "X", "_secret": "1"}])
def test_create_rejects_reserved_fields(service: DocumentService, fields):
    with pytest.raises(FieldValidationError):
        service.create("companies", fields)


def test_create_requires_fields_and_known_collection(service: DocumentService):
    with pytest.raises(FieldValidationError, match="missing required field 'name'"):
        service.create("companies", {"country": "DE"})
    with pytest.raises(SchemaError):
        service.create("invoices", {"name": "X"})
    with pytest.raises(FieldValidationError):
        service.create("companies", {"name": "X", "country": "Germany"})


def test_create_refuses_to_overwrite(service: DocumentService):
    service.create("notes", {"title": "Plan"})
    with pytest.raises(DocumentExistsError):
        service.create("notes", {"title": "Plan"})


def test_create_renders_template_content(service: DocumentService):
    record = service.create("notes", {"title": "Kickoff"}, template_content="# {{title}}\n\nAgenda\n")
    assert record.path == "notes/kickoff.md"
    assert record.document.content == "# Kickoff\n\nAgenda\n"
    assert record.document.metadata["_title"] == "Kickoff"


def test_read_raw(service: DocumentService):
    raw = service.read_raw_by_id("9g5fav")
    assert raw.startswith("---\n")
    assert "name: Acme Corp" in raw


def test_update_renames_to_canonical_path(service: DocumentService, repository):
    record = service.update_by_id(ACME_ID, {"name": "Acme Holdings"})
    assert record.path == "companies/acme-holdings-9g5fav.md"
    assert not repository.file_system.exists("companies/acme-corp-9g5fav.md")
    assert record.document.metadata["_id"] == ACME_ID
    assert record.document.metadata["_created_at"] == "2024-01-15T10:00:00Z"


def test_update_content_and_unset(service: DocumentService):
    record = service.update_by_id(BETA_ID, {"country": "fr"}, content="# Beta\n\nBody\n")
    assert record.document.metadata["country"] == "FR"
    assert record.document.content == "# Beta\n\nBody\n"

    record = service.update_by_id(BETA_ID, unset_fields=["country"])
    assert "country" not in record.document.metadata


def test_update_guards_reserved_and_required_fields(service: DocumentService):
    with pytest.raises(FieldValidationError):
        service.update_by_id(ACME_ID, {"_id": "x"})
    with pytest.raises(FieldValidationError):
        service.update_by_id(ACME_ID, unset_fields=["_created_at"])
    with pytest.raises(FieldValidationError):
        service.update_by_id(ACME_ID, unset_fields=["name"])


def test_update_refuses_to_move_onto_another_document(service: DocumentService, repository):
    alpha = service.create("notes", {"title": "Alpha"})
    beta = service.create("notes", {"title": "Beta"})
    alpha_id = alpha.document.metadata["_id"]
    before = len(repository.collect_all())

    with pytest.raises(DocumentExistsError, match="notes/beta.md already exists"):
        service.update_by_id(alpha_id, {"title": "Beta"})

    assert len(repository.collect_all()) == before
    assert service.read_by_id(alpha_id).document.metadata["title"] == "Alpha"
    assert service.read_by_id(alpha_id).path == "notes/alpha.md"
    assert service.read_by_id(beta.document.metadata["_id"]).document.metadata["title"] == "Beta"


def test_delete_file_and_folder_documents(service: DocumentService, memfs, repository):
    assert service.delete_by_id(BETA_ID) == "companies/beta-corp-bx2kq7.md"
    with pytest.raises(DocumentNotFoundError):
        service.read_by_id(BETA_ID)

    put(memfs, "companies/gamma/index.md", company("01hq3k5m7n9p2r4s6t8wgamma1", "Gamma"))
    put(memfs, "companies/gamma/scan.pdf", "binary")
    repository.invalidate()
    assert service.delete_by_id("gamma1") == "companies/gamma"
    assert not memfs.exists("companies/gamma")


def test_attach_converts_to_folder_document(service: DocumentService, repository, tmp_path: Path):
    source = tmp_path / "contract.txt"
    source.write_text("signed", encoding="utf-8")

    dest = service.attach_file_by_id(ACME_ID, source)
    assert dest == "companies/acme-corp-9g5fav/contract.txt"

    fs = repository.file_system
    assert fs.read_file(dest) == "signed"
    assert not fs.exists("companies/acme-corp-9g5fav.md")

    record = service.read_by_id(ACME_ID)
    assert record.document.is_folder
    assert "[contract.txt](contract.txt)" in record.document.content

    with pytest.raises(DocumentExistsError):
        service.attach_file_by_id(ACME_ID, source)
    assert service.attach_file_by_id(ACME_ID, source, add_reference=False, force=True) == dest


def test_attach_unreadable_source_leaves_document_as_file(service: DocumentService, repository, tmp_path: Path):
    source = tmp_path / "scan.png"
    source.write_bytes(b"\x89PNG\r\n\x1a\n\xff\xfe")

    with pytest.raises(UnicodeDecodeError):
        service.attach_file_by_id(ACME_ID, source)

    fs = repository.file_system
    assert fs.is_file("companies/acme-corp-9g5fav.md")
    assert not fs.exists("companies/acme-corp-9g5fav")
    assert not service.read_by_id(ACME_ID).document.is_folder


def test_upsert_by_slug(service: DocumentService):
    record, created = service.upsert_by_slug("companies", ["Acme Corp"])
    assert not created
    assert record.path == "companies/acme-corp-9g5fav.md"

    record, created = service.upsert_by_slug("co", ["Omega"])
    assert created
    assert record.document.metadata["name"] == "Omega"

    again, created = service.upsert_by_slug("companies", ["Omega"])
    assert not created
    assert again.path == record.path


def test_templates_for_collection(memfs, repository):
    put(memfs, "templates/invoice.md", doc_text({"_id": "01hq3k5m7n9p2r4s6t8wtpl001", "name": "invoice", "for": "co"}))
    put(memfs, "templates/memo.md", doc_text({"_id": "01hq3k5m7n9p2r4s6t8wtpl002", "name": "memo", "for": "notes"}))
    put(memfs, "templates/orphan.md", doc_text({"_id": "01hq3k5m7n9p2r4s6t8wtpl003", "name": "orphan"}))
    repository.invalidate()

    service = TemplateService(repository.schemas, {"co": "companies"}, repository)
    assert sorted(t.name for t in service.find_templates()) == ["invoice", "memo"]
    assert [t.name for t in service.templates_for("companies")] == ["invoice"]
    assert [t.name for t in service.templates_for("notes")] == ["memo"]
    assert service.templates_for("invoices") == []
