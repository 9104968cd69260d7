"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from docvault.config.schema import discover_collections
from docvault.document.frontmatter import serialize_frontmatter
from docvault.repository.cache import DocumentCache
from docvault.repository.repository import Repository
from docvault.storage.fs import FileSystem, MemoryFileSystem
from docvault.storage.path import parent_of

ACME_ID = "01hq3k5m7n9p2r4s6t8w9g5fav"
BETA_ID = "01hq3k5m7n9p2r4s6t8wbx2kq7"
NOTE_ID = "01hq3k5m7n9p2r4s6t8wcd3mn4"

COMPANIES_SCHEMA = """\
slug: "{{name}}-{{short_id}}"
fields:
  name:
    type: string
    required: true
  country:
    type: country
"""

NOTES_SCHEMA = """\
slug: "{{title}}"
fields:
  title:
    type: string
    required: true
  company_id:
    type: reference
references:
  company_id: companies
"""

TEMPLATES_SCHEMA = """\
slug: "{{name}}"
fields:
  name:
    type: string
    required: true
  for:
    type: string
    required: true
"""


def put(fs: FileSystem, path: str, text: str) -> None:
    """Write ``text`` at ``path``, creating parent directories."""
    parent = parent_of(path)
    if parent != ".":
        fs.mkdir_all(parent)
    fs.write_file(path, text)


def doc_text(metadata: dict[str, Any], content: str = "") -> str:
    return serialize_frontmatter(metadata, content)


def company(doc_id: str, name: str, **extra: Any) -> str:
    return doc_text({"_id": doc_id, "_created_at": "2024-01-15T10:00:00Z", "name": name, **extra})


@pytest.fixture
def cache() -> DocumentCache:
    """An isolated document cache per test."""
    return DocumentCache()


@pytest.fixture
def memfs() -> MemoryFileSystem:
    """In-memory repository with companies, notes, and templates collections."""
    fs = MemoryFileSystem()
    put(fs, "companies/_schema.yaml", COMPANIES_SCHEMA)
    put(fs, "notes/_schema.yaml", NOTES_SCHEMA)
    put(fs, "templates/_schema.yaml", TEMPLATES_SCHEMA)
    put(fs, "companies/acme-corp-9g5fav.md", company(ACME_ID, "Acme Corp"))
    put(fs, "companies/beta-corp-bx2kq7.md", company(BETA_ID, "Beta Corp"))
    return fs


@pytest.fixture
def repository(memfs: MemoryFileSystem, cache: DocumentCache) -> Repository:
    return Repository(memfs, cache=cache, schemas=discover_collections(memfs))


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """An initialized on-disk repository with a companies collection."""
    root = tmp_path / "vault"
    (root / "companies").mkdir(parents=True)
    (root / "docvault.yaml").write_text("aliases:\n  co: companies\n", encoding="utf-8")
    (root / "companies" / "_schema.yaml").write_text(COMPANIES_SCHEMA, encoding="utf-8")
    (root / "companies" / "acme-corp-9g5fav.md").write_text(company(ACME_ID, "Acme Corp"), encoding="utf-8")
    return root
