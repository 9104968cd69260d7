"""Load, save, and move documents through a repository's file handle."""

from __future__ import annotations

from ..document.document import build_document, collection_of, parse_document
from ..models import Document, DocumentRecord
from ..repository.repository import Repository
from ..storage.path import parent_of


def load_by_path(repo: Repository, path: str) -> DocumentRecord:
    """Read the document stored at ``path`` (a file or a folder document)."""
    fs = repo.file_system
    is_folder = fs.is_dir(path)
    index_file = repo.index_file_for(collection_of(path))
    source = f"{path}/{index_file}" if is_folder else path
    document = parse_document(fs.read_file(source), path, is_folder)
    return DocumentRecord(path=path, document=document, info=fs.stat(path))


def save_document(repo: Repository, doc: Document) -> None:
    fs = repo.file_system
    index_file = repo.index_file_for(collection_of(doc.path))
    target = f"{doc.path}/{index_file}" if doc.is_folder else doc.path
    parent = parent_of(target)
    if parent != ".":
        fs.mkdir_all(parent)
    fs.write_file(target, build_document(doc))


def move_document(repo: Repository, record: DocumentRecord, target: str) -> str:
    """Move ``record`` to ``target``; returns the new path.

    A file document whose target is a folder path (no `.md`) becomes a
    folder document holding the text in the collection's index file.
    """
    if target == record.path:
        return record.path

    fs = repo.file_system
    if not record.document.is_folder and not target.endswith(".md"):
        index_file = repo.index_file_for(collection_of(target))
        fs.mkdir_all(target)
        fs.rename(record.path, f"{target}/{index_file}")
        return target

    parent = parent_of(target)
    if parent != ".":
        fs.mkdir_all(parent)
    fs.rename(record.path, target)
    return target
