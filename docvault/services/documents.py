"""Document operations: create, read, update, delete, attach, list, upsert."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..config.aliases import resolve_alias
from ..config.fields import coerce_field, normalize_default
from ..document.document import collection_of, extract_title
from ..document.path_policy import build_template_values, expected_path, generate_document_filename, strip_md
from ..document.template import extract_placeholders, render_template
from ..errors import DocvaultError, FieldValidationError, SchemaError
from ..ids import new_id, utc_timestamp
from ..models import (
    CREATED_AT_FIELD,
    ID_FIELD,
    RESERVED_FIELD_PREFIX,
    SYSTEM_FIELDS,
    TITLE_FIELD,
    CollectionSchema,
    Document,
    DocumentRecord,
)
from ..repository.filters import Filter, by_collection
from ..repository.repository import Repository, record_content_path
from .persistence import load_by_path, move_document, save_document

logger = logging.getLogger(__name__)


class DocumentExistsError(DocvaultError):
    """A create, update, or attach would overwrite an existing path."""


def _assert_no_reserved_fields(fields: Mapping[str, Any], operation: str) -> None:
    for key in fields:
        if not key.startswith(RESERVED_FIELD_PREFIX):
            continue
        if key in SYSTEM_FIELDS:
            raise FieldValidationError(f"cannot {operation} reserved field: {key}")
        raise FieldValidationError(f"invalid field '{key}': '_' prefix is reserved")


def _ensure_required(fields: Mapping[str, Any], schema: CollectionSchema, collection: str) -> None:
    for name, definition in schema.fields.items():
        if definition.required and fields.get(name) in (None, ""):
            raise FieldValidationError(f"missing required field '{name}' for collection '{collection}'")


class DocumentService:
    """Create and change documents of known collections.

    Every write goes through the repository's file handle, so the shared
    cache sees it. Callers hold the write lock around mutating calls.
    """

    def __init__(self, schemas: Mapping[str, CollectionSchema], aliases: Mapping[str, str], repository: Repository):
        self.schemas = schemas
        self.aliases = dict(aliases)
        self.repository = repository

    def resolve_collection(self, name_or_alias: str) -> str:
        return resolve_alias(name_or_alias, self.aliases, self.schemas.keys())

    def _schema(self, collection: str) -> CollectionSchema:
        schema = self.schemas.get(collection)
        if schema is None:
            raise SchemaError(f"unknown collection: {collection}")
        return schema

    def _coerce(self, fields: Mapping[str, Any], schema: CollectionSchema) -> dict[str, Any]:
        return {key: coerce_field(key, schema.fields.get(key), value) for key, value in fields.items()}

    # --- create ----------------------------------------------------------------

    def create(
        self,
        collection: str,
        fields: Mapping[str, Any] | None = None,
        content: str = "",
        template_content: str | None = None,
    ) -> DocumentRecord:
        """Create a document and save it at its canonical path.

        Args:
            collection: Collection name or alias.
            fields: Schema field values; strings are coerced to field types.
            content: Markdown body, ignored when ``template_content`` is set.
            template_content: Template rendered with the field values.

        Returns:
            The saved record.

        Raises:
            SchemaError: The collection is unknown.
            FieldValidationError: A field is reserved, missing, or invalid.
            DocumentExistsError: The canonical path is taken.
        """
        collection = self.resolve_collection(collection)
        schema = self._schema(collection)
        fields = dict(fields or {})
        _assert_no_reserved_fields(fields, "create")
        metadata = self._coerce(fields, schema)

        for name, definition in schema.fields.items():
            if metadata.get(name) is None and definition.default is not None:
                metadata[name] = normalize_default(definition)
        _ensure_required(metadata, schema, collection)

        doc_id = new_id()
        metadata[ID_FIELD] = doc_id
        metadata[CREATED_AT_FIELD] = utc_timestamp()

        if template_content:
            content = render_template(template_content, build_template_values(metadata, schema, doc_id))

        values = build_template_values(metadata, schema, doc_id, content)
        path = f"{collection}/{generate_document_filename(schema, values)}"
        is_folder = bool(schema.index_file)
        if is_folder:
            path = strip_md(path)

        if self.repository.file_system.exists(path):
            raise DocumentExistsError(f"document already exists: {path}")

        doc = Document(path=path, metadata=metadata, content=content, is_folder=is_folder)
        save_document(self.repository, doc)
        logger.info("created %s (%s)", path, doc_id)
        return load_by_path(self.repository, path)

    # --- read --------------------------------------------------------------------

    def read_by_id(self, token: str) -> DocumentRecord:
        return self.repository.find_by_id(token)

    def read_raw_by_id(self, token: str) -> str:
        record = self.read_by_id(token)
        return self.repository.file_system.read_file(record_content_path(self.repository, record))

    def list(self, filters: Sequence[Filter] = ()) -> list[DocumentRecord]:
        return sorted(self.repository.collect_all(*filters), key=lambda r: r.path)

    # --- update ------------------------------------------------------------------

    def update_by_id(
        self,
        token: str,
        fields: Mapping[str, Any] | None = None,
        unset_fields: Sequence[str] = (),
        content: str | None = None,
    ) -> DocumentRecord:
        """Apply field changes and/or new content, then move to the canonical path."""
        record = self.read_by_id(token)
        doc = record.document
        collection = collection_of(record.path)
        schema = self._schema(collection)

        fields = dict(fields or {})
        _assert_no_reserved_fields(fields, "update")
        doc.metadata.update(self._coerce(fields, schema))
        for key in unset_fields:
            if key.startswith(RESERVED_FIELD_PREFIX):
                raise FieldValidationError(f"cannot unset reserved field: {key}")
            doc.metadata.pop(key, None)
        _ensure_required(doc.metadata, schema, collection)

        if content is not None:
            doc.content = content
            doc.metadata.pop(TITLE_FIELD, None)
            title = extract_title(content)
            if title:
                doc.metadata[TITLE_FIELD] = title

        target = expected_path(doc, schema, collection)
        if target != record.path and self.repository.file_system.exists(target):
            raise DocumentExistsError(f"cannot move {record.path}: {target} already exists")

        save_document(self.repository, doc)
        new_path = self.auto_rename(record.path)
        logger.info("updated %s", new_path)
        return load_by_path(self.repository, new_path)

    def auto_rename(self, path: str) -> str:
        """Move the document at ``path`` to its canonical path; returns the path."""
        record = load_by_path(self.repository, path)
        collection = collection_of(path)
        target = expected_path(record.document, self._schema(collection), collection)
        if target != path:
            logger.info("renaming %s -> %s", path, target)
        return move_document(self.repository, record, target)

    # --- delete / attach -----------------------------------------------------------

    def delete_by_id(self, token: str) -> str:
        record = self.read_by_id(token)
        fs = self.repository.file_system
        if record.document.is_folder:
            fs.remove_all(record.path)
        else:
            fs.remove(record.path)
        logger.info("deleted %s", record.path)
        return record.path

    def attach_file_by_id(
        self,
        token: str,
        source: str | Path,
        add_reference: bool = True,
        force: bool = False,
    ) -> str:
        """Copy a host file next to the document, converting it to a folder
        document if needed. Returns the attachment's repository path."""
        record = self.read_by_id(token)
        fs = self.repository.file_system
        source = Path(source)
        # Source is read before any repository write
        data = source.read_text(encoding="utf-8")

        doc_path = record.path
        if not record.document.is_folder:
            doc_path = move_document(self.repository, record, strip_md(record.path))

        dest = f"{doc_path}/{source.name}"
        if not force and fs.exists(dest):
            raise DocumentExistsError(f"attachment already exists: {dest}")
        fs.write_file(dest, data)

        if add_reference:
            loaded = load_by_path(self.repository, doc_path)
            body = loaded.document.content
            suffix = "" if body.endswith("\n") or not body else "\n"
            loaded.document.content = f"{body}{suffix}\n[{source.name}]({source.name})\n"
            save_document(self.repository, loaded.document)
        logger.info("attached %s", dest)
        return dest

    # --- upsert ------------------------------------------------------------------

    def upsert_by_slug(
        self,
        collection: str,
        args: Sequence[str],
        template_content: str | None = None,
    ) -> tuple[DocumentRecord, bool]:
        """Map positional ``args`` onto the slug's placeholders; return an
        existing exact match or create one. Returns (record, created)."""
        collection = self.resolve_collection(collection)
        schema = self._schema(collection)
        variables = [v for v in extract_placeholders(schema.slug) if v != "short_id"]
        mapped = self._coerce(dict(zip(variables, args)), schema)

        existing = self._find_by_metadata(collection, mapped)
        if existing is not None:
            return existing, False

        fields = {k: v for k, v in mapped.items() if not k.startswith(RESERVED_FIELD_PREFIX)}
        return self.create(collection, fields, template_content=template_content), True

    def _find_by_metadata(self, collection: str, fields: Mapping[str, Any]) -> DocumentRecord | None:
        for record in self.repository.collect_all(by_collection(collection)):
            meta = record.document.metadata
            if all(
                (extract_title(record.document.content) if key == TITLE_FIELD else meta.get(key)) == value
                for key, value in fields.items()
            ):
                return record
        return None
