"""Validation and self-healing.

``check`` is a read-only scan that returns issues with stable codes. With
``fix=True`` it then repairs what it can, one record at a time, and counts
only the changes that were committed. Running ``check`` again after a fix
pass reports none of the repaired issues.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping, Sequence

from ..audit_log import Change, log_operation
from ..config.aliases import resolve_alias
from ..config.fields import COUNTRY_RE, CURRENCY_RE, validate_field_value
from ..document.document import collection_of, display_name, parse_document
from ..document.path_policy import expected_path
from ..document.wikilink import WikiLink, extract_links, rewrite_link_titles
from ..errors import DocvaultError, ResolutionError
from ..models import TEMPLATES_COLLECTION, CollectionSchema, DocumentRecord, FileInfo
from ..repository.filters import by_collection
from ..repository.id_lookup import find_by_id_in_records, resolve_candidates
from ..repository.repository import Repository
from .persistence import load_by_path, move_document, save_document

logger = logging.getLogger(__name__)

Severity = Literal["error", "warning"]

# Markdown links, reference definitions, and <img src="...">
_ATTACHMENT_PATTERNS = (
    re.compile(r"!?\[[^\]]*\]\(([^)]+)\)"),
    re.compile(r"^\[[^\]]+\]:\s*(\S+)", re.MULTILINE),
    re.compile(r"<img\s[^>]*src=\"([^\"]+)\""),
)


@dataclass
class ValidationIssue:
    """A single finding."""

    severity: Severity
    path: str
    code: str
    message: str
    fixable: bool = False

    def __str__(self) -> str:
        return f"{self.severity.upper()}: [{self.code}] {self.path} - {self.message}"


@dataclass
class CheckResult:
    issues: list[ValidationIssue] = field(default_factory=list)
    fixed: int = 0
    scanned: int = 0
    changes: list[Change] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]


def _has_value(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value)
    return True


def attachment_references(content: str) -> set[str]:
    """Basenames of local files referenced from Markdown content."""
    refs = set()
    for pattern in _ATTACHMENT_PATTERNS:
        for match in pattern.finditer(content):
            target = match.group(1).strip()
            if target.startswith("./"):
                target = target[2:]
            target = target.split("?", 1)[0].split("#", 1)[0]
            name = posixpath.basename(target)
            if name:
                refs.add(name)
    return refs


class ValidationService:
    """Detect and repair drift between stored and canonical state."""

    def __init__(
        self,
        schemas: Mapping[str, CollectionSchema],
        aliases: Mapping[str, str],
        repository: Repository,
        ignore: Sequence[str] = (),
        audit_root: Path | None = None,
    ):
        self.schemas = schemas
        self.aliases = dict(aliases)
        self.repository = repository
        self.ignore = set(ignore)
        self.audit_root = audit_root

    def _resolve(self, name_or_alias: str) -> str:
        return resolve_alias(name_or_alias, self.aliases, self.schemas.keys())

    def _display_name(self, record: DocumentRecord) -> str:
        return display_name(record.document, self.schemas.get(collection_of(record.path)))

    # --- check -------------------------------------------------------------------

    def check(
        self,
        collection: str | None = None,
        fix: bool = False,
        prune_attachments: bool = False,
    ) -> CheckResult:
        """Scan records (optionally one collection) and optionally repair them.

        Args:
            collection: Collection name or alias to restrict the scan to.
            fix: Apply repairs after scanning.
            prune_attachments: With ``fix``, remove unreferenced attachments.

        Returns:
            Issues found by the scan, the number of committed repairs, and the
            number of records scanned.
        """
        filters = [by_collection(self._resolve(collection))] if collection else []
        pool = self.repository.collect_all()
        records = self.repository.collect_all(*filters)
        result = CheckResult(scanned=len(records))

        for error in self.repository.load_errors():
            if not collection or collection_of(error.path) == self._resolve(collection):
                result.issues.append(ValidationIssue("error", error.path, "document.parse", error.message))

        for record in records:
            result.issues.extend(self.validate_record(record, pool))

        if fix:
            self._fix_all(result, filters, prune_attachments)
            if result.changes and self.audit_root is not None:
                log_operation(
                    self.audit_root,
                    "check-fix",
                    result.changes,
                    {"collection": collection, "prune_attachments": prune_attachments},
                )
        return result

    def validate_raw(self, collection: str, path: str, raw: str) -> list[ValidationIssue]:
        """Validate unsaved document text as if it were stored at ``path``."""
        resolved = self._resolve(collection)
        if resolved not in self.schemas:
            return [ValidationIssue("error", path, "collection.unknown", f"unknown collection: {collection}")]
        try:
            document = parse_document(raw, path)
        except DocvaultError as e:
            return [ValidationIssue("error", path, "document.parse", str(e))]
        info = FileInfo(name=posixpath.basename(path), path=path, is_dir=False, is_file=True, size=len(raw))
        record = DocumentRecord(path=path, document=document, info=info)
        return self.validate_record(record, self.repository.collect_all())

    def validate_record(self, record: DocumentRecord, pool: Sequence[DocumentRecord]) -> list[ValidationIssue]:
        collection = collection_of(record.path)
        schema = self.schemas.get(collection)
        if schema is None:
            return [
                ValidationIssue(
                    "error", record.path, "collection.unknown", f"document is not in a known collection: {collection}"
                )
            ]

        issues = []
        issues.extend(self.check_fields(record, schema))
        issues.extend(self.check_references(record, schema, pool))
        if collection == TEMPLATES_COLLECTION:
            issues.extend(self.check_template(record))
        issues.extend(self.check_wiki_links(record, pool))
        issues.extend(self.check_filename(record, schema, collection))
        if record.document.is_folder:
            issues.extend(self.check_attachments(record, pool))
        return issues

    def check_fields(self, record: DocumentRecord, schema: CollectionSchema) -> list[ValidationIssue]:
        """Required fields and per-type value rules."""
        issues = []
        meta = record.document.metadata
        for name, definition in schema.fields.items():
            if definition.required and not _has_value(meta.get(name)):
                issues.append(
                    ValidationIssue("error", record.path, "field.required", f"missing required field '{name}'")
                )

        for name, value in meta.items():
            definition = schema.fields.get(name)
            if definition is None or not _has_value(value):
                continue
            error = validate_field_value(definition, value)
            if error:
                base_type = definition.type.split("<", 1)[0]
                issues.append(
                    ValidationIssue(
                        "error",
                        record.path,
                        f"field.{base_type}",
                        f"{name}: {error}",
                        fixable=self._upper_case_fix(definition.type, value) is not None,
                    )
                )
        return issues

    @staticmethod
    def _upper_case_fix(field_type: str, value: object) -> str | None:
        """Upper-cased value if that alone makes a currency/country valid."""
        if not isinstance(value, str) or value == value.upper():
            return None
        pattern = {"currency": CURRENCY_RE, "country": COUNTRY_RE}.get(field_type)
        if pattern is not None and pattern.match(value.upper()):
            return value.upper()
        return None

    def check_references(
        self, record: DocumentRecord, schema: CollectionSchema, pool: Sequence[DocumentRecord]
    ) -> list[ValidationIssue]:
        issues = []
        for name, target_collection in schema.references.items():
            value = record.document.metadata.get(name)
            if not isinstance(value, str) or not value:
                continue
            try:
                target = find_by_id_in_records(pool, value)
            except ResolutionError as e:
                issues.append(
                    ValidationIssue("error", record.path, "reference.missing", f"{name}: {e}")
                )
                continue
            expected = self._resolve(target_collection)
            if collection_of(target.path) != expected:
                issues.append(
                    ValidationIssue(
                        "error", record.path, "reference.collection", f"{name}: expected collection '{expected}'"
                    )
                )
        return issues

    def check_template(self, record: DocumentRecord) -> list[ValidationIssue]:
        target = record.document.metadata.get("for")
        if not isinstance(target, str) or not target:
            return [
                ValidationIssue("error", record.path, "template.for.missing", "template is missing required 'for' field")
            ]
        if self._resolve(target) not in self.schemas:
            return [
                ValidationIssue(
                    "error", record.path, "template.for.invalid", f"template 'for' references unknown collection: {target}"
                )
            ]
        return []

    def _resolve_link(self, link: WikiLink, pool: Sequence[DocumentRecord]) -> list[DocumentRecord]:
        return resolve_candidates(pool, link.target, self.schemas)

    def check_wiki_links(self, record: DocumentRecord, pool: Sequence[DocumentRecord]) -> list[ValidationIssue]:
        issues = []
        for link in extract_links(record.document.content):
            if not link.valid:
                issues.append(
                    ValidationIssue("error", record.path, "wiki.invalid", f"invalid wiki link: {link.invalid_reason}")
                )
                continue
            candidates = self._resolve_link(link, pool)
            if not candidates:
                issues.append(
                    ValidationIssue("error", record.path, "wiki.broken", f"broken wiki-style link: [[{link.raw}]]")
                )
                continue
            if len(candidates) > 1:
                paths = ", ".join(c.path for c in candidates)
                issues.append(
                    ValidationIssue(
                        "error", record.path, "wiki.ambiguous", f"wiki link [[{link.raw}]] matches: {paths}"
                    )
                )
                continue
            if link.title is not None:
                expected = self._display_name(candidates[0])
                if link.title != expected:
                    issues.append(
                        ValidationIssue(
                            "warning",
                            record.path,
                            "wiki.stale-title",
                            f"stale wiki link title for '{link.target}': expected '{expected}'",
                            fixable=True,
                        )
                    )
        return issues

    def check_filename(
        self, record: DocumentRecord, schema: CollectionSchema, collection: str
    ) -> list[ValidationIssue]:
        try:
            expected = expected_path(record.document, schema, collection)
        except DocvaultError as e:
            return [
                ValidationIssue(
                    "error", record.path, "filename.invalid", f"cannot compute expected filename: {e}"
                )
            ]
        if expected != record.path:
            return [
                ValidationIssue(
                    "error", record.path, "filename.mismatch", f"expected path: {expected}", fixable=True
                )
            ]
        return []

    def _unreferenced_attachments(self, record: DocumentRecord, pool: Sequence[DocumentRecord]) -> list[FileInfo]:
        index_file = self.repository.index_file_for(collection_of(record.path))
        refs = attachment_references(record.document.content)
        unreferenced = []
        for entry in self.repository.file_system.read_dir(record.path):
            if entry.is_dir or entry.name == index_file or entry.name in refs or entry.name in self.ignore:
                continue
            if any(entry.path in other.document.content for other in pool if other.path != record.path):
                continue
            unreferenced.append(entry)
        return unreferenced

    def check_attachments(self, record: DocumentRecord, pool: Sequence[DocumentRecord]) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                "warning",
                entry.path,
                "attachment.unreferenced",
                "attachment is not referenced in document content",
                fixable=True,
            )
            for entry in self._unreferenced_attachments(record, pool)
        ]

    # --- fix -----------------------------------------------------------------------

    def _fix_all(self, result: CheckResult, filters: list, prune_attachments: bool) -> None:
        pool = self.repository.collect_all()
        for record in self.repository.collect_all(*filters):
            changes: list[Change] = []
            try:
                self.fix_record(record, pool, prune_attachments, changes)
            except (DocvaultError, OSError) as e:
                logger.error("fix failed for %s: %s", record.path, e)
                result.issues.append(ValidationIssue("error", record.path, "fix.failed", str(e)))
            # Changes committed before a failure still count
            result.changes.extend(changes)
        result.fixed = len(result.changes)

    def fix_record(
        self,
        record: DocumentRecord,
        pool: Sequence[DocumentRecord],
        prune_attachments: bool,
        changes: list[Change],
    ) -> None:
        """Repair one record, appending each change once it is committed."""
        collection = collection_of(record.path)
        schema = self.schemas.get(collection)
        if schema is None:
            return

        path = self._fix_filename(record, schema, collection, changes)
        refreshed = load_by_path(self.repository, path)

        self._fix_field_case(refreshed, schema, changes)
        self._fix_wiki_titles(refreshed, pool, changes)

        if refreshed.document.is_folder:
            if prune_attachments:
                for entry in self._unreferenced_attachments(refreshed, pool):
                    self.repository.file_system.remove(entry.path)
                    changes.append(Change("prune", entry.path))
                    logger.info("pruned attachment %s", entry.path)
            self._collapse_folder(refreshed, schema, changes)

    def _fix_filename(
        self, record: DocumentRecord, schema: CollectionSchema, collection: str, changes: list[Change]
    ) -> str:
        try:
            target = expected_path(record.document, schema, collection)
        except DocvaultError:
            # Reported as filename.invalid; nothing to rename to
            return record.path
        if target == record.path:
            return record.path
        if self.repository.file_system.exists(target):
            raise DocvaultError(f"cannot rename {record.path}: {target} already exists")
        move_document(self.repository, record, target)
        changes.append(Change("rename", record.path, target))
        logger.info("renamed %s -> %s", record.path, target)
        return target

    def _fix_field_case(self, record: DocumentRecord, schema: CollectionSchema, changes: list[Change]) -> None:
        meta = record.document.metadata
        changed = []
        for name, definition in schema.fields.items():
            upper = self._upper_case_fix(definition.type, meta.get(name))
            if upper is not None:
                meta[name] = upper
                changed.append(name)
        if changed:
            save_document(self.repository, record.document)
            changes.append(Change("field-case", record.path, ", ".join(changed)))

    def _fix_wiki_titles(
        self, record: DocumentRecord, pool: Sequence[DocumentRecord], changes: list[Change]
    ) -> None:
        def current_title(link: WikiLink) -> str | None:
            candidates = self._resolve_link(link, pool)
            if len(candidates) != 1:
                return None
            return self._display_name(candidates[0])

        content, count = rewrite_link_titles(record.document.content, current_title)
        if count:
            record.document.content = content
            save_document(self.repository, record.document)
            changes.append(Change("wiki-title", record.path, f"{count} link(s)"))
            logger.info("rewrote %d wiki link title(s) in %s", count, record.path)

    def _collapse_folder(self, record: DocumentRecord, schema: CollectionSchema, changes: list[Change]) -> None:
        """Turn a folder document holding only its index file back into a file."""
        if schema.index_file:
            return
        fs = self.repository.file_system
        index_file = schema.effective_index_file
        file_path = f"{record.path}.md"
        if fs.exists(file_path):
            return

        entries = fs.read_dir(record.path)
        if any(e.name != index_file and e.name not in self.ignore for e in entries):
            return
        for entry in entries:
            if entry.name != index_file:
                fs.remove(entry.path)

        fs.rename(f"{record.path}/{index_file}", file_path)
        fs.remove(record.path)
        changes.append(Change("collapse", record.path, file_path))
        logger.info("collapsed folder document %s -> %s", record.path, file_path)
