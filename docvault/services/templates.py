"""Content templates: documents of the templates collection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..config.aliases import resolve_alias
from ..models import SCHEMA_FILE, TEMPLATES_COLLECTION, CollectionSchema
from ..repository.filters import by_collection
from ..repository.repository import Repository


@dataclass
class TemplateRecord:
    name: str
    target: str  # the `for` field, as written
    path: str
    content: str


class TemplateService:
    def __init__(self, schemas: Mapping[str, CollectionSchema], aliases: Mapping[str, str], repository: Repository):
        self.schemas = schemas
        self.aliases = dict(aliases)
        self.repository = repository

    def _resolve(self, name_or_alias: str) -> str:
        return resolve_alias(name_or_alias, self.aliases, self.schemas.keys())

    def find_templates(self) -> list[TemplateRecord]:
        """Every template that carries both `name` and `for`."""
        if not self.repository.file_system.exists(f"{TEMPLATES_COLLECTION}/{SCHEMA_FILE}"):
            return []
        templates = []
        for record in self.repository.collect_all(by_collection(TEMPLATES_COLLECTION)):
            meta = record.document.metadata
            name, target = meta.get("name"), meta.get("for")
            if isinstance(name, str) and isinstance(target, str):
                templates.append(TemplateRecord(name, target, record.path, record.document.content))
        return templates

    def templates_for(self, collection: str) -> list[TemplateRecord]:
        if TEMPLATES_COLLECTION not in self.schemas:
            return []
        collection = self._resolve(collection)
        return [t for t in self.find_templates() if self._resolve(t.target) == collection]
