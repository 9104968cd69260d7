"""Data models for repository documents, schemas, and relationships."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

# Valid field types in a collection schema. Arrays may also be typed
# element-wise, e.g. "array<date>".
FieldType = Literal[
    "string",
    "email",
    "currency",
    "country",
    "date",
    "datetime",
    "number",
    "boolean",
    "url",
    "enum",
    "reference",
    "array",
]

SCALAR_FIELD_TYPES = (
    "string",
    "email",
    "currency",
    "country",
    "date",
    "datetime",
    "number",
    "boolean",
    "url",
    "enum",
    "reference",
)

EdgeType = Literal["wiki", "reference"]

ID_FIELD = "_id"
CREATED_AT_FIELD = "_created_at"
TITLE_FIELD = "_title"  # virtual, derived from the first heading
RESERVED_FIELD_PREFIX = "_"
SYSTEM_FIELDS = frozenset({ID_FIELD, CREATED_AT_FIELD, TITLE_FIELD})

DEFAULT_INDEX_FILE = "index.md"
DEFAULT_SHORT_ID_LENGTH = 6
DEFAULT_IGNORE = (".DS_Store", "Thumbs.db")
SCHEMA_FILE = "_schema.yaml"
CONFIG_FILE = "docvault.yaml"
TEMPLATES_COLLECTION = "templates"


@dataclass
class FileInfo:
    """File-system metadata for one entry."""

    name: str
    path: str  # repository-relative
    is_dir: bool
    is_file: bool
    size: int = 0
    modified_at: datetime | None = None

    @property
    def kind(self) -> str:
        return "directory" if self.is_dir else "file"


@dataclass
class Document:
    """A parsed document.

    For folder documents ``path`` is the directory; the content lives in the
    collection's index file inside it.
    """

    path: str
    metadata: dict[str, Any] = field(default_factory=dict)
    content: str = ""
    is_folder: bool = False


@dataclass
class DocumentRecord:
    """A document plus its file-system metadata, as returned by the repository."""

    path: str
    document: Document
    info: FileInfo


@dataclass
class FieldDefinition:
    type: str = "string"
    required: bool = False
    description: str | None = None
    default: Any = None
    enum_values: list[str] = field(default_factory=list)
    pattern: str | None = None
    min: float | None = None
    max: float | None = None
    weight: float | None = None


@dataclass
class CollectionSchema:
    """Schema for one collection, loaded from its `_schema.yaml`."""

    slug: str
    short_id_length: int | None = None
    title_field: str | None = None
    index_file: str | None = None
    fields: dict[str, FieldDefinition] = field(default_factory=dict)
    references: dict[str, str] = field(default_factory=dict)

    @property
    def effective_short_id_length(self) -> int:
        return self.short_id_length or DEFAULT_SHORT_ID_LENGTH

    @property
    def effective_index_file(self) -> str:
        return self.index_file or DEFAULT_INDEX_FILE


@dataclass
class RepoConfig:
    """Repository configuration from `docvault.yaml`."""

    repository_id: str | None = None
    aliases: dict[str, str] = field(default_factory=dict)
    ignore: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE))
    extra: dict[str, Any] = field(default_factory=dict)  # unknown keys, preserved


@dataclass(frozen=True)
class RelationshipEdge:
    """A directed edge between two document ids."""

    source: str
    target: str
    type: EdgeType
    field: str | None = None

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.source, self.target, self.type, self.field or "")
