"""Operations over a repository: documents, templates, relationships, search, validation."""

from .documents import DocumentExistsError, DocumentService
from .export import rows_from_records, to_csv, to_dot, to_mermaid, to_table
from .relationships import RelationshipService, RelationshipView, Stats
from .search import SearchResult, SearchService, TopResult
from .templates import TemplateRecord, TemplateService
from .validation import CheckResult, ValidationIssue, ValidationService

__all__ = [
    "DocumentExistsError",
    "DocumentService",
    "rows_from_records",
    "to_csv",
    "to_dot",
    "to_mermaid",
    "to_table",
    "RelationshipService",
    "RelationshipView",
    "Stats",
    "SearchResult",
    "SearchService",
    "TopResult",
    "TemplateRecord",
    "TemplateService",
    "CheckResult",
    "ValidationIssue",
    "ValidationService",
]
