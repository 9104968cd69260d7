"""Exception types raised by docvault.

Parse and render failures abort the single operation that hit them.
Resolution failures carry their candidates so a caller can disambiguate.
Validation findings are never raised; see ``services.validation``.
"""

from __future__ import annotations


class DocvaultError(Exception):
    """Base class for every docvault error."""


class FrontmatterError(DocvaultError):
    """Document text has a malformed frontmatter block."""


class TemplateError(DocvaultError):
    """A slug or content template could not be rendered."""


class PathError(DocvaultError):
    """A repository-relative path is invalid or unsafe."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path


class SchemaError(DocvaultError):
    """A collection `_schema.yaml` is invalid."""


class ConfigError(DocvaultError):
    """Repository configuration is missing or invalid."""


class FieldValidationError(DocvaultError):
    """A field value was rejected at a write boundary."""


class ResolutionError(DocvaultError, LookupError):
    """An id token did not resolve to exactly one document."""

    def __init__(self, token: str, message: str):
        super().__init__(message)
        self.token = token


class DocumentNotFoundError(ResolutionError):
    def __init__(self, token: str):
        super().__init__(token, f"no document found for id: {token}")


class AmbiguousIDError(ResolutionError):
    """More than one document matches; ``candidates`` holds (path, id) pairs."""

    def __init__(self, token: str, candidates: list[tuple[str, str]]):
        listing = ", ".join(f"{path} ({doc_id})" for path, doc_id in candidates)
        super().__init__(token, f"multiple documents match id: {token}: {listing}")
        self.candidates = candidates


class LockError(DocvaultError):
    """The repository write lock could not be taken or released."""


class LockTimeoutError(LockError):
    """A bounded lock acquisition gave up."""
