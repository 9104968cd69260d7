"""Repository-relative path normalization."""

from __future__ import annotations

import posixpath

from ..errors import PathError


def normalize_path(path: str) -> str:
    """Normalize and validate a repository-relative path.

    Rejects empty paths, absolute paths, and parent traversal. The root is ".".
    """
    if not path or not path.strip():
        raise PathError(path, "path must not be empty")
    if path.startswith("/"):
        raise PathError(path, "absolute paths are not allowed")
    if ".." in path.split("/"):
        raise PathError(path, "parent traversal (..) is not allowed")
    cleaned = posixpath.normpath(path)
    if cleaned.startswith(".."):
        raise PathError(path, "parent traversal (..) is not allowed")
    return cleaned.rstrip("/") or "."


def join_path(*segments: str) -> str:
    return normalize_path(posixpath.join(*segments))


def parent_of(path: str) -> str:
    return posixpath.dirname(normalize_path(path)) or "."
