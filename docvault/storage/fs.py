"""File-system capability used by the repository.

All paths are repository-relative and pass through ``normalize_path``.
``LocalFileSystem`` works on disk; ``MemoryFileSystem`` keeps the tree in
memory for tests and dry runs.
"""

from __future__ import annotations

import os
import posixpath
import shutil
import tempfile
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from ..errors import PathError
from ..models import FileInfo
from .path import normalize_path, parent_of


class FileSystem(ABC):
    """Read/write/list/stat primitives over a rooted tree."""

    @property
    @abstractmethod
    def root(self) -> str:
        """Identity of the tree root (an absolute path for disk trees)."""

    @abstractmethod
    def read_file(self, path: str) -> str: ...

    @abstractmethod
    def write_file(self, path: str, data: str) -> None:
        """Write ``data`` atomically. The parent directory must exist."""

    @abstractmethod
    def exists(self, path: str) -> bool: ...

    @abstractmethod
    def is_dir(self, path: str) -> bool: ...

    @abstractmethod
    def is_file(self, path: str) -> bool: ...

    @abstractmethod
    def stat(self, path: str) -> FileInfo: ...

    @abstractmethod
    def mkdir_all(self, path: str) -> None: ...

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove a file or an empty directory."""

    @abstractmethod
    def remove_all(self, path: str) -> None: ...

    @abstractmethod
    def rename(self, old_path: str, new_path: str) -> None: ...

    @abstractmethod
    def read_dir(self, path: str) -> list[FileInfo]:
        """Entries of a directory sorted by name. Symlinks are skipped."""

    def walk(self, path: str = ".") -> Iterator[FileInfo]:
        """Depth-first walk below ``path`` in name order."""
        for entry in self.read_dir(path):
            yield entry
            if entry.is_dir:
                yield from self.walk(entry.path)


def _child(parent: str, name: str) -> str:
    return name if parent == "." else f"{parent}/{name}"


class LocalFileSystem(FileSystem):
    """Disk-backed file system rooted at an absolute path."""

    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()

    @property
    def root(self) -> str:
        return str(self._root)

    def _resolve(self, path: str) -> Path:
        norm = normalize_path(path)
        return self._root if norm == "." else self._root / norm

    def _check_not_symlink(self, full: Path, path: str) -> None:
        if full.is_symlink():
            raise PathError(path, f"symlinks are not allowed: {path}")

    def read_file(self, path: str) -> str:
        full = self._resolve(path)
        self._check_not_symlink(full, path)
        return full.read_text(encoding="utf-8")

    def write_file(self, path: str, data: str) -> None:
        full = self._resolve(path)
        self._check_not_symlink(full, path)
        # Write to a temp file in the same directory, then replace
        fd, tmp = tempfile.mkstemp(dir=full.parent, prefix=f".{full.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(data)
            os.chmod(tmp, 0o644)
            os.replace(tmp, full)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        full = self._resolve(path)
        return full.is_dir() and not full.is_symlink()

    def is_file(self, path: str) -> bool:
        full = self._resolve(path)
        return full.is_file() and not full.is_symlink()

    def stat(self, path: str) -> FileInfo:
        full = self._resolve(path)
        self._check_not_symlink(full, path)
        st = full.stat()
        norm = normalize_path(path)
        return FileInfo(
            name=posixpath.basename(norm) if norm != "." else "",
            path=norm,
            is_dir=full.is_dir(),
            is_file=full.is_file(),
            size=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    def mkdir_all(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def remove(self, path: str) -> None:
        full = self._resolve(path)
        self._check_not_symlink(full, path)
        if full.is_dir():
            full.rmdir()
        else:
            full.unlink()

    def remove_all(self, path: str) -> None:
        full = self._resolve(path)
        if full.is_dir() and not full.is_symlink():
            shutil.rmtree(full)
        else:
            full.unlink()

    def rename(self, old_path: str, new_path: str) -> None:
        self._resolve(old_path).rename(self._resolve(new_path))

    def read_dir(self, path: str) -> list[FileInfo]:
        norm = normalize_path(path)
        entries = []
        for child in sorted(self._resolve(path).iterdir(), key=lambda p: p.name):
            if child.is_symlink():
                continue
            st = child.stat()
            entries.append(
                FileInfo(
                    name=child.name,
                    path=_child(norm, child.name),
                    is_dir=child.is_dir(),
                    is_file=child.is_file(),
                    size=st.st_size,
                    modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                )
            )
        return entries


class MemoryFileSystem(FileSystem):
    """In-memory tree. Directories exist only once created with ``mkdir_all``."""

    def __init__(self, name: str | None = None):
        self._name = name or uuid.uuid4().hex
        self._files: dict[str, tuple[str, datetime]] = {}
        self._dirs: set[str] = {"."}

    @property
    def root(self) -> str:
        return f"memory://{self._name}"

    def _require_parent(self, path: str) -> None:
        parent = parent_of(path)
        if parent not in self._dirs:
            raise FileNotFoundError(f"parent directory does not exist: {parent}")

    def read_file(self, path: str) -> str:
        norm = normalize_path(path)
        if norm not in self._files:
            raise FileNotFoundError(norm)
        return self._files[norm][0]

    def write_file(self, path: str, data: str) -> None:
        norm = normalize_path(path)
        if norm in self._dirs:
            raise IsADirectoryError(norm)
        self._require_parent(norm)
        self._files[norm] = (data, datetime.now(timezone.utc))

    def exists(self, path: str) -> bool:
        norm = normalize_path(path)
        return norm in self._files or norm in self._dirs

    def is_dir(self, path: str) -> bool:
        return normalize_path(path) in self._dirs

    def is_file(self, path: str) -> bool:
        return normalize_path(path) in self._files

    def stat(self, path: str) -> FileInfo:
        norm = normalize_path(path)
        name = posixpath.basename(norm) if norm != "." else ""
        if norm in self._files:
            data, modified = self._files[norm]
            return FileInfo(name, norm, False, True, len(data.encode("utf-8")), modified)
        if norm in self._dirs:
            return FileInfo(name, norm, True, False, 0, None)
        raise FileNotFoundError(norm)

    def mkdir_all(self, path: str) -> None:
        norm = normalize_path(path)
        if norm in self._files:
            raise FileExistsError(norm)
        while norm != ".":
            self._dirs.add(norm)
            norm = parent_of(norm)

    def _children(self, norm: str) -> list[str]:
        prefix = "" if norm == "." else f"{norm}/"
        found = {
            p for p in (*self._files, *self._dirs) if p != "." and p.startswith(prefix) and "/" not in p[len(prefix) :]
        }
        return sorted(found)

    def remove(self, path: str) -> None:
        norm = normalize_path(path)
        if norm in self._files:
            del self._files[norm]
        elif norm in self._dirs:
            if self._children(norm):
                raise OSError(f"directory not empty: {norm}")
            self._dirs.discard(norm)
        else:
            raise FileNotFoundError(norm)

    def remove_all(self, path: str) -> None:
        norm = normalize_path(path)
        if not self.exists(norm):
            raise FileNotFoundError(norm)
        prefix = f"{norm}/"
        self._files = {p: v for p, v in self._files.items() if p != norm and not p.startswith(prefix)}
        self._dirs = {d for d in self._dirs if d != norm and not d.startswith(prefix)}

    def rename(self, old_path: str, new_path: str) -> None:
        old, new = normalize_path(old_path), normalize_path(new_path)
        if not self.exists(old):
            raise FileNotFoundError(old)
        self._require_parent(new)
        if old in self._files:
            self._files[new] = self._files.pop(old)
            return
        old_prefix = f"{old}/"
        self._files = {
            (new + p[len(old) :] if p.startswith(old_prefix) else p): v for p, v in self._files.items()
        }
        self._dirs = {
            new if d == old else (new + d[len(old) :] if d.startswith(old_prefix) else d) for d in self._dirs
        }

    def read_dir(self, path: str) -> list[FileInfo]:
        norm = normalize_path(path)
        if norm not in self._dirs:
            raise FileNotFoundError(norm)
        return [self.stat(child) for child in self._children(norm)]
