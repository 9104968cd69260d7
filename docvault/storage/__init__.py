"""File-system and lock capabilities."""

from .fs import FileSystem, LocalFileSystem, MemoryFileSystem
from .lock import LOCK_FILE, FlockLock, ProcessLock, WriteLock, create_write_lock
from .path import join_path, normalize_path, parent_of

__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
    "LOCK_FILE",
    "FlockLock",
    "ProcessLock",
    "WriteLock",
    "create_write_lock",
    "join_path",
    "normalize_path",
    "parent_of",
]
