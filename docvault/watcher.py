"""
File system watcher that keeps the shared document cache coherent with
external edits.

Editors and other tools change files without going through a repository's
file handle. This module observes the root with watchdog and, once a burst
of changes settles, invalidates the repository's cache identity so the next
read rebuilds from disk.

- Debounces rapid modifications (e.g., editor save cycles)
- Filters to document files (`.md`) and collection schemas (`_schema.yaml`)
- Never reads or writes documents itself
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .models import SCHEMA_FILE
from .repository.repository import Repository

logger = logging.getLogger(__name__)


@dataclass
class PendingChange:
    """A change waiting out the debounce window."""

    kind: str  # created, modified, deleted, moved
    path: Path
    timestamp: float


class RepositoryEventHandler(FileSystemEventHandler):
    """Collects relevant file events and invalidates the cache after a quiet period."""

    DEBOUNCE_SECONDS = 0.5

    def __init__(
        self,
        root: Path,
        repository: Repository,
        on_change: Callable[[str, Path], None] | None = None,
    ):
        """
        Args:
            root: Repository root directory
            repository: Repository whose cache identity is invalidated
            on_change: Callback receiving (kind, repository-relative path)
                for each flushed change
        """
        super().__init__()
        self.root = Path(root)
        self.repository = repository
        self.on_change = on_change
        self.pending: dict[str, PendingChange] = {}

    def _is_relevant(self, path: str) -> bool:
        p = Path(path)
        try:
            rel = p.relative_to(self.root)
        except ValueError:
            return False
        # Hidden files and directories, including the audit log and lock file
        if any(part.startswith(".") for part in rel.parts):
            return False
        return p.suffix.lower() == ".md" or p.name == SCHEMA_FILE

    def _record(self, kind: str, path: str) -> None:
        # A create followed by modifications stays a create
        existing = self.pending.get(path)
        if existing is not None and existing.kind == "created" and kind == "modified":
            existing.timestamp = time.time()
            return
        self.pending[path] = PendingChange(kind=kind, path=Path(path), timestamp=time.time())

    def flush_pending(self) -> int:
        """Invalidate once for every settled batch; returns the number flushed."""
        now = time.time()
        ready = [
            (key, change)
            for key, change in list(self.pending.items())
            if now - change.timestamp >= self.DEBOUNCE_SECONDS
        ]
        if not ready:
            return 0

        for key, _ in ready:
            del self.pending[key]
        self.repository.invalidate()
        logger.debug("invalidated %s after %d change(s)", self.repository.identity, len(ready))

        if self.on_change:
            for _, change in ready:
                self.on_change(change.kind, change.path.relative_to(self.root))
        return len(ready)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_relevant(event.src_path):
            self._record("created", event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_relevant(event.src_path):
            self._record("modified", event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory or self._is_relevant(event.src_path):
            # A deleted directory may have held folder documents
            self._record("deleted", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory or self._is_relevant(event.src_path) or self._is_relevant(event.dest_path):
            self._record("moved", event.dest_path)


def watch_repository(
    root: Path,
    repository: Repository,
    on_change: Callable[[str, Path], None] | None = None,
) -> tuple[Observer, RepositoryEventHandler]:
    """
    Start watching a repository root.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = RepositoryEventHandler(root, repository, on_change)
    observer = Observer()
    observer.schedule(handler, str(root), recursive=True)
    observer.start()
    return observer, handler


def run_watch_loop(
    root: Path,
    repository: Repository,
    on_change: Callable[[str, Path], None] | None = None,
) -> None:
    """
    Run the watch loop until interrupted.

    This is a blocking function that flushes pending changes periodically.
    """
    observer, handler = watch_repository(root, repository, on_change)
    try:
        while True:
            time.sleep(0.5)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
