"""Advisory cross-process write lock keyed on the repository root.

Two strategies share one interface: ``flock`` holds an ``fcntl.flock`` on an
open handle; ``process`` keeps a helper ``flock(1)`` child alive until its
stdin closes. Acquisition blocks until the lock is free unless a timeout is
given.
"""

from __future__ import annotations

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO

from ..errors import LockError, LockTimeoutError

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX
    fcntl = None

logger = logging.getLogger(__name__)

LOCK_FILE = ".docvault.lock"
POLL_INTERVAL = 0.05


class WriteLock(ABC):
    """Lock capability: ``acquire``, ``release``, and context-manager use."""

    strategy = ""

    def __init__(self, root: str | Path):
        self.path = Path(root) / LOCK_FILE
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self, timeout: float | None = None) -> None:
        """Take the lock, blocking until it is free.

        Args:
            timeout: Seconds to wait before giving up; None waits forever.

        Raises:
            LockError: The handle already holds the lock, or the lock
                primitive is unavailable.
            LockTimeoutError: ``timeout`` elapsed first.
        """
        if self._held:
            raise LockError(f"write lock already held: {self.path}")
        self._acquire(timeout)
        self._held = True
        logger.debug("acquired %s write lock %s", self.strategy, self.path)

    def release(self) -> None:
        if not self._held:
            raise LockError(f"write lock is not held: {self.path}")
        try:
            self._release()
        finally:
            self._held = False
        logger.debug("released write lock %s", self.path)

    @abstractmethod
    def _acquire(self, timeout: float | None) -> None: ...

    @abstractmethod
    def _release(self) -> None: ...

    def __enter__(self) -> "WriteLock":
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()


class FlockLock(WriteLock):
    """Native ``fcntl.flock`` on the lock file."""

    strategy = "flock"

    def __init__(self, root: str | Path):
        super().__init__(root)
        self._handle: IO[str] | None = None

    def _acquire(self, timeout: float | None) -> None:
        if fcntl is None:
            raise LockError("fcntl.flock is not available on this platform")
        handle = self.path.open("a+", encoding="utf-8")
        try:
            if timeout is None:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            else:
                self._poll(handle, timeout)
        except BaseException:
            handle.close()
            raise
        self._handle = handle

    def _poll(self, handle: IO[str], timeout: float) -> None:
        deadline = time.monotonic() + timeout
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(f"timed out after {timeout}s waiting for {self.path}")
                time.sleep(POLL_INTERVAL)

    def _release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()


class ProcessLock(WriteLock):
    """Lock held by a ``flock(1)`` child process for as long as it runs."""

    strategy = "process"

    def __init__(self, root: str | Path, command: str = "flock"):
        super().__init__(root)
        self.command = command
        self._proc: subprocess.Popen[str] | None = None

    def _acquire(self, timeout: float | None) -> None:
        args = [self.command]
        if timeout is not None:
            args += ["-w", str(timeout)]
        args += [str(self.path), "-c", "echo locked; read _"]
        try:
            proc = subprocess.Popen(
                args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
            )
        except OSError as exc:
            raise LockError(f"cannot start lock helper {self.command!r}: {exc}") from exc

        line = proc.stdout.readline() if proc.stdout else ""
        if line.strip() == "locked":
            self._proc = proc
            return

        returncode = proc.wait()
        if timeout is not None and returncode == 1:
            raise LockTimeoutError(f"timed out after {timeout}s waiting for {self.path}")
        raise LockError(f"lock helper exited with status {returncode}")

    def _release(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None:
            return
        if proc.stdin:
            proc.stdin.close()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
        if proc.stdout:
            proc.stdout.close()


def create_write_lock(root: str | Path, strategy: str = "auto") -> WriteLock:
    """Build the write lock for ``root``.

    ``auto`` picks ``flock`` where ``fcntl`` exists, else ``process``.
    """
    if strategy == "auto":
        strategy = "flock" if fcntl is not None else "process"
    if strategy == "flock":
        return FlockLock(root)
    if strategy == "process":
        return ProcessLock(root)
    raise LockError(f"unknown lock strategy: {strategy}")
