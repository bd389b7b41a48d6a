"""
Per-file locking for fragment files and the shared git working tree.

Locks are in-process re-entrant locks keyed by resolved path. Callers that
need several locks at once go through ``hold_all`` which always acquires them
in sorted path order.
"""

import threading
from contextlib import contextmanager, ExitStack
from pathlib import Path
from typing import Dict, Iterable, Iterator, Union


class LockRegistry:
    """Hands out one lock per file plus one lock for the repository."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Path, threading.RLock] = {}
        self._repo_lock = threading.RLock()

    @staticmethod
    def _key(path: Union[str, Path]) -> Path:
        return Path(path).expanduser().resolve()

    def for_path(self, path: Union[str, Path]) -> threading.RLock:
        """Get the lock guarding a single file."""
        key = self._key(path)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @property
    def repository(self) -> threading.RLock:
        """Lock serializing git operations and shared-scope writes."""
        return self._repo_lock

    @contextmanager
    def hold(self, path: Union[str, Path], shared_root: bool = False) -> Iterator[None]:
        """Hold a file lock, taking the repository lock first when asked."""
        with ExitStack() as stack:
            if shared_root:
                stack.enter_context(self._repo_lock)
            stack.enter_context(self.for_path(path))
            yield

    @contextmanager
    def hold_all(self, paths: Iterable[Union[str, Path]], shared_root: bool = False) -> Iterator[None]:
        """Hold the locks of several files at once, in a fixed global order."""
        keys = sorted({self._key(p) for p in paths}, key=str)
        with ExitStack() as stack:
            if shared_root:
                stack.enter_context(self._repo_lock)
            for key in keys:
                stack.enter_context(self.for_path(key))
            yield
