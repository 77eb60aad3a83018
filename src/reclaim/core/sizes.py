"""Memoized file and directory size computation."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable

log = logging.getLogger(__name__)


def _key(path: Path | str) -> str:
    return os.path.abspath(str(path))


class SizeCache:
    """Thread-safe size memo keyed by absolute path.

    Shared by every scan line of an engine, since the cleaner, the
    uninstaller and the large-file scan can all size the same subtree.
    The lock guards the dictionary only; the walk itself runs unlocked.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sizes: dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sizes)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return _key(path) in self._sizes

    def get(self, path: Path | str) -> int | None:
        with self._lock:
            return self._sizes.get(_key(path))

    def store(self, path: Path | str, size: int) -> None:
        with self._lock:
            self._sizes[_key(path)] = size

    def size_of(self, path: Path | str, check: Callable[[], bool] | None = None) -> int | None:
        """Return the size of a file, or the recursive size of a directory.

        Hidden entries count; symlinks inside a directory are skipped. Returns None if the
        path cannot be stat'ed or *check* signals cancellation midway, in
        which case nothing is memoized.
        """
        key = _key(path)
        with self._lock:
            if key in self._sizes:
                return self._sizes[key]

        try:
            st = os.lstat(key)
        except OSError as e:
            log.debug("Cannot stat %s: %s", key, e)
            return None

        if os.path.isdir(key) and not os.path.islink(key):
            size = _tree_size(key, check)
            if size is None:
                return None
        else:
            size = st.st_size

        with self._lock:
            self._sizes[key] = size
        return size

    def invalidate(self, path: Path | str) -> None:
        """Forget *path*, everything beneath it and every ancestor."""
        key = _key(path)
        prefix = key.rstrip(os.sep) + os.sep
        with self._lock:
            for cached in list(self._sizes):
                if cached == key or cached.startswith(prefix) or prefix.startswith(cached.rstrip(os.sep) + os.sep):
                    del self._sizes[cached]

    def clear(self) -> None:
        with self._lock:
            self._sizes.clear()


def _tree_size(path: str, check: Callable[[], bool] | None) -> int | None:
    """Walk a directory tree using os.scandir."""
    total = 0
    stack: list[str] = [path]
    while stack:
        if check is not None and not check():
            return None
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    try:
                        if entry.is_symlink():
                            continue
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                        else:
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError:
                        log.debug("Cannot access: %s", entry.path)
        except OSError:
            log.debug("Cannot read directory: %s", current)
    return total
