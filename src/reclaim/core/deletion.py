"""Trash-based batch deletion."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterable

from send2trash import send2trash

from reclaim.models.clean_result import DeletionResult

log = logging.getLogger(__name__)

TrashFunction = Callable[[str], None]
DeleteProgress = Callable[[int, int], None]  # (done, total)


class DeletionExecutor:
    """Moves items to the trash one at a time.

    Nothing is ever unlinked permanently. A failure on one item is
    recorded and the batch carries on.
    """

    def __init__(self, trash: TrashFunction | None = None, trash_dirs: Iterable[Path] = ()) -> None:
        self._trash = trash or send2trash
        self._trash_dirs = {os.path.abspath(str(p)) for p in trash_dirs}

    def delete(self, items: Iterable[Path | str], on_progress: DeleteProgress | None = None) -> DeletionResult:
        """Move *items* to the trash sequentially.

        Args:
            items: Paths to trash, processed in the given order.
            on_progress: Called after every item with (done, total).

        Returns:
            Success and failure counts, per-item error messages and the
            paths that were actually trashed. Never raises for an item.
        """
        paths = [Path(p) for p in items]
        total = len(paths)
        result = DeletionResult()

        for done, path in enumerate(paths, 1):
            error = self._delete_one(path)
            if error is None:
                result.success += 1
                result.deleted.append(path)
            else:
                result.failed += 1
                result.errors.append(f"{path}: {error}")
                log.debug("Failed to trash %s: %s", path, error)
            if on_progress is not None:
                on_progress(done, total)

        log.info("Moved %d of %d items to trash (%d failed)", result.success, total, result.failed)
        return result

    def _delete_one(self, path: Path) -> str | None:
        if not os.path.lexists(path):
            return "No such file or directory"
        if self._in_trash(path):
            return "Item is already in the trash"
        try:
            self._trash(str(path))
        except OSError as e:
            return e.strerror or str(e)
        except Exception as e:
            log.exception("Trash failed for %s", path)
            return str(e) or type(e).__name__
        return None

    def _in_trash(self, path: Path) -> bool:
        key = os.path.abspath(str(path))
        return any(key == d or key.startswith(d + os.sep) for d in self._trash_dirs)
