"""Disk usage scan line and the synchronous sub-item helper."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from reclaim.core.classifier import ClassificationContext, classify, file_type
from reclaim.core.sizes import SizeCache
from reclaim.models.category import FileType
from reclaim.models.scan_line import ScanLine, ScanTarget, WalkOptions
from reclaim.models.scan_result import ScanEntry
from reclaim.utils import absolute_path, is_hidden

log = logging.getLogger(__name__)

DEFAULT_SUB_ITEM_MIN_SIZE = 100_000


def _by_size(entries: list[ScanEntry]) -> list[ScanEntry]:
    return sorted(entries, key=lambda e: (-e.size, e.name))


class DiskUsageLine(ScanLine):
    """Immediate non-hidden children of one directory with their full sizes.

    Drilling down into a child is a new line (and a new scan) on that child.
    """

    id = "disk_usage"
    name = "Disk Usage"

    def __init__(self, path: Path | str) -> None:
        self.path = absolute_path(path)

    def targets(self, context: ClassificationContext) -> list[ScanTarget]:
        return [ScanTarget(label=self.path.name or str(self.path), roots=(self.path,))]

    def walk_options(self, target: ScanTarget, root: Path, context: ClassificationContext) -> WalkOptions:
        return WalkOptions(max_emit_depth=1, emit_hidden=False)

    def collect(self, target: ScanTarget, entry: ScanEntry) -> ScanEntry | None:
        # A file passed as the root comes back as itself.
        if entry.path == self.path:
            return None
        return entry

    def finish_target(self, target: ScanTarget, items: list[ScanEntry]) -> list[ScanEntry]:
        return _by_size(items)


def list_sub_items(
    path: Path | str,
    context: ClassificationContext,
    sizes: SizeCache | None = None,
    min_size: int = DEFAULT_SUB_ITEM_MIN_SIZE,
) -> list[ScanEntry]:
    """List the children of a cleanable directory for expanding it in place.

    Hidden children and children not larger than *min_size* are left out.
    Returns an empty list if *path* cannot be read.
    """
    sizes = sizes if sizes is not None else SizeCache()
    try:
        with os.scandir(absolute_path(path)) as it:
            children = list(it)
    except OSError as e:
        log.debug("Cannot list %s: %s", path, e)
        return []

    entries: list[ScanEntry] = []
    for child in children:
        if is_hidden(child.name):
            continue
        try:
            if child.is_symlink():
                continue
            is_dir = child.is_dir(follow_symlinks=False)
            st = child.stat(follow_symlinks=False)
        except OSError:
            log.debug("Cannot stat: %s", child.path)
            continue
        size = sizes.size_of(child.path) if is_dir else st.st_size
        if size is None or size <= min_size:
            continue
        entries.append(
            ScanEntry(
                path=Path(child.path),
                name=child.name,
                size=size,
                is_dir=is_dir,
                modified_at=st.st_mtime,
                category=classify(child.path, context),
                file_type=FileType.OTHER if is_dir else file_type(child.name),
            )
        )
    return _by_size(entries)
