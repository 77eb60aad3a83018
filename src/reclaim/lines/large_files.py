"""Large files scan line."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Iterable

from reclaim.core.classifier import ClassificationContext
from reclaim.models.category import FileType
from reclaim.models.scan_line import ScanLine, ScanTarget, WalkOptions, is_within
from reclaim.models.scan_result import ScanEntry
from reclaim.utils import absolute_path

log = logging.getLogger(__name__)

DEFAULT_MIN_SIZE = 100 * 1024 * 1024  # 100 MiB


class LargeFileSort(str, Enum):
    SIZE_DESC = "size_desc"
    SIZE_ASC = "size_asc"
    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"
    NAME = "name"


_SORT_KEYS = {
    LargeFileSort.SIZE_DESC: lambda e: (-e.size, str(e.path)),
    LargeFileSort.SIZE_ASC: lambda e: (e.size, str(e.path)),
    LargeFileSort.DATE_DESC: lambda e: (-e.modified_at, str(e.path)),
    LargeFileSort.DATE_ASC: lambda e: (e.modified_at, str(e.path)),
    LargeFileSort.NAME: lambda e: (e.name.lower(), str(e.path)),
}


def sort_large_files(entries: Iterable[ScanEntry], order: LargeFileSort = LargeFileSort.SIZE_DESC) -> list[ScanEntry]:
    """Return *entries* in the requested order; ties fall back to the path."""
    return sorted(entries, key=_SORT_KEYS[order])


def filter_by_type(entries: Iterable[ScanEntry], file_type: FileType | None) -> list[ScanEntry]:
    """Keep entries of *file_type*; None keeps everything."""
    if file_type is None:
        return list(entries)
    return [e for e in entries if e.file_type is file_type]


class LargeFilesLine(ScanLine):
    """Finds regular files at or above a size threshold.

    Searches the home directory unless explicit roots are given.
    """

    id = "large_files"
    name = "Large Files"

    def __init__(
        self,
        roots: Iterable[Path | str] | None = None,
        min_size: int = DEFAULT_MIN_SIZE,
        excluded: Iterable[Path | str] = (),
    ) -> None:
        self.roots = tuple(absolute_path(r) for r in roots) if roots is not None else None
        self.min_size = min_size
        self.excluded = {absolute_path(p) for p in excluded}

    def targets(self, context: ClassificationContext) -> list[ScanTarget]:
        candidates = self.roots if self.roots is not None else (context.home,)
        roots = tuple(r for r in candidates if not is_within(r, self.excluded))
        if not roots:
            return []
        return [ScanTarget(label=self.name, roots=roots)]

    def walk_options(self, target: ScanTarget, root: Path, context: ClassificationContext) -> WalkOptions:
        excluded = self.excluded
        return WalkOptions(
            files_only=True,
            prune=(lambda path: path in excluded) if excluded else None,
        )

    def collect(self, target: ScanTarget, entry: ScanEntry) -> ScanEntry | None:
        if entry.is_dir or entry.size < self.min_size:
            return None
        return entry

    def finish_target(self, target: ScanTarget, items: list[ScanEntry]) -> list[ScanEntry]:
        log.info("Found %d files of at least %d bytes", len(items), self.min_size)
        return sort_large_files(items)
