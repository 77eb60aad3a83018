"""Duplicate files scan line."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from reclaim.core.classifier import ClassificationContext
from reclaim.core.duplicates import DuplicateDetector
from reclaim.models.category import FileType
from reclaim.models.duplicates import DuplicateFile, DuplicateGroup
from reclaim.models.scan_line import FinalizeError, FinalizeProgress, ScanLine, ScanTarget, WalkOptions, is_within
from reclaim.models.scan_result import ScanEntry
from reclaim.utils import absolute_path

log = logging.getLogger(__name__)


class DuplicateSort(str, Enum):
    SIZE_DESC = "size_desc"
    SIZE_ASC = "size_asc"
    COUNT_DESC = "count_desc"
    COUNT_ASC = "count_asc"
    NAME = "name"


def _first_path(group: DuplicateGroup) -> str:
    return str(group.files[0].path) if group.files else ""


def _first_name(group: DuplicateGroup) -> str:
    return group.files[0].entry.name.lower() if group.files else ""


_SORT_KEYS = {
    DuplicateSort.SIZE_DESC: lambda g: (-g.duplicate_size, _first_path(g)),
    DuplicateSort.SIZE_ASC: lambda g: (g.duplicate_size, _first_path(g)),
    DuplicateSort.COUNT_DESC: lambda g: (-g.file_count, -g.duplicate_size, _first_path(g)),
    DuplicateSort.COUNT_ASC: lambda g: (g.file_count, -g.duplicate_size, _first_path(g)),
    DuplicateSort.NAME: lambda g: (_first_name(g), _first_path(g)),
}


def sort_groups(groups: Iterable[DuplicateGroup], order: DuplicateSort = DuplicateSort.SIZE_DESC) -> list[DuplicateGroup]:
    """Return *groups* in the requested order; ties fall back to the first path."""
    return sorted(groups, key=_SORT_KEYS[order])


def filter_groups(groups: Iterable[DuplicateGroup], file_type: FileType | None) -> list[DuplicateGroup]:
    """Keep groups of *file_type*; None keeps everything."""
    if file_type is None:
        return list(groups)
    return [g for g in groups if g.file_type is file_type]


class DuplicatesLine(ScanLine):
    """Collects regular files under the roots, then groups identical ones."""

    id = "duplicates"
    name = "Duplicate Files"
    finalize_weight = 0.5

    def __init__(
        self,
        roots: Iterable[Path | str],
        excluded: Iterable[Path | str] = (),
        detector: DuplicateDetector | None = None,
    ) -> None:
        self.roots = tuple(absolute_path(r) for r in roots)
        self.excluded = {absolute_path(p) for p in excluded}
        self.detector = detector or DuplicateDetector()

    def targets(self, context: ClassificationContext) -> list[ScanTarget]:
        roots = tuple(r for r in self.roots if not is_within(r, self.excluded))
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
        if entry.is_dir or entry.size <= 0:
            return None
        return entry

    def finish_target(self, target: ScanTarget, items: list[ScanEntry]) -> list[DuplicateGroup]:
        # Candidates are only published as groups, once hashing is done.
        return []

    def finalize(
        self,
        items: list[ScanEntry],
        check: Callable[[], bool],
        on_progress: FinalizeProgress,
        on_error: FinalizeError,
    ) -> list[DuplicateGroup]:
        def progress(hashed: int, total: int, name: str) -> None:
            on_progress(hashed / total if total else 1.0, f"Hashing/{name}")

        on_progress(0.0, "Comparing files...")
        report = self.detector.find_duplicates(items, check=check, on_progress=progress)
        for error in report.errors:
            on_error(error)
        if report.cancelled:
            return []
        return report.groups

    def remove_paths(self, results: list[DuplicateGroup], paths: set[Path]) -> list[DuplicateGroup]:
        kept = []
        for group in results:
            files = [f for f in group.files if not is_within(f.path, paths)]
            if len(files) < 2:
                continue
            if not any(f.is_original for f in files):
                # Members stay ordered oldest first; the next one takes over.
                files[0] = DuplicateFile(entry=files[0].entry, is_original=True, selected=False)
            kept.append(DuplicateGroup(fingerprint=group.fingerprint, size=group.size, file_type=group.file_type, files=files))
        return kept
