"""Duplicate group dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from reclaim.models.category import FileType
from reclaim.models.scan_result import ScanEntry


@dataclass(slots=True)
class DuplicateFile:
    """One member of a duplicate group."""

    entry: ScanEntry
    is_original: bool = False
    selected: bool = False

    @property
    def path(self) -> Path:
        return self.entry.path


@dataclass(slots=True)
class DuplicateGroup:
    """Two or more files with identical content.

    Exactly one member is the original; every other member starts out
    selected for deletion.
    """

    fingerprint: str
    size: int
    file_type: FileType
    files: list[DuplicateFile] = field(default_factory=list)

    @property
    def original(self) -> DuplicateFile | None:
        return next((f for f in self.files if f.is_original), None)

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def duplicate_size(self) -> int:
        """Bytes reclaimable by keeping only one copy."""
        return self.size * max(0, len(self.files) - 1)

    @property
    def selected_count(self) -> int:
        return sum(1 for f in self.files if f.selected)

    @property
    def selected_size(self) -> int:
        return self.size * self.selected_count

    def select_duplicates(self) -> None:
        """Select every file except the original."""
        for f in self.files:
            f.selected = not f.is_original


@dataclass(slots=True)
class DuplicateReport:
    """Result of a duplicate search."""

    groups: list[DuplicateGroup] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def reclaimable_bytes(self) -> int:
        return sum(g.duplicate_size for g in self.groups)
