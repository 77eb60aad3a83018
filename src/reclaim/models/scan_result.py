"""Scan result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from reclaim.models.category import Category, FileType


@dataclass(frozen=True, slots=True)
class ScanEntry:
    """Single file or directory produced by the walker.

    ``size`` is the file size, or the recursive total for a directory.
    ``modified_at`` is a POSIX timestamp.
    """

    path: Path
    name: str
    size: int
    is_dir: bool
    modified_at: float
    category: Category = Category.UNCATEGORIZED
    file_type: FileType = FileType.OTHER


@dataclass(slots=True)
class CleanableItem:
    """Scan entry offered for cleaning."""

    entry: ScanEntry
    selected: bool = True

    @property
    def path(self) -> Path:
        return self.entry.path

    @property
    def size(self) -> int:
        return self.entry.size


@dataclass(slots=True)
class CleanableCategory:
    """Named group of cleanable items."""

    category: Category
    items: list[CleanableItem] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(item.size for item in self.items)

    @property
    def selected_size(self) -> int:
        return sum(item.size for item in self.items if item.selected)

    @property
    def selected_items(self) -> list[CleanableItem]:
        return [item for item in self.items if item.selected]


@dataclass(slots=True)
class WalkStats:
    """Outcome of one directory walk."""

    files: int = 0
    directories: int = 0
    total_bytes: int = 0
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False
