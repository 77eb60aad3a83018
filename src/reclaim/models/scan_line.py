"""Base scan line interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from reclaim.models.category import Category
from reclaim.models.scan_result import ScanEntry

if TYPE_CHECKING:
    from reclaim.core.classifier import ClassificationContext

log = logging.getLogger(__name__)

FinalizeProgress = Callable[[float, str], None]  # (fraction, status)
FinalizeError = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class ScanTarget:
    """Labelled set of roots walked as one unit of a scan."""

    label: str
    roots: tuple[Path, ...]
    category: Category = Category.UNCATEGORIZED


@dataclass(slots=True)
class WalkOptions:
    """Knobs for a single directory walk.

    ``max_emit_depth`` limits which entries are reported (the root's
    children are depth 1); sizes are always complete. ``prune`` removes a
    subtree from both emission and size totals.
    """

    max_emit_depth: int | None = None
    emit_hidden: bool = True
    files_only: bool = False
    follow_symlinks: bool = False
    prune: Callable[[Path], bool] | None = None


def is_within(path: Path, roots: set[Path]) -> bool:
    """Check whether *path* is one of *roots* or lies beneath one of them."""
    if path in roots:
        return True
    return any(parent in roots for parent in path.parents)


class ScanLine(ABC):
    """One independent kind of scan (cleaner, large files, duplicates, ...).

    A :class:`~reclaim.core.session.ScanSession` drives a line: it asks for
    the targets, walks every root of every target in order, hands each
    entry to :meth:`collect` and publishes whatever :meth:`finish_target`
    and :meth:`finalize` return.
    """

    finalize_weight: float = 0.0
    """Share of the progress bar reserved for :meth:`finalize` (0..1)."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique identifier, e.g. 'cleaner'."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name, e.g. 'Storage Cleaner'."""

    @abstractmethod
    def targets(self, context: ClassificationContext) -> list[ScanTarget]:
        """Resolve what to walk. Raise ScanStartError if that is impossible."""

    def walk_options(self, target: ScanTarget, root: Path, context: ClassificationContext) -> WalkOptions:
        """Walk options for one root of *target*."""
        return WalkOptions()

    @abstractmethod
    def collect(self, target: ScanTarget, entry: ScanEntry) -> Any | None:
        """Turn a walker entry into a buffered item, or None to drop it."""

    def finish_target(self, target: ScanTarget, items: list[Any]) -> list[Any]:
        """Build the batch published once every root of *target* is walked."""
        return items

    def finalize(
        self,
        items: list[Any],
        check: Callable[[], bool],
        on_progress: FinalizeProgress,
        on_error: FinalizeError,
    ) -> list[Any]:
        """Post-process everything collected; the return value is published last."""
        return []

    def remove_paths(self, results: list[Any], paths: set[Path]) -> list[Any]:
        """Return *results* without the items at (or beneath) *paths*."""
        return [r for r in results if not is_within(r.path, paths)]
