"""Storage cleaner scan line: cleanable items grouped by category."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from reclaim.core.classifier import ClassificationContext, classify
from reclaim.models.category import Category
from reclaim.models.scan_line import ScanLine, ScanTarget, WalkOptions, is_within
from reclaim.models.scan_result import CleanableCategory, CleanableItem, ScanEntry

log = logging.getLogger(__name__)


class CleanerLine(ScanLine):
    """Lists the immediate children of every known cache, log and trash root.

    A child that belongs to a more specific category (``~/.cache/mozilla``
    while scanning user caches) is left to that category's own target.
    """

    id = "cleaner"
    name = "Storage Cleaner"

    def __init__(self, categories: Iterable[Category] | None = None) -> None:
        if categories is None:
            categories = Category.cleanable()
        self.categories = [c for c in categories if c is not Category.UNCATEGORIZED]

    def targets(self, context: ClassificationContext) -> list[ScanTarget]:
        targets = []
        for category in self.categories:
            roots = context.roots_for(category)
            if not roots:
                log.debug("No roots for %s", category.label)
                continue
            targets.append(ScanTarget(label=category.label, roots=tuple(roots), category=category))
        return targets

    def walk_options(self, target: ScanTarget, root: Path, context: ClassificationContext) -> WalkOptions:
        category = target.category
        return WalkOptions(
            max_emit_depth=1,
            prune=lambda path: classify(path, context) is not category,
        )

    def collect(self, target: ScanTarget, entry: ScanEntry) -> CleanableItem | None:
        if entry.size <= 0:
            return None
        return CleanableItem(entry=entry)

    def finish_target(self, target: ScanTarget, items: list[CleanableItem]) -> list[CleanableCategory]:
        if not items:
            return []
        items.sort(key=lambda i: (-i.size, str(i.path)))
        return [CleanableCategory(category=target.category, items=items)]

    def remove_paths(self, results: list[CleanableCategory], paths: set[Path]) -> list[CleanableCategory]:
        kept = []
        for group in results:
            items = [i for i in group.items if not is_within(i.path, paths)]
            if items:
                kept.append(CleanableCategory(category=group.category, items=items))
        return kept
