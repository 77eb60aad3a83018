"""Recursive directory traversal with cooperative cancellation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from reclaim.core.classifier import ClassificationContext, classify, file_type
from reclaim.core.sizes import SizeCache
from reclaim.models.category import FileType
from reclaim.models.scan_line import WalkOptions
from reclaim.models.scan_result import ScanEntry, WalkStats
from reclaim.utils import is_hidden

log = logging.getLogger(__name__)

EntryCallback = Callable[[ScanEntry], None]
ChildCallback = Callable[[str, int, int], None]  # (child_name, done, total)


class PathAccessChecker:
    """Decides whether a scan root may be read at all.

    The default asks the OS. Hosts with their own permission bookkeeping
    (sandbox grants, user-approved folders) pass a subclass.
    """

    def can_read(self, path: Path) -> bool:
        mode = os.R_OK | os.X_OK if path.is_dir() else os.R_OK
        return os.access(path, mode)


@dataclass(slots=True)
class _Frame:
    path: str
    real: str
    depth: int
    hidden: bool
    modified_at: float
    children: list[os.DirEntry] = field(default_factory=list)
    index: int = 0
    total: int = 0
    pruned: bool = False


def _describe(path: str, exc: OSError) -> str:
    return f"{path}: {exc.strerror or exc}"


def _list_dir(path: str) -> list[os.DirEntry]:
    with os.scandir(path) as it:
        return sorted(it, key=lambda e: e.name)


class DirectoryWalker:
    """Depth-first walker that reports one :class:`ScanEntry` per entry.

    Directories are reported after their contents, carrying the
    recursive size. Unreadable entries are recorded in
    ``WalkStats.errors`` and skipped.
    """

    def __init__(
        self,
        context: ClassificationContext,
        sizes: SizeCache | None = None,
        access: PathAccessChecker | None = None,
    ) -> None:
        self.context = context
        self.sizes = sizes
        self.access = access or PathAccessChecker()

    def walk(
        self,
        root: Path | str,
        check: Callable[[], bool],
        on_entry: EntryCallback,
        options: WalkOptions | None = None,
        on_child: ChildCallback | None = None,
    ) -> WalkStats:
        """Walk *root* and report entries through *on_entry*.

        Args:
            root: Directory (or single file) to walk.
            check: Polled before each directory and after each child; once it
                returns False the walk stops and returns partial stats.
            on_entry: Receives every emitted entry.
            options: Emission and traversal options.
            on_child: Progress over the root's immediate children.

        Returns:
            Counters, soft errors and whether the walk was cancelled.
        """
        options = options or WalkOptions()
        stats = WalkStats()
        # Totals of pruned or symlink-following walks differ from a plain size.
        cacheable = self.sizes is not None and not options.follow_symlinks
        root_path = Path(root)
        root_str = os.path.abspath(str(root_path))

        try:
            readable = self.access.can_read(root_path)
        except OSError as e:
            stats.errors.append(_describe(root_str, e))
            return stats
        if not readable:
            stats.errors.append(f"{root_str}: access denied")
            return stats

        try:
            st = os.stat(root_str)
        except OSError as e:
            stats.errors.append(_describe(root_str, e))
            return stats

        if not os.path.isdir(root_str):
            stats.files = 1
            stats.total_bytes = st.st_size
            on_entry(self._entry(root_str, st.st_size, False, st.st_mtime))
            return stats

        if not check():
            stats.cancelled = True
            return stats

        try:
            children = _list_dir(root_str)
        except OSError as e:
            stats.errors.append(_describe(root_str, e))
            return stats

        frames = [
            _Frame(
                path=root_str,
                real=os.path.realpath(root_str),
                depth=0,
                hidden=False,
                modified_at=st.st_mtime,
                children=children,
            )
        ]

        while frames:
            frame = frames[-1]

            if frame.index >= len(frame.children):
                frames.pop()
                stats.directories += 1
                if cacheable and not frame.pruned:
                    self.sizes.store(frame.path, frame.total)
                if not frames:
                    break
                parent = frames[-1]
                parent.total += frame.total
                parent.pruned = parent.pruned or frame.pruned
                if self._should_emit_dir(frame.depth, frame.hidden, options):
                    on_entry(self._entry(frame.path, frame.total, True, frame.modified_at))
                if not self._after_child(parent, os.path.basename(frame.path), check, on_child):
                    stats.cancelled = True
                    return stats
                continue

            child = frame.children[frame.index]
            frame.index += 1
            depth = frame.depth + 1
            hidden = frame.hidden or is_hidden(child.name)

            if options.prune is not None and options.prune(Path(child.path)):
                frame.pruned = True
                if not self._after_child(frame, child.name, check, on_child):
                    stats.cancelled = True
                    return stats
                continue

            pushed = self._visit(child, frame, frames, depth, hidden, options, stats, check, on_entry)
            if pushed is None:
                stats.cancelled = True
                return stats
            if not pushed and not self._after_child(frame, child.name, check, on_child):
                stats.cancelled = True
                return stats

        return stats

    def _visit(
        self,
        child: os.DirEntry,
        frame: _Frame,
        frames: list[_Frame],
        depth: int,
        hidden: bool,
        options: WalkOptions,
        stats: WalkStats,
        check: Callable[[], bool],
        on_entry: EntryCallback,
    ) -> bool | None:
        """Handle one child. Returns True if a directory frame was pushed,
        False if the child is done, None if the walk was cancelled."""
        follow = options.follow_symlinks
        try:
            is_link = child.is_symlink()
            if is_link and not follow:
                log.debug("Skipping symlink: %s", child.path)
                return False
            is_dir = child.is_dir(follow_symlinks=follow)
            st = child.stat(follow_symlinks=follow)
        except OSError as e:
            log.debug("Cannot stat %s: %s", child.path, e)
            stats.errors.append(_describe(child.path, e))
            return False

        if not is_dir:
            frame.total += st.st_size
            stats.files += 1
            stats.total_bytes += st.st_size
            if self._should_emit(depth, hidden, options):
                on_entry(self._entry(child.path, st.st_size, False, st.st_mtime))
            return False

        real = os.path.realpath(child.path) if is_link else os.path.join(frame.real, child.name)
        if is_link and any(f.real == real for f in frames):
            log.debug("Skipping symlink cycle: %s -> %s", child.path, real)
            stats.errors.append(f"{child.path}: symlink cycle")
            return False

        if not check():
            return None

        try:
            children = _list_dir(child.path)
        except OSError as e:
            log.debug("Cannot read directory %s: %s", child.path, e)
            stats.errors.append(_describe(child.path, e))
            return False

        frames.append(
            _Frame(
                path=child.path,
                real=real,
                depth=depth,
                hidden=hidden,
                modified_at=st.st_mtime,
                children=children,
            )
        )
        return True

    @staticmethod
    def _after_child(
        frame: _Frame,
        name: str,
        check: Callable[[], bool],
        on_child: ChildCallback | None,
    ) -> bool:
        if frame.depth == 0 and on_child is not None:
            on_child(name, frame.index, len(frame.children))
        return check()

    @staticmethod
    def _should_emit(depth: int, hidden: bool, options: WalkOptions) -> bool:
        if hidden and not options.emit_hidden:
            return False
        return options.max_emit_depth is None or depth <= options.max_emit_depth

    def _should_emit_dir(self, depth: int, hidden: bool, options: WalkOptions) -> bool:
        return not options.files_only and self._should_emit(depth, hidden, options)

    def _entry(self, path: str, size: int, is_dir: bool, modified_at: float) -> ScanEntry:
        return ScanEntry(
            path=Path(path),
            name=os.path.basename(path),
            size=size,
            is_dir=is_dir,
            modified_at=modified_at,
            category=classify(path, self.context),
            file_type=FileType.OTHER if is_dir else file_type(path),
        )
