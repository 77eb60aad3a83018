"""Engine facade tying scan sessions, leftovers and deletion together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

from reclaim.core.classifier import ClassificationContext
from reclaim.core.deletion import DeleteProgress, DeletionExecutor, TrashFunction
from reclaim.core.leftovers import AppLeftoverResolver, list_installed_apps
from reclaim.core.session import ScanSession, ScanStartError
from reclaim.core.sizes import SizeCache
from reclaim.core.walker import PathAccessChecker
from reclaim.lines.cleaner import CleanerLine
from reclaim.lines.disk_usage import DEFAULT_SUB_ITEM_MIN_SIZE, DiskUsageLine, list_sub_items
from reclaim.lines.duplicates import DuplicatesLine
from reclaim.lines.large_files import LargeFilesLine
from reclaim.models.apps import AppInfo, LeftoverItem, UninstallResult
from reclaim.models.category import Category
from reclaim.models.clean_result import DeletionResult
from reclaim.models.scan_line import ScanLine
from reclaim.models.scan_result import ScanEntry
from reclaim.settings import Settings

log = logging.getLogger(__name__)


class ReclaimEngine:
    """Creates independent scan sessions that share one size cache.

    Session callbacks are passed straight through to :class:`ScanSession`
    (``on_progress``, ``on_entry``, ``on_result``, ``on_complete``).
    """

    def __init__(
        self,
        context: ClassificationContext | None = None,
        settings: Settings | None = None,
        trash: TrashFunction | None = None,
        access: PathAccessChecker | None = None,
    ) -> None:
        self._context = context
        self.settings = settings or Settings.instance()
        self.sizes = SizeCache()
        self._trash = trash
        self._access = access

    @property
    def context(self) -> ClassificationContext:
        """Classification context, resolved from the environment on first use.

        Raises:
            ScanStartError: If the home directory cannot be determined.
        """
        if self._context is None:
            try:
                self._context = ClassificationContext.from_environment()
            except (RuntimeError, KeyError, OSError) as e:
                raise ScanStartError(f"Cannot resolve the home directory: {e}") from e
        return self._context

    # ── sessions ────────────────────────────────────────────────────────

    def session(self, line: ScanLine, **callbacks: Any) -> ScanSession:
        """Wrap *line* in a session bound to this engine's cache."""
        return ScanSession(
            line,
            context=lambda: self.context,
            sizes=self.sizes,
            access=self._access,
            **callbacks,
        )

    def cleaner_session(self, categories: Iterable[Category] | None = None, **callbacks: Any) -> ScanSession:
        if categories is None:
            categories = self.settings.enabled_categories()
        return self.session(CleanerLine(categories), **callbacks)

    def large_files_session(
        self,
        roots: Iterable[Path | str] | None = None,
        min_size: int | None = None,
        **callbacks: Any,
    ) -> ScanSession:
        if min_size is None:
            min_size = self.settings.large_file_min_size()
        line = LargeFilesLine(roots, min_size=min_size, excluded=self.settings.excluded_paths())
        return self.session(line, **callbacks)

    def duplicates_session(self, roots: Iterable[Path | str] | None = None, **callbacks: Any) -> ScanSession:
        if roots is None:
            roots = self.settings.duplicate_roots()
        return self.session(DuplicatesLine(roots, excluded=self.settings.excluded_paths()), **callbacks)

    def disk_usage_session(self, path: Path | str | None = None, **callbacks: Any) -> ScanSession:
        if path is None:
            path = self.context.home
        return self.session(DiskUsageLine(path), **callbacks)

    def sub_items(self, path: Path | str, min_size: int = DEFAULT_SUB_ITEM_MIN_SIZE) -> list[ScanEntry]:
        """Children of a cleanable directory, for expanding it in place."""
        return list_sub_items(path, self.context, sizes=self.sizes, min_size=min_size)

    # ── applications ────────────────────────────────────────────────────

    def list_apps(self, search_dirs: list[Path] | None = None) -> list[AppInfo]:
        return list_installed_apps(search_dirs)

    def find_leftovers(self, app: AppInfo) -> list[LeftoverItem]:
        return self._resolver().find_leftovers(app)

    def remove_app(
        self,
        app: AppInfo,
        include_leftovers: bool = True,
        leftovers: list[LeftoverItem] | None = None,
    ) -> UninstallResult:
        result = self._resolver().remove_app(app, self._executor(), include_leftovers, leftovers)
        for path in result.deletion.deleted:
            self.sizes.invalidate(path)
        return result

    # ── deletion ────────────────────────────────────────────────────────

    def delete(
        self,
        paths: Iterable[Path | str],
        on_progress: DeleteProgress | None = None,
        sessions: Iterable[ScanSession] = (),
    ) -> DeletionResult:
        """Move *paths* to the trash and forget them everywhere.

        Cached sizes of trashed paths (and their ancestors) are dropped,
        and trashed items are removed from the results of *sessions*.
        """
        result = self._executor().delete(paths, on_progress=on_progress)
        for path in result.deleted:
            self.sizes.invalidate(path)
        if result.deleted:
            for session in sessions:
                session.remove_paths(result.deleted)
        return result

    def _executor(self) -> DeletionExecutor:
        context = self.context
        trash_dirs = [context.home / ".Trash", context.data_home / "Trash"]
        return DeletionExecutor(trash=self._trash, trash_dirs=trash_dirs)

    def _resolver(self) -> AppLeftoverResolver:
        return AppLeftoverResolver(sizes=self.sizes, home=self.context.home)
