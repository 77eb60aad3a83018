"""Path classification into cleanup categories and file-type buckets.

Classification is a pure function of the path and a
:class:`ClassificationContext`. Cleanup categories come from a fixed table
of well-known locations; when several prefixes match, the longest one
wins so nested locations (``~/.cache/mozilla``) beat their parents
(``~/.cache``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from reclaim.models.category import Category, FileType
from reclaim.utils import xdg_cache_home, xdg_data_home, xdg_state_home

# Home-relative locations. Order does not matter: the longest match wins.
_HOME_LOCATIONS: tuple[tuple[str, Category], ...] = (
    # macOS
    ("Library/Caches", Category.USER_CACHES),
    ("Library/Caches/com.apple.Safari", Category.BROWSER_CACHES),
    ("Library/Caches/Google/Chrome", Category.BROWSER_CACHES),
    ("Library/Caches/Firefox", Category.BROWSER_CACHES),
    ("Library/Caches/Mozilla", Category.BROWSER_CACHES),
    ("Library/Caches/BraveSoftware", Category.BROWSER_CACHES),
    ("Library/Caches/Microsoft Edge", Category.BROWSER_CACHES),
    ("Library/Caches/com.operasoftware.Opera", Category.BROWSER_CACHES),
    ("Library/Caches/pip", Category.DEVELOPER_TOOLS),
    ("Library/Caches/Yarn", Category.DEVELOPER_TOOLS),
    ("Library/Caches/CocoaPods", Category.DEVELOPER_TOOLS),
    ("Library/Caches/Homebrew", Category.DEVELOPER_TOOLS),
    ("Library/Caches/com.apple.dt.Xcode", Category.DEVELOPER_TOOLS),
    ("Library/Developer/Xcode/DerivedData", Category.DEVELOPER_TOOLS),
    ("Library/Developer/Xcode/Archives", Category.DEVELOPER_TOOLS),
    ("Library/Developer/Xcode/iOS DeviceSupport", Category.DEVELOPER_TOOLS),
    ("Library/Developer/CoreSimulator/Caches", Category.DEVELOPER_TOOLS),
    ("Library/Logs", Category.LOGS),
    (".Trash", Category.TRASH),
    # Tool caches living directly in the home directory
    (".npm/_cacache", Category.DEVELOPER_TOOLS),
    (".gradle/caches", Category.DEVELOPER_TOOLS),
    (".m2/repository", Category.DEVELOPER_TOOLS),
    (".cargo/registry", Category.DEVELOPER_TOOLS),
    (".nuget/packages", Category.DEVELOPER_TOOLS),
)

# Relative to XDG_CACHE_HOME.
_CACHE_LOCATIONS: tuple[tuple[str, Category], ...] = (
    ("", Category.USER_CACHES),
    ("mozilla", Category.BROWSER_CACHES),
    ("google-chrome", Category.BROWSER_CACHES),
    ("chromium", Category.BROWSER_CACHES),
    ("BraveSoftware", Category.BROWSER_CACHES),
    ("microsoft-edge", Category.BROWSER_CACHES),
    ("opera", Category.BROWSER_CACHES),
    ("vivaldi", Category.BROWSER_CACHES),
    ("epiphany", Category.BROWSER_CACHES),
    ("pip", Category.DEVELOPER_TOOLS),
    ("pypoetry", Category.DEVELOPER_TOOLS),
    ("uv", Category.DEVELOPER_TOOLS),
    ("yarn", Category.DEVELOPER_TOOLS),
    ("pnpm", Category.DEVELOPER_TOOLS),
    ("go-build", Category.DEVELOPER_TOOLS),
    ("JetBrains", Category.DEVELOPER_TOOLS),
    ("ms-playwright", Category.DEVELOPER_TOOLS),
    ("Cypress", Category.DEVELOPER_TOOLS),
    ("electron-builder", Category.DEVELOPER_TOOLS),
)

# Absolute system locations.
_SYSTEM_LOCATIONS: tuple[tuple[str, Category], ...] = (
    ("/var/log", Category.LOGS),
    ("/Library/Logs", Category.LOGS),
    ("/Library/Caches", Category.USER_CACHES),
)

_EXTENSIONS: dict[FileType, frozenset[str]] = {
    FileType.DOCUMENT: frozenset({
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "rtf", "odt",
        "ods", "odp", "csv", "md", "pages", "numbers", "key", "epub",
    }),
    FileType.IMAGE: frozenset({
        "jpg", "jpeg", "png", "gif", "bmp", "tiff", "tif", "webp", "svg", "ico",
        "raw", "heic", "heif", "psd", "cr2", "nef", "dng",
    }),
    FileType.VIDEO: frozenset({
        "mp4", "avi", "mkv", "mov", "wmv", "flv", "webm", "m4v", "mpeg", "mpg", "3gp",
    }),
    FileType.AUDIO: frozenset({
        "mp3", "wav", "flac", "aac", "ogg", "wma", "m4a", "opus", "aiff",
    }),
    FileType.ARCHIVE: frozenset({
        "zip", "rar", "7z", "tar", "gz", "tgz", "bz2", "xz", "zst", "iso", "dmg",
        "pkg", "deb", "rpm", "cab", "jar",
    }),
}


@dataclass(frozen=True)
class ClassificationContext:
    """Well-known per-user directories classification is relative to."""

    home: Path
    cache_home: Path
    data_home: Path
    state_home: Path
    _table: tuple[tuple[str, Category], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        table: list[tuple[str, Category]] = []
        for rel, category in _HOME_LOCATIONS:
            table.append((_join(self.home, rel), category))
        for rel, category in _CACHE_LOCATIONS:
            table.append((_join(self.cache_home, rel), category))
        table.append((_join(self.data_home, "Trash"), Category.TRASH))
        table.append((_join(self.state_home, "log"), Category.LOGS))
        for prefix, category in _SYSTEM_LOCATIONS:
            table.append((os.path.normpath(prefix), category))
        # Longest prefix first; ties broken by text for a stable order.
        table.sort(key=lambda item: (-len(item[0]), item[0]))
        object.__setattr__(self, "_table", tuple(table))

    @classmethod
    def from_environment(cls) -> ClassificationContext:
        """Build a context from ``$HOME`` and the XDG variables.

        Raises:
            RuntimeError: If the home directory cannot be determined.
        """
        return cls(
            home=Path.home(),
            cache_home=xdg_cache_home(),
            data_home=xdg_data_home(),
            state_home=xdg_state_home(),
        )

    @property
    def locations(self) -> tuple[tuple[str, Category], ...]:
        """(prefix, category) pairs, most specific first."""
        return self._table

    def roots_for(self, category: Category) -> list[Path]:
        """Existing per-user directories a cleaner scan walks for *category*.

        System-wide locations classify paths but are never scan roots.
        """
        system = {os.path.normpath(prefix) for prefix, _ in _SYSTEM_LOCATIONS}
        roots = sorted({Path(prefix) for prefix, cat in self._table if cat is category and prefix not in system})
        return [r for r in roots if r.is_dir()]


def _join(base: Path, rel: str) -> str:
    return os.path.normpath(os.path.join(str(base), rel)) if rel else os.path.normpath(str(base))


def _matches(path: str, prefix: str) -> bool:
    if path == prefix:
        return True
    if prefix == os.sep:
        return True
    return path.startswith(prefix + os.sep)


def classify(path: Path | str, context: ClassificationContext) -> Category:
    """Map *path* to a cleanup category. Never fails."""
    normalized = os.path.normpath(os.path.expanduser(str(path)))
    for prefix, category in context.locations:
        if _matches(normalized, prefix):
            return category
    return Category.UNCATEGORIZED


def file_type(path: Path | str, extension: str | None = None) -> FileType:
    """Map a file to its type bucket by extension. Never fails."""
    if extension is None:
        extension = os.path.splitext(str(path))[1]
    ext = extension.lower().lstrip(".")
    if not ext:
        return FileType.OTHER
    for bucket, extensions in _EXTENSIONS.items():
        if ext in extensions:
            return bucket
    return FileType.OTHER
