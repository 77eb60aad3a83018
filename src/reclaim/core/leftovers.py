"""Installed application discovery and leftover lookup for the uninstaller."""

from __future__ import annotations

import configparser
import logging
import os
import plistlib
from pathlib import Path

from reclaim.core.deletion import DeletionExecutor
from reclaim.core.sizes import SizeCache
from reclaim.models.apps import AppInfo, LeftoverItem, UninstallResult
from reclaim.models.category import LeftoverType
from reclaim.utils import xdg_cache_home, xdg_config_home, xdg_data_home, xdg_state_home

log = logging.getLogger(__name__)

# Bundles here can only be removed by the user with elevated rights.
PROTECTED_LOCATIONS = (
    Path("/Applications"),
    Path("/System"),
    Path("/usr"),
    Path("/opt"),
    Path("/snap"),
    Path("/var/lib/flatpak"),
)

_MIN_NAME_MATCH = 4
_SEPARATORS = (".", "-", "_")
_TYPE_ORDER = {t: i for i, t in enumerate(LeftoverType)}


def leftover_roots(home: Path | None = None) -> list[tuple[Path, LeftoverType]]:
    """Well-known per-user locations applications write to, with the leftover type."""
    home = home or Path.home()
    library = home / "Library"
    return [
        (library / "Caches", LeftoverType.CACHE),
        (library / "Preferences", LeftoverType.PREFERENCE),
        (library / "Application Support", LeftoverType.SUPPORT_FILE),
        (library / "Logs", LeftoverType.LOG),
        (library / "Containers", LeftoverType.OTHER),
        (library / "Saved Application State", LeftoverType.OTHER),
        (xdg_cache_home(), LeftoverType.CACHE),
        (xdg_config_home(), LeftoverType.PREFERENCE),
        (xdg_data_home(), LeftoverType.SUPPORT_FILE),
        (xdg_state_home(), LeftoverType.LOG),
        (home / ".var" / "app", LeftoverType.OTHER),
    ]


def is_protected_location(path: Path | str) -> bool:
    """Whether *path* is inside a system-managed install location."""
    p = Path(os.path.abspath(str(path)))
    return any(p == loc or loc in p.parents for loc in PROTECTED_LOCATIONS)


def _normalize(text: str) -> str:
    return "".join(text.lower().split())


def _strip_suffix(name: str) -> str:
    for suffix in (".plist", ".savedState", ".log", ".desktop"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def _matches_key(name: str, key: str) -> bool:
    if not key:
        return False
    if len(key) >= _MIN_NAME_MATCH:
        return key in name
    # Short keys like "mc" or "vim" would hit "mcfly" or "nvim".
    return name == key or any(name.startswith(key + sep) for sep in _SEPARATORS)


def matches_app(entry_name: str, app: AppInfo) -> bool:
    """Whether a file or directory name plausibly belongs to *app*.

    Matches on the bundle identifier or the display name, with case and
    spaces ignored. Keys of four or more characters may appear anywhere in
    the entry name; shorter ones must be the whole name or its first
    ".", "-" or "_" separated part.
    """
    name = _normalize(_strip_suffix(entry_name))
    if not name:
        return False
    return _matches_key(name, _normalize(app.bundle_identifier)) or _matches_key(name, _normalize(app.name))


class AppLeftoverResolver:
    """Finds files an application leaves outside its bundle. Read-only."""

    def __init__(self, sizes: SizeCache | None = None, home: Path | None = None) -> None:
        self._sizes = sizes or SizeCache()
        self._home = home

    def find_leftovers(self, app: AppInfo) -> list[LeftoverItem]:
        """Search the well-known roots for entries matching *app*.

        Returns an empty list when nothing matches or no root exists.
        """
        bundle_path = os.path.abspath(str(app.path))
        found: dict[str, LeftoverItem] = {}

        for root, ltype in leftover_roots(self._home):
            try:
                children = sorted(root.iterdir())
            except OSError:
                continue
            for child in children:
                key = os.path.abspath(str(child))
                if key == bundle_path or key in found:
                    continue
                if not matches_app(child.name, app):
                    continue
                size = self._sizes.size_of(child)
                if size is None:
                    log.debug("Cannot size leftover: %s", child)
                    continue
                found[key] = LeftoverItem(path=child, size=size, type=ltype)

        leftovers = sorted(found.values(), key=lambda i: (_TYPE_ORDER[i.type], str(i.path)))
        log.info("Found %d leftovers for %s", len(leftovers), app.name)
        return leftovers

    def remove_app(
        self,
        app: AppInfo,
        executor: DeletionExecutor,
        include_leftovers: bool = True,
        leftovers: list[LeftoverItem] | None = None,
    ) -> UninstallResult:
        """Trash an application's leftovers and, when allowed, its bundle.

        A bundle in a protected location is left alone and the result asks
        the caller to have the user remove it manually.
        """
        paths: list[Path] = []
        if include_leftovers:
            if leftovers is None:
                leftovers = self.find_leftovers(app)
            paths.extend(item.path for item in leftovers)

        protected = is_protected_location(app.path)
        if not protected:
            paths.append(app.path)

        result = UninstallResult(app=app, requires_manual_removal=protected)
        result.deletion = executor.delete(paths)
        return result


def list_installed_apps(search_dirs: list[Path] | None = None) -> list[AppInfo]:
    """List applications from ``.app`` bundles and XDG ``.desktop`` entries.

    Args:
        search_dirs: Directories to look in. Defaults to ``/Applications``,
            ``~/Applications`` and the XDG ``applications`` directories.
    """
    if search_dirs is None:
        search_dirs = _default_app_dirs()

    apps: dict[str, AppInfo] = {}
    for directory in search_dirs:
        try:
            children = sorted(directory.iterdir())
        except OSError:
            continue
        for child in children:
            if child.suffix == ".app" and child.is_dir():
                app = _read_bundle(child)
            elif child.suffix == ".desktop" and child.is_file():
                app = _read_desktop_entry(child)
            else:
                continue
            if app is not None and app.bundle_identifier not in apps:
                apps[app.bundle_identifier] = app

    return sorted(apps.values(), key=lambda a: a.name.lower())


def _default_app_dirs() -> list[Path]:
    dirs = [Path("/Applications"), Path.home() / "Applications", xdg_data_home() / "applications"]
    data_dirs = os.environ.get("XDG_DATA_DIRS", "/usr/local/share:/usr/share")
    dirs.extend(Path(d) / "applications" for d in data_dirs.split(":") if d)
    return dirs


def _read_bundle(path: Path) -> AppInfo | None:
    """Read name and identifier from a macOS bundle's Info.plist."""
    info = path / "Contents" / "Info.plist"
    identifier = ""
    name = path.stem
    try:
        with info.open("rb") as f:
            data = plistlib.load(f)
        identifier = str(data.get("CFBundleIdentifier", ""))
        name = str(data.get("CFBundleDisplayName") or data.get("CFBundleName") or name)
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        log.debug("Cannot read %s: %s", info, e)
    return AppInfo(name=name, bundle_identifier=identifier or path.stem, path=path)


def _read_desktop_entry(path: Path) -> AppInfo | None:
    """Read a freedesktop ``.desktop`` file; the desktop-file id is the identifier."""
    parser = configparser.RawConfigParser(strict=False, interpolation=None)
    parser.optionxform = str  # type: ignore[assignment]
    try:
        parser.read(path, encoding="utf-8")
    except (configparser.Error, OSError, UnicodeDecodeError) as e:
        log.debug("Cannot parse %s: %s", path, e)
        return None
    if not parser.has_section("Desktop Entry"):
        return None
    section = parser["Desktop Entry"]
    if section.get("Type", "Application") != "Application" or section.get("NoDisplay", "false") == "true":
        return None
    name = section.get("Name", path.stem)
    return AppInfo(name=name, bundle_identifier=path.stem, path=path)
