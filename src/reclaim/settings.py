"""JSON-backed user settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from reclaim.models.category import Category
from reclaim.utils import default_user_dirs, xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "reclaim"
_SETTINGS_FILE = "settings.json"

DEFAULT_LARGE_FILE_MIN_SIZE = 100 * 1024 * 1024


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("large_files.min_size")  # reads data["large_files"]["min_size"]
        settings.set("scan.excluded_paths", ["~/VMs"])  # writes + saves

    Nothing is written until the first :meth:`set`. A missing or corrupt
    file reads as empty, so every getter falls back to its default.
    """

    _instance: Settings | None = None

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @classmethod
    def instance(cls) -> Settings:
        """Return the singleton settings instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    # ── typed accessors ─────────────────────────────────────────────────

    def enabled_categories(self) -> list[Category]:
        """Cleaner categories to scan; every category except the trash by default."""
        raw = self.get("cleaner.enabled_categories")
        if not isinstance(raw, list):
            return [c for c in Category.cleanable() if c is not Category.TRASH]
        categories = []
        for value in raw:
            try:
                category = Category(value)
            except ValueError:
                log.warning("Ignoring unknown category in settings: %r", value)
                continue
            if category is not Category.UNCATEGORIZED and category not in categories:
                categories.append(category)
        return categories

    def large_file_min_size(self) -> int:
        value = self.get("large_files.min_size")
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return DEFAULT_LARGE_FILE_MIN_SIZE

    def excluded_paths(self) -> list[Path]:
        raw = self.get("scan.excluded_paths", [])
        if not isinstance(raw, list):
            return []
        return [Path(p).expanduser() for p in raw if isinstance(p, str) and p]

    def duplicate_roots(self) -> list[Path]:
        """Directories searched for duplicates; the existing user folders by default."""
        raw = self.get("duplicates.roots")
        if not isinstance(raw, list):
            return default_user_dirs()
        return [Path(p).expanduser() for p in raw if isinstance(p, str) and p]

    def _load(self) -> None:
        """Load settings from disk, gracefully handling errors."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return
        if isinstance(data, dict):
            self._data = data
        else:
            log.warning("Ignoring settings file %s: not a JSON object", self._path)

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)
