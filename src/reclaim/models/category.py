"""Classification enumerations."""

from __future__ import annotations

from enum import Enum


class Category(str, Enum):
    """Cleanup domain a path belongs to."""

    USER_CACHES = "user_caches"
    BROWSER_CACHES = "browser_caches"
    LOGS = "logs"
    DEVELOPER_TOOLS = "developer_tools"
    TRASH = "trash"
    UNCATEGORIZED = "uncategorized"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @property
    def description(self) -> str:
        return _CATEGORY_DESCRIPTIONS[self]

    @classmethod
    def cleanable(cls) -> list[Category]:
        """Categories a cleaner scan can walk (everything except the fallback)."""
        return [c for c in cls if c is not cls.UNCATEGORIZED]


_CATEGORY_LABELS = {
    Category.USER_CACHES: "User Caches",
    Category.BROWSER_CACHES: "Browser Caches",
    Category.LOGS: "Logs",
    Category.DEVELOPER_TOOLS: "Developer Tools",
    Category.TRASH: "Trash",
    Category.UNCATEGORIZED: "Uncategorized",
}

_CATEGORY_DESCRIPTIONS = {
    Category.USER_CACHES: "Application caches that are rebuilt on demand",
    Category.BROWSER_CACHES: "Cached web pages, scripts, and media",
    Category.LOGS: "Application and diagnostic log files",
    Category.DEVELOPER_TOOLS: "Build products, package caches, and simulator data",
    Category.TRASH: "Items already moved to the trash",
    Category.UNCATEGORIZED: "Paths outside every known cleanup location",
}


class FileType(str, Enum):
    """File-type bucket used by the large-files and duplicates views."""

    DOCUMENT = "document"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _FILE_TYPE_LABELS[self]


_FILE_TYPE_LABELS = {
    FileType.DOCUMENT: "Documents",
    FileType.IMAGE: "Images",
    FileType.VIDEO: "Videos",
    FileType.AUDIO: "Audio",
    FileType.ARCHIVE: "Archives",
    FileType.OTHER: "Other",
}


class LeftoverType(str, Enum):
    """Kind of file an application leaves behind."""

    CACHE = "cache"
    PREFERENCE = "preference"
    SUPPORT_FILE = "support_file"
    LOG = "log"
    OTHER = "other"


class ScanState(str, Enum):
    """Lifecycle of a scan session."""

    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
