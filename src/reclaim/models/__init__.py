"""Reclaim data models."""

from reclaim.models.apps import AppInfo, LeftoverItem, UninstallResult
from reclaim.models.category import Category, FileType, LeftoverType, ScanState
from reclaim.models.clean_result import DeletionResult
from reclaim.models.duplicates import DuplicateFile, DuplicateGroup, DuplicateReport
from reclaim.models.scan_line import ScanLine, ScanTarget, WalkOptions
from reclaim.models.scan_result import CleanableCategory, CleanableItem, ScanEntry, WalkStats

__all__ = [
    "AppInfo",
    "Category",
    "CleanableCategory",
    "CleanableItem",
    "DeletionResult",
    "DuplicateFile",
    "DuplicateGroup",
    "DuplicateReport",
    "FileType",
    "LeftoverItem",
    "LeftoverType",
    "ScanEntry",
    "ScanLine",
    "ScanState",
    "ScanTarget",
    "UninstallResult",
    "WalkOptions",
    "WalkStats",
]
