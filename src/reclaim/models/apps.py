"""Installed application and leftover dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from reclaim.models.category import LeftoverType
from reclaim.models.clean_result import DeletionResult


@dataclass(frozen=True, slots=True)
class AppInfo:
    """Installed application."""

    name: str
    bundle_identifier: str
    path: Path


@dataclass(frozen=True, slots=True)
class LeftoverItem:
    """File or directory an application left outside its bundle."""

    path: Path
    size: int
    type: LeftoverType

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(slots=True)
class UninstallResult:
    """Outcome of removing an application and its leftovers.

    ``requires_manual_removal`` is set when the bundle lives in a protected
    install location; the caller must direct the user to remove it.
    """

    app: AppInfo
    deletion: DeletionResult = field(default_factory=DeletionResult)
    requires_manual_removal: bool = False
