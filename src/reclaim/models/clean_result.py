"""Deletion result dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class DeletionResult:
    """Result of moving a batch of items to the trash."""

    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    deleted: list[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success + self.failed
