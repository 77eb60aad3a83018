"""Shared test fixtures."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from reclaim.core.classifier import ClassificationContext
from reclaim.core.engine import ReclaimEngine
from reclaim.settings import Settings


@pytest.fixture
def fake_home(tmp_path, monkeypatch):
    """Point HOME and every XDG base directory into a temp tree."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", staticmethod(lambda: home))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / ".local" / "share"))
    monkeypatch.setenv("XDG_STATE_HOME", str(home / ".local" / "state"))
    monkeypatch.setattr(Settings, "_instance", None)
    return home


@pytest.fixture
def context(fake_home):
    return ClassificationContext.from_environment()


@pytest.fixture
def settings(tmp_path):
    return Settings(path=tmp_path / "settings" / "settings.json")


@pytest.fixture
def trash_bin(tmp_path):
    """A trash function that moves items into a temp directory, plus what it moved."""
    bin_dir = tmp_path / "trash-bin"
    bin_dir.mkdir()
    moved: list[str] = []

    def trash(path: str) -> None:
        target = bin_dir / f"{len(moved)}-{os.path.basename(path)}"
        shutil.move(path, target)
        moved.append(path)

    trash.moved = moved  # type: ignore[attr-defined]
    return trash


@pytest.fixture
def engine(context, settings, trash_bin):
    return ReclaimEngine(context=context, settings=settings, trash=trash_bin)


@pytest.fixture
def make_file():
    """Create a file with the given content (or size) and optional mtime."""

    def _make(path: Path, content: bytes | int = b"x", mtime: float | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, int):
            with path.open("wb") as f:
                f.truncate(content)
        else:
            path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _make
