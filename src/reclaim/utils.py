"""Shared utility functions."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

log = logging.getLogger(__name__)

_SIZE_SUFFIXES = {"": 1, "B": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}


def xdg_cache_home() -> Path:
    """Return XDG_CACHE_HOME, defaulting to ~/.cache."""
    return Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def xdg_data_home() -> Path:
    """Return XDG_DATA_HOME, defaulting to ~/.local/share."""
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def xdg_state_home() -> Path:
    """Return XDG_STATE_HOME, defaulting to ~/.local/state."""
    return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))


def xdg_user_dir(key: str, fallback: str) -> Path:
    """Resolve an XDG user directory such as ``DOWNLOAD`` or ``PICTURES``.

    Reads ``XDG_<KEY>_DIR`` from ``~/.config/user-dirs.dirs`` and falls
    back to ``~/<fallback>``. The directory may not exist.
    """
    dirs_file = xdg_config_home() / "user-dirs.dirs"
    if dirs_file.is_file():
        try:
            text = dirs_file.read_text()
            match = re.search(rf'^XDG_{key}_DIR="(.+)"', text, re.MULTILINE)
            if match:
                return Path(match.group(1).replace("$HOME", str(Path.home())))
        except OSError:
            log.debug("Cannot read %s", dirs_file)
    return Path.home() / fallback


def default_user_dirs() -> list[Path]:
    """Existing personal directories worth searching for duplicates and large files."""
    candidates = [
        xdg_user_dir("DESKTOP", "Desktop"),
        xdg_user_dir("DOCUMENTS", "Documents"),
        xdg_user_dir("DOWNLOAD", "Downloads"),
        xdg_user_dir("PICTURES", "Pictures"),
        xdg_user_dir("MUSIC", "Music"),
        xdg_user_dir("VIDEOS", "Videos"),
        Path.home() / "Movies",
    ]
    seen: set[Path] = set()
    result: list[Path] = []
    for path in candidates:
        if path not in seen and path.is_dir():
            seen.add(path)
            result.append(path)
    return result


def absolute_path(path: Path | str) -> Path:
    """Expand ``~`` and make *path* absolute without resolving symlinks."""
    return Path(os.path.abspath(os.path.expanduser(str(path))))


def is_hidden(name: str) -> bool:
    """Dot-prefixed names are hidden."""
    return name.startswith(".")


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"


def parse_size(text: str) -> int:
    """Parse a size such as ``500K``, ``100M`` or ``2G`` into bytes.

    Raises:
        ValueError: If *text* is not a number with an optional unit suffix.
    """
    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([BKMGT]?)(?:I?B)?\s*", text.upper())
    if not match:
        raise ValueError(f"Invalid size: {text!r}")
    number, suffix = match.groups()
    return int(float(number) * _SIZE_SUFFIXES[suffix])


def format_relative_time(timestamp: float, now: float | None = None) -> str:
    """Format a POSIX timestamp as relative time ('2 hours ago')."""
    import time

    seconds = int((now if now is not None else time.time()) - timestamp)

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        m = seconds // 60
        return f"{m} minute{'s' if m != 1 else ''} ago"
    if seconds < 86400:
        h = seconds // 3600
        return f"{h} hour{'s' if h != 1 else ''} ago"
    d = seconds // 86400
    if d < 30:
        return f"{d} day{'s' if d != 1 else ''} ago"
    mo = d // 30
    if mo < 12:
        return f"{mo} month{'s' if mo != 1 else ''} ago"
    y = d // 365
    return f"{y} year{'s' if y != 1 else ''} ago"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"
