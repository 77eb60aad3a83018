"""Content-based duplicate detection.

Candidates are bucketed by ``(size, file type)`` first; only buckets with
two or more members are read at all. Larger files are then split by a
SHA-256 of their first 4 KiB before the full-content SHA-256 decides.
SHA-256 collisions are treated as impossible, so equal digests mean
equal content.

Zero-byte files never form groups: every empty file would otherwise be a
"duplicate" of every other one.
"""

from __future__ import annotations

import hashlib
import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Callable, Iterable

from reclaim.models.category import FileType
from reclaim.models.duplicates import DuplicateFile, DuplicateGroup, DuplicateReport
from reclaim.models.scan_result import ScanEntry

log = logging.getLogger(__name__)

_CHUNK_SIZE = 65_536  # 64 KB
_PREFIX_SIZE = 4_096

ProgressCallback = Callable[[int, int, str], None]  # (hashed, total, current_name)


class HashCancelled(Exception):
    """Raised inside hashing when the cancellation check fails."""


def sha256_file(path: Path, check: Callable[[], bool] | None = None, limit: int | None = None) -> str:
    """Compute SHA-256 of a file (or its first *limit* bytes) using chunked reads."""
    h = hashlib.sha256()
    remaining = limit
    with path.open("rb") as f:
        while True:
            if check is not None and not check():
                raise HashCancelled(str(path))
            size = _CHUNK_SIZE if remaining is None else min(_CHUNK_SIZE, remaining)
            if size <= 0:
                break
            chunk = f.read(size)
            if not chunk:
                break
            h.update(chunk)
            if remaining is not None:
                remaining -= len(chunk)
    return h.hexdigest()


def _order_key(entry: ScanEntry) -> tuple[float, str]:
    return (entry.modified_at, str(entry.path))


class DuplicateDetector:
    """Groups byte-identical files."""

    def __init__(self, hasher: Callable[..., str] = sha256_file) -> None:
        self._hash = hasher

    def find_duplicates(
        self,
        candidates: Iterable[ScanEntry],
        check: Callable[[], bool] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> DuplicateReport:
        """Find groups of identical files among *candidates*.

        The result does not depend on the order of *candidates*: members
        are ordered by (modified time, path), the first one is the original,
        and groups are ordered by reclaimable bytes, then first path.

        Args:
            candidates: Scanned entries; directories and empty files are ignored.
            check: Cancellation check, polled between files and between chunks.
            on_progress: Called after each file is hashed.

        Returns:
            Groups, soft errors for unreadable files, and a cancelled flag.
        """
        report = DuplicateReport()
        buckets = self._bucket(candidates)
        total = sum(len(b) for b in buckets.values())
        hashed = 0

        digests: dict[tuple[int, FileType, str], list[ScanEntry]] = defaultdict(list)
        try:
            for (size, ftype), members in sorted(buckets.items(), key=lambda kv: (kv[0][0], kv[0][1].value)):
                survivors = self._prefilter(members, size, check, report) if size > _PREFIX_SIZE else members
                hashed += len(members) - len(survivors)
                for entry in survivors:
                    if check is not None and not check():
                        raise HashCancelled(str(entry.path))
                    try:
                        digest = self._hash(entry.path, check)
                    except OSError as e:
                        log.debug("Cannot hash %s: %s", entry.path, e)
                        report.errors.append(f"{entry.path}: {e.strerror or e}")
                    else:
                        digests[(size, ftype, digest)].append(entry)
                    hashed += 1
                    if on_progress is not None:
                        on_progress(hashed, total, entry.name)
        except HashCancelled:
            log.info("Duplicate search cancelled after %d of %d files", hashed, total)
            report.cancelled = True
            return report

        for (size, ftype, digest), members in digests.items():
            if len(members) < 2:
                continue
            members.sort(key=_order_key)
            group = DuplicateGroup(fingerprint=digest, size=size, file_type=ftype)
            for i, entry in enumerate(members):
                group.files.append(DuplicateFile(entry=entry, is_original=i == 0, selected=i != 0))
            report.groups.append(group)

        report.groups.sort(key=lambda g: (-g.duplicate_size, str(g.files[0].path)))
        log.info("Found %d duplicate groups (%d bytes reclaimable)", len(report.groups), report.reclaimable_bytes)
        return report

    @staticmethod
    def _bucket(candidates: Iterable[ScanEntry]) -> dict[tuple[int, FileType], list[ScanEntry]]:
        """Bucket by (size, type), dropping directories, empty files and singletons."""
        seen: set[str] = set()
        buckets: dict[tuple[int, FileType], list[ScanEntry]] = defaultdict(list)
        for entry in candidates:
            if entry.is_dir or entry.size <= 0:
                continue
            key = os.path.abspath(str(entry.path))
            if key in seen:
                continue
            seen.add(key)
            buckets[(entry.size, entry.file_type)].append(entry)
        return {k: v for k, v in buckets.items() if len(v) >= 2}

    def _prefilter(
        self,
        members: list[ScanEntry],
        size: int,
        check: Callable[[], bool] | None,
        report: DuplicateReport,
    ) -> list[ScanEntry]:
        """Drop members whose first 4 KiB differ from every other member's."""
        by_prefix: dict[str, list[ScanEntry]] = defaultdict(list)
        for entry in members:
            try:
                by_prefix[sha256_file(entry.path, check, limit=_PREFIX_SIZE)].append(entry)
            except OSError as e:
                log.debug("Cannot read %s: %s", entry.path, e)
                report.errors.append(f"{entry.path}: {e.strerror or e}")
        return [e for group in by_prefix.values() if len(group) >= 2 for e in group]
