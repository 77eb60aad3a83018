"""Tests for duplicate detection."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from reclaim.core.classifier import file_type
from reclaim.core.duplicates import DuplicateDetector, sha256_file
from reclaim.lines.duplicates import DuplicateSort, DuplicatesLine, filter_groups, sort_groups
from reclaim.models.category import FileType
from reclaim.models.scan_result import ScanEntry


def entry_for(path: Path) -> ScanEntry:
    st = os.stat(path)
    return ScanEntry(
        path=path,
        name=path.name,
        size=st.st_size,
        is_dir=False,
        modified_at=st.st_mtime,
        file_type=file_type(path),
    )


@pytest.fixture
def files(tmp_path, make_file):
    d = tmp_path / "d"
    return {
        "a": make_file(d / "a.txt", b"hello world", mtime=2_000),
        "b": make_file(d / "b.txt", b"hello world", mtime=1_000),
        "c": make_file(d / "c.txt", b"HELLO WORLD", mtime=500),
        "u": make_file(d / "unique.txt", b"only one of these", mtime=500),
    }


class TestDuplicateDetector:
    def test_groups_identical_content(self, files):
        report = DuplicateDetector().find_duplicates(entry_for(p) for p in files.values())

        assert len(report.groups) == 1
        group = report.groups[0]
        assert {f.path for f in group.files} == {files["a"], files["b"]}
        assert group.size == 11
        assert group.duplicate_size == 11
        assert group.fingerprint == sha256_file(files["a"])
        assert report.errors == []
        assert not report.cancelled

    def test_oldest_file_is_the_original(self, files):
        group = DuplicateDetector().find_duplicates([entry_for(files["a"]), entry_for(files["b"])]).groups[0]
        assert group.original.path == files["b"]
        assert [f.is_original for f in group.files] == [True, False]
        assert [f.selected for f in group.files] == [False, True]

    def test_equal_mtime_falls_back_to_path(self, tmp_path, make_file):
        z = make_file(tmp_path / "z.txt", b"same", mtime=100)
        a = make_file(tmp_path / "a.txt", b"same", mtime=100)
        group = DuplicateDetector().find_duplicates([entry_for(z), entry_for(a)]).groups[0]
        assert group.original.path == a

    def test_result_does_not_depend_on_input_order(self, tmp_path, make_file):
        paths = [make_file(tmp_path / f"{i}.dat", b"x" * (i % 3 + 1), mtime=1_000 + i) for i in range(9)]
        detector = DuplicateDetector()
        forward = detector.find_duplicates([entry_for(p) for p in paths])
        backward = detector.find_duplicates([entry_for(p) for p in reversed(paths)])

        def shape(report):
            return [[(str(f.path), f.is_original) for f in g.files] for g in report.groups]

        assert shape(forward) == shape(backward)
        assert len(forward.groups) == 3

    def test_empty_files_never_group(self, tmp_path, make_file):
        a = make_file(tmp_path / "a.txt", b"")
        b = make_file(tmp_path / "b.txt", b"")
        assert DuplicateDetector().find_duplicates([entry_for(a), entry_for(b)]).groups == []

    def test_different_types_do_not_group(self, tmp_path, make_file):
        a = make_file(tmp_path / "a.txt", b"payload")
        b = make_file(tmp_path / "b.jpg", b"payload")
        assert DuplicateDetector().find_duplicates([entry_for(a), entry_for(b)]).groups == []

    def test_same_path_twice_is_not_a_duplicate(self, files):
        e = entry_for(files["a"])
        assert DuplicateDetector().find_duplicates([e, e]).groups == []

    def test_large_files_with_common_prefix(self, tmp_path, make_file):
        head = b"h" * 8192
        a = make_file(tmp_path / "a.bin", head + b"tail-A")
        b = make_file(tmp_path / "b.bin", head + b"tail-B")
        c = make_file(tmp_path / "c.bin", head + b"tail-A")
        report = DuplicateDetector().find_duplicates([entry_for(p) for p in (a, b, c)])
        assert len(report.groups) == 1
        assert {f.path for f in report.groups[0].files} == {a, c}

    def test_groups_sorted_by_reclaimable_size(self, tmp_path, make_file):
        small = [make_file(tmp_path / f"s{i}.txt", b"s" * 10) for i in range(2)]
        big = [make_file(tmp_path / f"b{i}.txt", b"b" * 100) for i in range(2)]
        report = DuplicateDetector().find_duplicates([entry_for(p) for p in small + big])
        assert [g.size for g in report.groups] == [100, 10]
        assert report.reclaimable_bytes == 110

    def test_unreadable_file_is_recorded(self, files):
        def hasher(path, check=None):
            if path == files["a"]:
                raise PermissionError(13, "Permission denied", str(path))
            return sha256_file(path, check)

        report = DuplicateDetector(hasher=hasher).find_duplicates(entry_for(p) for p in files.values())
        assert report.groups == []
        assert report.errors == [f"{files['a']}: Permission denied"]

    def test_cancellation(self, files):
        report = DuplicateDetector().find_duplicates((entry_for(p) for p in files.values()), check=lambda: False)
        assert report.cancelled
        assert report.groups == []

    def test_progress_reports_every_candidate(self, files):
        seen = []
        DuplicateDetector().find_duplicates(
            (entry_for(p) for p in files.values()),
            on_progress=lambda done, total, name: seen.append((done, total)),
        )
        # Only the three same-sized, same-typed files are hashed.
        assert seen == [(1, 3), (2, 3), (3, 3)]


class TestSha256:
    def test_prefix_limit(self, tmp_path, make_file):
        p = make_file(tmp_path / "f", b"abcdef")
        q = make_file(tmp_path / "g", b"abc")
        assert sha256_file(p, limit=3) == sha256_file(q)


class TestDuplicatesLine:
    def test_remove_paths_promotes_new_original(self, tmp_path, make_file):
        paths = [make_file(tmp_path / f"{n}.txt", b"dup", mtime=m) for n, m in (("a", 1), ("b", 2), ("c", 3))]
        groups = DuplicateDetector().find_duplicates([entry_for(p) for p in paths]).groups
        line = DuplicatesLine([tmp_path])

        kept = line.remove_paths(groups, {paths[0]})

        assert len(kept) == 1
        assert [f.path for f in kept[0].files] == paths[1:]
        assert kept[0].original.path == paths[1]
        assert not kept[0].files[0].selected

    def test_remove_paths_drops_groups_below_two(self, tmp_path, make_file):
        paths = [make_file(tmp_path / f"{n}.txt", b"dup") for n in "ab"]
        groups = DuplicateDetector().find_duplicates([entry_for(p) for p in paths]).groups
        assert DuplicatesLine([tmp_path]).remove_paths(groups, {paths[1]}) == []

    def test_sort_and_filter(self, tmp_path, make_file):
        entries = []
        for i in range(3):
            entries.append(entry_for(make_file(tmp_path / f"pic{i}.png", b"p" * 50)))
        for i in range(2):
            entries.append(entry_for(make_file(tmp_path / f"doc{i}.txt", b"d" * 200)))
        groups = DuplicateDetector().find_duplicates(entries).groups

        assert [g.file_type for g in sort_groups(groups, DuplicateSort.COUNT_DESC)] == [FileType.IMAGE, FileType.DOCUMENT]
        assert [g.file_type for g in sort_groups(groups, DuplicateSort.SIZE_DESC)] == [FileType.DOCUMENT, FileType.IMAGE]
        assert [g.file_type for g in sort_groups(groups, DuplicateSort.SIZE_ASC)] == [FileType.IMAGE, FileType.DOCUMENT]
        assert [g.file_type for g in sort_groups(groups, DuplicateSort.NAME)] == [FileType.DOCUMENT, FileType.IMAGE]
        assert [g.file_type for g in filter_groups(groups, FileType.IMAGE)] == [FileType.IMAGE]
        assert len(filter_groups(groups, None)) == 2
