"""Tests for the directory walker."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from reclaim.core.sizes import SizeCache
from reclaim.core.walker import DirectoryWalker, PathAccessChecker
from reclaim.models.category import Category, FileType
from reclaim.models.scan_line import WalkOptions

_is_root = hasattr(os, "geteuid") and os.geteuid() == 0


@pytest.fixture
def tree(tmp_path, make_file):
    root = tmp_path / "root"
    make_file(root / "a.txt", b"a" * 10)
    make_file(root / "sub" / "b.bin", b"b" * 20)
    make_file(root / "sub" / "deep" / "c.mp3", b"c" * 30)
    make_file(root / ".hidden" / "d", b"d" * 5)
    return root


def _walk(context, root, options=None, sizes=None, check=None, access=None):
    entries = []
    walker = DirectoryWalker(context, sizes=sizes, access=access)
    stats = walker.walk(root, check or (lambda: True), entries.append, options)
    return stats, entries


def _by_name(entries):
    return {e.name: e for e in entries}


class _DenyAll(PathAccessChecker):
    def can_read(self, path: Path) -> bool:
        return False


class TestDirectoryWalker:
    def test_emits_everything_with_directory_totals(self, context, tree):
        stats, entries = _walk(context, tree)
        names = _by_name(entries)

        assert set(names) == {"a.txt", "sub", "b.bin", "deep", "c.mp3", ".hidden", "d"}
        assert names["sub"].is_dir and names["sub"].size == 50
        assert names["deep"].size == 30
        assert names[".hidden"].size == 5
        assert stats.files == 4
        assert stats.total_bytes == 65
        assert stats.errors == []
        assert not stats.cancelled

    def test_root_directory_is_not_emitted(self, context, tree):
        _, entries = _walk(context, tree)
        assert all(e.path != tree for e in entries)

    def test_directories_come_after_their_contents(self, context, tree):
        _, entries = _walk(context, tree)
        order = [e.name for e in entries]
        assert order.index("c.mp3") < order.index("deep") < order.index("sub")

    def test_children_visited_in_name_order(self, context, tree):
        _, entries = _walk(context, tree, WalkOptions(max_emit_depth=1))
        assert [e.name for e in entries] == [".hidden", "a.txt", "sub"]

    def test_max_emit_depth_keeps_full_sizes(self, context, tree):
        _, entries = _walk(context, tree, WalkOptions(max_emit_depth=1))
        names = _by_name(entries)
        assert set(names) == {"a.txt", "sub", ".hidden"}
        assert names["sub"].size == 50

    def test_hidden_entries_can_be_suppressed(self, context, tree):
        stats, entries = _walk(context, tree, WalkOptions(emit_hidden=False))
        assert ".hidden" not in _by_name(entries)
        assert "d" not in _by_name(entries)
        # Hidden content still counts towards the walk totals.
        assert stats.total_bytes == 65

    def test_files_only(self, context, tree):
        _, entries = _walk(context, tree, WalkOptions(files_only=True))
        assert all(not e.is_dir for e in entries)
        assert {e.name for e in entries} == {"a.txt", "b.bin", "c.mp3", "d"}

    def test_prune_removes_subtree_from_emission_and_totals(self, context, tree):
        options = WalkOptions(prune=lambda p: p.name == "deep")
        _, entries = _walk(context, tree, options)
        names = _by_name(entries)
        assert "deep" not in names and "c.mp3" not in names
        assert names["sub"].size == 20

    def test_entries_are_classified(self, context, tree):
        _, entries = _walk(context, tree)
        names = _by_name(entries)
        assert names["c.mp3"].file_type is FileType.AUDIO
        assert names["a.txt"].file_type is FileType.DOCUMENT
        assert names["sub"].file_type is FileType.OTHER
        assert names["a.txt"].category is Category.UNCATEGORIZED

    def test_cache_entries_are_classified(self, context, fake_home, make_file):
        make_file(fake_home / ".cache" / "app" / "blob", b"z" * 3)
        _, entries = _walk(context, fake_home / ".cache")
        assert {e.category for e in entries} == {Category.USER_CACHES}

    def test_root_file_is_emitted(self, context, tree):
        stats, entries = _walk(context, tree / "a.txt")
        assert [e.name for e in entries] == ["a.txt"]
        assert stats.files == 1 and stats.total_bytes == 10

    def test_missing_root_is_a_soft_error(self, context, tmp_path):
        stats, entries = _walk(context, tmp_path / "nope")
        assert entries == []
        assert len(stats.errors) == 1
        assert str(tmp_path / "nope") in stats.errors[0]

    def test_access_checker_denies_root(self, context, tree):
        stats, entries = _walk(context, tree, access=_DenyAll())
        assert entries == []
        assert stats.errors == [f"{tree}: access denied"]

    @pytest.mark.skipif(_is_root, reason="root can read everything")
    def test_unreadable_directory_is_skipped(self, context, tree):
        locked = tree / "sub" / "deep"
        locked.chmod(0)
        try:
            stats, entries = _walk(context, tree)
        finally:
            locked.chmod(0o755)
        names = _by_name(entries)
        assert "c.mp3" not in names
        assert "a.txt" in names and "b.bin" in names
        assert any(str(locked) in e for e in stats.errors)

    def test_cancel_before_start(self, context, tree):
        stats, entries = _walk(context, tree, check=lambda: False)
        assert stats.cancelled
        assert entries == []

    def test_cancel_midway_stops_emission(self, context, tree):
        calls = {"n": 0}

        def check():
            calls["n"] += 1
            return calls["n"] < 3

        stats, entries = _walk(context, tree, check=check)
        assert stats.cancelled
        assert len(entries) < 7

    def test_on_child_reports_root_children(self, context, tree):
        seen = []
        DirectoryWalker(context).walk(tree, lambda: True, lambda e: None, on_child=lambda *a: seen.append(a))
        assert seen == [(".hidden", 1, 3), ("a.txt", 2, 3), ("sub", 3, 3)]


class TestSymlinks:
    def test_symlinks_skipped_by_default(self, context, tree):
        (tree / "link.txt").symlink_to(tree / "a.txt")
        (tree / "linkdir").symlink_to(tree / "sub", target_is_directory=True)
        stats, entries = _walk(context, tree)
        names = _by_name(entries)
        assert "link.txt" not in names and "linkdir" not in names
        assert stats.total_bytes == 65

    def test_follow_symlinks_detects_cycles(self, context, tree):
        (tree / "sub" / "loop").symlink_to(tree, target_is_directory=True)
        stats, entries = _walk(context, tree, WalkOptions(follow_symlinks=True))
        assert any(e.endswith("symlink cycle") for e in stats.errors)
        assert not stats.cancelled
        assert "c.mp3" in _by_name(entries)

    def test_follow_symlinks_counts_targets(self, context, tree, tmp_path, make_file):
        make_file(tmp_path / "outside" / "big", b"o" * 100)
        (tree / "ext").symlink_to(tmp_path / "outside", target_is_directory=True)
        stats, entries = _walk(context, tree, WalkOptions(follow_symlinks=True))
        assert _by_name(entries)["ext"].size == 100
        assert stats.total_bytes == 165


class TestSizeCacheSeeding:
    def test_completed_directories_are_cached(self, context, tree):
        sizes = SizeCache()
        _walk(context, tree, sizes=sizes)
        assert sizes.get(tree) == 65
        assert sizes.get(tree / "sub") == 50

    def test_pruned_walks_do_not_seed_totals(self, context, tree):
        sizes = SizeCache()
        _walk(context, tree, WalkOptions(prune=lambda p: p.name == "deep"), sizes=sizes)
        assert sizes.get(tree) is None
        assert sizes.get(tree / "sub") is None

    def test_stale_cached_size_is_remeasured(self, context, tree):
        sizes = SizeCache()
        sizes.store(tree / "sub", 999)
        _, entries = _walk(context, tree, WalkOptions(max_emit_depth=1), sizes=sizes)
        assert _by_name(entries)["sub"].size == 50
        assert sizes.get(tree / "sub") == 50
