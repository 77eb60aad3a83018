"""Tests for trash-based deletion."""

from __future__ import annotations

import pytest

from reclaim.core.deletion import DeletionExecutor


@pytest.fixture
def victims(tmp_path, make_file):
    return [
        make_file(tmp_path / "work" / "one.txt", b"1"),
        make_file(tmp_path / "work" / "dir" / "two.txt", b"2"),
        make_file(tmp_path / "work" / "three.txt", b"3"),
    ]


class TestDeletionExecutor:
    def test_moves_items_to_trash(self, victims, trash_bin, tmp_path):
        result = DeletionExecutor(trash=trash_bin).delete([victims[0], tmp_path / "work" / "dir"])

        assert result.success == 2
        assert result.failed == 0
        assert result.errors == []
        assert result.deleted == [victims[0], tmp_path / "work" / "dir"]
        assert not victims[0].exists()
        assert not victims[1].exists()
        assert victims[2].exists()

    def test_missing_item_fails_and_batch_continues(self, victims, trash_bin, tmp_path):
        missing = tmp_path / "work" / "gone.txt"
        result = DeletionExecutor(trash=trash_bin).delete([missing, victims[2]])

        assert result.success == 1
        assert result.failed == 1
        assert result.total == 2
        assert result.errors == [f"{missing}: No such file or directory"]
        assert result.deleted == [victims[2]]

    def test_trash_failure_is_recorded(self, victims):
        def refuse(path: str) -> None:
            raise PermissionError(13, "Permission denied", path)

        result = DeletionExecutor(trash=refuse).delete(victims)

        assert result.success == 0
        assert result.failed == 3
        assert all(e.endswith(": Permission denied") for e in result.errors)
        assert all(p.exists() for p in victims)

    def test_unexpected_trash_error_does_not_abort_batch(self, victims, trash_bin):
        def flaky(path: str) -> None:
            if path == str(victims[0]):
                raise RuntimeError("trash backend crashed")
            trash_bin(path)

        result = DeletionExecutor(trash=flaky).delete(victims[::2])

        assert result.success == 1
        assert result.failed == 1
        assert result.errors == [f"{victims[0]}: trash backend crashed"]
        assert result.deleted == [victims[2]]
        assert victims[0].exists()

    def test_items_already_in_trash_are_refused(self, tmp_path, make_file, trash_bin):
        trash_dir = tmp_path / "home" / ".Trash"
        inside = make_file(trash_dir / "old.txt", b"o")
        result = DeletionExecutor(trash=trash_bin, trash_dirs=[trash_dir]).delete([inside])

        assert result.failed == 1
        assert result.errors == [f"{inside}: Item is already in the trash"]
        assert inside.exists()

    def test_progress_after_each_item(self, victims, trash_bin, tmp_path):
        seen = []
        DeletionExecutor(trash=trash_bin).delete(
            [victims[0], tmp_path / "missing", victims[2]],
            on_progress=lambda done, total: seen.append((done, total)),
        )
        assert seen == [(1, 3), (2, 3), (3, 3)]

    def test_empty_batch(self, trash_bin):
        result = DeletionExecutor(trash=trash_bin).delete([])
        assert result.total == 0
        assert trash_bin.moved == []

    def test_broken_symlink_is_trashed(self, tmp_path, trash_bin):
        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "nowhere")
        result = DeletionExecutor(trash=trash_bin).delete([link])
        assert result.success == 1
        assert trash_bin.moved == [str(link)]
