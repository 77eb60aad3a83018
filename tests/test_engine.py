"""Tests for the engine facade."""

from __future__ import annotations

import pytest

from reclaim.core.engine import ReclaimEngine
from reclaim.models.apps import AppInfo
from reclaim.models.category import Category, ScanState


@pytest.fixture
def cache_tree(fake_home, make_file):
    cache = fake_home / ".cache"
    make_file(cache / "alpha" / "blob", b"a" * 100)
    make_file(cache / "beta" / "blob", b"b" * 50)
    make_file(fake_home / ".local" / "state" / "log" / "app.log", b"l" * 30)
    return cache


class TestReclaimEngine:
    def test_cleaner_session_uses_enabled_categories(self, engine, settings, cache_tree):
        settings.set("cleaner.enabled_categories", ["logs"])
        session = engine.cleaner_session()
        session.start(background=False)
        assert [g.category for g in session.results] == [Category.LOGS]

    def test_sessions_are_independent(self, engine, cache_tree):
        cleaner = engine.cleaner_session([Category.USER_CACHES])
        usage = engine.disk_usage_session(cache_tree)
        cleaner.start(background=False)
        usage.start(background=False)
        cleaner.stop()
        assert cleaner.state is ScanState.COMPLETED
        assert usage.state is ScanState.COMPLETED
        assert cleaner.generation == usage.generation == 1

    def test_delete_updates_sessions_and_cache(self, engine, cache_tree, trash_bin):
        session = engine.cleaner_session([Category.USER_CACHES])
        session.start(background=False)
        assert engine.sizes.get(cache_tree) == 150

        result = engine.delete([cache_tree / "alpha"], sessions=[session])

        assert result.success == 1
        assert trash_bin.moved == [str(cache_tree / "alpha")]
        assert engine.sizes.get(cache_tree) is None
        assert [i.path.name for g in session.results for i in g.items] == ["beta"]

    def test_rescan_after_delete_sees_new_sizes(self, engine, cache_tree):
        usage = engine.disk_usage_session(cache_tree)
        usage.start(background=False)
        assert [(e.name, e.size) for e in usage.results] == [("alpha", 100), ("beta", 50)]

        engine.delete([cache_tree / "alpha"])
        usage.start(background=False)

        assert [(e.name, e.size) for e in usage.results] == [("beta", 50)]
        assert [e.name for e in engine.sub_items(cache_tree, min_size=0)] == ["beta"]

    def test_rescan_sees_files_added_outside_the_engine(self, engine, tmp_path, make_file):
        root = tmp_path / "pics"
        make_file(root / "photos" / "a.jpg", 1000)
        first = engine.disk_usage_session(root)
        first.start(background=False)
        assert [(e.name, e.size) for e in first.results] == [("photos", 1000)]

        make_file(root / "photos" / "b.jpg", 5000)
        second = engine.disk_usage_session(root)
        second.start(background=False)

        assert [(e.name, e.size) for e in second.results] == [("photos", 6000)]
        assert [e.size for e in engine.sub_items(root, min_size=0)] == [6000]

    def test_trash_contents_cannot_be_deleted(self, engine, fake_home, make_file):
        inside = make_file(fake_home / ".local" / "share" / "Trash" / "files" / "old", b"o")
        result = engine.delete([inside])
        assert result.failed == 1
        assert "already in the trash" in result.errors[0]

    def test_large_files_session_honours_settings(self, engine, settings, fake_home, make_file):
        make_file(fake_home / "keep" / "a.bin", 2048)
        make_file(fake_home / "skip" / "b.bin", 4096)
        settings.set("large_files.min_size", 1024)
        settings.set("scan.excluded_paths", [str(fake_home / "skip")])

        session = engine.large_files_session()
        session.start(background=False)
        assert [e.name for e in session.results] == ["a.bin"]

    def test_duplicates_session_default_roots(self, engine, fake_home, make_file):
        make_file(fake_home / "Documents" / "a.txt", b"same text")
        make_file(fake_home / "Downloads" / "a (1).txt", b"same text")
        session = engine.duplicates_session()
        session.start(background=False)
        assert len(session.results) == 1
        assert session.results[0].file_count == 2

    def test_app_removal(self, engine, fake_home, make_file, trash_bin):
        bundle = fake_home / "Applications" / "Tool.app"
        bundle.mkdir(parents=True)
        make_file(fake_home / ".config" / "Tool" / "rc", b"r")
        app = AppInfo("Tool", "org.example.Tool", bundle)

        assert [i.path.name for i in engine.find_leftovers(app)] == ["Tool"]
        result = engine.remove_app(app)
        assert result.deletion.success == 2
        assert not bundle.exists()

    def test_unresolvable_home_fails_session(self, settings, monkeypatch):
        def no_home():
            raise RuntimeError("Could not determine home directory.")

        monkeypatch.setattr("reclaim.core.engine.ClassificationContext.from_environment", staticmethod(no_home))
        engine = ReclaimEngine(settings=settings)
        session = engine.cleaner_session([Category.LOGS])
        session.start(background=False)
        assert session.state is ScanState.FAILED
        assert len(session.errors) == 1
