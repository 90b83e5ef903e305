"""
Tests for directory scanning.
"""

from pathlib import Path
from unittest.mock import patch

from plugins import discover_all_plugins
from plugins.discovery import ensure_plugin_directory

from conftest import make_source, write_plugin


class TestDiscoverAllPlugins:
    """Test scanning and deduplication."""

    def test_loads_scripts_in_name_order(self, tmp_path):
        write_plugin(tmp_path, "b.py", make_source("Beta"))
        write_plugin(tmp_path, "a.py", make_source("Alpha"))

        plugins = discover_all_plugins([str(tmp_path)])

        assert [p.name for p in plugins] == ["Alpha", "Beta"]
        assert plugins[0].path == str((tmp_path / "a.py").resolve())

    def test_ignores_non_script_files(self, tmp_path):
        write_plugin(tmp_path, "alpha.py", make_source("Alpha"))
        (tmp_path / "notes.txt").write_text(make_source("Beta"))
        (tmp_path / "nested.py").mkdir()

        plugins = discover_all_plugins([str(tmp_path)])

        assert [p.name for p in plugins] == ["Alpha"]

    def test_bad_file_does_not_abort_scan(self, tmp_path):
        write_plugin(tmp_path, "a_broken.py", "def nope(:\n")
        write_plugin(tmp_path, "b_empty.py", "")
        write_plugin(tmp_path, "c_good.py", make_source("Good"))

        plugins = discover_all_plugins([str(tmp_path)])

        assert [p.name for p in plugins] == ["Good"]

    def test_exiting_script_does_not_abort_scan(self, tmp_path):
        write_plugin(tmp_path, "a_exit.py", "import sys\nsys.exit(0)\n")
        write_plugin(tmp_path, "b_good.py", make_source("Good"))

        plugins = discover_all_plugins([str(tmp_path)])

        assert [p.name for p in plugins] == ["Good"]

    def test_reserved_local_platform_skipped(self, tmp_path):
        write_plugin(tmp_path, "a_local.py", make_source("local"))
        write_plugin(tmp_path, "b_good.py", make_source("Good"))

        plugins = discover_all_plugins([str(tmp_path)])

        assert [p.name for p in plugins] == ["Good"]

    def test_unreadable_directory_does_not_abort_scan(self, tmp_path):
        broken = tmp_path / "broken"
        broken.mkdir()
        script = write_plugin(tmp_path / "app", "x.py", make_source("X"))
        listings = [PermissionError("denied"), iter([script])]

        with patch.object(Path, "iterdir", side_effect=listings):
            plugins = discover_all_plugins([str(broken), str(tmp_path / "app")])

        assert [p.name for p in plugins] == ["X"]

    def test_duplicates_dropped_across_directories(self, tmp_path):
        user_dir = tmp_path / "user"
        app_dir = tmp_path / "app"
        source = make_source("Shared")
        write_plugin(user_dir, "mine.py", source)
        write_plugin(app_dir, "bundled.py", source)
        write_plugin(app_dir, "other.py", make_source("Other"))

        plugins = discover_all_plugins([str(user_dir), str(app_dir)])

        assert [p.name for p in plugins] == ["Shared", "Other"]
        assert plugins[0].path == str((user_dir / "mine.py").resolve())

    def test_duplicates_dropped_within_directory(self, tmp_path):
        source = make_source("Shared")
        write_plugin(tmp_path, "one.py", source)
        write_plugin(tmp_path, "two.py", source)

        assert len(discover_all_plugins([str(tmp_path)])) == 1

    def test_missing_directory_created(self, tmp_path):
        missing = tmp_path / "does" / "not" / "exist"

        assert discover_all_plugins([str(missing)]) == []
        assert missing.is_dir()

    def test_rescan_is_stable(self, tmp_path):
        write_plugin(tmp_path / "user", "x.py", make_source("X"))
        write_plugin(tmp_path / "app", "y.py", make_source("Y"))
        dirs = [str(tmp_path / "user"), str(tmp_path / "app")]

        first = [p.to_snapshot() for p in discover_all_plugins(dirs)]
        second = [p.to_snapshot() for p in discover_all_plugins(dirs)]

        assert first == second


class TestEnsurePluginDirectory:
    """Test plugin directory preparation."""

    def test_replaces_file_when_allowed(self, tmp_path):
        target = tmp_path / "plugins"
        target.write_text("not a directory")

        ensure_plugin_directory(str(target), replace_non_directory=True)

        assert target.is_dir()

    def test_leaves_file_otherwise(self, tmp_path):
        target = tmp_path / "plugins"
        target.write_text("not a directory")

        ensure_plugin_directory(str(target))

        assert target.is_file()
        assert discover_all_plugins([str(target)]) == []
