"""
Tests for plugin source resolution — offline bundles before the network.
"""

from pathlib import Path

from kibana_buildpack.core.engine.plugin_source import (
    as_install_reference,
    find_local_plugin,
    list_source,
    resolve_source,
)


def _source(root: Path, name: str, *entries: str) -> Path:
    directory = root / name
    directory.mkdir()
    for entry in entries:
        (directory / entry).write_bytes(b"zip")
    return directory


class TestFindLocalPlugin:
    def test_prefix_match(self):
        assert find_local_plugin("x-pack", ["other.zip", "x-pack-6.2.2.zip"]) == "x-pack-6.2.2.zip"

    def test_first_entry_wins(self):
        assert find_local_plugin("a", ["a-1.zip", "a-2.zip"]) == "a-1.zip"

    def test_no_match(self):
        assert find_local_plugin("x-pack", ["other.zip"]) is None


class TestListSource:
    def test_sorted(self, tmp_path: Path):
        directory = _source(tmp_path, "src", "b.zip", "a.zip")
        assert list_source(directory) == ["a.zip", "b.zip"]

    def test_missing_directory(self, tmp_path: Path):
        assert list_source(tmp_path / "missing") == []


class TestInstallReference:
    def test_local_zip_becomes_file_uri(self):
        assert as_install_reference("/deps/0/x-pack/x-pack.zip") == "file:///deps/0/x-pack/x-pack.zip"

    def test_remote_zip_untouched(self):
        assert as_install_reference("https://example.test/p.zip") == "https://example.test/p.zip"

    def test_plain_name_untouched(self):
        assert as_install_reference("analytics-plugin") == "analytics-plugin"


class TestResolveSource:
    def test_only_middle_source_matches(self, tmp_path: Path):
        priv = _source(tmp_path, "priv", "other-plugin.zip")
        shared = _source(tmp_path, "shared", "analytics-plugin-1.0.zip")
        user = _source(tmp_path, "user")

        expected = "file://" + str(shared / "analytics-plugin-1.0.zip")
        assert resolve_source("analytics-plugin", [priv, shared, user]) == expected

    def test_missing_sources_are_skipped(self, tmp_path: Path):
        shared = _source(tmp_path, "shared", "analytics-plugin-1.0.zip")
        sources = [tmp_path / "absent", shared, tmp_path / "also-absent"]
        assert resolve_source("analytics-plugin", sources).endswith("analytics-plugin-1.0.zip")

    def test_priority_order(self, tmp_path: Path):
        first = _source(tmp_path, "first", "x-pack-6.2.2.zip")
        second = _source(tmp_path, "second", "x-pack-6.2.2.zip")
        assert resolve_source("x-pack", [first, second]) == "file://" + str(first / "x-pack-6.2.2.zip")

    def test_no_match_returns_bare_name(self, tmp_path: Path):
        sources = [_source(tmp_path, "a"), _source(tmp_path, "b", "unrelated.zip")]
        assert resolve_source("analytics-plugin", sources) == "analytics-plugin"

    def test_non_archive_entry_kept_as_path(self, tmp_path: Path):
        user = tmp_path / "user"
        (user / "my-plugin").mkdir(parents=True)
        assert resolve_source("my-plugin", [user]) == str(user / "my-plugin")
