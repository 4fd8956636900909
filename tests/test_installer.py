"""
Tests for the dependency installer — resolve, claim cache, install once.
"""

from pathlib import Path

import pytest

from kibana_buildpack.adapters.mock import MockAdapter
from kibana_buildpack.core.engine.dependency_cache import DependencyCache
from kibana_buildpack.core.engine.installer import DependencyInstaller
from kibana_buildpack.core.engine.version_resolver import VersionResolver
from kibana_buildpack.core.errors import InstallFailed, VersionNotFound
from kibana_buildpack.core.models.cache import CacheState


@pytest.fixture
def cache(stager) -> DependencyCache:
    c = DependencyCache()
    c.reconcile(stager.cache_dir)
    return c


@pytest.fixture
def installer(stager, cache, manifest_factory) -> DependencyInstaller:
    manifest = manifest_factory(
        {"kibana": ["6.2.1", "6.2.2"], "gte": ["3.1.0"]},
        defaults={"gte": "3.1.0"},
    )
    return DependencyInstaller(
        VersionResolver(manifest), cache, MockAdapter(adapter_name="artifact"), stager
    )


class TestNewDependency:
    def test_locations(self, installer, stager):
        dep = installer.new_dependency("kibana", 3, "6")
        assert dep.version == "6.2.2"
        assert dep.dir_name == "kibana-6.2.2"
        assert dep.runtime_location == "0/kibana-6.2.2"
        assert dep.staging_location == str(stager.deps_dir / "0" / "kibana-6.2.2")

    def test_locations_are_distinct_and_deterministic(self, installer):
        first = installer.new_dependency("gte", 3)
        second = installer.new_dependency("gte", 3)
        assert first == second
        assert first.runtime_location != first.staging_location
        assert first.dir_name == f"{first.name}-{first.version}"


class TestInstall:
    def test_action_params(self, installer, stager, cache):
        dep = installer.install("kibana", 3, "6.2")
        adapter = installer._artifact_installer
        assert adapter.action_ids == ["install:kibana-6.2.2"]
        params = adapter.call_log[0].params
        assert params["name"] == "kibana"
        assert params["version"] == "6.2.2"
        assert params["cache_slot"] == str(cache.cache_dir / "kibana-6.2.2")
        assert params["target"] == dep.staging_location
        assert cache.state("kibana-6.2.2") == CacheState.IN_USE

    def test_once_per_name(self, installer):
        first = installer.install("gte")
        second = installer.install("gte", configured_version="3.1.0")
        assert first is second
        assert installer._artifact_installer.call_count == 1
        assert list(installer.installed) == ["gte"]

    def test_failed_receipt_raises(self, installer):
        installer._artifact_installer.set_failure("install:kibana-6.2.2", error="checksum mismatch")
        with pytest.raises(InstallFailed) as exc_info:
            installer.install("kibana", 3, "6.2.2")
        assert "kibana" in str(exc_info.value)
        assert "checksum mismatch" in str(exc_info.value)
        assert installer.installed == {}

    def test_unresolvable_version_raises_before_install(self, installer):
        with pytest.raises(VersionNotFound):
            installer.install("kibana", 3, "7")
        assert installer._artifact_installer.call_count == 0

    def test_evicts_stale_version(self, stager, manifest_factory):
        stale = stager.cache_dir / "dependencies" / "kibana-6.2.1"
        stale.mkdir(parents=True)
        cache = DependencyCache()
        cache.reconcile(stager.cache_dir)
        installer = DependencyInstaller(
            VersionResolver(manifest_factory({"kibana": ["6.2.1", "6.2.2"]})),
            cache,
            MockAdapter(),
            stager,
        )
        installer.install("kibana", 3, "6.2.2")
        assert not stale.exists()
        assert cache.state("kibana-6.2.1") == CacheState.DELETED


class TestNoCache:
    def test_slot_discarded_after_install(self, stager, manifest_factory):
        cache = DependencyCache(no_cache=True)
        cache.reconcile(stager.cache_dir)

        def _write_slot(context):
            slot = Path(context.params["cache_slot"])
            slot.mkdir(parents=True)
            (slot / "gte-3.1.0.tgz").write_bytes(b"archive")

        installer = DependencyInstaller(
            VersionResolver(manifest_factory({"gte": ["3.1.0"]}, defaults={"gte": "3.1.0"})),
            cache,
            MockAdapter(on_execute=_write_slot),
            stager,
        )
        installer.install("gte")
        assert not cache.slot("gte-3.1.0").exists()
        assert cache.state("gte-3.1.0") == CacheState.IN_USE
