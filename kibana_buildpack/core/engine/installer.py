"""
Dependency installer — materialize one named dependency per build.

    resolve version → compute locations → claim cache slot
      → artifact installer → (no-cache) drop slot

Each name is installed at most once per build; asking again returns the
Dependency from the first call. Any failure raises with the dependency
name attached and the build stops there.
"""

from __future__ import annotations

import logging

from kibana_buildpack.adapters.base import Adapter, ExecutionContext
from kibana_buildpack.core.engine.dependency_cache import DependencyCache
from kibana_buildpack.core.engine.version_resolver import VersionResolver
from kibana_buildpack.core.errors import InstallFailed
from kibana_buildpack.core.models.action import Action
from kibana_buildpack.core.models.dependency import Dependency
from kibana_buildpack.core.services.stager import Stager

logger = logging.getLogger(__name__)


class DependencyInstaller:
    """Compose resolver, cache and artifact installer."""

    def __init__(
        self,
        resolver: VersionResolver,
        cache: DependencyCache,
        artifact_installer: Adapter,
        stager: Stager,
    ):
        self._resolver = resolver
        self._cache = cache
        self._artifact_installer = artifact_installer
        self._stager = stager
        self._installed: dict[str, Dependency] = {}

    @property
    def installed(self) -> dict[str, Dependency]:
        return dict(self._installed)

    def new_dependency(self, name: str, version_parts: int, configured_version: str = "") -> Dependency:
        """Resolve ``name`` and compute where it goes, without installing."""
        version = self._resolver.resolve(name, configured_version, version_parts)
        dir_name = f"{name}-{version}"
        return Dependency(
            name=name,
            version=version,
            version_parts=version_parts,
            configured_version=configured_version,
            runtime_location=self._stager.runtime_location(dir_name),
            staging_location=str(self._stager.staging_location(dir_name)),
        )

    def install(self, name: str, version_parts: int = 3, configured_version: str = "") -> Dependency:
        """Install ``name`` (once per build) and return it.

        Raises:
            VersionNotFound: The configured version cannot be resolved.
            InstallFailed: The artifact installer reported failure.
        """
        if name in self._installed:
            logger.debug("%s already installed in this build", name)
            return self._installed[name]

        dependency = self.new_dependency(name, version_parts, configured_version)
        logger.info("----> Installing %s %s", dependency.name, dependency.version)

        self._cache.mark_in_use(dependency.dir_name)

        action = Action(
            id=f"install:{dependency.dir_name}",
            adapter=self._artifact_installer.name,
            name=f"install {dependency.name}",
            params={
                "name": dependency.name,
                "version": dependency.version,
                "cache_slot": str(self._cache.slot(dependency.dir_name)),
                "target": dependency.staging_location,
            },
        )
        receipt = self._artifact_installer.run(
            ExecutionContext(action=action, build_dir=str(self._stager.build_dir))
        )
        if not receipt.ok:
            logger.error("Error installing '%s': %s", dependency.name, receipt.error)
            raise InstallFailed(dependency.name, receipt.error or receipt.status)

        if self._cache.no_cache:
            self._cache.discard(dependency.dir_name)

        self._installed[name] = dependency
        return dependency
