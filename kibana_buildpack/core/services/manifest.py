"""
Manifest provider — answers "which versions of X exist, and where are they?"

Wraps the parsed ``manifest.yml``. The buildpack may ship in "cached"
(offline) flavour, with every artifact pre-downloaded under
``<buildpack>/dependencies/<md5(uri)>/<file>``; ``cached_artifact()``
finds those.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from kibana_buildpack.core.config.loader import load_manifest
from kibana_buildpack.core.models.manifest import Manifest, ManifestDependency

logger = logging.getLogger(__name__)

OFFLINE_DEPENDENCIES_DIR = "dependencies"


class BuildpackManifest:
    """Version catalog and artifact lookup for one buildpack."""

    def __init__(self, manifest: Manifest, buildpack_dir: Path | None = None):
        self._manifest = manifest
        self._buildpack_dir = buildpack_dir

    @classmethod
    def from_dir(cls, buildpack_dir: Path) -> BuildpackManifest:
        return cls(load_manifest(buildpack_dir), buildpack_dir)

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    def all_versions(self, name: str) -> list[str]:
        """All versions of ``name``, in manifest order."""
        return [d.version for d in self._manifest.dependencies if d.name == name]

    def default_version(self, name: str) -> str | None:
        """The manifest's default version for ``name``, or None."""
        for default in self._manifest.default_versions:
            if default.name == name:
                return default.version
        return None

    def find(self, name: str, version: str) -> ManifestDependency | None:
        for dependency in self._manifest.dependencies:
            if dependency.name == name and dependency.version == version:
                return dependency
        return None

    @property
    def is_cached(self) -> bool:
        """Whether this is an offline buildpack with bundled artifacts."""
        if self._buildpack_dir is None:
            return False
        return (self._buildpack_dir / OFFLINE_DEPENDENCIES_DIR).is_dir()

    def cached_artifact(self, dependency: ManifestDependency) -> Path | None:
        """Path of the bundled artifact for ``dependency``, if shipped."""
        if not self.is_cached or not dependency.uri:
            return None
        assert self._buildpack_dir is not None
        digest = hashlib.md5(dependency.uri.encode("utf-8")).hexdigest()
        candidate = (
            self._buildpack_dir / OFFLINE_DEPENDENCIES_DIR / digest / dependency.file_name
        )
        if candidate.is_file():
            return candidate
        logger.debug("No bundled artifact for %s at %s", dependency.name, candidate)
        return None
