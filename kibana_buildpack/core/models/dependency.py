"""
Dependency model — one named, versioned artifact staged into the build.

A Dependency is created once per build per name, after its version has
been resolved against the manifest, and never changes afterwards.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, computed_field


class Dependency(BaseModel):
    """A resolved dependency and where it lives.

    Attributes:
        name:               Manifest name (e.g. ``kibana``, ``gte``).
        version:            Concrete resolved version (e.g. ``6.2.2``).
        version_parts:      Number of dot segments the version must have.
        configured_version: What the operator asked for ("" = manifest default).
        runtime_location:   Path relative to ``$DEPS_DIR`` at app run time.
        staging_location:   Absolute path while the build is running.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    version_parts: int = 3
    configured_version: str = ""
    runtime_location: str = ""
    staging_location: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def dir_name(self) -> str:
        """Cache key and install directory name: ``<name>-<version>``."""
        return f"{self.name}-{self.version}"
