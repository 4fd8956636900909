"""
Stager — the Cloud Foundry build directory contract.

    supply   <build_dir> <cache_dir> <deps_dir> <deps_idx>
    finalize <build_dir> <cache_dir> <deps_dir> <deps_idx>

Everything this buildpack stages lives under ``<deps_dir>/<deps_idx>``
(the "dep dir"). At run time the same tree is visible as
``$DEPS_DIR/<deps_idx>``, so runtime locations are relative to $DEPS_DIR.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

BUILDPACK_NAME = "kibana"
CONFIG_YML = "config.yml"
PROFILE_D = "profile.d"


@dataclass(frozen=True)
class Stager:
    """Paths of one staging run and the files every buildpack writes."""

    build_dir: Path
    cache_dir: Path
    deps_dir: Path
    deps_idx: str

    @property
    def dep_dir(self) -> Path:
        return self.deps_dir / self.deps_idx

    def runtime_location(self, dir_name: str) -> str:
        """Location of ``dir_name`` relative to ``$DEPS_DIR`` at run time."""
        return f"{self.deps_idx}/{dir_name}"

    def staging_location(self, dir_name: str) -> Path:
        """Absolute location of ``dir_name`` during the build."""
        return self.dep_dir / dir_name

    def write_profile_d(self, script_name: str, content: str) -> Path:
        """Write ``<dep_dir>/profile.d/<script_name>``, sourced at app start."""
        path = self.dep_dir / PROFILE_D / script_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.debug("Wrote %s", path)
        return path

    def write_build_profile_d(self, script_name: str, content: str) -> Path:
        """Write ``<build_dir>/.profile.d/<script_name>`` (finalize only)."""
        path = self.build_dir / ".profile.d" / script_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def write_config_yml(self, config: dict[str, Any]) -> Path:
        """Write ``<dep_dir>/config.yml`` for later buildpack phases."""
        path = self.dep_dir / CONFIG_YML
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {"name": BUILDPACK_NAME, "config": config}
        path.write_text(yaml.safe_dump(data, default_flow_style=False), encoding="utf-8")
        return path

    def read_config_yml(self) -> dict[str, Any]:
        """Read back the ``config`` section written during supply."""
        path = self.dep_dir / CONFIG_YML
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return data.get("config") or {}
