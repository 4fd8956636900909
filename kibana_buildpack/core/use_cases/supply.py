"""
Supply use case — stage Kibana into the dep dir.

Wraps ``Supplier`` so the CLI gets a result object instead of an
exception: the error, what got installed, and what the cache did.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from kibana_buildpack.adapters.base import Adapter
from kibana_buildpack.core.config.loader import ConfigError
from kibana_buildpack.core.errors import BuildpackError
from kibana_buildpack.core.models.dependency import Dependency
from kibana_buildpack.core.models.template import InstallationPlan
from kibana_buildpack.core.services.manifest import BuildpackManifest
from kibana_buildpack.core.services.stager import Stager
from kibana_buildpack.core.services.supply import KIBANA, Supplier

logger = logging.getLogger(__name__)


@dataclass
class SupplyResult:
    """Result of the supply phase."""

    kibana_version: str = ""
    installed: list[Dependency] = field(default_factory=list)
    plan: InstallationPlan | None = None
    cache_failures: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error

        result["kibana_version"] = self.kibana_version
        result["installed"] = [
            {"name": d.name, "version": d.version, "location": d.runtime_location}
            for d in self.installed
        ]
        if self.plan:
            result["plan"] = self.plan.to_dict()
        result["cache_failures"] = self.cache_failures
        return result


def run_supply(
    stager: Stager,
    buildpack_dir: Path,
    env: Mapping[str, str] | None = None,
    manifest: BuildpackManifest | None = None,
    artifact_installer: Adapter | None = None,
    shell: Adapter | None = None,
) -> SupplyResult:
    """Run the supply phase.

    Args:
        stager: Build directories handed over by the platform.
        buildpack_dir: Root of this buildpack.
        env: Environment snapshot source. Defaults to ``os.environ``.
        manifest: Version catalog override (tests).
        artifact_installer: Artifact adapter override (tests).
        shell: Shell adapter override (tests).

    Returns:
        SupplyResult; ``error`` is set when the build must stop.
    """
    result = SupplyResult()

    try:
        supplier = Supplier(
            stager,
            buildpack_dir,
            os.environ if env is None else env,
            manifest=manifest,
            artifact_installer=artifact_installer,
            shell=shell,
        )
    except ConfigError as e:
        result.error = str(e)
        return result

    try:
        supplier.run()
    except (BuildpackError, ConfigError) as e:
        logger.debug("Supply stopped: %s", e)
        result.error = str(e)
    except OSError as e:
        logger.error("Supply failed on the filesystem: %s", e)
        result.error = str(e)

    result.installed = list(supplier.dependencies.values())
    result.plan = supplier.plan
    if KIBANA in supplier.dependencies:
        result.kibana_version = supplier.dependencies[KIBANA].version
    if supplier.cache is not None:
        result.cache_failures = [str(f) for f in supplier.cache.failures]
    return result
