"""
Templates use case — preview template selection without staging anything.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from kibana_buildpack.core.config.loader import (
    ConfigError,
    load_app_config,
    load_build_environment,
    load_templates_config,
)
from kibana_buildpack.core.engine.template_selector import TemplateSelector, decide_mode
from kibana_buildpack.core.errors import BuildpackError
from kibana_buildpack.core.models.template import InstallationPlan


@dataclass
class TemplatesResult:
    """Template selection as supply would do it right now."""

    plan: InstallationPlan | None = None
    services: list[str] | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "services": self.services or [],
            **(self.plan.to_dict() if self.plan else {}),
        }


def preview_templates(
    build_dir: Path,
    buildpack_dir: Path,
    env: Mapping[str, str] | None = None,
) -> TemplatesResult:
    """Select templates for the app in ``build_dir`` against ``env``."""
    result = TemplatesResult()
    try:
        config = load_app_config(build_dir)
        catalog = load_templates_config(buildpack_dir)
        environment = load_build_environment(build_dir, os.environ if env is None else env)

        mode = decide_mode(environment.config_files_exist, config.config_templates)
        selector = TemplateSelector(
            catalog.templates,
            enable_service_fallback=config.enable_service_fallback,
        )
        result.plan = selector.select(
            mode,
            environment.services,
            config_templates=config.config_templates,
            user_plugins=config.plugins,
        )
        result.services = environment.service_names()
    except (BuildpackError, ConfigError) as e:
        result.error = str(e)
    return result
