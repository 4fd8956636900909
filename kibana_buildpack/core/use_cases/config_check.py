"""
Config check use case — validate the app's Kibana file and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from kibana_buildpack.core.config.loader import (
    APP_CONFIG_FILE,
    ConfigError,
    load_app_config,
    load_templates_config,
)
from kibana_buildpack.core.engine.version_resolver import VersionResolver
from kibana_buildpack.core.errors import VersionNotFound
from kibana_buildpack.core.models.config import KibanaConfig
from kibana_buildpack.core.services.manifest import BuildpackManifest
from kibana_buildpack.core.services.supply import KIBANA, VERSION_PARTS, read_local_certificates


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: KibanaConfig | None = None
    config_path: Path | None = None
    kibana_version: str = ""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "kibana_version": self.kibana_version or None,
            "plugins": self.config.plugins if self.config else [],
            "template_count": len(self.config.config_templates) if self.config else 0,
        }


def check_config(build_dir: Path, buildpack_dir: Path | None = None) -> ConfigCheckResult:
    """Validate the Kibana file of the app in ``build_dir``.

    With ``buildpack_dir`` the check also resolves the Kibana version
    against the manifest and the configured templates against the
    template catalog.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult(config_path=build_dir / APP_CONFIG_FILE)

    try:
        config = load_app_config(build_dir)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    if not 0 < config.heap_percentage <= 100:
        result.errors.append(
            f"heap-percentage must be between 1 and 100, got {config.heap_percentage}"
        )
    if config.reserved_memory < 0:
        result.errors.append(f"reserved-memory must not be negative, got {config.reserved_memory}")

    dupes = sorted({p for p in config.plugins if config.plugins.count(p) > 1})
    if dupes:
        result.warnings.append(f"Duplicate plugins: {', '.join(dupes)}")

    if config.certificates:
        local = read_local_certificates(build_dir / "certificates")
        for name in config.certificates:
            if name not in local:
                result.errors.append(f"Certificate {name}.crt not found in directory 'certificates'")

    if buildpack_dir is not None:
        _check_against_buildpack(config, buildpack_dir, result)

    result.valid = len(result.errors) == 0
    return result


def _check_against_buildpack(config: KibanaConfig, buildpack_dir: Path, result: ConfigCheckResult) -> None:
    try:
        manifest = BuildpackManifest.from_dir(buildpack_dir)
        templates = load_templates_config(buildpack_dir)
    except ConfigError as e:
        result.errors.append(str(e))
        return

    try:
        result.kibana_version = VersionResolver(manifest).resolve(KIBANA, config.version, VERSION_PARTS)
    except VersionNotFound as e:
        result.errors.append(str(e))

    for configured in config.config_templates:
        name = configured.name.strip()
        if not name:
            result.warnings.append("Template without a name will be skipped")
            continue
        template = templates.get_template(name)
        if template is None:
            result.warnings.append(f"Template {name} does not exist and will be skipped")
        elif template.requires_service and not configured.service_instance_name.strip():
            result.errors.append(f"Template {name} requires a service-instance-name")
