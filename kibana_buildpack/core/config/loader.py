"""
Configuration loader — reads buildpack and application config into models.

Sources:
    <build_dir>/Kibana                              → KibanaConfig
    <buildpack_dir>/defaults/templates/templates.yml → TemplatesConfig
    <buildpack_dir>/manifest.yml                     → Manifest
    VCAP_APPLICATION / VCAP_SERVICES (JSON)          → BuildEnvironment

YAML and JSON are decoded here and validated against the Pydantic
models. Decoding problems come back as ``ParseError``, never as a raw
``yaml.YAMLError`` / ``json.JSONDecodeError``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from kibana_buildpack.core.models.config import KibanaConfig
from kibana_buildpack.core.models.manifest import Manifest
from kibana_buildpack.core.models.service import (
    USER_PROVIDED_LABEL,
    BuildEnvironment,
    ServiceInstance,
    ServiceOrigin,
    VcapApplication,
)
from kibana_buildpack.core.models.template import TemplatesConfig

logger = logging.getLogger(__name__)

# Default file locations
APP_CONFIG_FILE = "Kibana"
TEMPLATES_FILE = Path("defaults") / "templates" / "templates.yml"
MANIFEST_FILE = "manifest.yml"
APP_CONF_DIR = "conf.d"


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


class ParseError(ConfigError):
    """Raised when a YAML or JSON document cannot be decoded."""


class _NumbersAsTextLoader(yaml.SafeLoader):
    """SafeLoader that keeps int and float scalars as their source text.

    ``version: 6.10`` must stay "6.10", not the float 6.1. Pydantic
    still coerces the text of numeric fields back to int.
    """


def _scalar_text(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> str:
    return loader.construct_scalar(node)


_NumbersAsTextLoader.add_constructor("tag:yaml.org,2002:int", _scalar_text)
_NumbersAsTextLoader.add_constructor("tag:yaml.org,2002:float", _scalar_text)


def _read(path: Path) -> str:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e


def _parse_yaml(
    raw: str, source: str, loader: type[yaml.SafeLoader] = yaml.SafeLoader
) -> dict[str, Any]:
    try:
        data = yaml.load(raw, Loader=loader)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML in {source}: {e}") from e

    # An empty file is an empty mapping
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(f"Expected a YAML mapping in {source}, got {type(data).__name__}")
    return data


def _parse_json(raw: str | None, source: str) -> Any:
    if raw is None or not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in {source}: {e}") from e


def _validate(model: type[BaseModel], data: Any, source: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e


def load_app_config(build_dir: Path) -> KibanaConfig:
    """Load the application's Kibana file.

    Missing keys take the defaults of ``KibanaConfig``.

    Raises:
        ConfigError: If the file is missing or invalid.
        ParseError: If the file is not valid YAML.
    """
    path = build_dir / APP_CONFIG_FILE
    logger.debug("Loading app config from %s", path)
    data = _parse_yaml(_read(path), str(path), loader=_NumbersAsTextLoader)
    config = _validate(KibanaConfig, data, str(path))
    logger.debug(
        "Kibana file: version=%r plugins=%s templates=%d",
        config.version,
        config.plugins,
        len(config.config_templates),
    )
    return config


def load_templates_config(buildpack_dir: Path) -> TemplatesConfig:
    """Load the buildpack's template catalog."""
    path = buildpack_dir / TEMPLATES_FILE
    logger.debug("Loading templates from %s", path)
    data = _parse_yaml(_read(path), str(path))
    return _validate(TemplatesConfig, data, str(path))


def load_manifest(buildpack_dir: Path) -> Manifest:
    """Load the buildpack's ``manifest.yml``."""
    path = buildpack_dir / MANIFEST_FILE
    logger.debug("Loading manifest from %s", path)
    data = _parse_yaml(_read(path), str(path))
    return _validate(Manifest, data, str(path))


def parse_vcap_application(raw: str | None) -> VcapApplication:
    """Decode VCAP_APPLICATION."""
    data = _parse_json(raw, "VCAP_APPLICATION")
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object in VCAP_APPLICATION, got {type(data).__name__}")
    return _validate(VcapApplication, data, "VCAP_APPLICATION")


def parse_vcap_services(raw: str | None) -> list[ServiceInstance]:
    """Decode VCAP_SERVICES into a flat list of instances.

    VCAP_SERVICES maps a service label to its bound instances. The flat
    list keeps discovery order: label order first, then instance order.
    Instances listed under ``user-provided`` get that origin.
    """
    data = _parse_json(raw, "VCAP_SERVICES")
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object in VCAP_SERVICES, got {type(data).__name__}")

    instances: list[ServiceInstance] = []
    for label, entries in data.items():
        if not isinstance(entries, list):
            raise ParseError(f"Expected a list of instances for '{label}' in VCAP_SERVICES")
        origin = (
            ServiceOrigin.USER_PROVIDED if label == USER_PROVIDED_LABEL else ServiceOrigin.TAGGED
        )
        for entry in entries:
            if not isinstance(entry, dict):
                raise ParseError(f"Expected an object for a '{label}' instance in VCAP_SERVICES")
            instance = _validate(
                ServiceInstance,
                {"label": label, **entry, "origin": origin},
                "VCAP_SERVICES",
            )
            instances.append(instance)

    logger.debug("VCAP_SERVICES: %d instance(s) bound", len(instances))
    return instances


def has_local_config_files(build_dir: Path) -> bool:
    """Whether the app ships its own files in ``conf.d``."""
    conf_dir = build_dir / APP_CONF_DIR
    if not conf_dir.is_dir():
        return False
    return any(conf_dir.iterdir())


def load_build_environment(build_dir: Path, env: Mapping[str, str]) -> BuildEnvironment:
    """Build the environment snapshot from the process env and the app dir."""
    return BuildEnvironment(
        application=parse_vcap_application(env.get("VCAP_APPLICATION")),
        services=parse_vcap_services(env.get("VCAP_SERVICES")),
        config_files_exist=has_local_config_files(build_dir),
    )
