"""
Kibana file model — the application's build-time configuration.

Read from ``<build_dir>/Kibana``. Keys use the YAML spelling of the
buildpack docs (``cmd-args``, ``config-templates``, ...); attributes
use Python names. Anything absent falls back to the defaults below.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

DEFAULT_RESERVED_MEMORY = 300
DEFAULT_HEAP_PERCENTAGE = 90
DEFAULT_LOG_LEVEL = "info"


def _none_as(default: Any):
    return BeforeValidator(lambda v: default() if v is None else v)


StrList = Annotated[list[str], _none_as(list)]

# YAML reads "version: 6.2" as a float
VersionStr = Annotated[str, BeforeValidator(lambda v: "" if v is None else str(v))]


class BuildpackOptions(BaseModel):
    """The ``buildpack:`` section — knobs for the build step itself."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    log_level: str = Field(DEFAULT_LOG_LEVEL, alias="log-level")
    no_cache: bool = Field(False, alias="no-cache")
    sleep_command: bool = Field(False, alias="sleep-command")

    @property
    def debug(self) -> bool:
        return self.log_level.strip().lower() == "debug"


class ConfigTemplate(BaseModel):
    """One explicitly requested template and the instance to bind it to."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    service_instance_name: str = Field("", alias="service-instance-name")


class KibanaConfig(BaseModel):
    """The application's Kibana file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: VersionStr = ""
    plugins: StrList = Field(default_factory=list)
    certificates: StrList = Field(default_factory=list)
    cmd_args: str = Field("", alias="cmd-args")
    node_opts: str = Field("", alias="nodejs-options")
    reserved_memory: int = Field(DEFAULT_RESERVED_MEMORY, alias="reserved-memory")
    heap_percentage: int = Field(DEFAULT_HEAP_PERCENTAGE, alias="heap-percentage")
    config_check: bool = Field(False, alias="config-check")
    config_templates: Annotated[list[ConfigTemplate], _none_as(list)] = Field(
        default_factory=list, alias="config-templates"
    )
    enable_service_fallback: bool = Field(False, alias="enable-service-fallback")
    buildpack: Annotated[BuildpackOptions, _none_as(BuildpackOptions)] = Field(
        default_factory=BuildpackOptions
    )

    @property
    def explicit_templates(self) -> bool:
        """Whether the operator named templates explicitly."""
        return len(self.config_templates) > 0
