"""
Template models — configuration templates shipped with the buildpack.

Loaded from ``<buildpack>/defaults/templates/templates.yml``. A template
is one rendered Kibana config fragment; it may require a bound service
(by tag) and extra Kibana plugins.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _list_or_empty(value: Any) -> Any:
    return [] if value is None else value


# YAML turns an empty "tags:" into None
NameList = Annotated[list[str], BeforeValidator(_list_or_empty)]


class Alias(BaseModel):
    """Credential field names handed to the template renderer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    credentials_host_field: str = Field("host", alias="credentials-host-field")
    credentials_username_field: str = Field("username", alias="credentials-username-field")
    credentials_password_field: str = Field("password", alias="credentials-password-field")


class Template(BaseModel):
    """A configuration template.

    ``service_instance_name`` is empty until template selection binds
    the template; it stays empty for untagged templates and for fallback
    templates that found no service.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    type: str = ""
    is_default: bool = Field(False, alias="is-default")
    is_fallback: bool = Field(False, alias="is-fallback")
    tags: NameList = Field(default_factory=list)
    plugins: NameList = Field(default_factory=list)
    service_instance_name: str = Field("", exclude=True)

    @property
    def requires_service(self) -> bool:
        return len(self.tags) > 0

    def bound_to(self, service_instance_name: str) -> Template:
        """Copy of this template bound to a service instance ("" = unbound)."""
        return self.model_copy(update={"service_instance_name": service_instance_name})


class TemplatesConfig(BaseModel):
    """The buildpack's template catalog."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    alias: Alias = Field(default_factory=Alias)
    templates: Annotated[list[Template], BeforeValidator(_list_or_empty)] = Field(
        default_factory=list
    )

    @field_validator("alias", mode="before")
    @classmethod
    def _alias_defaults(cls, value: Any) -> Any:
        return {} if value is None else value

    def get_template(self, name: str) -> Template | None:
        for template in self.templates:
            if template.name == name:
                return template
        return None

    @property
    def template_names(self) -> list[str]:
        return [t.name for t in self.templates]


class SelectionMode(StrEnum):
    """How templates are chosen for a build, decided once per build.

    AUTO:     no explicit config — install every default template.
    EXPLICIT: local conf.d files or ``config-templates`` present —
              install only the named templates.
    """

    AUTO = "auto"
    EXPLICIT = "explicit"


class InstallationPlan(BaseModel):
    """Templates selected for this build and the plugins they demand."""

    mode: SelectionMode = SelectionMode.AUTO
    templates: list[Template] = Field(default_factory=list)
    plugins: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mode": str(self.mode),
            "templates": [
                {"name": t.name, "service_instance_name": t.service_instance_name}
                for t in self.templates
            ],
            "plugins": list(self.plugins),
            "warnings": list(self.warnings),
        }
