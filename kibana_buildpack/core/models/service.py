"""
Environment snapshot models — VCAP_APPLICATION and VCAP_SERVICES.

These are read-only views of the deployment environment. The raw JSON
is decoded by the config loader; the engine only ever sees these types.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field

# VCAP_SERVICES label under which user-provided instances are listed
USER_PROVIDED_LABEL = "user-provided"

# JSON null for tags/credentials means "none"
TagList = Annotated[list[str], BeforeValidator(lambda v: v or [])]
Credentials = Annotated[dict[str, Any], BeforeValidator(lambda v: v or {})]


class ServiceOrigin(StrEnum):
    """How a service instance came to be bound."""

    TAGGED = "tagged"
    USER_PROVIDED = "user-provided"


class ServiceInstance(BaseModel):
    """A service instance bound to the application."""

    name: str
    label: str = ""
    tags: TagList = Field(default_factory=list)
    plan: str = ""
    credentials: Credentials = Field(default_factory=dict)
    origin: ServiceOrigin = ServiceOrigin.TAGGED

    def has_any_tag(self, tags: list[str]) -> bool:
        """Case-insensitive: does any of our tags equal any of ``tags``?"""
        wanted = {t.casefold() for t in tags}
        return any(t.casefold() in wanted for t in self.tags)

    @property
    def user_provided(self) -> bool:
        return self.origin == ServiceOrigin.USER_PROVIDED


class Limits(BaseModel):
    """Resource limits imposed on the application process."""

    disk: int = 0
    fds: int = 0
    mem: int = 0


class VcapApplication(BaseModel):
    """The subset of VCAP_APPLICATION the buildpack cares about."""

    application_id: str = ""
    application_name: str = ""
    application_uris: list[str] = Field(default_factory=list)
    application_version: str = ""
    cf_api: str = ""
    limits: Limits | None = None


class BuildEnvironment(BaseModel):
    """Everything the build learns from its environment, parsed once."""

    application: VcapApplication = Field(default_factory=VcapApplication)
    services: list[ServiceInstance] = Field(default_factory=list)
    config_files_exist: bool = False

    def service_names(self) -> list[str]:
        return [s.name for s in self.services]
