"""
Buildpack manifest model — which dependency versions can be installed.

The manifest is the single source of truth for available versions; a
cache directory name is never used to infer one.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ManifestDependency(BaseModel):
    """One installable artifact (a name/version pair and where to get it)."""

    model_config = ConfigDict(extra="ignore")

    name: str
    version: str
    uri: str = ""
    sha256: str = ""
    cf_stacks: list[str] = Field(default_factory=list)

    @property
    def file_name(self) -> str:
        """Archive file name, taken from the URI."""
        return self.uri.rstrip("/").rsplit("/", 1)[-1]


class DefaultVersion(BaseModel):
    """The version used when the operator does not configure one."""

    name: str
    version: str


class Manifest(BaseModel):
    """Parsed ``manifest.yml`` of the buildpack."""

    model_config = ConfigDict(extra="ignore")

    language: str = "kibana"
    dependencies: list[ManifestDependency] = Field(default_factory=list)
    default_versions: list[DefaultVersion] = Field(default_factory=list)
