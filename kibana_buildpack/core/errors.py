"""
Buildpack errors — every reason a supply/finalize step can stop.

Each error names the dependency, template, or certificate it is about,
so an operator can fix the right line of the Kibana file without
reading a stack trace.

Only ``CacheIOFailure`` is non-fatal: the dependency cache collects
it and moves on. Everything else aborts the remaining build steps.
"""

from __future__ import annotations


class BuildpackError(Exception):
    """Base class for all engine errors."""


class VersionNotFound(BuildpackError):
    """No manifest version satisfies the requested (partial) version."""

    def __init__(self, name: str, version: str = "", reason: str = ""):
        self.name = name
        self.version = version
        if not reason:
            reason = (
                f"no available version matches '{version}'"
                if version
                else "no default version in manifest"
            )
        super().__init__(f"Unable to determine the version of {name}: {reason}")


class InstallFailed(BuildpackError):
    """An external installer step reported failure."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Error installing '{name}': {reason}")


class TemplateRenderError(InstallFailed):
    """The template engine failed to pre-process a template."""

    def __init__(self, name: str, reason: str):
        super().__init__(name, reason)
        self.args = (f"Error pre-processing template {name}: {reason}",)


class PluginInstallError(InstallFailed):
    """``kibana-plugin install`` failed for one plugin."""

    def __init__(self, name: str, reason: str):
        super().__init__(name, reason)
        self.args = (f"Error installing Kibana plugin {name}: {reason}",)


class CacheIOFailure(BuildpackError):
    """A cache directory could not be read or removed (never fatal)."""

    def __init__(self, directory_name: str, reason: str):
        self.directory_name = directory_name
        self.reason = reason
        super().__init__(f"Cache I/O failure for '{directory_name}': {reason}")


class NoServiceFound(BuildpackError):
    """A tagged template found no service instance to bind to."""

    def __init__(self, template: str, tags: list[str]):
        self.template = template
        self.tags = list(tags)
        super().__init__(
            f"No service found for template {template} "
            f"(tags: {', '.join(tags)}). Bind a service or enable the service fallback."
        )


class AmbiguousServiceBinding(BuildpackError):
    """More than one service instance could bind to a template."""

    def __init__(self, template: str, candidates: list[str]):
        self.template = template
        self.candidates = list(candidates)
        super().__init__(
            f"More than one service found for template {template}: "
            f"{', '.join(candidates)}. Name the instance under 'config-templates' "
            "in the Kibana file."
        )


class MissingServiceInstanceName(BuildpackError):
    """Explicit template configuration lacks a required instance name."""

    def __init__(self, template: str):
        self.template = template
        super().__init__(
            f"Template {template} requires service instance name: "
            "no service instance name defined for template in Kibana file"
        )


class CertificateNotFound(BuildpackError):
    """A configured certificate has no ``<name>.crt`` in ``certificates/``."""

    def __init__(self, certificate: str, directory: str = "certificates"):
        self.certificate = certificate
        super().__init__(
            f"File {certificate}.crt not found in directory '/{directory}'"
        )
