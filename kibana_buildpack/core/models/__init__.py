"""
Domain models — Pydantic types for the buildpack.

All models are re-exported here for convenient access:

    from kibana_buildpack.core.models import Dependency, Template, ServiceInstance
"""

from kibana_buildpack.core.models.cache import CacheEntry, CacheState
from kibana_buildpack.core.models.config import (
    BuildpackOptions,
    ConfigTemplate,
    KibanaConfig,
)
from kibana_buildpack.core.models.dependency import Dependency
from kibana_buildpack.core.models.manifest import (
    DefaultVersion,
    Manifest,
    ManifestDependency,
)
from kibana_buildpack.core.models.service import (
    BuildEnvironment,
    Limits,
    ServiceInstance,
    ServiceOrigin,
    VcapApplication,
)
from kibana_buildpack.core.models.template import (
    Alias,
    InstallationPlan,
    SelectionMode,
    Template,
    TemplatesConfig,
)

__all__ = [
    "Alias",
    "BuildEnvironment",
    "BuildpackOptions",
    # cache.py
    "CacheEntry",
    "CacheState",
    "ConfigTemplate",
    "DefaultVersion",
    # dependency.py
    "Dependency",
    "InstallationPlan",
    # config.py
    "KibanaConfig",
    "Limits",
    # manifest.py
    "Manifest",
    "ManifestDependency",
    "SelectionMode",
    # service.py
    "ServiceInstance",
    "ServiceOrigin",
    # template.py
    "Template",
    "TemplatesConfig",
    "VcapApplication",
]
