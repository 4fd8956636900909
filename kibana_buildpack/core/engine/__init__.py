"""Resolution engine — versions, cache, templates, plugin sources."""

from kibana_buildpack.core.engine.dependency_cache import DependencyCache
from kibana_buildpack.core.engine.installer import DependencyInstaller
from kibana_buildpack.core.engine.plugin_source import resolve_source
from kibana_buildpack.core.engine.service_binding import matching_instances
from kibana_buildpack.core.engine.template_selector import TemplateSelector, decide_mode
from kibana_buildpack.core.engine.version_resolver import VersionResolver

__all__ = [
    "DependencyCache",
    "DependencyInstaller",
    "TemplateSelector",
    "VersionResolver",
    "decide_mode",
    "matching_instances",
    "resolve_source",
]
