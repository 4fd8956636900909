"""
Template selection — which config templates this build installs, bound to what.

The selection mode is decided once per build:

    AUTO      no local conf.d files and no ``config-templates``
              → every default template, services matched by tag
    EXPLICIT  otherwise
              → only the templates named in ``config-templates``,
                bound to the instance name given there

Per template the outcome is: skipped, bound (to an instance name or to
nothing), or an error that stops the build. Auto mode never guesses:
two candidate instances is an error, not a coin toss.
"""

from __future__ import annotations

import logging

from kibana_buildpack.core.engine.service_binding import matching_instances
from kibana_buildpack.core.errors import (
    AmbiguousServiceBinding,
    MissingServiceInstanceName,
    NoServiceFound,
)
from kibana_buildpack.core.models.config import ConfigTemplate
from kibana_buildpack.core.models.service import ServiceInstance
from kibana_buildpack.core.models.template import (
    InstallationPlan,
    SelectionMode,
    Template,
)

logger = logging.getLogger(__name__)


def decide_mode(config_files_exist: bool, config_templates: list[ConfigTemplate]) -> SelectionMode:
    """Pick the selection mode for the whole build."""
    if config_files_exist or config_templates:
        return SelectionMode.EXPLICIT
    return SelectionMode.AUTO


class TemplateSelector:
    """Select and bind templates, and collect the plugins they need.

    Args:
        templates: The buildpack's known templates.
        enable_service_fallback: App-wide switch letting every tagged
            template install unbound when no service is found.
    """

    def __init__(self, templates: list[Template], enable_service_fallback: bool = False):
        self._templates = list(templates)
        self._enable_service_fallback = enable_service_fallback

    def select(
        self,
        mode: SelectionMode,
        instances: list[ServiceInstance],
        config_templates: list[ConfigTemplate] | None = None,
        user_plugins: list[str] | None = None,
    ) -> InstallationPlan:
        """Build the installation plan.

        Raises:
            NoServiceFound, AmbiguousServiceBinding: auto mode binding failed.
            MissingServiceInstanceName: explicit mode lacks a required name.
        """
        plan = InstallationPlan(mode=mode)
        if mode == SelectionMode.AUTO:
            for template in self._templates:
                if template.is_default:
                    plan.templates.append(self._bind_auto(template, instances, plan))
        else:
            for configured in config_templates or []:
                selected = self._bind_explicit(configured, plan)
                if selected is not None:
                    plan.templates.append(selected)

        plan.plugins = _union(user_plugins or [], *(t.plugins for t in plan.templates))
        logger.debug(
            "Template selection (%s): %s; plugins: %s",
            mode,
            [t.name for t in plan.templates],
            plan.plugins,
        )
        return plan

    # ── Auto mode ───────────────────────────────────────────────

    def _bind_auto(
        self,
        template: Template,
        instances: list[ServiceInstance],
        plan: InstallationPlan,
    ) -> Template:
        if not template.requires_service:
            return template.bound_to("")

        tagged, user_provided = matching_instances(template.tags, instances)
        candidates: list[ServiceInstance] = []
        for instance in tagged + user_provided:
            if not any(instance is c for c in candidates):
                candidates.append(instance)

        if not candidates:
            if template.is_fallback or self._enable_service_fallback:
                _warn(
                    plan,
                    f"No service found for template {template.name}, will do the fallback. "
                    "Please bind a service and restage the app",
                )
                return template.bound_to("")
            raise NoServiceFound(template.name, template.tags)

        if len(candidates) > 1:
            raise AmbiguousServiceBinding(template.name, [c.name for c in candidates])

        return template.bound_to(candidates[0].name)

    # ── Explicit mode ───────────────────────────────────────────

    def _bind_explicit(self, configured: ConfigTemplate, plan: InstallationPlan) -> Template | None:
        template_name = configured.name.strip()
        if not template_name:
            _warn(plan, "Skipping template: no valid name defined for template in Kibana file")
            return None

        template = self._find(template_name)
        if template is None:
            _warn(plan, f"Template {template_name} defined in Kibana file does not exist")
            return None

        # Operator-supplied names are trusted; they are not checked
        # against VCAP_SERVICES.
        instance_name = configured.service_instance_name.strip()
        if template.requires_service:
            if not instance_name:
                raise MissingServiceInstanceName(template_name)
            return template.bound_to(instance_name)

        if instance_name:
            _warn(
                plan,
                f"Service instance name '{instance_name}' is defined for template "
                f"{template_name} in Kibana file but template can not be bound to a service.",
            )
        return template.bound_to("")

    def _find(self, name: str) -> Template | None:
        for template in self._templates:
            if template.name == name:
                return template
        return None


def _warn(plan: InstallationPlan, message: str) -> None:
    logger.warning("%s", message)
    plan.warnings.append(message)


def _union(*lists: list[str]) -> list[str]:
    """Ordered union: first appearance wins, blanks dropped."""
    seen: dict[str, None] = {}
    for names in lists:
        for name in names:
            name = name.strip()
            if name:
                seen.setdefault(name, None)
    return list(seen)
