"""
Service binding matcher — which bound instances could serve a template.
"""

from __future__ import annotations

from kibana_buildpack.core.models.service import ServiceInstance


def matching_instances(
    required_tags: list[str],
    instances: list[ServiceInstance],
) -> tuple[list[ServiceInstance], list[ServiceInstance]]:
    """Split bound instances into tag matches and user-provided ones.

    An instance is a tag match if any one of its tags equals any required
    tag, ignoring case. Every user-provided instance is returned in the
    second list whatever its tags, since those carry no reliable tags.
    Both lists keep discovery order. An instance can appear in both.

    Returns:
        ``(tagged, user_provided)``
    """
    tagged = [i for i in instances if required_tags and i.has_any_tag(required_tags)]
    user_provided = [i for i in instances if i.user_provided]
    return tagged, user_provided
