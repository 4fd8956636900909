"""
Tests for service binding and template selection — auto and explicit modes.
"""

import pytest

from kibana_buildpack.core.engine.service_binding import matching_instances
from kibana_buildpack.core.engine.template_selector import TemplateSelector, decide_mode
from kibana_buildpack.core.errors import (
    AmbiguousServiceBinding,
    MissingServiceInstanceName,
    NoServiceFound,
)
from kibana_buildpack.core.models.config import ConfigTemplate
from kibana_buildpack.core.models.service import ServiceInstance, ServiceOrigin
from kibana_buildpack.core.models.template import SelectionMode, Template


def _instance(name: str, *tags: str, user_provided: bool = False) -> ServiceInstance:
    return ServiceInstance(
        name=name,
        tags=list(tags),
        origin=ServiceOrigin.USER_PROVIDED if user_provided else ServiceOrigin.TAGGED,
    )


def _db_template(**kwargs) -> Template:
    return Template(name="kibana-db", is_default=True, tags=["db"], **kwargs)


# ── Service binding ──────────────────────────────────────────────────


class TestMatchingInstances:
    def test_tag_match_ignores_case(self):
        mydb = _instance("mydb", "DB")
        tagged, user_provided = matching_instances(["db"], [mydb, _instance("cache", "redis")])
        assert tagged == [mydb]
        assert user_provided == []

    def test_user_provided_always_listed(self):
        ups = _instance("creds", user_provided=True)
        tagged, user_provided = matching_instances(["db"], [ups])
        assert tagged == []
        assert user_provided == [ups]

    def test_no_required_tags(self):
        tagged, _ = matching_instances([], [_instance("mydb", "db")])
        assert tagged == []

    def test_keeps_discovery_order(self):
        a, b = _instance("a", "db"), _instance("b", "db")
        tagged, _ = matching_instances(["db"], [a, _instance("x"), b])
        assert [i.name for i in tagged] == ["a", "b"]


# ── Mode ─────────────────────────────────────────────────────────────


class TestDecideMode:
    def test_auto(self):
        assert decide_mode(False, []) == SelectionMode.AUTO

    def test_local_files_make_it_explicit(self):
        assert decide_mode(True, []) == SelectionMode.EXPLICIT

    def test_config_templates_make_it_explicit(self):
        assert decide_mode(False, [ConfigTemplate(name="kibana-db")]) == SelectionMode.EXPLICIT


# ── Auto mode ────────────────────────────────────────────────────────


class TestAutoMode:
    def test_single_match_binds(self):
        selector = TemplateSelector([_db_template()])
        plan = selector.select(
            SelectionMode.AUTO,
            [_instance("other", "redis"), _instance("mydb", "db"), _instance("queue", "mq")],
        )
        assert [(t.name, t.service_instance_name) for t in plan.templates] == [("kibana-db", "mydb")]
        assert plan.warnings == []

    def test_two_matches_is_ambiguous(self):
        selector = TemplateSelector([_db_template()])
        with pytest.raises(AmbiguousServiceBinding) as exc_info:
            selector.select(SelectionMode.AUTO, [_instance("db1", "db"), _instance("db2", "db")])
        assert exc_info.value.candidates == ["db1", "db2"]
        assert "kibana-db" in str(exc_info.value)

    def test_tagged_and_user_provided_is_ambiguous(self):
        selector = TemplateSelector([_db_template()])
        with pytest.raises(AmbiguousServiceBinding):
            selector.select(
                SelectionMode.AUTO,
                [_instance("mydb", "db"), _instance("creds", user_provided=True)],
            )

    def test_user_provided_with_matching_tag_counts_once(self):
        selector = TemplateSelector([_db_template()])
        plan = selector.select(SelectionMode.AUTO, [_instance("ups-db", "db", user_provided=True)])
        assert plan.templates[0].service_instance_name == "ups-db"

    def test_single_user_provided_binds(self):
        selector = TemplateSelector([_db_template()])
        plan = selector.select(SelectionMode.AUTO, [_instance("creds", user_provided=True)])
        assert plan.templates[0].service_instance_name == "creds"

    def test_no_match_without_fallback_fails(self):
        selector = TemplateSelector([_db_template()])
        with pytest.raises(NoServiceFound) as exc_info:
            selector.select(SelectionMode.AUTO, [_instance("cache", "redis")])
        assert "kibana-db" in str(exc_info.value)

    def test_no_match_with_fallback_template(self):
        selector = TemplateSelector([_db_template(is_fallback=True)])
        plan = selector.select(SelectionMode.AUTO, [])
        assert plan.templates[0].service_instance_name == ""
        assert len(plan.warnings) == 1
        assert "kibana-db" in plan.warnings[0]

    def test_no_match_with_global_fallback(self):
        selector = TemplateSelector([_db_template()], enable_service_fallback=True)
        plan = selector.select(SelectionMode.AUTO, [])
        assert plan.templates[0].service_instance_name == ""
        assert plan.warnings

    def test_only_default_templates(self):
        selector = TemplateSelector([
            Template(name="base", is_default=True),
            Template(name="extra"),
        ])
        plan = selector.select(SelectionMode.AUTO, [])
        assert [t.name for t in plan.templates] == ["base"]

    def test_untagged_template_unbound(self):
        selector = TemplateSelector([Template(name="base", is_default=True)])
        plan = selector.select(SelectionMode.AUTO, [_instance("mydb", "db")])
        assert plan.templates[0].service_instance_name == ""

    def test_catalog_not_mutated(self):
        template = _db_template()
        TemplateSelector([template]).select(SelectionMode.AUTO, [_instance("mydb", "db")])
        assert template.service_instance_name == ""


# ── Explicit mode ────────────────────────────────────────────────────


class TestExplicitMode:
    def _selector(self) -> TemplateSelector:
        return TemplateSelector([
            Template(name="base"),
            _db_template(plugins=["db-plugin"]),
        ])

    def test_binds_configured_name_without_existence_check(self):
        plan = self._selector().select(
            SelectionMode.EXPLICIT,
            [],
            config_templates=[ConfigTemplate(name="kibana-db", service_instance_name="not-bound")],
        )
        assert plan.templates[0].service_instance_name == "not-bound"

    def test_missing_instance_name_fails(self):
        with pytest.raises(MissingServiceInstanceName) as exc_info:
            self._selector().select(
                SelectionMode.EXPLICIT,
                [],
                config_templates=[ConfigTemplate(name="kibana-db")],
            )
        assert "kibana-db" in str(exc_info.value)

    def test_unknown_template_skipped_with_warning(self):
        plan = self._selector().select(
            SelectionMode.EXPLICIT,
            [],
            config_templates=[ConfigTemplate(name="nope"), ConfigTemplate(name="base")],
        )
        assert [t.name for t in plan.templates] == ["base"]
        assert "nope" in plan.warnings[0]

    def test_blank_name_skipped_with_warning(self):
        plan = self._selector().select(
            SelectionMode.EXPLICIT, [], config_templates=[ConfigTemplate(name="  ")]
        )
        assert plan.templates == []
        assert len(plan.warnings) == 1

    def test_instance_name_on_untagged_template_ignored(self):
        plan = self._selector().select(
            SelectionMode.EXPLICIT,
            [],
            config_templates=[ConfigTemplate(name="base", service_instance_name="mydb")],
        )
        assert plan.templates[0].service_instance_name == ""
        assert "mydb" in plan.warnings[0]

    def test_no_config_templates_selects_nothing(self):
        plan = self._selector().select(SelectionMode.EXPLICIT, [_instance("mydb", "db")])
        assert plan.templates == []


# ── Plugins ──────────────────────────────────────────────────────────


class TestPlugins:
    def test_union_keeps_first_appearance(self):
        selector = TemplateSelector([
            Template(name="a", is_default=True, plugins=["x-pack", "p2"]),
            Template(name="b", is_default=True, plugins=["p2", "p3"]),
        ])
        plan = selector.select(SelectionMode.AUTO, [], user_plugins=["p1", "x-pack"])
        assert plan.plugins == ["p1", "x-pack", "p2", "p3"]

    def test_blank_plugins_dropped(self):
        selector = TemplateSelector([])
        plan = selector.select(SelectionMode.AUTO, [], user_plugins=["", " p1 "])
        assert plan.plugins == ["p1"]

    def test_to_dict(self):
        selector = TemplateSelector([_db_template(plugins=["db-plugin"])])
        plan = selector.select(SelectionMode.AUTO, [_instance("mydb", "db")])
        assert plan.to_dict() == {
            "mode": "auto",
            "templates": [{"name": "kibana-db", "service_instance_name": "mydb"}],
            "plugins": ["db-plugin"],
            "warnings": [],
        }
