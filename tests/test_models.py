"""
Tests for domain models — dependencies, templates, services, cache entries.
"""

import pytest
from pydantic import ValidationError

from kibana_buildpack.core.models import (
    CacheEntry,
    CacheState,
    Dependency,
    KibanaConfig,
    ManifestDependency,
    ServiceInstance,
    ServiceOrigin,
    Template,
    TemplatesConfig,
)


class TestDependency:
    def test_dir_name(self):
        dep = Dependency(name="kibana-plugins", version="6.2.2")
        assert dep.dir_name == "kibana-plugins-6.2.2"

    def test_frozen(self):
        dep = Dependency(name="gte", version="3.1.0")
        with pytest.raises(ValidationError):
            dep.version = "3.2.0"

    def test_dir_name_serialized(self):
        assert Dependency(name="jq", version="1.5.0").model_dump()["dir_name"] == "jq-1.5.0"


class TestTemplate:
    def test_yaml_aliases(self):
        template = Template.model_validate(
            {"name": "t", "is-default": True, "is-fallback": True, "tags": None, "plugins": None}
        )
        assert template.is_default and template.is_fallback
        assert template.tags == [] and template.plugins == []
        assert not template.requires_service

    def test_bound_to_copies(self):
        template = Template(name="t", tags=["db"])
        bound = template.bound_to("mydb")
        assert bound.service_instance_name == "mydb"
        assert template.service_instance_name == ""
        assert "service_instance_name" not in bound.model_dump()

    def test_catalog_defaults(self):
        catalog = TemplatesConfig.model_validate({})
        assert catalog.templates == []
        assert catalog.alias.credentials_host_field == "host"


class TestServiceInstance:
    def test_has_any_tag_ignores_case(self):
        instance = ServiceInstance(name="es", tags=["ElasticSearch", "search"])
        assert instance.has_any_tag(["elasticsearch"])
        assert not instance.has_any_tag(["db"])
        assert not instance.has_any_tag([])

    def test_origin(self):
        assert ServiceInstance(name="x", origin=ServiceOrigin.USER_PROVIDED).user_provided
        assert not ServiceInstance(name="x").user_provided


class TestKibanaConfig:
    def test_numeric_version_is_text(self):
        assert KibanaConfig.model_validate({"version": 6.2}).version == "6.2"

    def test_unknown_keys_ignored(self):
        config = KibanaConfig.model_validate({"x-pack": {"monitoring": {"enabled": True}}})
        assert config.plugins == []


class TestManifestDependency:
    def test_file_name(self):
        dep = ManifestDependency(name="jq", version="1.5.0", uri="https://example.test/bin/jq-linux64")
        assert dep.file_name == "jq-linux64"


class TestCacheEntry:
    def test_to_dict(self):
        entry = CacheEntry("kibana-6.2.2", CacheState.IN_USE)
        assert entry.to_dict() == {"directory_name": "kibana-6.2.2", "state": "in_use"}
