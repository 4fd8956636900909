"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from kibana_buildpack.core.models.manifest import DefaultVersion, Manifest, ManifestDependency
from kibana_buildpack.core.services.manifest import BuildpackManifest
from kibana_buildpack.core.services.stager import Stager

TEMPLATES_YML = textwrap.dedent("""\
    alias:
      credentials-host-field: uri
    templates:
      - name: kibana-base
        type: base
        is-default: true
      - name: kibana-es
        is-default: true
        is-fallback: true
        tags: [elasticsearch]
      - name: kibana-auth
        tags: [auth]
        plugins: [x-pack]
      - name: kibana-db
        tags: [db]
""")


def make_manifest(
    versions: dict[str, list[str]],
    defaults: dict[str, str] | None = None,
    buildpack_dir: Path | None = None,
) -> BuildpackManifest:
    """Manifest with one ``.tgz`` entry per name/version."""
    return BuildpackManifest(
        Manifest(
            dependencies=[
                ManifestDependency(
                    name=name,
                    version=version,
                    uri=f"https://example.test/{name}/{name}-{version}.tgz",
                )
                for name, all_versions in versions.items()
                for version in all_versions
            ],
            default_versions=[
                DefaultVersion(name=name, version=version)
                for name, version in (defaults or {}).items()
            ],
        ),
        buildpack_dir,
    )


@pytest.fixture
def stager(tmp_path: Path) -> Stager:
    """Stager over fresh build/cache/deps directories."""
    for name in ("build", "cache", "deps"):
        (tmp_path / name).mkdir()
    return Stager(tmp_path / "build", tmp_path / "cache", tmp_path / "deps", "0")


@pytest.fixture
def buildpack_dir(tmp_path: Path) -> Path:
    """Buildpack root with a template catalog and a manifest."""
    root = tmp_path / "buildpack"
    templates = root / "defaults" / "templates"
    templates.mkdir(parents=True)
    (templates / "templates.yml").write_text(TEMPLATES_YML)
    (root / "manifest.yml").write_text(textwrap.dedent("""\
        language: kibana
        default_versions:
          - name: gte
            version: 3.1.x
          - name: jq
            version: 1.5.x
          - name: kibana
            version: 6.2.x
          - name: x-pack
            version: 6.2.x
          - name: kibana-plugins
            version: 6.2.x
        dependencies:
          - name: gte
            version: 3.1.0
            uri: https://example.test/gte-3.1.0.tgz
          - name: jq
            version: 1.5.0
            uri: https://example.test/jq-1.5.0.tgz
          - name: kibana
            version: 6.2.1
            uri: https://example.test/kibana-6.2.1.tgz
          - name: kibana
            version: 6.2.2
            uri: https://example.test/kibana-6.2.2.tgz
          - name: x-pack
            version: 6.2.2
            uri: https://example.test/x-pack-6.2.2.tgz
          - name: kibana-plugins
            version: 6.2.2
            uri: https://example.test/kibana-plugins-6.2.2.tgz
    """))
    return root


@pytest.fixture
def manifest_factory():
    """``make_manifest`` as a fixture, for tests that build their own catalog."""
    return make_manifest
