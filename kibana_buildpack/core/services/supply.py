"""
Supply phase — stage Kibana, its helpers, templates and plugins.

Runs every step in order and stops at the first error:

    Kibana file → cache → dir structure → templates catalog → environment
    → gte, jq → templates → certificates → kibana → plugin bundles
    → plugins → plugin list → cache sweep → config.yml
"""

from __future__ import annotations

import json
import logging
import textwrap
from collections.abc import Mapping
from pathlib import Path

from kibana_buildpack.adapters.base import Adapter, ExecutionContext
from kibana_buildpack.adapters.installer.artifact import ArtifactInstallerAdapter
from kibana_buildpack.adapters.shell.command import ShellCommandAdapter
from kibana_buildpack.core.config.loader import (
    load_app_config,
    load_build_environment,
    load_templates_config,
)
from kibana_buildpack.core.engine.dependency_cache import DependencyCache
from kibana_buildpack.core.engine.installer import DependencyInstaller
from kibana_buildpack.core.engine.plugin_source import resolve_source
from kibana_buildpack.core.engine.template_selector import TemplateSelector, decide_mode
from kibana_buildpack.core.engine.version_resolver import VersionResolver
from kibana_buildpack.core.errors import (
    CertificateNotFound,
    PluginInstallError,
    TemplateRenderError,
)
from kibana_buildpack.core.models.action import Action, Receipt
from kibana_buildpack.core.models.config import KibanaConfig
from kibana_buildpack.core.models.dependency import Dependency
from kibana_buildpack.core.models.service import BuildEnvironment
from kibana_buildpack.core.models.template import InstallationPlan, Template, TemplatesConfig
from kibana_buildpack.core.observability.logging_config import raise_to_debug
from kibana_buildpack.core.services.manifest import BuildpackManifest
from kibana_buildpack.core.services.stager import Stager

logger = logging.getLogger(__name__)

# Dependency names in the buildpack manifest
GTE = "gte"
JQ = "jq"
KIBANA = "kibana"
XPACK = "x-pack"
KIBANA_PLUGINS = "kibana-plugins"

VERSION_PARTS = 3
TEMPLATE_DELIMITERS = "<<:>>"
TEMPLATES_DIR = Path("defaults") / "templates"
DEP_SUBDIRS = ("conf.d", "plugins", "certificates")

# Templates may reference $PORT (Kibana's server.port) while staging
STAGING_PORT = "8080"


def _script(text: str) -> str:
    """Profile.d script body: strip indentation, keep a trailing newline."""
    return "\n".join(line.strip() for line in textwrap.dedent(text).strip().splitlines()) + "\n"


class Supplier:
    """One run of the supply phase.

    Args:
        stager: Build directories handed over by the platform.
        buildpack_dir: Root of this buildpack (templates, manifest).
        env: Process environment (VCAP_APPLICATION / VCAP_SERVICES).
        manifest: Version catalog; loaded from ``buildpack_dir`` if omitted.
        artifact_installer: Adapter placing artifacts; defaults to the
            manifest-backed installer.
        shell: Adapter running ``gte`` and ``kibana-plugin``.
    """

    def __init__(
        self,
        stager: Stager,
        buildpack_dir: Path,
        env: Mapping[str, str],
        manifest: BuildpackManifest | None = None,
        artifact_installer: Adapter | None = None,
        shell: Adapter | None = None,
    ):
        self.stager = stager
        self.buildpack_dir = buildpack_dir
        self.env = dict(env)
        self.manifest = manifest or BuildpackManifest.from_dir(buildpack_dir)
        self.artifact_installer = artifact_installer or ArtifactInstallerAdapter(self.manifest)
        self.shell = shell or ShellCommandAdapter()

        self.config = KibanaConfig()
        self.templates_config = TemplatesConfig()
        self.environment = BuildEnvironment()
        self.cache: DependencyCache | None = None
        self.installer: DependencyInstaller | None = None
        self.plan = InstallationPlan()
        self.dependencies: dict[str, Dependency] = {}

    # ── Entry point ─────────────────────────────────────────────

    def run(self) -> None:
        """Run the whole supply phase. Raises on the first failure."""
        self.eval_app_config()
        self.init_cache()
        self.log_staging_dirs()
        self.prepare_dir_structure()
        self.templates_config = load_templates_config(self.buildpack_dir)
        self.environment = load_build_environment(self.stager.build_dir, self.env)

        self.install_gte()
        self.install_jq()
        self.install_templates()
        self.install_certificates()
        self.install_kibana()

        if self.plan.plugins:
            self.install_plugin_bundles()
            self.install_plugins()
        self.list_plugins()

        assert self.cache is not None
        self.cache.sweep()
        self.stager.write_config_yml({"KibanaVersion": self.dependencies[KIBANA].version})

    # ── Setup steps ─────────────────────────────────────────────

    def eval_app_config(self) -> None:
        self.config = load_app_config(self.stager.build_dir)
        if self.config.buildpack.debug:
            raise_to_debug()

    def init_cache(self) -> None:
        self.cache = DependencyCache(no_cache=self.config.buildpack.no_cache)
        self.cache.reconcile(self.stager.cache_dir)
        self.installer = DependencyInstaller(
            VersionResolver(self.manifest),
            self.cache,
            self.artifact_installer,
            self.stager,
        )

    def log_staging_dirs(self) -> None:
        logger.debug("----> Show staging directories:")
        logger.debug("        Cache dir: %s", self.stager.cache_dir)
        logger.debug("        Build dir: %s", self.stager.build_dir)
        logger.debug("        Buildpack dir: %s", self.buildpack_dir)
        logger.debug("        Dependency dir: %s", self.stager.dep_dir)
        logger.debug("        DepsIdx: %s", self.stager.deps_idx)

    def prepare_dir_structure(self) -> None:
        for name in DEP_SUBDIRS:
            (self.stager.dep_dir / name).mkdir(parents=True, exist_ok=True)

    # ── Dependencies ────────────────────────────────────────────

    def install(self, name: str, configured_version: str = "") -> Dependency:
        assert self.installer is not None, "init_cache() must run first"
        dependency = self.installer.install(name, VERSION_PARTS, configured_version)
        self.dependencies[name] = dependency
        return dependency

    def install_gte(self) -> None:
        gte = self.install(GTE)
        self.stager.write_profile_d(
            f"{GTE}.sh",
            _script(f"""
                export GTE_HOME=$DEPS_DIR/{gte.runtime_location}
                PATH=$PATH:$GTE_HOME
            """),
        )

    def install_jq(self) -> None:
        jq = self.install(JQ)
        self.stager.write_profile_d(
            f"{JQ}.sh",
            _script(f"""
                export JQ_HOME=$DEPS_DIR/{jq.runtime_location}
                PATH=$PATH:$JQ_HOME
            """),
        )

    def install_kibana(self) -> None:
        kibana = self.install(KIBANA, self.config.version)
        sleep = "yes" if self.config.buildpack.sleep_command else ""
        self.stager.write_profile_d(
            f"{KIBANA}.sh",
            _script(f"""
                export K_BP_RESERVED_MEMORY={self.config.reserved_memory}
                export K_BP_HEAP_PERCENTAGE={self.config.heap_percentage}
                export K_BP_NODE_OPTS={self.config.node_opts}
                export K_CMD_ARGS={self.config.cmd_args}
                export K_ROOT=$DEPS_DIR/{self.stager.deps_idx}
                export KIBANA_HOME=$DEPS_DIR/{kibana.runtime_location}
                export K_DO_SLEEP={sleep}
                PATH=$PATH:$KIBANA_HOME/bin
            """),
        )

    def install_plugin_bundles(self) -> None:
        """Offline plugin bundles, same version as Kibana."""
        if any(p.startswith(XPACK) for p in self.plan.plugins):
            self.install(XPACK, self.config.version)
        if any(not p.startswith(XPACK) for p in self.plan.plugins):
            self.install(KIBANA_PLUGINS, self.config.version)

    # ── Templates ───────────────────────────────────────────────

    def select_templates(self) -> InstallationPlan:
        mode = decide_mode(self.environment.config_files_exist, self.config.config_templates)
        selector = TemplateSelector(
            self.templates_config.templates,
            enable_service_fallback=self.config.enable_service_fallback,
        )
        return selector.select(
            mode,
            self.environment.services,
            config_templates=self.config.config_templates,
            user_plugins=self.config.plugins,
        )

    def install_templates(self) -> None:
        self.plan = self.select_templates()
        for template in self.plan.templates:
            logger.info("----> Installing template %s", template.name)
            self.render_template(template)

    def render_template(self, template: Template) -> None:
        gte = self.dependencies[GTE]
        alias = self.templates_config.alias
        source = self.buildpack_dir / TEMPLATES_DIR / f"{template.name}.yml"
        dest = self.stager.dep_dir / "conf.d" / f"{template.name}.yml"
        receipt = self._run(
            f"render:{template.name}",
            [f"{gte.staging_location}/gte", "-d", TEMPLATE_DELIMITERS, str(source), str(dest)],
            env={
                "SERVICE_INSTANCE_NAME": template.service_instance_name,
                "CREDENTIALS_HOST_FIELD": alias.credentials_host_field,
                "CREDENTIALS_USERNAME_FIELD": alias.credentials_username_field,
                "CREDENTIALS_PASSWORD_FIELD": alias.credentials_password_field,
                "PORT": STAGING_PORT,
            },
        )
        if not receipt.ok:
            logger.error("Error pre-processing template %s: %s", template.name, receipt.error)
            raise TemplateRenderError(template.name, receipt.error or "")

    # ── Certificates ────────────────────────────────────────────

    def install_certificates(self) -> None:
        if not self.config.certificates:
            return

        local = read_local_certificates(self.stager.build_dir / "certificates")
        paths: list[str] = []
        for name in self.config.certificates:
            file_name = local.get(name)
            if file_name is None:
                logger.error("File %s.crt not found in directory '/certificates'", name)
                raise CertificateNotFound(name)
            logger.info("----> adding user certificate '%s' ... ", name)
            paths.append(f"$HOME/certificates/{file_name}")

        certs = json.dumps(paths, separators=(",", ":")).replace('"', '\\"')
        self.stager.write_profile_d("certificates.sh", _script(f'export K_CERTS="{certs}"'))

    # ── Plugins ─────────────────────────────────────────────────

    def plugin_sources(self) -> list[Path]:
        """Offline plugin locations, highest priority first."""
        sources = [
            Path(self.dependencies[name].staging_location)
            for name in (XPACK, KIBANA_PLUGINS)
            if name in self.dependencies
        ]
        sources.append(self.stager.build_dir / "plugins")
        return sources

    def install_plugins(self) -> None:
        logger.info("----> Installing Kibana plugins (this can take a few minutes!) ...")
        sources = self.plugin_sources()
        for plugin in self.plan.plugins:
            reference = resolve_source(plugin, sources)
            logger.info("       - installing plugin %s", plugin)
            receipt = self._run(
                f"plugin-install:{plugin}",
                [self._kibana_plugin(), "install", reference],
            )
            if not receipt.ok:
                if receipt.output:
                    logger.error("%s", receipt.output)
                logger.error("Error installing Kibana plugin %s: %s", plugin, receipt.error)
                raise PluginInstallError(plugin, receipt.error or "")

    def list_plugins(self) -> None:
        logger.info("----> Listing all installed Kibana plugins ...")
        receipt = self._run("plugin-list", [self._kibana_plugin(), "list"])
        if receipt.output:
            logger.info("%s", receipt.output)
        if not receipt.ok:
            logger.error("Error listing all installed Kibana plugins: %s", receipt.error)
            raise PluginInstallError("list", receipt.error or "")

    def _kibana_plugin(self) -> str:
        return f"{self.dependencies[KIBANA].staging_location}/bin/kibana-plugin"

    def _run(self, action_id: str, command: list[str], env: dict[str, str] | None = None) -> Receipt:
        action = Action(id=action_id, adapter=self.shell.name, params={"command": command})
        return self.shell.run(
            ExecutionContext(action=action, build_dir=str(self.stager.build_dir), env=env or {})
        )


def read_local_certificates(directory: Path) -> dict[str, str]:
    """Map certificate name → file name for every ``*.crt`` in ``directory``."""
    certs: dict[str, str] = {}
    try:
        names = sorted(p.name for p in directory.iterdir())
    except OSError as e:
        logger.error("failed opening certificates directory: %s", e)
        return certs
    for name in names:
        if name.endswith(".crt") and name.count(".crt") == 1:
            certs[name.removesuffix(".crt")] = name
    return certs
