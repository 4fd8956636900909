"""
Finalize phase — start script, release YAML and runtime PATH.

Runs after supply and only needs what supply left behind in
``<dep_dir>/config.yml``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from kibana_buildpack.core.config.loader import ConfigError
from kibana_buildpack.core.services.stager import Stager

logger = logging.getLogger(__name__)

RELEASE_FILE = "buildpack-release-step.yml"
START_SCRIPT = "bin/run.sh"

RUN_SCRIPT = """\
echo "--> STARTING UP ..."
MemLimits="$(echo ${VCAP_APPLICATION} | $JQ_HOME/jq '.limits.mem')"

echo "--> container memory limit = ${MemLimits}m"
if [ -n "$K_BP_NODE_OPTS" ] || [ -z "$MemLimits" ] || [ -z "$K_BP_RESERVED_MEMORY"  ] || [ -z "$K_BP_HEAP_PERCENTAGE" ] ; then
export NODE_OPTIONS=$K_BP_NODE_OPTS
echo "--> Using NODE_OPTIONS=\\"${NODE_OPTIONS}\\" (user defined)"
else
HeapSize=$(( ($MemLimits - $K_BP_RESERVED_MEMORY) / 100 * $K_BP_HEAP_PERCENTAGE ))
export NODE_OPTIONS="--max-old-space-size=${HeapSize}"
echo "--> Using NODE_OPTIONS=\\"${NODE_OPTIONS}\\" (calculated max heap size)"
fi

echo "--> preparing runtime directories ..."
mkdir -p conf.d

if [ -d kibana.conf.d ] ; then
rm -rf kibana.conf.d
fi
mkdir -p kibana.conf.d

if [ -d kibana.config ] ; then
rm -rf kibana.config
fi
mkdir -p kibana.config

echo "--> template processing ..."
$GTE_HOME/gte $HOME/conf.d $HOME/kibana.conf.d
$GTE_HOME/gte $K_ROOT/conf.d $HOME/kibana.conf.d

echo "--> concatenating config files ..."
awk 'FNR==1{print ""}1' $HOME/kibana.conf.d/* > $HOME/kibana.config/kibana.yml


echo "--> STARTING KIBANA ..."
if [ -n "$K_CMD_ARGS" ] ; then
echo "--> using cmd_args=\\"$K_CMD_ARGS\\""
fi

if [ -n "$K_DO_SLEEP" ] ; then
sleep 3600
fi

chmod +x $HOME/bin/*.sh
$KIBANA_HOME/bin/kibana -c $HOME/kibana.config/kibana.yml $K_CMD_ARGS
"""

GO_SCRIPT = "PATH=$PATH:$HOME/bin\n"


def release_yaml(start_command: str) -> str:
    """Release step output: the web process type."""
    return f"---\ndefault_process_types:\n    web: {start_command}\n"


class Finalizer:
    """Write the files Cloud Foundry needs to start the app.

    Args:
        stager: Build directories handed over by the platform.
        kibana_version: Version recorded by supply.
        release_dir: Where the release YAML goes (``/tmp`` on CF).
    """

    def __init__(self, stager: Stager, kibana_version: str, release_dir: Path = Path("/tmp")):
        self.stager = stager
        self.kibana_version = kibana_version
        self.release_dir = release_dir

    @classmethod
    def from_stager(cls, stager: Stager, release_dir: Path = Path("/tmp")) -> Finalizer:
        """Build a finalizer from the ``config.yml`` supply wrote.

        Raises:
            ConfigError: config.yml is missing or unreadable.
        """
        try:
            config = stager.read_config_yml()
        except (OSError, yaml.YAMLError) as e:
            logger.error("Unable to read config.yml: %s", e)
            raise ConfigError(f"Unable to read config.yml: {e}") from e
        return cls(stager, str(config.get("KibanaVersion", "")), release_dir)

    def run(self) -> None:
        logger.debug("Finalizing Kibana %s", self.kibana_version)
        (self.stager.build_dir / "bin").mkdir(parents=True, exist_ok=True)
        self.create_startup_environment()

    def create_startup_environment(self) -> None:
        run_sh = self.stager.build_dir / START_SCRIPT
        run_sh.write_text(RUN_SCRIPT, encoding="utf-8")
        run_sh.chmod(0o755)

        self.release_dir.mkdir(parents=True, exist_ok=True)
        (self.release_dir / RELEASE_FILE).write_text(release_yaml(START_SCRIPT), encoding="utf-8")

        self.stager.write_profile_d("go.sh", GO_SCRIPT)
