"""
Finalize use case — write the start script and release metadata.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from kibana_buildpack.core.config.loader import ConfigError
from kibana_buildpack.core.services.finalize import Finalizer
from kibana_buildpack.core.services.stager import Stager


@dataclass
class FinalizeResult:
    """Result of the finalize phase."""

    kibana_version: str = ""
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {"kibana_version": self.kibana_version}


def run_finalize(stager: Stager, release_dir: Path = Path("/tmp")) -> FinalizeResult:
    result = FinalizeResult()
    try:
        finalizer = Finalizer.from_stager(stager, release_dir=release_dir)
        finalizer.run()
    except ConfigError as e:
        result.error = str(e)
        return result
    except OSError as e:
        result.error = f"Unable to create startup scripts: {e}"
        return result

    result.kibana_version = finalizer.kibana_version
    return result
