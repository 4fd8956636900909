"""
Shell command adapter — run an external tool and capture its output.

Used for the template renderer (``gte``) and ``kibana-plugin``. The
command is an argv list; no shell is involved.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from kibana_buildpack.adapters.base import Adapter, ExecutionContext
from kibana_buildpack.core.models.action import Receipt, elapsed_ms

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Execute a command and capture output.

    Action params:
        command (list[str]): argv of the command to execute.
        timeout (int | None): Seconds, or None to wait for completion (default).
        cwd (str): Override working directory (default: context.build_dir).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        command = context.params.get("command")
        if not command or not isinstance(command, list):
            return False, "Missing required param: 'command' (argv list)"

        cwd = context.working_dir
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        command = [str(part) for part in context.params["command"]]
        timeout = context.params.get("timeout")
        cwd = context.working_dir

        env = os.environ.copy()
        env.update(context.env)

        logger.debug("Executing: %s (cwd=%s)", " ".join(command), cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                metadata={"command": command, "timeout": timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": command},
            )

        output = result.stdout.strip()
        stderr = result.stderr.strip()

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                duration_ms=elapsed_ms(start),
                metadata={"command": command, "return_code": 0, "stderr": stderr},
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or output or f"Command exited with code {result.returncode}",
            output=output,
            duration_ms=elapsed_ms(start),
            metadata={"command": command, "return_code": result.returncode},
        )
