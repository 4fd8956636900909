"""
Tests for adapter protocol, mock, and shell adapters.
"""

import os
from pathlib import Path

from kibana_buildpack.adapters.base import ExecutionContext
from kibana_buildpack.adapters.mock import MockAdapter
from kibana_buildpack.adapters.shell.command import ShellCommandAdapter
from kibana_buildpack.core.models.action import Action, Receipt

# ── Protocol Tests ───────────────────────────────────────────────────


class TestExecutionContext:
    def test_working_dir_defaults_to_build_dir(self):
        ctx = ExecutionContext(action=Action(id="test", adapter="shell"), build_dir="/build")
        assert ctx.working_dir == "/build"

    def test_working_dir_override(self):
        ctx = ExecutionContext(
            action=Action(id="test", adapter="shell", params={"cwd": "/elsewhere"}),
            build_dir="/build",
        )
        assert ctx.working_dir == "/elsewhere"


class TestReceipt:
    def test_factories(self):
        assert Receipt.success(adapter="a", action_id="x").ok
        assert Receipt.failure(adapter="a", action_id="x", error="boom").failed
        skipped = Receipt.skip(adapter="a", action_id="x", reason="dry run")
        assert not skipped.ok and not skipped.failed
        assert skipped.output == "dry run"


# ── Mock Adapter Tests ───────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self):
        mock = MockAdapter(adapter_name="test-mock")
        ctx = ExecutionContext(action=Action(id="op-1", adapter="test-mock"))
        receipt = mock.execute(ctx)
        assert receipt.ok
        assert mock.call_count == 1

    def test_custom_response(self):
        mock = MockAdapter()
        mock.set_response(
            "op-1",
            Receipt.success(adapter="mock", action_id="op-1", output="custom"),
        )
        ctx = ExecutionContext(action=Action(id="op-1", adapter="mock"))
        receipt = mock.execute(ctx)
        assert receipt.output == "custom"

    def test_set_failure(self):
        mock = MockAdapter()
        mock.set_failure("op-fail", error="Intentional failure")
        ctx = ExecutionContext(action=Action(id="op-fail", adapter="mock"))
        receipt = mock.execute(ctx)
        assert receipt.failed
        assert receipt.error == "Intentional failure"

    def test_on_execute_side_effect(self):
        seen: list[str] = []
        mock = MockAdapter(on_execute=lambda ctx: seen.append(ctx.action.id))
        mock.execute(ExecutionContext(action=Action(id="op-1", adapter="mock")))
        assert seen == ["op-1"]

    def test_reset(self):
        mock = MockAdapter()
        mock.set_failure("op-1")
        mock.execute(ExecutionContext(action=Action(id="op-1", adapter="mock")))
        mock.reset()
        assert mock.call_count == 0
        assert mock.execute(ExecutionContext(action=Action(id="op-1", adapter="mock"))).ok

    def test_dry_run_skips(self):
        mock = MockAdapter()
        ctx = ExecutionContext(action=Action(id="op-1", adapter="mock"), dry_run=True)
        receipt = mock.run(ctx)
        assert receipt.status == "skipped"
        assert mock.call_count == 0


# ── Shell Adapter Tests ──────────────────────────────────────────────


class TestShellCommandAdapter:
    def _ctx(self, tmp_path: Path, command, env=None, **params) -> ExecutionContext:
        return ExecutionContext(
            action=Action(id="cmd", adapter="shell", params={"command": command, **params}),
            build_dir=str(tmp_path),
            env=env or {},
        )

    def test_success(self, tmp_path: Path):
        receipt = ShellCommandAdapter().run(self._ctx(tmp_path, ["sh", "-c", "echo hello"]))
        assert receipt.ok
        assert receipt.output == "hello"

    def test_env_passed_to_child_only(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("SERVICE_INSTANCE_NAME", raising=False)
        receipt = ShellCommandAdapter().run(
            self._ctx(tmp_path, ["sh", "-c", "echo $SERVICE_INSTANCE_NAME"], env={"SERVICE_INSTANCE_NAME": "mydb"})
        )
        assert receipt.output == "mydb"
        assert "SERVICE_INSTANCE_NAME" not in os.environ

    def test_failure_reports_stderr(self, tmp_path: Path):
        receipt = ShellCommandAdapter().run(
            self._ctx(tmp_path, ["sh", "-c", "echo oops >&2; exit 3"])
        )
        assert receipt.failed
        assert receipt.error == "oops"
        assert receipt.metadata["return_code"] == 3

    def test_missing_binary(self, tmp_path: Path):
        receipt = ShellCommandAdapter().run(self._ctx(tmp_path, [str(tmp_path / "no-such-tool")]))
        assert receipt.failed
        assert "execution error" in receipt.error

    def test_timeout(self, tmp_path: Path):
        receipt = ShellCommandAdapter().run(self._ctx(tmp_path, ["sleep", "5"], timeout=0.2))
        assert receipt.failed
        assert "timed out" in receipt.error

    def test_command_required(self, tmp_path: Path):
        receipt = ShellCommandAdapter().run(self._ctx(tmp_path, "echo not-a-list"))
        assert receipt.failed
        assert "command" in receipt.error

    def test_missing_working_dir(self, tmp_path: Path):
        receipt = ShellCommandAdapter().run(
            self._ctx(tmp_path, ["true"], cwd=str(tmp_path / "missing"))
        )
        assert receipt.failed
        assert "Working directory" in receipt.error
