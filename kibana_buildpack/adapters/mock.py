"""
Mock adapter — test double for the installer and shell adapters.

Returns success for everything unless told otherwise per action ID,
and records every context it receives.
"""

from __future__ import annotations

from collections.abc import Callable

from kibana_buildpack.adapters.base import Adapter, ExecutionContext
from kibana_buildpack.core.models.action import Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing.

    ``on_execute`` lets a test simulate side effects (e.g. create the
    staging directory) before the receipt is returned.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
        on_execute: Callable[[ExecutionContext], None] | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._on_execute = on_execute
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def action_ids(self) -> list[str]:
        return [c.action.id for c in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
        )

    def reset(self) -> None:
        self._responses.clear()
        self._call_log.clear()

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if context.action.id in self._responses:
            return self._responses[context.action.id]

        if self._on_execute is not None:
            self._on_execute(context)

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True},
        )
