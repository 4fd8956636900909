"""
Adapter base — the protocol contract between engine and external tools.

The engine only talks to the artifact installer, the template renderer
and ``kibana-plugin`` through this protocol, never directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from kibana_buildpack.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action.

    ``env`` carries per-call environment variables (template rendering
    context, the dummy ``PORT``); adapters merge it over ``os.environ``
    for the child process only.
    """

    action: Action
    build_dir: str = "."
    env: dict[str, str] = Field(default_factory=dict)
    dry_run: bool = False

    @property
    def params(self) -> dict[str, Any]:
        return self.action.params

    @property
    def working_dir(self) -> str:
        return self.params.get("cwd") or self.build_dir


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'artifact')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt. MUST never raise."""

    def run(self, context: ExecutionContext) -> Receipt:
        """Validate, then execute (or skip on dry run)."""
        valid, message = self.validate(context)
        if not valid:
            return Receipt.failure(
                adapter=self.name, action_id=context.action.id, error=message
            )
        if context.dry_run:
            return Receipt.skip(
                adapter=self.name, action_id=context.action.id, reason="dry run"
            )
        return self.execute(context)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
