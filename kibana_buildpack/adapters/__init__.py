"""Adapters — bindings for the external tools the build runs.

Public re-exports for convenient access.
"""

from kibana_buildpack.adapters.base import Adapter, ExecutionContext
from kibana_buildpack.adapters.mock import MockAdapter

__all__ = [
    "Adapter",
    "ExecutionContext",
    "MockAdapter",
]
