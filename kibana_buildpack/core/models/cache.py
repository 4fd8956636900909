"""
Cache entry model — the lifecycle of one cached dependency directory.

States:
    UNREFERENCED → found on disk at build start, not (yet) used.
    IN_USE       → owned by a dependency installed in this build.
    DELETED      → evicted (older sibling version, or swept at build end).

Transitions:
    UNREFERENCED → IN_USE:   its dependency is installed
    UNREFERENCED → DELETED:  a sibling version is installed, or sweep()
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class CacheState(StrEnum):
    """Per-build state of a cached dependency directory."""

    UNREFERENCED = "unreferenced"
    IN_USE = "in_use"
    DELETED = "deleted"


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot of one cache directory and its state."""

    directory_name: str
    state: CacheState = CacheState.UNREFERENCED

    def to_dict(self) -> dict:
        return {"directory_name": self.directory_name, "state": str(self.state)}
