"""
Version resolution — partial version string → concrete manifest version.

    "6"     (3 parts) → "6.x.x" → highest 6.*.*  in the manifest
    "6.2"   (3 parts) → "6.2.x" → highest 6.2.*  in the manifest
    "6.2.2" (3 parts) → "6.2.2" → exactly 6.2.2

Segments are matched left to right; ``x``, ``X`` and ``*`` match any
segment. Pre-release versions (``6.2.0-rc1``) only match a pattern that
spells out the same pre-release. No range operators, no transitive
resolution.
"""

from __future__ import annotations

import logging

from kibana_buildpack.core.errors import VersionNotFound
from kibana_buildpack.core.services.manifest import BuildpackManifest

logger = logging.getLogger(__name__)

WILDCARD = "x"
_WILDCARDS = frozenset({"x", "X", "*"})


def expand_partial(version: str, required_parts: int) -> str:
    """Pad ``version`` with wildcard segments up to ``required_parts``."""
    segments = version.split(".")
    missing = required_parts - len(segments)
    if missing > 0:
        segments.extend([WILDCARD] * missing)
    return ".".join(segments)


def version_key(version: str) -> tuple | None:
    """Sort key for a version string, or None if it is not numeric.

    A release sorts after its own pre-releases.
    """
    core, _, pre = version.partition("-")
    try:
        numbers = tuple(int(part) for part in core.split("."))
    except ValueError:
        return None
    return numbers, pre == "", pre


def matches(pattern: str, version: str) -> bool:
    """Whether ``version`` satisfies the (possibly wildcarded) ``pattern``."""
    pattern_core, _, pattern_pre = pattern.partition("-")
    version_core, _, version_pre = version.partition("-")
    if pattern_pre != version_pre:
        return False

    pattern_segments = pattern_core.split(".")
    version_segments = version_core.split(".")
    for i, segment in enumerate(pattern_segments):
        if segment in _WILDCARDS:
            continue
        if i >= len(version_segments) or version_segments[i] != segment:
            return False
    return True


def find_matching_version(pattern: str, available: list[str]) -> str | None:
    """Highest available version matching ``pattern``, or None."""
    best: str | None = None
    best_key: tuple | None = None
    for candidate in available:
        if not matches(pattern, candidate):
            continue
        key = version_key(candidate)
        if key is None:
            # Non-numeric: only an exact match can select it
            if candidate == pattern:
                return candidate
            logger.debug("Ignoring non-numeric version %r", candidate)
            continue
        if best_key is None or key > best_key:
            best, best_key = candidate, key
        elif key == best_key and candidate != best:
            raise ValueError(f"versions {best!r} and {candidate!r} are indistinguishable")
    return best


class VersionResolver:
    """Resolve configured (partial) versions against the buildpack manifest."""

    def __init__(self, manifest: BuildpackManifest):
        self._manifest = manifest

    def resolve(
        self,
        name: str,
        configured_version: str,
        required_parts: int,
        available_versions: list[str] | None = None,
    ) -> str:
        """Return the concrete version to install.

        Args:
            name: Dependency name as listed in the manifest.
            configured_version: Operator's (partial) version; "" = manifest default.
            required_parts: Number of dot segments a concrete version has.
            available_versions: Override the manifest's version list.

        Raises:
            VersionNotFound: No default, or nothing in the manifest matches.
        """
        version = configured_version.strip()
        if not version:
            default = self._manifest.default_version(name)
            if not default:
                raise VersionNotFound(name)
            logger.debug("No version configured for %s, using default %s", name, default)
            version = default

        if available_versions is None:
            available_versions = self._manifest.all_versions(name)

        pattern = expand_partial(version, required_parts)
        try:
            resolved = find_matching_version(pattern, available_versions)
        except ValueError as e:
            raise VersionNotFound(name, version, reason=f"ambiguous match for '{pattern}': {e}") from e

        if resolved is None:
            available = ", ".join(available_versions) or "none"
            raise VersionNotFound(
                name,
                version,
                reason=f"no available version matches '{pattern}' (available: {available})",
            )

        logger.debug("Resolved %s %r → %s", name, configured_version, resolved)
        return resolved
