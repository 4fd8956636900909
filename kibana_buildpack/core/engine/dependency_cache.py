"""
Dependency cache — which cached dependency directories survive this build.

The application cache keeps one directory per installed dependency
version (``<cache>/dependencies/<name>-<version>``). Per build:

    reconcile(cache_dir)  scan once, everything starts UNREFERENCED
    mark_in_use(dir)      claim a slot, evict other versions of the same name
    discard(dir)          no-cache mode: drop the slot right after install
    sweep()               remove everything still UNREFERENCED

Only one version of a dependency occupies the cache at a time. Removal
is best effort: a failure is logged and kept in ``failures`` and never
stops the build.
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from kibana_buildpack.core.errors import CacheIOFailure
from kibana_buildpack.core.models.cache import CacheEntry, CacheState

logger = logging.getLogger(__name__)

DEPENDENCIES_SUBDIR = "dependencies"

# "<name>-<version>": the version is what follows the first "-<digit>"
_DIR_NAME_RE = re.compile(r"^(?P<name>.+?)-(?P<version>\d.*)$")


def split_dir_name(directory_name: str) -> tuple[str, str] | None:
    """Split ``kibana-plugins-6.2.2`` into ``("kibana-plugins", "6.2.2")``."""
    match = _DIR_NAME_RE.match(directory_name)
    if match is None:
        return None
    return match.group("name"), match.group("version")


def cached_dependencies(cache_dir: Path) -> list[str]:
    """Directory names under ``<cache_dir>/dependencies``, sorted.

    Read-only: a missing dependency directory is simply empty.
    """
    dep_dir = cache_dir / DEPENDENCIES_SUBDIR
    if not dep_dir.is_dir():
        return []
    return sorted(p.name for p in dep_dir.iterdir())


class DependencyCache:
    """Per-build bookkeeping of the on-disk dependency cache.

    Args:
        no_cache: Empty the cache root on reconcile and discard every
            slot after its install (nothing is reused across builds).
    """

    def __init__(self, no_cache: bool = False):
        self.no_cache = no_cache
        self._cache_root: Path | None = None
        self._states: dict[str, CacheState] = {}
        self.failures: list[CacheIOFailure] = []

    # ── Queries ─────────────────────────────────────────────────

    @property
    def cache_dir(self) -> Path:
        """The dependency cache directory (``<cache root>/dependencies``)."""
        if self._cache_root is None:
            raise RuntimeError("DependencyCache.reconcile() has not been called")
        return self._cache_root / DEPENDENCIES_SUBDIR

    def slot(self, directory_name: str) -> Path:
        """Cache slot path for a dependency directory name."""
        return self.cache_dir / directory_name

    def state(self, directory_name: str) -> CacheState | None:
        return self._states.get(directory_name)

    def entries(self) -> set[CacheEntry]:
        return {CacheEntry(name, state) for name, state in self._states.items()}

    def in_use(self) -> list[str]:
        return sorted(n for n, s in self._states.items() if s == CacheState.IN_USE)

    # ── Lifecycle ───────────────────────────────────────────────

    def reconcile(self, cache_dir: Path) -> set[CacheEntry]:
        """Scan the cache once at build start.

        Args:
            cache_dir: The application cache root handed to the build.

        Returns:
            Every cached dependency directory, all UNREFERENCED.
        """
        self._cache_root = cache_dir
        self._states = {}

        if self.no_cache:
            logger.debug("--> cleaning cache")
            self._empty(cache_dir)

        dep_dir = self.cache_dir
        try:
            dep_dir.mkdir(parents=True, exist_ok=True)
            names = cached_dependencies(cache_dir)
        except OSError as e:
            self._record(CacheIOFailure(str(dep_dir), f"failed reading cache directory: {e}"))
            names = []

        for name in names:
            logger.debug("--> added dependency '%s' to cache list", name)
            self._states[name] = CacheState.UNREFERENCED

        return self.entries()

    def mark_in_use(self, directory_name: str) -> None:
        """Claim ``directory_name`` for this build.

        Every other cached version of the same dependency is removed
        first, so the installer finds at most its own slot. Calling this
        again for the same name changes nothing.
        """
        parsed = split_dir_name(directory_name)
        if parsed is not None:
            name, _ = parsed
            for other, state in list(self._states.items()):
                if other == directory_name or state != CacheState.UNREFERENCED:
                    continue
                other_parsed = split_dir_name(other)
                if other_parsed is None or other_parsed[0] != name:
                    continue
                logger.debug(
                    "--> deleting unused dependency version '%s' from application cache", other
                )
                self._remove(other)

        self._states[directory_name] = CacheState.IN_USE

    def discard(self, directory_name: str) -> None:
        """Delete a slot just written by the installer (no-cache mode).

        The entry stays IN_USE: the dependency is installed, it just is
        not kept for the next build.
        """
        path = self.slot(directory_name)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            self._record(CacheIOFailure(directory_name, str(e)))

    def sweep(self) -> list[str]:
        """Remove every entry still UNREFERENCED at build end.

        Returns:
            Directory names actually removed.
        """
        removed: list[str] = []
        for name, state in list(self._states.items()):
            if state != CacheState.UNREFERENCED:
                continue
            logger.debug("--> deleting unused dependency '%s' from application cache", name)
            if self._remove(name):
                removed.append(name)
        return removed

    # ── Internals ───────────────────────────────────────────────

    def _remove(self, directory_name: str) -> bool:
        path = self.slot(directory_name)
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink(missing_ok=True)
        except OSError as e:
            self._record(CacheIOFailure(directory_name, str(e)))
            return False
        self._states[directory_name] = CacheState.DELETED
        return True

    def _empty(self, directory: Path) -> None:
        if not directory.is_dir():
            return
        for child in directory.iterdir():
            try:
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
            except OSError as e:
                self._record(CacheIOFailure(child.name, f"error cleaning cache: {e}"))

    def _record(self, failure: CacheIOFailure) -> None:
        logger.warning("%s", failure)
        self.failures.append(failure)
