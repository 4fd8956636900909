"""
Plugin source resolution — where ``kibana-plugin install`` gets a plugin from.

Sources are probed in priority order (for this buildpack: the x-pack
bundle, the kibana-plugins bundle, then the app's own ``plugins/``
directory). The first entry whose name starts with the plugin name
wins. With no local match, the bare plugin name is returned and
``kibana-plugin`` installs it from the network.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".zip",)
_NETWORK_SCHEMES = ("http://", "https://")


def list_source(directory: Path) -> list[str]:
    """Entry names of a source directory; missing/unreadable → empty."""
    try:
        return sorted(p.name for p in directory.iterdir())
    except OSError as e:
        logger.debug("Plugin source %s not readable: %s", directory, e)
        return []


def find_local_plugin(plugin_name: str, entries: list[str]) -> str | None:
    """First entry that starts with ``plugin_name``, or None."""
    for entry in entries:
        if entry.startswith(plugin_name):
            return entry
    return None


def as_install_reference(source: str) -> str:
    """Turn a local archive path into a ``file://`` URI for kibana-plugin."""
    if source.endswith(ARCHIVE_SUFFIXES) and not source.startswith(_NETWORK_SCHEMES):
        return "file://" + source
    return source


def resolve_source(plugin_name: str, sources: list[Path]) -> str:
    """Pick what to hand to ``kibana-plugin install`` for ``plugin_name``.

    Args:
        plugin_name: Requested plugin (e.g. ``x-pack``, ``analytics-plugin``).
        sources: Directories to probe, highest priority first.

    Returns:
        A ``file://`` URI or local path for an offline install, or the
        plugin name itself for a network install.
    """
    for directory in sources:
        entry = find_local_plugin(plugin_name, list_source(directory))
        if entry is not None:
            logger.debug("Plugin %s found in %s", plugin_name, directory)
            return as_install_reference(str(directory / entry))

    logger.debug("Plugin %s not available offline, installing from network", plugin_name)
    return as_install_reference(plugin_name)
