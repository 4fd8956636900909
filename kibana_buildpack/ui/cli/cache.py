"""
CLI commands for the application dependency cache.

Thin wrappers over ``kibana_buildpack.core.engine.dependency_cache``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click


@click.group()
def cache() -> None:
    """Dependency cache — inspect or empty an app's cache directory."""


@cache.command()
@click.argument("cache_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def status(cache_dir: Path, as_json: bool) -> None:
    """List the dependency versions held in CACHE_DIR."""
    from kibana_buildpack.core.engine.dependency_cache import (
        DEPENDENCIES_SUBDIR,
        cached_dependencies,
        split_dir_name,
    )
    from kibana_buildpack.core.models.cache import CacheEntry

    dep_dir = cache_dir / DEPENDENCIES_SUBDIR
    try:
        entries = [CacheEntry(name) for name in cached_dependencies(cache_dir)]
    except OSError as e:
        click.secho(f"❌ Cannot read {dep_dir}: {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "cache_dir": str(dep_dir),
            "entries": [e.to_dict() for e in entries],
        }, indent=2))
        return

    click.secho(f"\n📦 {dep_dir}", fg="cyan", bold=True)
    if not entries:
        click.echo("   (empty)")
    for entry in entries:
        parsed = split_dir_name(entry.directory_name)
        if parsed is None:
            click.secho(f"   ? {entry.directory_name}", fg="yellow")
        else:
            name, version = parsed
            click.echo(f"   • {name} {version}")
    click.echo()


@cache.command()
@click.argument("cache_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
def clear(cache_dir: Path, yes: bool) -> None:
    """Remove every cached dependency from CACHE_DIR."""
    from kibana_buildpack.core.engine.dependency_cache import DependencyCache

    if not yes:
        click.confirm(f"Remove all cached dependencies in {cache_dir}?", abort=True)

    dep_cache = DependencyCache()
    dep_cache.reconcile(cache_dir)
    removed = dep_cache.sweep()

    for name in removed:
        click.echo(f"   🗑️  {name}")

    if dep_cache.failures:
        for failure in dep_cache.failures:
            click.secho(f"❌ {failure}", fg="red")
        sys.exit(1)

    click.secho(f"✅ Removed {len(removed)} cached dependenc{'y' if len(removed) == 1 else 'ies'}", fg="green")
