"""
Kibana buildpack — CLI entrypoint.

Usage:
    python -m kibana_buildpack.main --help
    python -m kibana_buildpack.main supply BUILD CACHE DEPS IDX
    python -m kibana_buildpack.main finalize BUILD CACHE DEPS IDX
    python -m kibana_buildpack.main config check BUILD
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from kibana_buildpack import __version__
from kibana_buildpack.core.observability.logging_config import resolve_level, setup_logging
from kibana_buildpack.core.services.stager import Stager

_STAGING_DIRS = (
    click.argument("build_dir", type=click.Path(file_okay=False, path_type=Path)),
    click.argument("cache_dir", type=click.Path(file_okay=False, path_type=Path)),
    click.argument("deps_dir", type=click.Path(file_okay=False, path_type=Path)),
    click.argument("deps_idx"),
)


def staging_dirs(f):
    """The four directory arguments every staging phase gets from CF."""
    for decorator in reversed(_STAGING_DIRS):
        f = decorator(f)
    return f


@click.group()
@click.version_option(version=__version__, prog_name="kibana-buildpack")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--buildpack-dir",
    "buildpack_dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="KBP_BUILDPACK_DIR",
    default=None,
    help="Buildpack root with manifest.yml and defaults/ (default: CWD).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    buildpack_dir: Path | None,
) -> None:
    """Kibana buildpack — stage Kibana apps on Cloud Foundry."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["buildpack_dir"] = (buildpack_dir or Path.cwd()).resolve()

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(os.environ, debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("KBP_LOG_FILE"),
        log_file_level=os.environ.get("KBP_LOG_FILE_LEVEL"),
    )


# ── Staging phases ──────────────────────────────────────────────


@cli.command()
@staging_dirs
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def supply(
    ctx: click.Context,
    build_dir: Path,
    cache_dir: Path,
    deps_dir: Path,
    deps_idx: str,
    as_json: bool,
) -> None:
    """Install Kibana, its helpers, templates and plugins."""
    from kibana_buildpack.core.use_cases.supply import run_supply

    stager = Stager(build_dir, cache_dir, deps_dir, deps_idx)
    result = run_supply(stager, ctx.obj["buildpack_dir"])

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not ctx.obj.get("quiet"):
        click.secho(f"-----> Kibana {result.kibana_version} supplied", fg="green")
        if ctx.obj.get("verbose"):
            for dependency in result.installed:
                click.echo(f"       • {dependency.name} {dependency.version}")
        for failure in result.cache_failures:
            click.secho(f"       ⚠️  {failure}", fg="yellow")


@cli.command()
@staging_dirs
@click.option(
    "--release-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("/tmp"),
    show_default=True,
    help="Where the release step YAML is written.",
)
@click.pass_context
def finalize(
    ctx: click.Context,
    build_dir: Path,
    cache_dir: Path,
    deps_dir: Path,
    deps_idx: str,
    release_dir: Path,
) -> None:
    """Write the start script and release metadata."""
    from kibana_buildpack.core.use_cases.finalize import run_finalize

    result = run_finalize(Stager(build_dir, cache_dir, deps_dir, deps_idx), release_dir=release_dir)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not ctx.obj.get("quiet"):
        click.secho(f"-----> Kibana {result.kibana_version} finalized", fg="green")


# ── Inspection ──────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """App configuration commands."""


@config.command("check")
@click.argument("build_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, build_dir: Path, as_json: bool) -> None:
    """Validate the app's Kibana file."""
    from kibana_buildpack.core.use_cases.config_check import check_config

    result = check_config(build_dir, buildpack_dir=ctx.obj.get("buildpack_dir"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)
        return

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Kibana: {result.kibana_version or result.config.version or '(default)'}")
        click.echo(f"   Plugins: {len(result.config.plugins)}")
        click.echo(f"   Templates: {len(result.config.config_templates)}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


@cli.command()
@click.argument("build_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def templates(ctx: click.Context, build_dir: Path, as_json: bool) -> None:
    """Preview which templates supply would install, bound to what.

    Uses the VCAP_SERVICES of the current environment.
    """
    from kibana_buildpack.core.use_cases.templates import preview_templates

    result = preview_templates(build_dir, ctx.obj["buildpack_dir"])

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    plan = result.plan
    assert plan is not None
    click.secho(f"\n📋 Templates ({plan.mode})", fg="cyan", bold=True)
    if not plan.templates:
        click.echo("   (none)")
    for template in plan.templates:
        binding = f"  → {template.service_instance_name}" if template.service_instance_name else ""
        click.echo(f"   • {template.name}{binding}")

    if plan.plugins:
        click.echo()
        click.secho(f"   Plugins: {', '.join(plan.plugins)}", fg="white", bold=True)

    if plan.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in plan.warnings:
            click.echo(f"   • {warn}")

    click.echo()


# ── Register sub-command groups from kibana_buildpack/ui/cli/ ───

from kibana_buildpack.ui.cli.cache import cache  # noqa: E402

cli.add_command(cache)


if __name__ == "__main__":
    cli()
