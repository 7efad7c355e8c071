"""
CLI commands for desktop and taskbar configuration.

Thin wrappers over ``orchestration.desktop``.
"""

from __future__ import annotations

import json
import sys

import click

from devboot.core.services.bootstrap.orchestration.desktop import DesktopReport


def _print_report(report: DesktopReport, title: str) -> None:
    if report.skipped:
        click.secho(f"⊘ {report.message}", fg="yellow")
        return

    click.secho(f"🖥️  {title} ({report.desktop or 'unknown desktop'}):", fg="cyan", bold=True)
    for key in report.applied:
        click.secho(f"   ✓ {key}", fg="green")
    if report.unchanged:
        click.echo(f"   {len(report.unchanged)} setting(s) already in place")
    if report.extensions is not None:
        click.echo(f"   Extensions: {report.extensions.status.value}")
    for path in report.files:
        click.echo(f"   📄 {path}")
    for note in report.notes:
        click.echo(f"   • {note}")
    for err in report.errors:
        click.secho(f"   ✗ {err}", fg="red")
    click.echo()


@click.group("desktop")
def desktop() -> None:
    """Desktop — dock, sidebar and taskbar settings."""


@desktop.command("configure")
@click.option("--force", is_flag=True, help="Configure even without a graphical session.")
@click.option("--dry-run", is_flag=True, help="Show what would run, change nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def configure(ctx: click.Context, force: bool, dry_run: bool, as_json: bool) -> None:
    """Apply dock and sidebar settings for the running desktop."""
    from devboot.core.services.bootstrap.orchestration.desktop import configure_desktop
    from devboot.ui.cli.common import get_adapter, get_env, get_home, get_platform, load_effective_config

    config = load_effective_config(ctx, as_json=as_json)
    platform = get_platform(ctx, config)
    report = configure_desktop(
        platform,
        get_adapter(ctx, dry_run=dry_run),
        config,
        env=get_env(ctx),
        home=get_home(ctx),
        force=force,
    )

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        _print_report(report, "Desktop")
    if not report.ok:
        sys.exit(1)


@desktop.command("taskbar")
@click.option("--dry-run", is_flag=True, help="Show what would run, change nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def taskbar(ctx: click.Context, dry_run: bool, as_json: bool) -> None:
    """Make a taskbar visible and keep it across logins."""
    from devboot.core.services.bootstrap.orchestration.desktop import ensure_taskbar
    from devboot.ui.cli.common import get_adapter, get_env, get_home, get_platform, load_effective_config

    config = load_effective_config(ctx, as_json=as_json)
    platform = get_platform(ctx, config)
    report = ensure_taskbar(
        platform,
        get_adapter(ctx, dry_run=dry_run),
        config,
        env=get_env(ctx),
        home=get_home(ctx),
    )

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        _print_report(report, "Taskbar")
    if not report.ok:
        sys.exit(1)
