"""
Shared CLI plumbing: effective config, platform, adapter, result lines.

Everything a command needs from the outside world is resolved here from
``ctx.obj`` first, so tests can hand in a MockAdapter, a fixed
Platform, a temporary home and lock directory via ``CliRunner.invoke(obj=...)``.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from devboot.adapters import Adapter, DryRunAdapter, build_adapter
from devboot.core.config.loader import ConfigError, load_config
from devboot.core.models.capability import InstallResult, InstallStatus
from devboot.core.models.config import BootstrapConfig
from devboot.core.models.platform import Platform
from devboot.core.services.bootstrap.detection.platform import detect_platform
from devboot.core.services.bootstrap.execution.run_lock import RunLock

STATUS_STYLE: dict[InstallStatus, tuple[str, str]] = {
    InstallStatus.ALREADY_PRESENT: ("✓", "green"),
    InstallStatus.INSTALLED: ("⬇", "green"),
    InstallStatus.INSTALLED_WITH_FALLBACK: ("⬇", "yellow"),
    InstallStatus.FAILED: ("✗", "red"),
    InstallStatus.SKIPPED: ("⊘", "white"),
    InstallStatus.PLANNED: ("📝", "cyan"),
}


def fail(message: str, *, as_json: bool = False) -> None:
    """Print an error and exit 1."""
    if as_json:
        click.echo(json.dumps({"ok": False, "error": message}, indent=2))
    else:
        click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def load_effective_config(ctx: click.Context, *, as_json: bool = False, **flags: object) -> BootstrapConfig:
    """devboot.yml (or defaults) with the CLI flags that were given on top."""
    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        fail(str(e), as_json=as_json)
    overrides = {k: v for k, v in flags.items() if v not in (None, False, ())}
    return config.with_overrides(**overrides)


def get_platform(ctx: click.Context, config: BootstrapConfig) -> Platform:
    platform = ctx.obj.get("platform")
    if platform is None:
        platform = detect_platform(prefer_scoop=config.prefer_scoop)
        ctx.obj["platform"] = platform
    return platform


def get_adapter(ctx: click.Context, *, dry_run: bool = False) -> Adapter:
    adapter = ctx.obj.get("adapter")
    if adapter is None:
        return build_adapter(dry_run=dry_run)
    if dry_run and not adapter.dry_run:
        return DryRunAdapter(adapter)
    return adapter


def get_home(ctx: click.Context) -> Path:
    return ctx.obj.get("home") or Path.home()


def get_env(ctx: click.Context) -> dict[str, str]:
    env = ctx.obj.get("env")
    return dict(os.environ if env is None else env)


def get_lock(ctx: click.Context) -> RunLock | None:
    lock_dir = ctx.obj.get("lock_dir")
    return RunLock(Path(lock_dir)) if lock_dir else None


def echo_result(result: InstallResult, *, verbose: bool = False) -> None:
    icon, color = STATUS_STYLE.get(result.status, ("•", "white"))
    click.secho(f"   {icon} {result.capability} ", fg=color, nl=False)

    detail = result.status.value
    if result.version:
        detail += f" {result.version}"
    if result.strategy and result.status != InstallStatus.ALREADY_PRESENT:
        detail += f" via {result.strategy}"
    if result.reason and result.status in (InstallStatus.FAILED, InstallStatus.SKIPPED):
        detail += f": {result.reason}"
    click.echo(f"({detail})")

    if verbose or result.status == InstallStatus.FAILED:
        for attempt in result.attempts:
            if attempt.ok:
                continue
            click.echo(f"     │ {attempt.strategy}: {attempt.message}")
            for line in attempt.stderr.splitlines()[-3:]:
                click.echo(f"     │   {line}")
    for err in result.config_errors:
        click.secho(f"     ⚠️  {err}", fg="yellow")
