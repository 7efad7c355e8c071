"""
devboot — CLI entrypoint.

Usage:
    devboot --help
    devboot bootstrap --install-dev-tools
    devboot install git starship
    devboot config check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from devboot import __version__
from devboot.core.observability.logging_config import configure_from_cli


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="devboot")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to devboot.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devboot — bootstrap a developer workstation, idempotently."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    configure_from_cli(debug=debug, verbose=verbose, quiet=quiet)


# ── bootstrap ───────────────────────────────────────────────────


@cli.command()
@click.option("--skip-ansible", is_flag=True, help="Do not run the Ansible playbook.")
@click.option("--skip-zsh", is_flag=True, help="Do not install zsh / Oh My Zsh.")
@click.option("--skip-fonts", is_flag=True, help="Do not install the Nerd Font.")
@click.option("--install-desktop", is_flag=True, help="Install desktop apps even without a session.")
@click.option("--install-dev-tools", is_flag=True, help="Also install jq, htop, tmux and friends.")
@click.option("--ensure-taskbar", is_flag=True, help="Force desktop and taskbar configuration.")
@click.option("--troubleshoot-minikube", is_flag=True, help="Clean up and reconfigure Minikube, then exit.")
@click.option("--ansible-script", type=click.Path(), default=None, help="Playbook to run (default: ./setup.yml).")
@click.option("--dry-run", is_flag=True, help="Show what would run, change nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def bootstrap(
    ctx: click.Context,
    skip_ansible: bool,
    skip_zsh: bool,
    skip_fonts: bool,
    install_desktop: bool,
    install_dev_tools: bool,
    ensure_taskbar: bool,
    troubleshoot_minikube: bool,
    ansible_script: str | None,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Provision this machine: core tools, shell, fonts, prompt, editor, containers.

    Examples:

        devboot bootstrap

        devboot bootstrap --skip-fonts --install-dev-tools

        devboot bootstrap --dry-run --json
    """
    from devboot.core.services.bootstrap.domain.errors import BootstrapError
    from devboot.core.services.bootstrap.orchestration.bootstrap import run_bootstrap
    from devboot.ui.cli.common import (
        echo_result,
        fail,
        get_adapter,
        get_env,
        get_home,
        get_lock,
        get_platform,
        load_effective_config,
    )
    from devboot.ui.cli.k8s import print_troubleshoot

    config = load_effective_config(
        ctx,
        as_json=as_json,
        skip_ansible=skip_ansible,
        skip_zsh=skip_zsh,
        skip_fonts=skip_fonts,
        install_desktop=install_desktop,
        install_dev_tools=install_dev_tools,
        ensure_taskbar=ensure_taskbar,
        ansible_script=ansible_script,
    )
    platform = get_platform(ctx, config)
    adapter = get_adapter(ctx, dry_run=dry_run)

    if troubleshoot_minikube:
        from devboot.core.services.bootstrap.execution.configurators import ConfigContext
        from devboot.core.services.bootstrap.orchestration.minikube import troubleshoot_minikube as fix

        context = ConfigContext(
            platform=platform, adapter=adapter, config=config, home=get_home(ctx), env=get_env(ctx),
        )
        report = fix(platform, adapter, config, context=context)
        if as_json:
            click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
        else:
            print_troubleshoot(report)
        sys.exit(0)

    quiet = ctx.obj.get("quiet", False)
    verbose = ctx.obj.get("verbose", False)
    if not as_json:
        mode_label = "[dry-run] " if adapter.dry_run else ""
        click.secho(f"\n🚀 {mode_label}Bootstrapping {platform.describe()}", fg="cyan", bold=True)
        click.echo()

    try:
        report = run_bootstrap(
            platform,
            adapter,
            config,
            lock=get_lock(ctx),
            env=get_env(ctx),
            home=get_home(ctx),
            on_result=None if as_json else (lambda r: echo_result(r, verbose=verbose)),
        )
    except BootstrapError as e:
        fail(str(e), as_json=as_json)

    if as_json:
        data = report.model_dump(mode="json")
        data["ok"] = report.ok
        click.echo(json.dumps(data, indent=2))
        sys.exit(0 if report.ok else 1)

    if report.warnings and not quiet:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in report.warnings:
            click.echo(f"   • {warn}")

    if report.desktop and not report.desktop.skipped and not quiet:
        click.echo()
        click.secho(f"🖥️  Desktop ({report.desktop.desktop or 'unknown'}):", fg="cyan")
        click.echo(f"   {len(report.desktop.applied)} setting(s) applied, "
                   f"{len(report.desktop.unchanged)} already set")
        for note in report.desktop.notes:
            click.echo(f"   • {note}")

    click.echo()
    failed = len(report.failed)
    color = "green" if not failed else "yellow"
    click.secho(
        f"   Result: {len(report.results) - failed}/{len(report.results)} capabilities ok",
        fg=color,
        bold=True,
    )
    if report.ansible != "skipped":
        click.echo(f"   Ansible: {report.ansible}")

    if report.hints and not quiet:
        click.echo()
        click.secho("👉 Next steps:", fg="cyan", bold=True)
        for i, hint in enumerate(report.hints, 1):
            click.echo(f"   {i}. {hint}")
    click.echo()


# ── detect / verify / list ──────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detect(ctx: click.Context, as_json: bool) -> None:
    """Show the detected platform and desktop session."""
    from devboot.core.services.bootstrap.detection.desktop import (
        detect_desktop_kind,
        is_graphical_session,
    )
    from devboot.ui.cli.common import get_adapter, get_env, get_platform, load_effective_config

    config = load_effective_config(ctx, as_json=as_json)
    platform = get_platform(ctx, config)
    adapter = get_adapter(ctx)
    env = get_env(ctx)
    desktop = detect_desktop_kind(adapter, env) if platform.is_linux else None
    graphical = is_graphical_session(adapter, env) if platform.is_linux else platform.supported

    if as_json:
        data = platform.model_dump(mode="json")
        data.update({"supported": platform.supported, "desktop": desktop, "graphical": graphical})
        click.echo(json.dumps(data, indent=2))
        return

    click.secho(f"\n🔍 Platform: {platform.family.value}", fg="cyan", bold=True)
    click.echo(f"   Distro: {platform.distro or '?'} {platform.version}".rstrip())
    click.echo(f"   Arch: {platform.machine or '?'} → {platform.arch or 'unsupported'}")
    click.echo(f"   Package manager: {platform.package_manager or 'none'}")
    if platform.wsl:
        click.echo("   WSL: yes")
    if platform.is_linux:
        click.echo(f"   Desktop: {desktop or 'none'} ({'graphical' if graphical else 'no graphical session'})")
    if not platform.supported:
        click.secho("   ⚠️  This platform is not supported", fg="yellow")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def verify(ctx: click.Context, as_json: bool) -> None:
    """Check which catalog tools are installed (read-only)."""
    from devboot.core.services.bootstrap.orchestration.verification import verify_installations
    from devboot.ui.cli.common import get_adapter, get_platform, load_effective_config

    config = load_effective_config(ctx, as_json=as_json)
    platform = get_platform(ctx, config)
    statuses = verify_installations(platform, get_adapter(ctx))
    missing_required = [s for s in statuses if s.required and s.applicable and not s.present]

    if as_json:
        click.echo(json.dumps([s.model_dump(mode="json") for s in statuses], indent=2))
        sys.exit(1 if missing_required else 0)

    click.secho(f"\n🔎 Installed tools ({platform.family.value})", fg="cyan", bold=True)
    for status in statuses:
        if not status.applicable:
            if ctx.obj.get("verbose"):
                click.secho(f"   ⊘ {status.name} ", fg="white", nl=False)
                click.echo(f"({status.note})")
            continue
        if status.present:
            click.secho(f"   ✓ {status.label}", fg="green", nl=False)
            click.echo(f" {status.version}" if status.version else "")
        else:
            marker = " (required)" if status.required else ""
            click.secho(f"   ✗ {status.label}{marker}", fg="red" if status.required else "yellow")

    click.echo()
    if missing_required:
        click.secho(
            f"   Missing required: {', '.join(s.name for s in missing_required)}",
            fg="red",
            bold=True,
        )
        click.echo()
        sys.exit(1)


@cli.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_capabilities(ctx: click.Context, as_json: bool) -> None:
    """List the capability catalog and how each installs on this platform."""
    from devboot.core.services.bootstrap.data.capabilities import CAPABILITY_CATALOG, K9S
    from devboot.core.services.bootstrap.resolver.strategy_selection import (
        applies_to,
        resolve_strategies,
    )
    from devboot.ui.cli.common import get_platform, load_effective_config

    config = load_effective_config(ctx, as_json=as_json)
    platform = get_platform(ctx, config)

    rows = []
    for cap in [*CAPABILITY_CATALOG, K9S]:
        applicable = applies_to(cap, platform)
        strategies = [s.name for s in resolve_strategies(cap, platform)] if applicable else []
        rows.append({
            "name": cap.name,
            "label": cap.display_name,
            "group": cap.group,
            "required": cap.required,
            "applicable": applicable,
            "strategies": strategies,
            "conditions": cap.conditions,
        })

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    click.secho(f"\n📦 Capabilities ({platform.family.value})", fg="cyan", bold=True)
    group = None
    for row in rows:
        if row["group"] != group:
            group = row["group"]
            click.echo()
            click.secho(f"   {group}", fg="white", bold=True)
        marker = " *" if row["required"] else ""
        how = " → ".join(row["strategies"]) or ("n/a" if not row["applicable"] else "no strategy")
        cond = f"  [{', '.join(row['conditions'])}]" if row["conditions"] else ""
        click.echo(f"     • {row['name']}{marker}  {how}{cond}")
    click.echo()
    click.echo("   * required: a failure aborts the bootstrap")
    click.echo()


# ── install ─────────────────────────────────────────────────────


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--dry-run", is_flag=True, help="Show what would run, change nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, names: tuple[str, ...], dry_run: bool, as_json: bool) -> None:
    """Ensure individual capabilities (or plain packages) are installed.

    Examples:

        devboot install git gh

        devboot install ripgrep --dry-run
    """
    from devboot.core.services.bootstrap.data.capabilities import extra_package, get_capability
    from devboot.core.services.bootstrap.domain.errors import RunLockError
    from devboot.core.services.bootstrap.execution.configurators import ConfigContext
    from devboot.core.services.bootstrap.execution.run_lock import RunLock
    from devboot.core.services.bootstrap.orchestration.installer import ensure_capability
    from devboot.ui.cli.common import (
        echo_result,
        fail,
        get_adapter,
        get_env,
        get_home,
        get_lock,
        get_platform,
        load_effective_config,
    )

    config = load_effective_config(ctx, as_json=as_json)
    platform = get_platform(ctx, config)
    adapter = get_adapter(ctx, dry_run=dry_run)
    context = ConfigContext(
        platform=platform, adapter=adapter, config=config, home=get_home(ctx), env=get_env(ctx),
    )

    capabilities = []
    for name in names:
        cap = get_capability(name)
        if cap is None:
            if not as_json:
                click.secho(f"   ℹ️  '{name}' is not in the catalog, installing it as a package", fg="cyan")
            cap = extra_package(name)
        capabilities.append(cap)

    lock = get_lock(ctx) or (None if adapter.dry_run else RunLock())
    try:
        if lock is not None:
            lock.acquire()
        results = [ensure_capability(cap, platform, adapter, config, context=context) for cap in capabilities]
    except RunLockError as e:
        fail(str(e), as_json=as_json)
    finally:
        if lock is not None:
            lock.release()

    any_failed = any(not r.ok for r in results)
    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
        sys.exit(1 if any_failed else 0)

    for result in results:
        echo_result(result, verbose=ctx.obj.get("verbose", False))
    if any_failed:
        sys.exit(1)


# ── config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Configuration file commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate devboot.yml and show the effective options."""
    from devboot.core.config.loader import ConfigError, find_config_file, load_config

    path = ctx.obj.get("config_path") or find_config_file()
    try:
        cfg = load_config(path)
    except ConfigError as e:
        if as_json:
            click.echo(json.dumps({"valid": False, "path": str(path) if path else None, "errors": [str(e)]}, indent=2))
            sys.exit(1)
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        click.echo(f"   • {e}")
        click.echo()
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "valid": True,
            "path": str(path) if path else None,
            "config": cfg.model_dump(mode="json"),
        }, indent=2))
        return

    click.secho("✅ Configuration is valid", fg="green", bold=True)
    click.echo(f"   File: {path if path else '(none, using defaults)'}")
    for key, value in cfg.model_dump(exclude={"capabilities", "extra_packages"}).items():
        click.echo(f"   {key}: {value}")
    if cfg.capabilities:
        click.echo(f"   capabilities: {', '.join(sorted(cfg.capabilities))}")
    if cfg.extra_packages:
        click.echo(f"   extra_packages: {', '.join(cfg.extra_packages)}")
    click.echo()


# ── Sub-groups ──────────────────────────────────────────────────

from devboot.ui.cli.desktop import desktop  # noqa: E402
from devboot.ui.cli.k8s import k8s  # noqa: E402

cli.add_command(desktop)
cli.add_command(k8s)


if __name__ == "__main__":
    cli()
