"""
CLI commands for the local Kubernetes tooling.

Thin wrappers over ``orchestration.k3s`` and ``orchestration.minikube``.
"""

from __future__ import annotations

import json
import sys

import click

from devboot.core.services.bootstrap.orchestration.minikube import TroubleshootReport


def print_troubleshoot(report: TroubleshootReport) -> None:
    """Human-readable Minikube troubleshooting output."""
    if not report.ok:
        click.secho("❌ Minikube is not installed", fg="red", bold=True)
        click.echo("   Install it with: devboot install minikube")
        return

    click.secho("🔧 Minikube troubleshooting:", fg="cyan", bold=True)
    for step in report.steps:
        click.echo(f"   • {step}")
    if report.rootless is not None:
        if report.rootless.changed:
            click.secho("   ✓ Rootless Podman + containerd configured", fg="green")
        elif report.rootless.ok:
            click.secho("   ✓ Rootless configuration already in place", fg="green")
    for warn in report.warnings:
        click.secho(f"   ⚠️  {warn}", fg="yellow")
    click.echo()
    click.echo(f"   Now run: {report.hint}")
    click.echo()


@click.group("k8s")
def k8s() -> None:
    """Kubernetes — k3s + k9s, Minikube troubleshooting."""


# ── k3s ─────────────────────────────────────────────────────────


@k8s.command("install")
@click.option("--dry-run", is_flag=True, help="Show what would run, change nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, dry_run: bool, as_json: bool) -> None:
    """Install a single-node k3s cluster and k9s.

    Copies the cluster kubeconfig to ~/.kube/config (backing up any
    existing one) and checks that the node answers.
    """
    from devboot.core.services.bootstrap.orchestration.k3s import K3sError, install_k3s
    from devboot.ui.cli.common import (
        fail,
        get_adapter,
        get_env,
        get_home,
        get_platform,
        load_effective_config,
    )

    config = load_effective_config(ctx, as_json=as_json)
    platform = get_platform(ctx, config)
    adapter = get_adapter(ctx, dry_run=dry_run)

    if not as_json:
        click.secho(f"☸️  Installing k3s on {platform.describe()}", fg="cyan", bold=True)

    try:
        report = install_k3s(platform, adapter, config, home=get_home(ctx), env=get_env(ctx))
    except K3sError as e:
        fail(str(e), as_json=as_json)

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
        return

    version = f" ({report.k3s_version})" if report.k3s_version else ""
    click.secho(f"   ✓ k3s {report.k3s}{version}", fg="green")
    if report.kubectl_backup:
        click.echo(f"   📦 Previous kubectl moved to {report.kubectl_backup}")
    if report.kubeconfig:
        click.echo(f"   📄 kubeconfig: {report.kubeconfig}")
    if report.kubeconfig_backup:
        click.echo(f"   📦 Previous kubeconfig saved as {report.kubeconfig_backup}")
    if not adapter.dry_run:
        if report.nodes_ready:
            click.secho("   ✓ Cluster node is reachable", fg="green")
        else:
            click.secho("   ⏳ Cluster node not reachable yet", fg="yellow")
    if report.k9s is not None:
        color = "green" if report.k9s.ok else "yellow"
        click.secho(f"   k9s: {report.k9s.status.value}", fg=color)
    for warn in report.warnings:
        click.secho(f"   ⚠️  {warn}", fg="yellow")
    click.echo()
    click.echo("   Try: kubectl get nodes && k9s")
    click.echo()


# ── Minikube ────────────────────────────────────────────────────


@k8s.command("troubleshoot-minikube")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def troubleshoot(ctx: click.Context, as_json: bool) -> None:
    """Delete Minikube profiles, drop stale volumes, reapply rootless config."""
    from devboot.core.services.bootstrap.execution.configurators import ConfigContext
    from devboot.core.services.bootstrap.orchestration.minikube import troubleshoot_minikube
    from devboot.ui.cli.common import (
        get_adapter,
        get_env,
        get_home,
        get_platform,
        load_effective_config,
    )

    config = load_effective_config(ctx, as_json=as_json)
    platform = get_platform(ctx, config)
    adapter = get_adapter(ctx)
    context = ConfigContext(
        platform=platform, adapter=adapter, config=config, home=get_home(ctx), env=get_env(ctx),
    )
    report = troubleshoot_minikube(platform, adapter, config, context=context)

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        print_troubleshoot(report)
    if not report.ok:
        sys.exit(1)
