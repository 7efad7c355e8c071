"""
L5 Orchestration — Minikube troubleshooter.

Deletes every Minikube profile, removes leftover Podman volumes and
re-applies the rootless Podman + containerd configuration.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command
from devboot.core.models.config import BootstrapConfig
from devboot.core.models.platform import Platform
from devboot.core.services.bootstrap.execution.configurators import (
    ConfigContext,
    ConfigureOutcome,
    run_configurator,
)

logger = logging.getLogger(__name__)

START_HINT = "minikube start --force-systemd=false"


class TroubleshootReport(BaseModel):
    ok: bool = True
    steps: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    rootless: ConfigureOutcome | None = None
    hint: str = START_HINT


def troubleshoot_minikube(
    platform: Platform,
    adapter: Adapter,
    config: BootstrapConfig | None = None,
    *,
    context: ConfigContext | None = None,
) -> TroubleshootReport:
    """Clean up a broken Minikube setup and reconfigure it.

    Cleanup failures are expected (nothing to delete) and only noted.
    ``ok`` is False only when Minikube is not installed at all.
    """
    report = TroubleshootReport()
    if not adapter.has("minikube"):
        report.ok = False
        report.warnings.append("Minikube not installed")
        return report

    logger.info("Cleaning up previous Minikube clusters")
    r = adapter.run(Command(argv=["minikube", "delete", "--all"], timeout=300))
    report.steps.append(r.command)
    if r.failed:
        report.warnings.append(f"minikube delete --all: {r.error}")

    if adapter.has("podman"):
        volumes = adapter.probe(Command(argv=["podman", "volume", "ls", "-q"], timeout=30))
        stale = [v for v in volumes.stdout.split() if v.startswith("minikube")] if volumes.ok else []
        if stale:
            r = adapter.run(Command(argv=["podman", "volume", "rm", *stale], timeout=120))
            report.steps.append(r.command)
            if r.failed:
                report.warnings.append(f"podman volume rm: {r.error}")

    context = context or ConfigContext(platform=platform, adapter=adapter, config=config or BootstrapConfig())
    report.rootless = run_configurator("minikube-rootless", context)
    report.warnings.extend(report.rootless.errors)
    return report
