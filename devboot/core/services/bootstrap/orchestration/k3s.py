"""
L5 Orchestration — k3s + k9s.

Single-node k3s cluster for local work, its kubeconfig copied to the
user, and the k9s TUI on top. Unlike the bootstrap run, a k3s that
cannot be brought up ends the flow with ``K3sError``; k9s failing is
only a warning.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command
from devboot.core.models.capability import InstallResult
from devboot.core.models.config import BootstrapConfig
from devboot.core.models.platform import Platform, PlatformFamily
from devboot.core.services.bootstrap.data.capabilities import K9S
from devboot.core.services.bootstrap.domain.errors import BootstrapError
from devboot.core.services.bootstrap.execution.backup import BACKUP_TIME_FORMAT, backup_file
from devboot.core.services.bootstrap.execution.configurators import ConfigContext
from devboot.core.services.bootstrap.execution.download import run_with_retry
from devboot.core.services.bootstrap.orchestration.installer import ensure_capability

logger = logging.getLogger(__name__)

K3S_INSTALL_SCRIPT = "curl -sfL https://get.k3s.io | sh -s - --write-kubeconfig-mode 644"
K3S_KUBECONFIG = Path("/etc/rancher/k3s/k3s.yaml")
STANDALONE_KUBECTL = Path("/usr/local/bin/kubectl")

KUBECONFIG_WAIT_ATTEMPTS = 12
KUBECONFIG_WAIT_INTERVAL = 5.0
SETTLE_SECONDS = 10.0


class K3sError(BootstrapError):
    """k3s could not be installed or started."""


class K3sReport(BaseModel):
    k3s: str = ""                      # "installed" | "already-present" | "planned"
    k3s_version: str | None = None
    kubectl_backup: str | None = None
    kubeconfig: str | None = None
    kubeconfig_backup: str | None = None
    nodes_ready: bool = False
    k9s: InstallResult | None = None
    warnings: list[str] = Field(default_factory=list)


class K3sInstaller:
    """The k3s flow with its host paths and timings injectable for tests."""

    def __init__(
        self,
        platform: Platform,
        adapter: Adapter,
        config: BootstrapConfig | None = None,
        *,
        home: Path | None = None,
        env: Mapping[str, str] | None = None,
        cluster_kubeconfig: Path = K3S_KUBECONFIG,
        standalone_kubectl: Path = STANDALONE_KUBECTL,
        wait_attempts: int = KUBECONFIG_WAIT_ATTEMPTS,
        wait_interval: float = KUBECONFIG_WAIT_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        now: datetime | None = None,
    ):
        self.platform = platform
        self.adapter = adapter
        self.config = config or BootstrapConfig()
        self.home = home or Path.home()
        self.env = os.environ if env is None else env
        self.cluster_kubeconfig = cluster_kubeconfig
        self.standalone_kubectl = standalone_kubectl
        self.wait_attempts = wait_attempts
        self.wait_interval = wait_interval
        self.sleep = sleep
        self.now = now
        self.report = K3sReport()

    # ── Helpers ──

    def _context(self) -> ConfigContext:
        return ConfigContext(
            platform=self.platform, adapter=self.adapter, config=self.config, home=self.home, env=self.env,
        )

    def _run(self, argv: list[str], *, sudo: bool = False, **env: str):
        return self.adapter.run(Command(
            argv=argv, needs_sudo=sudo, env=env, timeout=self.config.command_timeout,
        ))

    def _diagnostics(self) -> str:
        status = self.adapter.probe(Command(argv=["systemctl", "status", "k3s", "--no-pager"], timeout=30))
        journal = self.adapter.probe(Command(argv=["journalctl", "-u", "k3s", "-n", "50", "--no-pager"], timeout=30))
        tail = "\n".join(filter(None, [status.stdout.strip(), journal.stdout.strip()]))
        return f"\n{tail}" if tail else ""

    # ── Steps ──

    def relax_selinux(self) -> None:
        if not self.adapter.has("getenforce"):
            return
        mode = self.adapter.probe(Command(argv=["getenforce"], timeout=10))
        if mode.stdout.strip() != "Enforcing":
            return
        logger.warning("SELinux is Enforcing, switching to Permissive for k3s")
        r = self._run(["setenforce", "0"], sudo=True)
        if r.failed:
            self.report.warnings.append("Could not set SELinux to Permissive; k3s may fail to start")
        else:
            self.report.warnings.append(
                "SELinux set to Permissive until reboot; edit /etc/selinux/config to make it permanent"
            )

    def backup_kubectl(self) -> None:
        """Move a standalone kubectl aside so the k3s symlink can take its place."""
        path = self.standalone_kubectl
        if not self.adapter.has("kubectl") or not path.is_file() or path.is_symlink():
            return
        stamp = (self.now or datetime.now()).strftime(BACKUP_TIME_FORMAT)
        target = f"{path}.backup.{stamp}"
        r = self._run(["mv", str(path), target], sudo=True)
        if r.failed:
            self.report.warnings.append(f"Could not back up {path}: {r.error}")
        else:
            self.report.kubectl_backup = target
            logger.info("kubectl backed up to %s", target)

    def restore_kubectl(self) -> None:
        if self.report.kubectl_backup:
            self._run(["mv", self.report.kubectl_backup, str(self.standalone_kubectl)], sudo=True)
            self.report.kubectl_backup = None

    def install(self) -> None:
        env = {}
        if self.platform.family == PlatformFamily.LINUX_RHEL:
            env["INSTALL_K3S_SKIP_SELINUX_RPM"] = "true"
        command = Command(
            argv=["sh", "-c", K3S_INSTALL_SCRIPT],
            env=env,
            timeout=self.config.command_timeout,
        )
        r = run_with_retry(self.adapter, command, attempts=self.config.download_attempts, sleep=self.sleep)
        if r.failed:
            self.restore_kubectl()
            raise K3sError(f"k3s installation failed: {r.error}")
        if not self.adapter.dry_run and not self.adapter.has("k3s"):
            raise K3sError("k3s binary not found after installation (check /usr/local/bin)")
        self._run(["chmod", "+x", "/usr/local/bin/k3s"], sudo=True)

    def ensure_service(self) -> None:
        active = self.adapter.probe(Command(argv=["systemctl", "is-active", "--quiet", "k3s"], timeout=10))
        if active.ok:
            logger.info("k3s service is running")
            return
        r = self._run(["systemctl", "start", "k3s"], sudo=True)
        if r.failed:
            raise K3sError(f"Failed to start the k3s service: {r.error}{self._diagnostics()}")
        if self._run(["systemctl", "enable", "k3s"], sudo=True).failed:
            self.report.warnings.append("k3s service could not be enabled for auto-start")

    def wait_for_kubeconfig(self) -> None:
        if self.cluster_kubeconfig.exists():
            return
        self.sleep(SETTLE_SECONDS)
        for attempt in range(1, self.wait_attempts + 1):
            if self.cluster_kubeconfig.exists():
                return
            logger.info("Waiting for kubeconfig (attempt %d/%d)", attempt, self.wait_attempts)
            self.sleep(self.wait_interval)
        if not self.cluster_kubeconfig.exists():
            raise K3sError(f"k3s kubeconfig was not created at {self.cluster_kubeconfig}{self._diagnostics()}")

    def copy_kubeconfig(self) -> None:
        dest = self.home / ".kube" / "config"
        dest.parent.mkdir(parents=True, exist_ok=True)
        if dest.exists():
            backup = backup_file(dest, now=self.now)
            self.report.kubeconfig_backup = str(backup) if backup else None
        user = self._context().user
        for argv, sudo in (
            (["cp", str(self.cluster_kubeconfig), str(dest)], True),
            (["chown", f"{user}:{user}", str(dest)], True),
            (["chmod", "600", str(dest)], False),
        ):
            r = self._run(argv, sudo=sudo)
            if r.failed:
                raise K3sError(f"Could not install kubeconfig at {dest}: {r.error}")
        self.report.kubeconfig = str(dest)

    def check_nodes(self) -> None:
        cmd = Command(
            argv=["kubectl", "get", "nodes"],
            env={"KUBECONFIG": self.report.kubeconfig or str(self.cluster_kubeconfig)},
            timeout=60,
        )
        r = self.adapter.probe(cmd)
        if not r.ok:
            self.sleep(SETTLE_SECONDS)
            r = self.adapter.probe(cmd)
        self.report.nodes_ready = r.ok
        if not r.ok:
            self.report.warnings.append(
                f"kubectl cannot reach the cluster yet; try: sudo kubectl get nodes --kubeconfig {self.cluster_kubeconfig}"
            )

    # ── Flow ──

    def run(self) -> K3sReport:
        if not self.platform.is_linux:
            raise K3sError(f"k3s is only supported on Linux, not {self.platform.label()}")
        if self.platform.arch is None:
            raise K3sError(f"Unsupported architecture: {self.platform.machine or 'unknown'}")

        self.relax_selinux()

        if self.adapter.has("k3s"):
            version = self.adapter.probe(Command(argv=["k3s", "--version"], timeout=30))
            self.report.k3s = "already-present"
            self.report.k3s_version = version.stdout.splitlines()[0] if version.ok and version.stdout else None
        else:
            self.backup_kubectl()
            self.install()
            self.report.k3s = "planned" if self.adapter.dry_run else "installed"

        if self.adapter.dry_run:
            self.report.k9s = self._install_k9s()
            return self.report

        self.ensure_service()
        self.wait_for_kubeconfig()
        self.copy_kubeconfig()
        self.check_nodes()
        self.report.k9s = self._install_k9s()
        return self.report

    def _install_k9s(self) -> InstallResult:
        result = ensure_capability(
            K9S, self.platform, self.adapter, self.config, context=self._context(), sleep=self.sleep,
        )
        if not result.ok:
            self.report.warnings.append(
                "k9s could not be installed; get it from https://github.com/derailed/k9s/releases"
            )
        return result


def install_k3s(
    platform: Platform,
    adapter: Adapter,
    config: BootstrapConfig | None = None,
    **kwargs,
) -> K3sReport:
    """Install (or repair) k3s and install k9s.

    Raises:
        K3sError: k3s could not be installed, started, or produced no kubeconfig.
    """
    return K3sInstaller(platform, adapter, config, **kwargs).run()
