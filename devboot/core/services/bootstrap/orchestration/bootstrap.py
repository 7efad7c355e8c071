"""
L5 Orchestration — Full bootstrap run.

The provisioning sequence, strictly one capability at a time:

    validate → refresh index → catalog groups → extra packages
             → desktop/taskbar → verification → ansible → next steps

A Failed result for a required capability raises FatalCapabilityError;
every other failure is logged and the run continues. Only one run may
mutate the host at a time (RunLock).
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command, Receipt
from devboot.core.models.capability import Capability, InstallResult, InstallStatus
from devboot.core.models.config import BootstrapConfig
from devboot.core.models.platform import Platform, PlatformFamily
from devboot.core.services.bootstrap.data.capabilities import (
    BOOTSTRAP_GROUPS,
    CAPABILITY_CATALOG,
    extra_package,
    get_capability,
)
from devboot.core.services.bootstrap.domain.errors import (
    BootstrapError,
    FatalCapabilityError,
    PackageManagerError,
)
from devboot.core.services.bootstrap.execution.configurators import ConfigContext
from devboot.core.services.bootstrap.execution.run_lock import RunLock
from devboot.core.services.bootstrap.orchestration.desktop import DesktopReport, configure_desktop
from devboot.core.services.bootstrap.orchestration.installer import ensure_capability
from devboot.core.services.bootstrap.orchestration.verification import ToolStatus, verify_installations

logger = logging.getLogger(__name__)

HOMEBREW_INSTALLER = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

# Third-party repos that break ``dnf update`` on fresh releases.
DNF_PROBLEM_REPOS = ["hashicorp", "docker-ce-stable"]

GROUP_FLAGS = {
    "shell": "skip_zsh",
    "fonts": "skip_fonts",
}


class BootstrapReport(BaseModel):
    """Everything one bootstrap run did, for text or JSON output."""

    platform: Platform
    dry_run: bool = False
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    finished_at: str | None = None
    warnings: list[str] = Field(default_factory=list)
    results: list[InstallResult] = Field(default_factory=list)
    desktop: DesktopReport | None = None
    verification: list[ToolStatus] = Field(default_factory=list)
    ansible: str = "skipped"
    hints: list[str] = Field(default_factory=list)

    @property
    def failed(self) -> list[InstallResult]:
        return [r for r in self.results if r.status == InstallStatus.FAILED]

    @property
    def ok(self) -> bool:
        return not any(r.required for r in self.failed)


# ── Preflight ───────────────────────────────────────────────────


def validate_system(platform: Platform, adapter: Adapter) -> list[str]:
    """Warnings about the host before anything is installed."""
    warnings = []
    if platform.arch == "arm64":
        logger.info("ARM64 host: using arm64 release binaries")
        if adapter.has("docker"):
            warnings.append(
                "Some container images are amd64-only; use --platform linux/amd64 if a pull fails"
            )
    elif platform.arch is None and platform.machine:
        warnings.append(f"Unknown architecture '{platform.machine}': release downloads will be skipped")

    missing = [tool for tool in ("curl", "tar", "gzip") if not adapter.has(tool)]
    if missing:
        warnings.append(f"Missing basic tools: {', '.join(missing)} (will try to install them)")
    return warnings


def _run(adapter: Adapter, argv: list[str], *, sudo: bool = True, timeout: int = 1800) -> Receipt:
    return adapter.run(Command(argv=argv, needs_sudo=sudo, timeout=timeout))


def refresh_package_index(platform: Platform, adapter: Adapter) -> bool:
    """Update the package manager's index before installing anything.

    Returns:
        False when there is nothing to refresh on this platform.

    Raises:
        PackageManagerError: The refresh failed after every fallback.
    """
    pm = platform.package_manager
    if not platform.supported or pm is None:
        logger.warning("No package manager for %s, skipping index refresh", platform.label())
        return False

    logger.info("Refreshing %s package index", pm)
    if pm == "apt":
        r = _run(adapter, ["apt-get", "update", "-y"])
    elif pm == "dnf":
        r = _run(adapter, ["dnf", "update", "-y"])
        if r.failed:
            logger.warning("dnf update failed, retrying with --skip-broken")
            r = _run(adapter, ["dnf", "update", "-y", "--skip-broken"])
        if r.failed:
            logger.warning("Disabling known problematic third-party repositories")
            for repo in DNF_PROBLEM_REPOS:
                _run(adapter, ["dnf", "config-manager", "--set-disabled", repo], timeout=120)
            r = _run(adapter, ["dnf", "update", "-y", "--skip-broken"])
    elif pm == "yum":
        r = _run(adapter, ["yum", "update", "-y"])
    elif pm == "brew":
        if not adapter.has("brew"):
            logger.info("Installing Homebrew")
            installed = adapter.run(Command(
                argv=["/bin/bash", "-c", f'/bin/bash -c "$(curl -fsSL {HOMEBREW_INSTALLER})"'],
                env={"NONINTERACTIVE": "1"},
                timeout=1800,
            ))
            if installed.failed:
                raise PackageManagerError(f"Failed to install Homebrew: {installed.error}")
        r = _run(adapter, ["brew", "update"], sudo=False)
    elif pm == "scoop":
        r = _run(adapter, ["scoop", "update"], sudo=False)
    else:
        logger.debug("%s needs no index refresh", pm)
        return False

    if r.failed:
        raise PackageManagerError(f"Failed to update the {pm} package index: {r.error}")
    return True


# ── Selection ───────────────────────────────────────────────────


def select_capabilities(config: BootstrapConfig) -> list[Capability]:
    """Catalog entries for this run, in run order."""
    groups = [g for g in BOOTSTRAP_GROUPS if not getattr(config, GROUP_FLAGS.get(g, ""), False)]
    selected = [cap for group in groups for cap in CAPABILITY_CATALOG if cap.group == group]

    names = {cap.name for cap in selected}
    for name in config.extra_packages:
        if name in names:
            continue
        selected.append(get_capability(name) or extra_package(name))
        names.add(name)
    return selected


# ── Ansible ─────────────────────────────────────────────────────


def run_ansible(adapter: Adapter, playbook: str, *, base_dir: Path | None = None) -> str:
    """Run the follow-up playbook. Never fatal.

    Returns:
        One of ``ran``, ``failed``, ``missing``, ``no-ansible``, ``planned``.
    """
    path = Path(playbook)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    if not path.is_file():
        logger.warning("Ansible playbook not found: %s (run 'ansible-playbook %s' later)", path, playbook)
        return "missing"
    if not adapter.has("ansible-playbook"):
        logger.warning("ansible-playbook not on PATH, skipping %s", path)
        return "no-ansible"

    r = adapter.run(Command(argv=["ansible-playbook", str(path)], timeout=3600))
    if adapter.dry_run:
        return "planned"
    if r.failed:
        logger.warning("Ansible playbook failed or completed with warnings: %s", r.error)
        return "failed"
    return "ran"


# ── Next steps ──────────────────────────────────────────────────


def next_steps(platform: Platform, config: BootstrapConfig, results: list[InstallResult]) -> list[str]:
    hints = []
    for result in results:
        if result.status in (InstallStatus.FAILED, InstallStatus.SKIPPED):
            continue
        cap = get_capability(result.capability)
        if cap is not None and cap.hint:
            hints.append(cap.hint)

    if platform.family == PlatformFamily.LINUX_RHEL and (config.ensure_taskbar or config.install_desktop):
        hints.append("Taskbar: reboot, log into the desktop, then run: bash ~/install-taskbar.sh")
    else:
        hints.append("Log out and back in to see desktop environment changes")
    if not config.install_dev_tools:
        hints.append("Run with --install-dev-tools for jq, htop, tmux and friends")
    return hints


# ── Run ─────────────────────────────────────────────────────────


def run_bootstrap(
    platform: Platform,
    adapter: Adapter,
    config: BootstrapConfig | None = None,
    *,
    lock: RunLock | None = None,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
    base_dir: Path | None = None,
    on_result: Callable[[InstallResult], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BootstrapReport:
    """Provision the workstation.

    Args:
        platform: Detected once by the caller.
        adapter: Shell, dry-run or mock adapter.
        config: Effective options (file + CLI flags).
        lock: Run lock; a default one is used unless this is a dry run.
        env: Environment for desktop and condition checks.
        home: Home directory for user config files.
        base_dir: Directory a relative ansible playbook path is resolved against.
        on_result: Called after each capability, for progress output.

    Raises:
        FatalCapabilityError: A required capability failed.
        BootstrapError: The platform is unsupported, or the run lock is held.
    """
    config = config or BootstrapConfig()
    environ = dict(os.environ if env is None else env)
    home = home or Path.home()
    if lock is None and not adapter.dry_run:
        lock = RunLock()

    if lock is not None:
        with lock:
            return _run_bootstrap(platform, adapter, config, environ, home, base_dir, on_result, sleep)
    return _run_bootstrap(platform, adapter, config, environ, home, base_dir, on_result, sleep)


def _run_bootstrap(
    platform: Platform,
    adapter: Adapter,
    config: BootstrapConfig,
    env: dict[str, str],
    home: Path,
    base_dir: Path | None,
    on_result: Callable[[InstallResult], None] | None,
    sleep: Callable[[float], None],
) -> BootstrapReport:
    report = BootstrapReport(platform=platform, dry_run=adapter.dry_run)
    context = ConfigContext(platform=platform, adapter=adapter, config=config, home=home, env=env)
    logger.info("Bootstrapping %s", platform.describe())

    def ensure(cap: Capability) -> InstallResult:
        result = ensure_capability(cap, platform, adapter, config, context=context, sleep=sleep)
        report.results.append(result)
        if on_result is not None:
            on_result(result)
        if result.status == InstallStatus.FAILED:
            if result.required:
                raise FatalCapabilityError(result, platform)
            report.warnings.append(f"{cap.display_name}: {result.reason}")
        return result

    report.warnings.extend(validate_system(platform, adapter))

    if not platform.supported:
        # curl first: on a bare host this is what fails, naming the platform
        curl = get_capability("curl")
        if curl is not None:
            ensure(curl)
        raise BootstrapError(
            f"Unsupported platform '{platform.label()}': supported are "
            "Debian/Ubuntu, CentOS/RHEL/Fedora, macOS and Windows"
        )

    refresh_package_index(platform, adapter)

    for cap in select_capabilities(config):
        ensure(cap)

    report.desktop = configure_desktop(platform, adapter, config, env=env, home=home)
    if report.desktop.errors:
        report.warnings.extend(report.desktop.errors)

    report.verification = verify_installations(platform, adapter)

    if not config.skip_ansible:
        report.ansible = run_ansible(adapter, config.ansible_script, base_dir=base_dir)

    report.hints = next_steps(platform, config, report.results)
    report.finished_at = datetime.now(UTC).isoformat()
    logger.info("Bootstrap finished: %d capabilities, %d failed",
                len(report.results), len(report.failed))
    return report
