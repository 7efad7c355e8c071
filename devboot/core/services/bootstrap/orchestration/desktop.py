"""
L5 Orchestration — Desktop and taskbar configuration.

Thin wrappers over ``gsettings``, autostart entries and a few systemd
calls. Everything here is best-effort: problems end up in the report,
never in an exception.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command
from devboot.core.models.capability import InstallResult
from devboot.core.models.config import BootstrapConfig
from devboot.core.models.platform import Platform, PlatformFamily
from devboot.core.services.bootstrap.data.capabilities import get_capability
from devboot.core.services.bootstrap.data.desktop_settings import (
    GNOME_DESKTOP_SETTINGS,
    GNOME_TASKBAR_SETTINGS,
)
from devboot.core.services.bootstrap.data.static_configs import (
    GNOME_DOCK_AUTOSTART,
    TASKBAR_SCRIPT,
    TASKBAR_SCRIPT_NAME,
    XFCE_PANEL_AUTOSTART,
)
from devboot.core.services.bootstrap.detection.desktop import (
    detect_desktop_kind,
    is_graphical_session,
)
from devboot.core.services.bootstrap.execution.config_applier import (
    SettingsOutcome,
    apply_settings,
    write_if_absent,
)
from devboot.core.services.bootstrap.execution.configurators import ConfigContext
from devboot.core.services.bootstrap.orchestration.installer import ensure_capability

logger = logging.getLogger(__name__)

DISPLAY_MANAGERS = ["gdm", "lightdm", "sddm"]


class DesktopReport(BaseModel):
    """What desktop configuration did (or why it did nothing)."""

    desktop: str | None = None
    skipped: bool = False
    message: str = ""
    applied: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    extensions: InstallResult | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def absorb(self, outcome: SettingsOutcome) -> None:
        self.applied.extend(outcome.applied)
        self.unchanged.extend(outcome.unchanged)
        self.errors.extend(outcome.failed)

    def merge(self, other: DesktopReport) -> None:
        for name in ("applied", "unchanged", "files", "notes", "errors"):
            getattr(self, name).extend(getattr(other, name))
        if other.extensions is not None:
            self.extensions = other.extensions


def _write_autostart(report: DesktopReport, home: Path, filename: str, content: str, dry_run: bool) -> None:
    result = write_if_absent(home / ".config" / "autostart" / filename, content, dry_run=dry_run)
    if result.changed:
        report.files.append(result.path)


def _running(adapter: Adapter, process: str) -> bool:
    if not adapter.has("pgrep"):
        return False
    return adapter.probe(Command(argv=["pgrep", "-f", process], timeout=10)).ok


def _desktop_skip_reason(platform: Platform, adapter: Adapter, env: Mapping[str, str], force: bool) -> str:
    if platform.family == PlatformFamily.MACOS:
        return "macOS desktop needs no configuration"
    if not platform.is_linux:
        return f"desktop configuration is not available on {platform.label()}"
    if not force and not is_graphical_session(adapter, env):
        return "No graphical environment detected (use --ensure-taskbar to force)"
    return ""


# ── Dock and sidebar ────────────────────────────────────────────


def configure_desktop(
    platform: Platform,
    adapter: Adapter,
    config: BootstrapConfig | None = None,
    *,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
    force: bool = False,
) -> DesktopReport:
    """Configure the dock and sidebar of the running desktop.

    Skipped without a graphical session unless ``force`` (or
    ``ensure_taskbar`` / ``install_desktop``) is set. GNOME gets the
    declarative settings; KDE and XFCE are only checked, since both
    ship a panel by default. Runs the taskbar step as well when
    ``ensure_taskbar`` is set.
    """
    config = config or BootstrapConfig()
    environ = os.environ if env is None else env
    home = home or Path.home()
    force = force or config.ensure_taskbar or config.install_desktop

    reason = _desktop_skip_reason(platform, adapter, environ, force)
    if reason:
        logger.info(reason)
        return DesktopReport(skipped=True, message=reason)

    kind = detect_desktop_kind(adapter, environ)
    report = DesktopReport(desktop=kind)
    logger.info("Detected desktop environment: %s", kind or "unknown")

    if kind in ("gnome", None):
        if kind is None:
            report.notes.append("Unknown desktop environment, applying GNOME defaults")
        if adapter.has("gsettings"):
            report.absorb(apply_settings(adapter, GNOME_DESKTOP_SETTINGS))
        else:
            report.notes.append("gsettings not available, dock settings not applied")
    elif kind == "kde":
        report.notes.append(
            "KDE Plasma is running with its panel" if _running(adapter, "plasmashell")
            else "KDE Plasma not detected as running"
        )
    elif kind == "xfce":
        report.notes.append(
            "XFCE panel available" if adapter.has("xfce4-panel") else "XFCE panel not found"
        )
    else:
        report.notes.append(f"No settings are known for {kind}")

    if config.ensure_taskbar:
        report.merge(ensure_taskbar(platform, adapter, config, env=environ, home=home))
    return report


# ── Taskbar ─────────────────────────────────────────────────────


def _ensure_graphical_boot(report: DesktopReport, adapter: Adapter) -> None:
    """Boot into graphical.target and enable the first display manager found."""
    if not adapter.has("systemctl"):
        return
    default = adapter.probe(Command(argv=["systemctl", "get-default"], timeout=10))
    if default.ok and "multi-user.target" in default.stdout:
        r = adapter.run(Command(argv=["systemctl", "set-default", "graphical.target"], needs_sudo=True))
        if r.failed:
            report.errors.append(f"could not set graphical.target: {r.error}")
        else:
            report.notes.append("System will boot to the graphical interface")

    manager = next((dm for dm in DISPLAY_MANAGERS if adapter.has(dm)), None)
    if manager is None:
        report.notes.append("No display manager found, GUI login may not work")
        return
    r = adapter.run(Command(argv=["systemctl", "enable", manager], needs_sudo=True))
    if r.failed:
        report.errors.append(f"could not enable {manager}: {r.error}")


def ensure_taskbar(
    platform: Platform,
    adapter: Adapter,
    config: BootstrapConfig | None = None,
    *,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> DesktopReport:
    """Make a taskbar visible and keep it that way across logins."""
    config = (config or BootstrapConfig()).with_overrides(ensure_taskbar=True)
    environ = os.environ if env is None else env
    home = home or Path.home()
    dry_run = adapter.dry_run

    reason = _desktop_skip_reason(platform, adapter, environ, force=True)
    if reason:
        return DesktopReport(skipped=True, message=reason)

    kind = detect_desktop_kind(adapter, environ)
    report = DesktopReport(desktop=kind)

    if kind in ("gnome", None):
        extensions = get_capability("gnome-extensions")
        if extensions is not None:
            context = ConfigContext(platform=platform, adapter=adapter, config=config, home=home, env=environ)
            report.extensions = ensure_capability(extensions, platform, adapter, config, context=context)
            if not report.extensions.ok:
                report.notes.append("Taskbar extensions not installed, configuring what is available")
        if adapter.has("gsettings"):
            report.absorb(apply_settings(adapter, GNOME_TASKBAR_SETTINGS))
        else:
            report.notes.append("gsettings not available, use GNOME Tweaks to enable the dock")
        _write_autostart(report, home, "enable-dash-to-dock.desktop", GNOME_DOCK_AUTOSTART, dry_run)

    elif kind == "xfce":
        if not adapter.has("xfce4-panel") and platform.family == PlatformFamily.LINUX_RHEL:
            r = adapter.run(Command(
                argv=[platform.package_manager or "dnf", "install", "-y", "xfce4-panel", "xfce4-session"],
                needs_sudo=True,
            ))
            if r.failed:
                report.errors.append(f"could not install the XFCE panel: {r.error}")
        if not _running(adapter, "xfce4-panel"):
            adapter.run(Command(argv=["sh", "-c", "nohup xfce4-panel >/dev/null 2>&1 &"], timeout=10))
            report.notes.append("Started xfce4-panel")
        _write_autostart(report, home, "xfce4-panel.desktop", XFCE_PANEL_AUTOSTART, dry_run)

    elif kind == "kde":
        if _running(adapter, "plasmashell"):
            report.notes.append("KDE Plasma is running, its panel should be visible")
        else:
            report.errors.append("KDE Plasma is not running")

    if platform.family == PlatformFamily.LINUX_RHEL:
        _ensure_graphical_boot(report, adapter)
        script = write_if_absent(home / TASKBAR_SCRIPT_NAME, TASKBAR_SCRIPT, force=True, mode=0o755, dry_run=dry_run)
        if script.changed:
            report.files.append(script.path)
        report.notes.append(f"If the taskbar is missing after a reboot, run ~/{TASKBAR_SCRIPT_NAME}")

    if report.errors:
        logger.warning("Taskbar configuration incomplete: %s", "; ".join(report.errors))
    return report
