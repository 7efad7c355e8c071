"""
Tests for desktop detection, dock settings and the taskbar step.
"""

from pathlib import Path

from devboot.adapters.mock import DryRunAdapter, MockAdapter
from devboot.core.models.capability import InstallStatus
from devboot.core.models.platform import Platform, PlatformFamily
from devboot.core.services.bootstrap.data.desktop_settings import GNOME_DESKTOP_SETTINGS
from devboot.core.services.bootstrap.data.static_configs import TASKBAR_SCRIPT, TASKBAR_SCRIPT_NAME
from devboot.core.services.bootstrap.detection.desktop import (
    detect_desktop_kind,
    has_desktop,
    in_gnome_session,
    is_graphical_session,
)
from devboot.core.services.bootstrap.orchestration.desktop import configure_desktop, ensure_taskbar

GNOME_ENV = {"DISPLAY": ":0", "XDG_CURRENT_DESKTOP": "GNOME"}


# ── Detection ───────────────────────────────────────────────────


class TestDetection:
    def test_display_means_graphical(self, mock: MockAdapter):
        assert is_graphical_session(mock, {"WAYLAND_DISPLAY": "wayland-0"})

    def test_headless(self, mock: MockAdapter):
        assert not is_graphical_session(mock, {})

    def test_graphical_target_probe(self):
        mock = MockAdapter(present={"systemctl"})
        mock.set_probe_output("graphical-session.target", "")
        assert is_graphical_session(mock, {})

    def test_kind_from_env(self, mock: MockAdapter):
        assert detect_desktop_kind(mock, {"XDG_CURRENT_DESKTOP": "ubuntu:GNOME"}) == "gnome"
        assert detect_desktop_kind(mock, {"XDG_CURRENT_DESKTOP": "Plasma"}) == "kde"

    def test_kind_from_binaries(self):
        assert detect_desktop_kind(MockAdapter(present={"xfce4-session"}), {}) == "xfce"
        assert detect_desktop_kind(MockAdapter(), {}) is None

    def test_installed_but_not_running(self):
        assert has_desktop(MockAdapter(present={"gnome-shell"}), {})
        assert not has_desktop(MockAdapter(), {})

    def test_gnome_session(self):
        assert in_gnome_session({"XDG_SESSION_DESKTOP": "gnome"})
        assert in_gnome_session({"XDG_CURRENT_DESKTOP": "ubuntu:GNOME"})
        assert not in_gnome_session({"XDG_CURRENT_DESKTOP": "KDE"})


# ── configure_desktop ───────────────────────────────────────────


class TestConfigureDesktop:
    def test_skipped_without_graphical_session(self, debian, mock: MockAdapter, isolated_home: Path):
        report = configure_desktop(debian, mock, env={}, home=isolated_home)
        assert report.skipped
        assert "No graphical environment" in report.message
        assert mock.call_count == 0

    def test_macos_needs_nothing(self, macos, mock: MockAdapter, isolated_home: Path):
        assert configure_desktop(macos, mock, env=GNOME_ENV, home=isolated_home).skipped

    def test_windows_not_available(self, mock: MockAdapter, isolated_home: Path):
        windows = Platform(family=PlatformFamily.WINDOWS, distro="windows", package_manager="choco")
        report = configure_desktop(windows, mock, env={}, home=isolated_home)
        assert report.skipped
        assert "windows" in report.message

    def test_gnome_settings_applied(self, debian, isolated_home: Path):
        mock = MockAdapter(present={"gsettings"})
        report = configure_desktop(debian, mock, env=GNOME_ENV, home=isolated_home)

        assert report.desktop == "gnome"
        assert report.ok
        assert len(report.applied) == len(GNOME_DESKTOP_SETTINGS)
        assert ["gsettings", "set", "org.gnome.shell.extensions.dash-to-dock", "dock-position", "'LEFT'"] in [
            c.argv for c in mock.call_log
        ]

    def test_gnome_settings_already_set(self, debian, isolated_home: Path):
        mock = MockAdapter(present={"gsettings"})
        for schema, key, value in GNOME_DESKTOP_SETTINGS:
            mock.set_probe_output(f"gsettings get {schema} {key}", value)

        report = configure_desktop(debian, mock, env=GNOME_ENV, home=isolated_home)

        assert report.applied == []
        assert len(report.unchanged) == len(GNOME_DESKTOP_SETTINGS)
        assert mock.call_count == 0

    def test_forced_without_session(self, debian, isolated_home: Path):
        mock = MockAdapter(present={"gsettings", "gnome-shell"})
        report = configure_desktop(debian, mock, env={}, home=isolated_home, force=True)
        assert not report.skipped
        assert report.desktop == "gnome"

    def test_kde_only_checked(self, debian, mock: MockAdapter, isolated_home: Path):
        report = configure_desktop(debian, mock, env={"DISPLAY": ":0", "XDG_CURRENT_DESKTOP": "KDE"},
                                   home=isolated_home)
        assert report.desktop == "kde"
        assert report.ok
        assert report.notes == ["KDE Plasma not detected as running"]
        assert mock.call_count == 0


# ── ensure_taskbar ──────────────────────────────────────────────


def _rhel_gnome_host() -> MockAdapter:
    mock = MockAdapter(present={"gsettings", "systemctl", "gdm"})
    mock.set_probe_output("systemctl get-default", "multi-user.target")
    mock.set_probe_output("rpm -q gnome-shell-extension-dash-to-dock", "gnome-shell-extension-dash-to-dock-88")
    return mock


class TestEnsureTaskbar:
    def test_rhel_gnome(self, rhel, isolated_home: Path):
        mock = _rhel_gnome_host()
        report = ensure_taskbar(rhel, mock, env=GNOME_ENV, home=isolated_home)

        assert report.ok, report.errors
        assert report.extensions.status == InstallStatus.ALREADY_PRESENT
        cmds = mock.commands()
        assert "sudo systemctl set-default graphical.target" in cmds
        assert "sudo systemctl enable gdm" in cmds

        autostart = isolated_home / ".config" / "autostart" / "enable-dash-to-dock.desktop"
        script = isolated_home / TASKBAR_SCRIPT_NAME
        assert autostart.exists()
        assert script.read_text() == TASKBAR_SCRIPT
        assert script.stat().st_mode & 0o777 == 0o755
        assert {str(autostart), str(script)} <= set(report.files)

    def test_extensions_installed_when_missing(self, rhel, isolated_home: Path):
        mock = _rhel_gnome_host()
        mock.reset()
        report = ensure_taskbar(rhel, mock, env=GNOME_ENV, home=isolated_home)
        assert any(c.startswith("sudo dnf install -y gnome-shell-extension-dash-to-dock") for c in mock.commands())
        # the rpm probe still fails afterwards, so the install does not verify
        assert report.extensions.status == InstallStatus.FAILED
        assert "Taskbar extensions not installed, configuring what is available" in report.notes

    def test_graphical_target_left_alone(self, rhel, isolated_home: Path):
        mock = MockAdapter(present={"gsettings", "systemctl", "gdm"})
        mock.set_probe_output("systemctl get-default", "graphical.target")
        mock.set_probe_output("rpm -q", "installed")
        ensure_taskbar(rhel, mock, env=GNOME_ENV, home=isolated_home)
        assert not any("set-default" in c for c in mock.commands())

    def test_xfce_panel_started(self, debian, isolated_home: Path):
        mock = MockAdapter(present={"xfce4-panel"})
        report = ensure_taskbar(debian, mock, env={"DISPLAY": ":0", "XDG_CURRENT_DESKTOP": "XFCE"},
                                home=isolated_home)
        assert report.desktop == "xfce"
        assert "Started xfce4-panel" in report.notes
        assert (isolated_home / ".config" / "autostart" / "xfce4-panel.desktop").exists()
        # taskbar script is only written on RHEL-family hosts
        assert not (isolated_home / TASKBAR_SCRIPT_NAME).exists()

    def test_kde_not_running_is_an_error(self, debian, mock: MockAdapter, isolated_home: Path):
        report = ensure_taskbar(debian, mock, env={"XDG_CURRENT_DESKTOP": "KDE"}, home=isolated_home)
        assert not report.ok
        assert report.errors == ["KDE Plasma is not running"]

    def test_dry_run_writes_nothing(self, rhel, isolated_home: Path):
        delegate = _rhel_gnome_host()
        ensure_taskbar(rhel, DryRunAdapter(delegate), env=GNOME_ENV, home=isolated_home)
        assert delegate.call_count == 0
        assert not (isolated_home / TASKBAR_SCRIPT_NAME).exists()
        assert not (isolated_home / ".config").exists()
