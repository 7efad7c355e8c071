"""
Tests for CLI commands — detect, verify, install, bootstrap, config check.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from devboot.adapters.mock import MockAdapter
from devboot.main import cli


@pytest.fixture
def invoke(isolated_home: Path, tmp_path: Path):
    """Run the CLI with an injected host: adapter, platform, home, env, lock."""

    def run(args: list[str], *, adapter: MockAdapter | None = None, platform=None, env=None):
        obj = {
            "adapter": adapter if adapter is not None else MockAdapter(),
            "platform": platform,
            "home": isolated_home,
            "env": env if env is not None else {},
            "lock_dir": tmp_path / "run.lock",
        }
        return CliRunner().invoke(cli, args, obj=obj)

    return run


def _installed_host() -> MockAdapter:
    mock = MockAdapter(present={"curl", "python3", "pip3", "git", "gh"})
    mock.set_version("python3", "Python 3.12.1")
    return mock


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "bootstrap" in result.output
        assert "k8s" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "devboot, version 0.1.0" in result.output

    def test_subcommand_help(self):
        result = CliRunner().invoke(cli, ["bootstrap", "--help"])
        assert result.exit_code == 0
        assert "--skip-fonts" in result.output
        assert "--troubleshoot-minikube" in result.output

    def test_short_help_flag(self):
        result = CliRunner().invoke(cli, ["bootstrap", "-h"])
        assert result.exit_code == 0
        assert "--skip-ansible" in result.output


class TestDetectCommand:
    def test_json(self, invoke, debian):
        result = invoke(["detect", "--json"], platform=debian,
                        env={"DISPLAY": ":0", "XDG_CURRENT_DESKTOP": "GNOME"})
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["family"] == "linux-debian"
        assert data["package_manager"] == "apt"
        assert data["desktop"] == "gnome"
        assert data["graphical"] is True

    def test_unsupported_is_reported(self, invoke, arch_linux):
        result = invoke(["detect"], platform=arch_linux)
        assert result.exit_code == 0
        assert "not supported" in result.output


class TestListCommand:
    def test_json(self, invoke, debian):
        result = invoke(["list", "--json"], platform=debian)
        assert result.exit_code == 0
        rows = {row["name"]: row for row in json.loads(result.output)}
        assert rows["git"]["required"]
        assert rows["git"]["strategies"] == ["apt"]
        assert rows["docker-desktop"]["applicable"] is False
        assert "k9s" in rows

    def test_text(self, invoke, macos):
        result = invoke(["list"], platform=macos)
        assert result.exit_code == 0
        assert "• git *  brew" in result.output


class TestVerifyCommand:
    def test_all_required_present(self, invoke, debian):
        result = invoke(["verify"], adapter=_installed_host(), platform=debian)
        assert result.exit_code == 0
        assert "✓ git" in result.output

    def test_missing_required(self, invoke, debian):
        result = invoke(["verify"], platform=debian)
        assert result.exit_code == 1
        assert "Missing required: curl, python3, pip, git, gh" in result.output

    def test_never_installs(self, invoke, debian):
        mock = MockAdapter()
        invoke(["verify"], adapter=mock, platform=debian)
        assert mock.call_count == 0


class TestInstallCommand:
    def test_catalog_entry(self, invoke, debian, tmp_path: Path):
        mock = MockAdapter()
        mock.provide("apt-get install -y git", "git")
        result = invoke(["install", "git"], adapter=mock, platform=debian)
        assert result.exit_code == 0
        assert "git (installed" in result.output
        assert mock.commands() == ["sudo apt-get install -y git"]
        assert not (tmp_path / "run.lock").exists()

    def test_plain_package(self, invoke, debian):
        mock = MockAdapter()
        mock.provide("apt-get install -y ripgrep", "ripgrep")
        result = invoke(["install", "ripgrep"], adapter=mock, platform=debian)
        assert result.exit_code == 0
        assert "'ripgrep' is not in the catalog" in result.output

    def test_failure_exits_1(self, invoke, debian):
        mock = MockAdapter()
        mock.set_failure("apt-get install", "Command failed (exit 100)", exit_code=100,
                         stderr="E: Unable to locate package nope")
        result = invoke(["install", "nope"], adapter=mock, platform=debian)
        assert result.exit_code == 1
        assert "E: Unable to locate package nope" in result.output

    def test_dry_run(self, invoke, debian):
        mock = MockAdapter()
        result = invoke(["install", "git", "--dry-run", "--json"], adapter=mock, platform=debian)
        assert result.exit_code == 0
        assert json.loads(result.output)[0]["status"] == "planned"
        assert mock.call_count == 0

    def test_lock_held(self, invoke, debian, tmp_path: Path):
        from devboot.core.services.bootstrap.execution.run_lock import RunLock

        with RunLock(tmp_path / "run.lock"):
            result = invoke(["install", "git"], platform=debian)
        assert result.exit_code == 1
        assert "Another devboot run is in progress" in result.output


class TestBootstrapCommand:
    def test_unsupported_platform(self, invoke, arch_linux):
        result = invoke(["bootstrap"], adapter=MockAdapter(present={"curl"}), platform=arch_linux)
        assert result.exit_code == 1
        assert "Unsupported platform 'arch'" in result.output

    def test_dry_run(self, invoke, debian, isolated_home: Path):
        mock = MockAdapter()
        result = invoke(["bootstrap", "--dry-run", "--skip-ansible"], adapter=mock, platform=debian)
        assert result.exit_code == 0
        assert "[dry-run] Bootstrapping linux-debian" in result.output
        assert "git (planned" in result.output
        assert mock.call_count == 0
        assert not (isolated_home / ".config").exists()

    def test_dry_run_json(self, invoke, debian):
        result = invoke(["bootstrap", "--dry-run", "--json", "--skip-ansible"], platform=debian)
        assert result.exit_code == 0
        assert '"dry_run": true' in result.output
        assert '"ok": true' in result.output

    def test_required_failure_exits_1(self, invoke, debian):
        mock = MockAdapter(present={"curl", "python3", "pip3"})
        mock.set_version("python3", "Python 3.12.1")
        mock.set_failure("apt-get install -y git", "Command failed (exit 100)", exit_code=100)
        result = invoke(["bootstrap", "--skip-ansible"], adapter=mock, platform=debian)
        assert result.exit_code == 1
        assert "git" in result.output

    def test_troubleshoot_minikube_exits_0(self, invoke, debian):
        result = invoke(["bootstrap", "--troubleshoot-minikube"], platform=debian)
        assert result.exit_code == 0
        assert "Minikube is not installed" in result.output


class TestSubGroups:
    def test_k8s_troubleshoot_without_minikube(self, invoke, debian):
        result = invoke(["k8s", "troubleshoot-minikube"], platform=debian)
        assert result.exit_code == 1
        assert "Minikube is not installed" in result.output

    def test_k3s_needs_linux(self, invoke, macos):
        result = invoke(["k8s", "install"], platform=macos)
        assert result.exit_code == 1
        assert "only supported on Linux" in result.output

    def test_desktop_configure_headless(self, invoke, debian):
        result = invoke(["desktop", "configure"], platform=debian)
        assert result.exit_code == 0
        assert "No graphical environment" in result.output

    def test_taskbar_kde_not_running(self, invoke, debian):
        result = invoke(["desktop", "taskbar"], platform=debian, env={"XDG_CURRENT_DESKTOP": "KDE"})
        assert result.exit_code == 1
        assert "KDE Plasma is not running" in result.output


class TestConfigCheck:
    def test_valid_config(self, tmp_path: Path):
        (tmp_path / "devboot.yml").write_text(textwrap.dedent("""\
            skip_fonts: true
            extra_packages: [ripgrep]
        """))
        result = CliRunner().invoke(cli, ["config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "skip_fonts: True" in result.output
        assert "extra_packages: ripgrep" in result.output

    def test_no_config_uses_defaults(self):
        result = CliRunner().invoke(cli, ["config", "check"])
        assert result.exit_code == 0
        assert "(none, using defaults)" in result.output

    def test_invalid_config(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("download_attempts: 0\n")
        result = CliRunner().invoke(cli, ["-c", str(path), "config", "check"])
        assert result.exit_code == 1
        assert "Configuration errors" in result.output

    def test_invalid_config_json(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("- not a mapping\n")
        result = CliRunner().invoke(cli, ["--config", str(path), "config", "check", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False

    def test_bad_config_fails_commands(self, invoke, debian, tmp_path: Path):
        (tmp_path / "devboot.yml").write_text("max_strategies: 99\n")
        result = invoke(["list"], platform=debian)
        assert result.exit_code == 1
        assert "Invalid bootstrap configuration" in result.output
