"""
Tests for the post-install configurators.
"""

import json
from pathlib import Path

from devboot.adapters.mock import DryRunAdapter, MockAdapter
from devboot.core.models.config import BootstrapConfig
from devboot.core.services.bootstrap.data.static_configs import (
    CGROUP_DELEGATE_CONF,
    ITERM_FONT,
    STARSHIP_FALLBACK_TOML,
)
from devboot.core.services.bootstrap.execution.configurators import (
    CONFIGURATORS,
    ConfigContext,
    login_shell,
    run_configurator,
    vscode_settings_path,
)


# ── starship-config ─────────────────────────────────────────────


class TestStarship:
    def test_preset_failure_writes_fallback(self, debian, context_for, isolated_home: Path):
        mock = MockAdapter(present={"starship"})
        mock.set_failure("starship preset", "Command failed (exit 1)", stderr="unknown preset")
        (isolated_home / ".zshrc").write_text("# zsh\n")

        outcome = run_configurator("starship-config", context_for(debian, mock))

        config = isolated_home / ".config" / "starship.toml"
        assert outcome.ok
        assert outcome.changed
        assert config.read_text() == STARSHIP_FALLBACK_TOML
        assert "starship init zsh" in (isolated_home / ".zshrc").read_text()
        # no .bashrc: nothing conjured up
        assert not (isolated_home / ".bashrc").exists()

    def test_existing_config_preserved(self, debian, context_for, isolated_home: Path):
        mock = MockAdapter(present={"starship"})
        config = isolated_home / ".config" / "starship.toml"
        config.parent.mkdir(parents=True)
        config.write_text("# mine\n")

        run_configurator("starship-config", context_for(debian, mock))
        assert config.read_text() == "# mine\n"
        assert mock.call_count == 0

    def test_overwrite_backs_up_first(self, debian, context_for, isolated_home: Path):
        mock = MockAdapter(present={"starship"})
        config = isolated_home / ".config" / "starship.toml"
        config.parent.mkdir(parents=True)
        config.write_text("# mine\n")

        ctx = context_for(debian, mock, config=BootstrapConfig(overwrite_starship_config=True))
        outcome = run_configurator("starship-config", ctx)

        assert len(outcome.backups) == 1
        assert Path(outcome.backups[0]).read_text() == "# mine\n"
        assert config.read_text() == STARSHIP_FALLBACK_TOML

    def test_rc_hook_idempotent(self, debian, context_for, isolated_home: Path):
        mock = MockAdapter(present={"starship"})
        rc = isolated_home / ".bashrc"
        rc.write_text("# bash\n")
        ctx = context_for(debian, mock)

        run_configurator("starship-config", ctx)
        once = rc.read_bytes()
        second = run_configurator("starship-config", ctx)

        assert rc.read_bytes() == once
        assert not second.changed
        assert len(list(isolated_home.glob(".bashrc.bak.*"))) == 1

    def test_dry_run_writes_nothing(self, debian, context_for, isolated_home: Path):
        adapter = DryRunAdapter(MockAdapter(present={"starship"}))
        run_configurator("starship-config", context_for(debian, adapter))
        assert not (isolated_home / ".config" / "starship.toml").exists()


# ── default-shell ───────────────────────────────────────────────


class TestDefaultShell:
    def test_registers_and_switches_shell(self, debian, context_for, isolated_home: Path):
        mock = MockAdapter(present={"zsh"})
        ctx = context_for(debian, mock, env={"USER": "dev", "SHELL": "/bin/bash"})
        ctx.etc_shells.write_text("/bin/sh\n/bin/bash\n")

        outcome = run_configurator("default-shell", ctx)

        cmds = mock.commands()
        assert outcome.ok
        assert f"sudo tee -a {ctx.etc_shells}" in cmds
        assert "chsh -s /usr/bin/zsh" in cmds
        assert any("ohmyzsh" in c for c in cmds)
        tee = next(c for c in mock.call_log if c.argv[0] == "tee")
        assert tee.input == "/usr/bin/zsh\n"

    def test_chsh_fallback_chain(self, debian, context_for, isolated_home: Path):
        mock = MockAdapter(present={"zsh"})
        mock.set_failure("chsh", "Command failed (exit 1)")
        ctx = context_for(debian, mock, env={"USER": "dev"})
        ctx.etc_shells.write_text("/usr/bin/zsh\n")
        (isolated_home / ".oh-my-zsh").mkdir()

        outcome = run_configurator("default-shell", ctx)

        assert outcome.ok
        assert mock.commands()[-1] == "sudo usermod -s /usr/bin/zsh dev"

    def test_already_default(self, debian, context_for, isolated_home: Path):
        mock = MockAdapter(present={"zsh"})
        (isolated_home / ".oh-my-zsh").mkdir()
        ctx = context_for(debian, mock, env={"SHELL": "/usr/bin/zsh"})
        outcome = run_configurator("default-shell", ctx)
        assert outcome.ok
        assert not outcome.changed
        assert mock.call_count == 0

    def test_login_shell_from_account_database(self, debian, context_for, isolated_home: Path):
        mock = MockAdapter(present={"zsh", "getent"})
        mock.set_probe_output("getent passwd dev", "dev:x:1000:1000:Dev:/home/dev:/bin/zsh")
        (isolated_home / ".oh-my-zsh").mkdir()
        ctx = context_for(debian, mock, env={"USER": "dev", "SHELL": "/bin/bash"})

        assert login_shell(ctx) == "/bin/zsh"
        outcome = run_configurator("default-shell", ctx)
        assert outcome.ok and not outcome.changed
        assert mock.call_count == 0

    def test_login_shell_macos(self, macos, context_for):
        mock = MockAdapter()
        mock.set_probe_output("dscl . -read /Users/dev UserShell", "UserShell: /bin/zsh")
        assert login_shell(context_for(macos, mock, env={"USER": "dev"})) == "/bin/zsh"

    def test_login_shell_falls_back_to_env(self, debian, context_for, mock):
        ctx = context_for(debian, mock, env={"USER": "dev", "SHELL": "/usr/bin/fish"})
        assert login_shell(ctx) == "/usr/bin/fish"

    def test_without_zsh(self, debian, context_for, mock: MockAdapter):
        outcome = run_configurator("default-shell", context_for(debian, mock))
        assert not outcome.ok


# ── vscode-font ─────────────────────────────────────────────────


class TestVscodeFont:
    def test_merges_into_existing_profile(self, debian, context_for, isolated_home: Path, mock):
        settings = isolated_home / ".config" / "Code" / "User" / "settings.json"
        settings.parent.mkdir(parents=True)
        settings.write_text(json.dumps({"files.autoSave": "afterDelay"}))

        outcome = run_configurator("vscode-font", context_for(debian, mock))

        data = json.loads(settings.read_text())
        assert outcome.changed
        assert data["files.autoSave"] == "afterDelay"
        assert data["editor.fontLigatures"] is True
        assert "FiraCode Nerd Font" in data["editor.fontFamily"]

    def test_no_vscode(self, debian, context_for, mock):
        ctx = context_for(debian, mock)
        assert vscode_settings_path(ctx) is None
        assert run_configurator("vscode-font", ctx).ok

    def test_macos_path(self, macos, context_for, isolated_home: Path):
        ctx = context_for(macos, MockAdapter(present={"code"}))
        expected = isolated_home / "Library" / "Application Support" / "Code" / "User" / "settings.json"
        assert vscode_settings_path(ctx) == expected


# ── terminal-font ───────────────────────────────────────────────


class TestTerminalFont:
    def test_iterm_written_once(self, macos, context_for):
        mock = MockAdapter()
        mock.set_probe_output("defaults read", "", ok=False)
        outcome = run_configurator("terminal-font", context_for(macos, mock, env={"TERM_PROGRAM": "iTerm.app"}))
        assert outcome.changed
        assert mock.commands() == [
            f"defaults write com.googlecode.iterm2 'Normal Font' -string '{ITERM_FONT}'",
            "defaults write com.googlecode.iterm2 'Use Ligatures' -bool true",
        ]

    def test_iterm_already_configured(self, macos, context_for):
        mock = MockAdapter()
        mock.set_probe_output("'Normal Font'", ITERM_FONT)
        mock.set_probe_output("'Use Ligatures'", "1")
        outcome = run_configurator("terminal-font", context_for(macos, mock, env={"TERM_PROGRAM": "iTerm.app"}))
        assert outcome.ok and not outcome.changed
        assert mock.call_count == 0


# ── font-cache ──────────────────────────────────────────────────


class TestFontCache:
    def test_runs_after_fresh_install(self, debian, context_for):
        mock = MockAdapter(present={"fc-cache"})
        ctx = context_for(debian, mock, fresh_install=True)
        outcome = run_configurator("font-cache", ctx)
        assert outcome.changed
        assert mock.commands() == ["sudo fc-cache -f"]

    def test_skipped_when_font_was_already_there(self, debian, context_for):
        mock = MockAdapter(present={"fc-cache"})
        outcome = run_configurator("font-cache", context_for(debian, mock))
        assert outcome.ok and not outcome.changed
        assert mock.call_count == 0

    def test_user_fallback_without_sudo(self, debian, context_for):
        mock = MockAdapter(present={"fc-cache"})
        mock.set_failure("sudo fc-cache", "Command failed (exit 1)")
        outcome = run_configurator("font-cache", context_for(debian, mock, fresh_install=True))
        assert outcome.ok
        assert mock.commands() == ["sudo fc-cache -f", "fc-cache -f"]


# ── ConfigContext ───────────────────────────────────────────────


class TestContextUser:
    def test_env_user_first(self, debian, mock, isolated_home: Path):
        ctx = ConfigContext(platform=debian, adapter=mock, home=isolated_home, env={"LOGNAME": "ops"})
        assert ctx.user == "ops"

    def test_account_name_when_env_is_empty(self, debian, mock, monkeypatch, tmp_path: Path):
        monkeypatch.setattr("getpass.getuser", lambda: "dev")
        ctx = ConfigContext(platform=debian, adapter=mock, home=tmp_path / "not-the-user", env={})
        assert ctx.user == "dev"


# ── cgroup-delegation / minikube-rootless ───────────────────────


class TestMinikubeConfig:
    def test_cgroup_delegation_written(self, rhel, context_for, tmp_path: Path, mock, monkeypatch):
        monkeypatch.setattr("os.getuid", lambda: 1000)
        cg = tmp_path / "cgroup" / "user.slice" / "user-1000.slice" / "user@1000.service"
        cg.mkdir(parents=True)
        (cg / "cgroup.controllers").write_text("memory pids\n")
        ctx = context_for(rhel, mock, cgroup_root=tmp_path / "cgroup",
                          delegate_conf=tmp_path / "user@.service.d" / "delegate.conf")

        outcome = run_configurator("cgroup-delegation", ctx)

        assert outcome.changed
        tee = next(c for c in mock.call_log if c.argv[0] == "tee")
        assert tee.input == CGROUP_DELEGATE_CONF
        assert mock.commands()[-1] == "sudo systemctl daemon-reload"

    def test_cgroup_cpu_already_delegated(self, rhel, context_for, tmp_path: Path, mock, monkeypatch):
        monkeypatch.setattr("os.getuid", lambda: 1000)
        cg = tmp_path / "cgroup" / "user.slice" / "user-1000.slice" / "user@1000.service"
        cg.mkdir(parents=True)
        (cg / "cgroup.controllers").write_text("cpu memory pids\n")
        ctx = context_for(rhel, mock, cgroup_root=tmp_path / "cgroup")
        outcome = run_configurator("cgroup-delegation", ctx)
        assert not outcome.changed
        assert mock.call_count == 0

    def test_cgroup_not_needed_on_debian(self, debian, context_for, mock):
        outcome = run_configurator("cgroup-delegation", context_for(debian, mock))
        assert outcome.ok and not outcome.changed

    def test_rootless_sets_only_missing_keys(self, debian, context_for):
        mock = MockAdapter(present={"minikube"})
        mock.set_probe_output("minikube config get rootless", "true")
        mock.set_probe_output("minikube config get driver", "podman")
        mock.set_probe_output("minikube config get container-runtime", "", ok=False)

        outcome = run_configurator("minikube-rootless", context_for(debian, mock))

        assert outcome.changed
        assert mock.commands() == ["minikube config set container-runtime containerd"]


# ── Registry ────────────────────────────────────────────────────


class TestRegistry:
    def test_catalog_configurators_exist(self):
        from devboot.core.services.bootstrap.data.capabilities import CAPABILITY_CATALOG

        for cap in CAPABILITY_CATALOG:
            for name in cap.configure:
                assert name in CONFIGURATORS, f"{cap.name}: {name}"

    def test_unknown_configurator(self, debian, context_for, mock):
        outcome = run_configurator("nope", context_for(debian, mock))
        assert not outcome.ok
        assert "unknown configurator" in outcome.errors[0]

    def test_os_error_becomes_outcome_error(self, debian, context_for, mock, isolated_home: Path):
        # a directory where the settings file should be
        settings = isolated_home / ".config" / "Code" / "User" / "settings.json"
        settings.mkdir(parents=True)
        outcome = run_configurator("vscode-font", context_for(debian, mock))
        assert not outcome.ok
