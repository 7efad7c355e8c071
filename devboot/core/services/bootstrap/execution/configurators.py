"""
L4 Execution — Post-install configurators.

Named configuration steps referenced from the catalog's ``configure``
lists. Each takes a ConfigContext and returns a ConfigureOutcome.
Configurators are best-effort: they check state before writing, back
up before mutating, and report problems in the outcome instead of
raising.
"""

from __future__ import annotations

import getpass
import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command
from devboot.core.models.config import BootstrapConfig
from devboot.core.models.platform import Platform, PlatformFamily
from devboot.core.services.bootstrap.data.desktop_settings import (
    GNOME_TERMINAL_PROFILE_PATH,
    GNOME_TERMINAL_PROFILES,
)
from devboot.core.services.bootstrap.data.static_configs import (
    CGROUP_DELEGATE_CONF,
    CGROUP_DELEGATE_PATH,
    FLATHUB_REPO_URL,
    GNOME_TERMINAL_FONT,
    ITERM_FONT,
    STARSHIP_FALLBACK_TOML,
    STARSHIP_INIT,
    STARSHIP_PRESET,
    VSCODE_FONT_SETTINGS,
    VSCODE_VARIANTS,
)
from devboot.core.services.bootstrap.execution.backup import backup_file, backup_system_file
from devboot.core.services.bootstrap.execution.config_applier import (
    apply_settings,
    ensure_block,
    merge_json_settings,
    write_if_absent,
)

logger = logging.getLogger(__name__)

OH_MY_ZSH_INSTALLER = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"

MINIKUBE_ROOTLESS_SETTINGS: list[tuple[str, str]] = [
    ("rootless", "true"),
    ("driver", "podman"),
    ("container-runtime", "containerd"),
]


@dataclass
class ConfigContext:
    """Everything a configurator may look at. Paths are injectable for tests."""

    platform: Platform
    adapter: Adapter
    config: BootstrapConfig = field(default_factory=BootstrapConfig)
    home: Path = field(default_factory=Path.home)
    env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    etc_shells: Path = Path("/etc/shells")
    cgroup_root: Path = Path("/sys/fs/cgroup")
    delegate_conf: Path = Path(CGROUP_DELEGATE_PATH)
    now: datetime | None = None
    # True only while configuring a capability installed by this run
    fresh_install: bool = False

    @property
    def dry_run(self) -> bool:
        return self.adapter.dry_run

    @property
    def user(self) -> str:
        user = self.env.get("USER") or self.env.get("LOGNAME")
        if user:
            return user
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return self.home.name

    def run(self, argv: list[str], *, sudo: bool = False, input: str | None = None, **env: str):
        return self.adapter.run(Command(argv=argv, needs_sudo=sudo, input=input, env=env, timeout=300))


class ConfigureOutcome(BaseModel):
    """Result of one configurator."""

    name: str
    ok: bool = True
    changed: bool = False
    message: str = ""
    backups: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    def fail(self, error: str) -> ConfigureOutcome:
        self.ok = False
        self.errors.append(error)
        return self


# ── default-shell ───────────────────────────────────────────────


def login_shell(ctx: ConfigContext) -> str | None:
    """The user's login shell from the account database.

    ``$SHELL`` only changes after a new login, so it is the last resort.
    """
    if ctx.platform.family == PlatformFamily.MACOS:
        argv = ["dscl", ".", "-read", f"/Users/{ctx.user}", "UserShell"]
    else:
        argv = ["getent", "passwd", ctx.user]
    r = ctx.adapter.probe(Command(argv=argv, timeout=10))
    lines = r.stdout.strip().splitlines() if r.ok else []
    # "dev:x:1000:1000::/home/dev:/usr/bin/zsh" or "UserShell: /bin/zsh"
    if lines and (lines[0].startswith(f"{ctx.user}:") or lines[0].startswith("UserShell:")):
        shell = lines[0].rsplit(":", 1)[-1].strip()
        if shell:
            return shell
    return ctx.env.get("SHELL")


def configure_default_shell(ctx: ConfigContext) -> ConfigureOutcome:
    """Register zsh in /etc/shells, make it the login shell, add Oh My Zsh."""
    out = ConfigureOutcome(name="default-shell")
    zsh = ctx.adapter.which("zsh")
    if not zsh:
        return out.fail("zsh is not on PATH")

    current = login_shell(ctx)
    if current and Path(current).name == "zsh":
        out.message = "zsh is already the default shell"
    else:
        try:
            shells = ctx.etc_shells.read_text(encoding="utf-8").splitlines()
        except OSError:
            shells = []
        if zsh not in (line.strip() for line in shells):
            backup = backup_system_file(str(ctx.etc_shells), ctx.adapter, now=ctx.now)
            if backup:
                out.backups.append(backup)
            r = ctx.run(["tee", "-a", str(ctx.etc_shells)], sudo=True, input=zsh + "\n")
            if r.failed:
                out.errors.append(f"could not add {zsh} to {ctx.etc_shells}: {r.error}")
            else:
                out.changed = True

        chain = [
            (["chsh", "-s", zsh], False),
            (["chsh", "-s", zsh, ctx.user], True),
            (["usermod", "-s", zsh, ctx.user], True),
        ]
        for argv, sudo in chain:
            r = ctx.run(argv, sudo=sudo)
            if not r.failed:
                out.changed = True
                out.message = f"default shell set with {argv[0]}; log out and back in to use it"
                break
            logger.debug("%s failed: %s", argv[0], r.error)
        else:
            out.errors.append(f"could not change the login shell; run: sudo chsh -s {zsh} {ctx.user}")

    if not (ctx.home / ".oh-my-zsh").is_dir():
        r = ctx.run(
            ["sh", "-c", f'sh -c "$(curl -fsSL {OH_MY_ZSH_INSTALLER})" "" --unattended'],
            RUNZSH="no",
            CHSH="no",
        )
        if r.failed:
            out.errors.append(f"Oh My Zsh install failed: {r.error}")
        else:
            out.changed = True

    out.ok = not out.errors
    return out


# ── starship-config ─────────────────────────────────────────────


def configure_starship(ctx: ConfigContext) -> ConfigureOutcome:
    """Write ~/.config/starship.toml (preset, else bundled fallback) and hook rc files."""
    out = ConfigureOutcome(name="starship-config")
    path = ctx.home / ".config" / "starship.toml"
    overwrite = ctx.config.overwrite_starship_config

    if path.exists() and not overwrite:
        out.message = f"{path} exists, left untouched"
    elif ctx.dry_run:
        out.message = f"would write {path}"
    else:
        if path.exists():
            backup = backup_file(path, now=ctx.now)
            if backup:
                out.backups.append(str(backup))
            path.unlink()
        path.parent.mkdir(parents=True, exist_ok=True)

        r = ctx.run(["starship", "preset", STARSHIP_PRESET, "-o", str(path)])
        if r.ok and path.exists():
            out.message = f"applied preset {STARSHIP_PRESET}"
        else:
            logger.warning("Starship preset failed, writing fallback config")
            write_if_absent(path, STARSHIP_FALLBACK_TOML, now=ctx.now)
            out.message = "preset unavailable, wrote fallback config"
        out.changed = True

    for shell, line in STARSHIP_INIT.items():
        rc = ctx.home / f".{shell}rc"
        result = ensure_block(
            rc,
            marker=f"starship init {shell}",
            lines=["# Initialize Starship prompt", line],
            dry_run=ctx.dry_run,
            now=ctx.now,
        )
        if result.changed:
            out.changed = True
        if result.backup:
            out.backups.append(result.backup)
    return out


# ── vscode-font ─────────────────────────────────────────────────


def vscode_settings_path(ctx: ConfigContext) -> Path | None:
    """settings.json of the installed VS Code variant, or None."""
    if ctx.platform.family == PlatformFamily.MACOS:
        root = ctx.home / "Library" / "Application Support"
    elif ctx.platform.family == PlatformFamily.WINDOWS:
        root = Path(ctx.env.get("APPDATA") or ctx.home / "AppData" / "Roaming")
    else:
        root = ctx.home / ".config"

    # An existing profile directory beats a bare binary on PATH
    for _cli, dirname in VSCODE_VARIANTS:
        user_dir = root / dirname / "User"
        if user_dir.is_dir():
            return user_dir / "settings.json"
    for cli, dirname in VSCODE_VARIANTS:
        if ctx.adapter.has(cli):
            return root / dirname / "User" / "settings.json"
    if ctx.platform.family == PlatformFamily.MACOS and Path("/Applications/Visual Studio Code.app").is_dir():
        return root / "Code" / "User" / "settings.json"
    return None


def configure_vscode_font(ctx: ConfigContext) -> ConfigureOutcome:
    out = ConfigureOutcome(name="vscode-font")
    settings = vscode_settings_path(ctx)
    if settings is None:
        out.message = "VS Code not detected, skipped"
        return out
    result = merge_json_settings(settings, dict(VSCODE_FONT_SETTINGS), dry_run=ctx.dry_run, now=ctx.now)
    out.changed = result.changed
    out.message = f"{result.action}: {settings}"
    if result.backup:
        out.backups.append(result.backup)
    return out


# ── terminal-font ───────────────────────────────────────────────

_MANUAL_FONT_STEPS = (
    "Set your terminal font manually: open the terminal preferences, "
    "choose 'FiraCode Nerd Font' (11-14pt) and enable ligatures if offered."
)


def configure_terminal_font(ctx: ConfigContext) -> ConfigureOutcome:
    out = ConfigureOutcome(name="terminal-font")

    if ctx.platform.family == PlatformFamily.MACOS:
        if ctx.env.get("TERM_PROGRAM") == "iTerm.app":
            # `defaults read` prints booleans as 1/0
            for key, kind, value, shown in (
                ("Normal Font", "-string", ITERM_FONT, ITERM_FONT),
                ("Use Ligatures", "-bool", "true", "1"),
            ):
                current = ctx.adapter.probe(
                    Command(argv=["defaults", "read", "com.googlecode.iterm2", key], timeout=10)
                )
                if current.ok and current.stdout.strip() == shown:
                    continue
                r = ctx.run(["defaults", "write", "com.googlecode.iterm2", key, kind, value])
                if r.failed:
                    out.errors.append(f"iTerm2: {r.error}")
                else:
                    out.changed = True
            out.ok = not out.errors
            out.message = "iTerm2 font set (restart iTerm2)" if out.changed else "iTerm2 font already set"
        else:
            out.message = _MANUAL_FONT_STEPS
        return out

    if not (ctx.adapter.has("gnome-terminal") and ctx.adapter.has("gsettings")):
        out.message = _MANUAL_FONT_STEPS
        return out

    profile = ctx.adapter.probe(Command(argv=["gsettings", "get", GNOME_TERMINAL_PROFILES, "default"], timeout=10))
    uuid = profile.stdout.strip().strip("'") if profile.ok else ""
    if not uuid:
        out.message = "could not read the GNOME Terminal default profile. " + _MANUAL_FONT_STEPS
        return out

    schema = GNOME_TERMINAL_PROFILE_PATH.format(uuid=uuid)
    applied = apply_settings(ctx.adapter, [
        (schema, "use-system-font", "false"),
        (schema, "font", f"'{GNOME_TERMINAL_FONT}'"),
    ])
    out.changed = bool(applied.applied)
    out.errors.extend(applied.failed)
    out.ok = applied.ok
    out.message = "GNOME Terminal font set"
    return out


# ── font-cache ──────────────────────────────────────────────────


def configure_font_cache(ctx: ConfigContext) -> ConfigureOutcome:
    out = ConfigureOutcome(name="font-cache")
    if not ctx.platform.is_linux:
        out.message = "not needed on this platform"
        return out
    if not ctx.fresh_install:
        out.message = "fonts unchanged, cache left as is"
        return out
    if not ctx.adapter.has("fc-cache"):
        return out.fail("fc-cache not found (install fontconfig)")
    r = ctx.run(["fc-cache", "-f"], sudo=True)
    if r.failed:
        r = ctx.run(["fc-cache", "-f"])
    if r.failed:
        return out.fail(f"fc-cache failed: {r.error}")
    out.changed = True
    return out


# ── podman-socket ───────────────────────────────────────────────


def _socket_enabled(ctx: ConfigContext, scope: list[str]) -> bool:
    r = ctx.adapter.probe(Command(argv=["systemctl", *scope, "is-enabled", "podman.socket"], timeout=10))
    return r.ok and r.stdout.strip() == "enabled"


def configure_podman_socket(ctx: ConfigContext) -> ConfigureOutcome:
    out = ConfigureOutcome(name="podman-socket")
    if not ctx.platform.is_linux or not ctx.adapter.has("systemctl"):
        out.message = "systemd not available, skipped"
        return out

    for scope, sudo in ((["--user"], False), ([], True)):
        label = "user" if scope else "system"
        if _socket_enabled(ctx, scope):
            logger.debug("%s podman.socket already enabled", label)
            continue
        r = ctx.run(["systemctl", *scope, "enable", "--now", "podman.socket"], sudo=sudo)
        if r.failed:
            out.errors.append(f"could not enable {label} podman.socket: {r.error}")
        else:
            out.changed = True
    if not out.errors:
        out.message = "podman.socket enabled" if out.changed else "podman.socket already enabled"
    out.ok = not out.errors
    return out


# ── cgroup-delegation ───────────────────────────────────────────


def _user_controllers(ctx: ConfigContext) -> str | None:
    getuid = getattr(os, "getuid", None)
    if getuid is None:
        return None
    uid = getuid()
    path = (
        ctx.cgroup_root / "user.slice" / f"user-{uid}.slice"
        / f"user@{uid}.service" / "cgroup.controllers"
    )
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return None


def configure_cgroup_delegation(ctx: ConfigContext) -> ConfigureOutcome:
    """Delegate the cpu controller to user slices (rootless Minikube on rhel)."""
    out = ConfigureOutcome(name="cgroup-delegation")
    if ctx.platform.family != PlatformFamily.LINUX_RHEL:
        out.message = "only needed on RHEL-family hosts"
        return out

    controllers = _user_controllers(ctx)
    if controllers is None:
        out.message = "user cgroup controllers not readable (user service not running?), skipped"
        return out
    if "cpu" in controllers.split():
        out.message = "cpu controller already delegated"
        return out

    try:
        current = ctx.delegate_conf.read_text(encoding="utf-8")
    except OSError:
        current = None
    if current == CGROUP_DELEGATE_CONF:
        out.message = "delegation configured; a re-login or reboot may be required"
        return out

    if current is not None:
        backup = backup_system_file(str(ctx.delegate_conf), ctx.adapter, now=ctx.now)
        if backup:
            out.backups.append(backup)

    steps = [
        (["mkdir", "-p", str(ctx.delegate_conf.parent)], None),
        (["tee", str(ctx.delegate_conf)], CGROUP_DELEGATE_CONF),
        (["systemctl", "daemon-reload"], None),
    ]
    for argv, data in steps:
        r = ctx.run(argv, sudo=True, input=data)
        if r.failed:
            return out.fail(f"{' '.join(argv)}: {r.error}")
    out.changed = True
    out.message = "cgroup delegation enabled; a re-login or reboot may be required"
    return out


# ── minikube-rootless ───────────────────────────────────────────


def configure_minikube_rootless(ctx: ConfigContext) -> ConfigureOutcome:
    out = ConfigureOutcome(name="minikube-rootless")
    if not ctx.platform.is_linux:
        out.message = "rootless Podman driver only applies on Linux"
        return out
    if not ctx.adapter.has("minikube"):
        return out.fail("minikube not on PATH")

    for key, value in MINIKUBE_ROOTLESS_SETTINGS:
        current = ctx.adapter.probe(Command(argv=["minikube", "config", "get", key], timeout=30))
        if current.ok and current.stdout.strip() == value:
            continue
        r = ctx.run(["minikube", "config", "set", key, value])
        if r.failed:
            out.errors.append(f"minikube config set {key} {value}: {r.error}")
        else:
            out.changed = True
    out.ok = not out.errors
    return out


# ── flathub-remote ──────────────────────────────────────────────


def configure_flathub_remote(ctx: ConfigContext) -> ConfigureOutcome:
    out = ConfigureOutcome(name="flathub-remote")
    listing = ctx.adapter.probe(Command(argv=["flatpak", "remotes", "--columns=name"], timeout=30))
    if listing.ok and "flathub" in listing.stdout.split():
        out.message = "flathub remote already present"
        return out
    r = ctx.run(["flatpak", "remote-add", "--if-not-exists", "flathub", FLATHUB_REPO_URL], sudo=True)
    if r.failed:
        return out.fail(f"could not add flathub: {r.error}")
    out.changed = True
    return out


# ── Registry ────────────────────────────────────────────────────

Configurator = Callable[[ConfigContext], ConfigureOutcome]

CONFIGURATORS: dict[str, Configurator] = {
    "default-shell": configure_default_shell,
    "starship-config": configure_starship,
    "vscode-font": configure_vscode_font,
    "terminal-font": configure_terminal_font,
    "font-cache": configure_font_cache,
    "podman-socket": configure_podman_socket,
    "cgroup-delegation": configure_cgroup_delegation,
    "minikube-rootless": configure_minikube_rootless,
    "flathub-remote": configure_flathub_remote,
}


def run_configurator(name: str, ctx: ConfigContext) -> ConfigureOutcome:
    """Run a named configurator; file-system errors become outcome errors."""
    func = CONFIGURATORS.get(name)
    if func is None:
        return ConfigureOutcome(name=name).fail(f"unknown configurator '{name}'")
    try:
        return func(ctx)
    except OSError as e:
        logger.warning("Configurator %s failed: %s", name, e, exc_info=logger.isEnabledFor(logging.DEBUG))
        return ConfigureOutcome(name=name).fail(str(e))


__all__ = [
    "CONFIGURATORS",
    "ConfigContext",
    "ConfigureOutcome",
    "run_configurator",
    "vscode_settings_path",
]
