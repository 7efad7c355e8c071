"""
L0 Data — capability catalog.

Every tool the bootstrap knows how to provision, in run order. Pure
data, no logic.

Strategy tables are keyed by platform key, most specific first at
resolution time:

    "<family>:<package manager>"   e.g. "windows:scoop", "linux-rhel:yum"
    "<family>"                     e.g. "linux-debian", "macos"
    "linux"                        any Linux family
    "unix"                         Linux or macOS

Commands may use ``{pm}``, ``{arch}``, ``{os}``, ``{home}`` and
``{user}``; the resolver fills them in for the detected Platform.
"""

from __future__ import annotations

from devboot.core.models.capability import (
    BinaryDownload,
    Capability,
    ErrorKind,
    Strategy,
)
from devboot.core.services.bootstrap.data.static_configs import (
    NERD_FONT_ZIP_URL,
    SYSTEM_FONT_DIR,
    USER_FONT_DIR,
)


# ── Strategy builders ───────────────────────────────────────────


def _apt(*pkgs: str, name: str = "apt") -> Strategy:
    return Strategy(name=name, steps=[["apt-get", "install", "-y", *pkgs]], needs_sudo=True)


def _rpm(*pkgs: str, name: str = "dnf/yum", prepare: list[list[str]] | None = None) -> Strategy:
    return Strategy(
        name=name,
        prepare=prepare or [],
        steps=[["{pm}", "install", "-y", *pkgs]],
        needs_sudo=True,
    )


def _brew(*pkgs: str) -> Strategy:
    return Strategy(name="brew", steps=[["brew", "install", *pkgs]])


def _cask(*casks: str) -> Strategy:
    return Strategy(name="brew-cask", kind="cask", steps=[["brew", "install", "--cask", *casks]])


def _choco(pkg: str) -> Strategy:
    return Strategy(name="choco", steps=[["choco", "install", "-y", pkg]])


def _scoop(pkg: str, bucket: str | None = None) -> Strategy:
    prepare = [["scoop", "bucket", "add", bucket]] if bucket else []
    return Strategy(name="scoop", prepare=prepare, steps=[["scoop", "install", pkg]])


def _native(
    debian: str | list[str] | None = None,
    rhel: str | list[str] | None = None,
    brew: str | None = None,
    cask: str | None = None,
    choco: str | None = None,
    scoop: str | None = None,
) -> dict[str, list[Strategy]]:
    """Single-package strategy table across the native managers."""
    table: dict[str, list[Strategy]] = {}
    if debian:
        table["linux-debian"] = [_apt(*([debian] if isinstance(debian, str) else debian))]
    if rhel:
        table["linux-rhel"] = [_rpm(*([rhel] if isinstance(rhel, str) else rhel))]
    if brew:
        table["macos"] = [_brew(brew)]
    elif cask:
        table["macos"] = [_cask(cask)]
    if choco:
        table["windows:choco"] = [_choco(choco)]
    if scoop:
        table["windows:scoop"] = [_scoop(scoop)]
    return table


def _binary(name: str, download: BinaryDownload, *, needs_sudo: bool = True) -> Strategy:
    return Strategy(
        name=name,
        kind="binary",
        download=download,
        needs_sudo=needs_sudo,
        error_kind=ErrorKind.NETWORK_FAILURE,
    )


# ── Downloads ───────────────────────────────────────────────────

GH_RELEASE = BinaryDownload(
    url="https://github.com/cli/cli/releases/download/{tag}/gh_{version}_linux_{arch}.tar.gz",
    github_repo="cli/cli",
    fallback_version="v2.62.0",
    archive_member="gh_{version}_linux_{arch}/bin/gh",
    arches=["amd64", "arm64"],
)

KUBECTL_RELEASE = BinaryDownload(
    url="https://dl.k8s.io/release/{tag}/bin/linux/{arch}/kubectl",
    version_url="https://dl.k8s.io/release/stable.txt",
    fallback_version="v1.31.0",
)

MINIKUBE_RELEASE = BinaryDownload(
    url="https://github.com/kubernetes/minikube/releases/download/{tag}/minikube-linux-{arch}",
    version="v1.34.0",
)

K9S_RELEASE = BinaryDownload(
    url="https://github.com/derailed/k9s/releases/download/{tag}/k9s_Linux_{arch}.tar.gz",
    github_repo="derailed/k9s",
    fallback_version="v0.32.5",
    archive_member="k9s",
)

FIRACODE_SYSTEM = BinaryDownload(
    url=NERD_FONT_ZIP_URL,
    extract_to=SYSTEM_FONT_DIR,
    executable=False,
)

FIRACODE_USER = BinaryDownload(
    url=NERD_FONT_ZIP_URL,
    extract_to=USER_FONT_DIR,
    executable=False,
)


# ── Repository setup ────────────────────────────────────────────

_GH_APT_REPO = (
    "curl -fsSL https://cli.github.com/packages/githubcli-archive-keyring.gpg"
    " | dd of=/usr/share/keyrings/githubcli-archive-keyring.gpg"
    " && chmod go+r /usr/share/keyrings/githubcli-archive-keyring.gpg"
    ' && echo "deb [arch=$(dpkg --print-architecture)'
    ' signed-by=/usr/share/keyrings/githubcli-archive-keyring.gpg]'
    ' https://cli.github.com/packages stable main"'
    " > /etc/apt/sources.list.d/github-cli.list"
)

_VSCODE_APT_REPO = (
    "curl -fsSL https://packages.microsoft.com/keys/microsoft.asc"
    " | gpg --dearmor > /etc/apt/trusted.gpg.d/packages.microsoft.gpg"
    ' && echo "deb [arch=amd64,arm64,armhf'
    ' signed-by=/etc/apt/trusted.gpg.d/packages.microsoft.gpg]'
    ' https://packages.microsoft.com/repos/code stable main"'
    " > /etc/apt/sources.list.d/vscode.list"
)

_VSCODE_RPM_REPO = (
    "rpm --import https://packages.microsoft.com/keys/microsoft.asc"
    " && printf '%s\\n' '[code]' 'name=Visual Studio Code'"
    " 'baseurl=https://packages.microsoft.com/yumrepos/vscode'"
    " 'enabled=1' 'gpgcheck=1'"
    " 'gpgkey=https://packages.microsoft.com/keys/microsoft.asc'"
    " > /etc/yum.repos.d/vscode.repo"
)

_STARSHIP_SCRIPT = "curl -sS https://starship.rs/install.sh | sh -s -- --yes"

_PIP_USER = ["python3", "-m", "pip", "install", "--user"]


# ── Catalog ─────────────────────────────────────────────────────

CAPABILITY_CATALOG: list[Capability] = [

    # ── Core: required, abort on failure ────────────────────────

    Capability(
        name="curl",
        label="curl",
        cli="curl",
        required=True,
        strategies=_native(debian="curl", rhel="curl", brew="curl",
                           choco="curl", scoop="curl"),
    ),
    Capability(
        name="python3",
        label="Python 3",
        cli="python3",
        alt_clis=["python"],
        min_version="3.6",
        version_command=["python3", "--version"],
        required=True,
        strategies={
            "linux-debian": [_apt("python3", "python3-pip", "python3-venv")],
            "linux-rhel": [_rpm("python3", "python3-pip")],
            "macos": [_brew("python")],
            "windows:choco": [_choco("python3")],
            "windows:scoop": [_scoop("python")],
        },
    ),
    Capability(
        name="pip",
        label="pip",
        cli="pip3",
        alt_clis=["pip"],
        required=True,
        strategies={
            "linux-debian": [_apt("python3-pip")],
            "linux-rhel": [_rpm("python3-pip")],
            "unix": [
                Strategy(name="ensurepip", kind="pip",
                         steps=[["python3", "-m", "ensurepip", "--upgrade"]]),
            ],
            "windows": [
                Strategy(name="ensurepip", kind="pip",
                         steps=[["python", "-m", "ensurepip", "--upgrade"]]),
            ],
        },
    ),
    Capability(
        name="git",
        label="git",
        cli="git",
        required=True,
        verify=["git", "--version"],
        strategies=_native(debian="git", rhel="git", brew="git",
                           choco="git", scoop="git"),
        hint='git config --global user.name "Your Name" && git config --global user.email "you@example.com"',
    ),
    Capability(
        name="gh",
        label="GitHub CLI",
        cli="gh",
        required=True,
        strategies={
            "linux-debian": [
                Strategy(
                    name="github-apt-repo",
                    kind="repo",
                    steps=[
                        ["sh", "-c", _GH_APT_REPO],
                        ["apt-get", "update"],
                        ["apt-get", "install", "-y", "gh"],
                    ],
                    needs_sudo=True,
                ),
                _binary("release-tarball", GH_RELEASE),
            ],
            "linux-rhel:dnf": [
                Strategy(
                    name="github-rpm-repo",
                    kind="repo",
                    prepare=[["dnf", "install", "-y", "dnf-command(config-manager)"]],
                    steps=[
                        ["dnf", "config-manager", "--add-repo",
                         "https://cli.github.com/packages/rpm/gh-cli.repo"],
                        ["dnf", "install", "-y", "gh"],
                    ],
                    needs_sudo=True,
                ),
                _binary("release-tarball", GH_RELEASE),
            ],
            "linux-rhel:yum": [
                Strategy(
                    name="github-rpm-repo",
                    kind="repo",
                    prepare=[["yum", "install", "-y", "yum-utils"]],
                    steps=[
                        ["yum-config-manager", "--add-repo",
                         "https://cli.github.com/packages/rpm/gh-cli.repo"],
                        ["yum", "install", "-y", "gh"],
                    ],
                    needs_sudo=True,
                ),
                _binary("release-tarball", GH_RELEASE),
            ],
            "macos": [_brew("gh")],
            "windows:choco": [_choco("gh")],
            "windows:scoop": [_scoop("gh")],
        },
        hint="gh auth login",
    ),

    # ── Shell ───────────────────────────────────────────────────

    Capability(
        name="zsh",
        label="zsh + Oh My Zsh",
        group="shell",
        cli="zsh",
        platforms=["unix"],
        strategies=_native(debian="zsh", rhel="zsh", brew="zsh"),
        configure=["default-shell"],
        hint="Log out and back in (or run 'exec zsh') to start using zsh",
    ),

    # ── Fonts ───────────────────────────────────────────────────

    Capability(
        name="nerd-font",
        label="FiraCode Nerd Font",
        group="fonts",
        platforms=["unix"],
        probe={
            "linux": ["fc-list"],
            "macos": ["brew", "list", "--cask", "font-fira-code-nerd-font"],
        },
        probe_match="FiraCode",
        strategies={
            "linux": [
                Strategy(
                    name="system-fonts",
                    kind="binary",
                    prepare=[["{pm}", "install", "-y", "unzip", "fontconfig"]],
                    download=FIRACODE_SYSTEM,
                    needs_sudo=True,
                    error_kind=ErrorKind.NETWORK_FAILURE,
                ),
                _binary("user-fonts", FIRACODE_USER, needs_sudo=False),
            ],
            "macos": [_cask("font-fira-code-nerd-font")],
        },
        configure=["font-cache", "terminal-font"],
    ),

    # ── Prompt ──────────────────────────────────────────────────

    Capability(
        name="starship",
        label="Starship",
        group="prompt",
        cli="starship",
        strategies={
            "linux-debian": [
                _apt("starship"),
                Strategy(name="install-script", kind="script",
                         steps=[["sh", "-c", _STARSHIP_SCRIPT]], needs_sudo=True,
                         error_kind=ErrorKind.NETWORK_FAILURE),
            ],
            "linux-rhel": [
                Strategy(name="install-script", kind="script",
                         steps=[["sh", "-c", _STARSHIP_SCRIPT]], needs_sudo=True,
                         error_kind=ErrorKind.NETWORK_FAILURE),
            ],
            "macos": [_brew("starship")],
            "windows:choco": [_choco("starship")],
            "windows:scoop": [_scoop("starship")],
        },
        configure=["starship-config"],
        hint="Restart your terminal to see the Starship prompt",
    ),

    # ── Editor ──────────────────────────────────────────────────

    Capability(
        name="vscode",
        label="Visual Studio Code",
        group="editor",
        cli="code",
        alt_clis=["code-oss", "codium"],
        probe={"macos": ["test", "-d", "/Applications/Visual Studio Code.app"]},
        conditions=["graphical"],
        strategies={
            "linux-debian": [
                Strategy(
                    name="microsoft-apt-repo",
                    kind="repo",
                    steps=[
                        ["sh", "-c", _VSCODE_APT_REPO],
                        ["apt-get", "update"],
                        ["apt-get", "install", "-y", "code"],
                    ],
                    needs_sudo=True,
                ),
            ],
            "linux-rhel": [
                Strategy(
                    name="microsoft-rpm-repo",
                    kind="repo",
                    steps=[
                        ["sh", "-c", _VSCODE_RPM_REPO],
                        ["{pm}", "install", "-y", "code"],
                    ],
                    needs_sudo=True,
                ),
            ],
            "macos": [_cask("visual-studio-code")],
            "windows:choco": [_choco("vscode")],
            "windows:scoop": [_scoop("vscode", bucket="extras")],
        },
        configure=["vscode-font"],
    ),

    # ── Containers ──────────────────────────────────────────────

    Capability(
        name="podman",
        label="Podman",
        group="containers",
        cli="podman",
        platforms=["linux", "windows"],
        strategies={
            "linux-debian": [_apt("podman")],
            "linux-rhel:dnf": [
                _rpm("podman", "podman-docker", "podman-compose", name="dnf"),
                _rpm("podman", name="dnf-minimal"),
            ],
            "linux-rhel:yum": [_rpm("podman", name="yum")],
            "windows:choco": [_choco("podman-cli")],
            "windows:scoop": [_scoop("podman")],
        },
        configure=["podman-socket"],
    ),
    Capability(
        name="docker-desktop",
        label="Docker Desktop",
        group="containers",
        cli="docker",
        platforms=["macos", "windows"],
        probe={"macos": ["test", "-d", "/Applications/Docker.app"]},
        strategies={
            "macos": [_cask("docker")],
            "windows:choco": [_choco("docker-desktop")],
        },
        hint="Start Docker Desktop once to finish its setup",
    ),
    Capability(
        name="flatpak",
        label="Flatpak + Flathub",
        group="containers",
        cli="flatpak",
        platforms=["linux"],
        conditions=["desktop_apps"],
        strategies=_native(debian=["flatpak", "gnome-software-plugin-flatpak"], rhel="flatpak"),
        configure=["flathub-remote"],
    ),
    Capability(
        name="podman-desktop",
        label="Podman Desktop",
        group="containers",
        platforms=["linux"],
        probe={"linux": ["flatpak", "info", "io.podman_desktop.PodmanDesktop"]},
        conditions=["desktop_apps"],
        strategies={
            "linux": [
                Strategy(
                    name="flathub",
                    kind="flatpak",
                    steps=[["flatpak", "install", "-y", "flathub", "io.podman_desktop.PodmanDesktop"]],
                ),
            ],
        },
        hint="flatpak run io.podman_desktop.PodmanDesktop",
    ),

    # ── Kubernetes ──────────────────────────────────────────────

    Capability(
        name="kubectl",
        label="kubectl",
        group="kubernetes",
        cli="kubectl",
        version_command=["kubectl", "version", "--client"],
        strategies={
            "linux": [_binary("dl.k8s.io", KUBECTL_RELEASE)],
            "macos": [_brew("kubectl")],
            "windows:choco": [_choco("kubernetes-cli")],
            "windows:scoop": [_scoop("kubectl")],
        },
    ),
    Capability(
        name="minikube",
        label="Minikube",
        group="kubernetes",
        cli="minikube",
        version_command=["minikube", "version", "--short"],
        strategies={
            "linux": [_binary("github-release", MINIKUBE_RELEASE)],
            "macos": [_brew("minikube")],
            "windows:choco": [_choco("minikube")],
            "windows:scoop": [_scoop("minikube")],
        },
        configure=["cgroup-delegation", "minikube-rootless"],
        hint="minikube start --force-systemd=false",
    ),

    # ── Automation ──────────────────────────────────────────────

    Capability(
        name="ansible",
        label="Ansible",
        group="automation",
        cli="ansible",
        platforms=["unix"],
        post_env_path=["{home}/.local/bin"],
        strategies={
            "linux-debian": [
                _apt("ansible"),
                Strategy(name="pip-user", kind="pip", steps=[_PIP_USER + ["ansible"]]),
            ],
            "linux-rhel": [
                _rpm("ansible", name="epel", prepare=[["{pm}", "install", "-y", "epel-release"]]),
                Strategy(name="pip-user", kind="pip", steps=[_PIP_USER + ["ansible"]]),
            ],
            "macos": [_brew("ansible")],
        },
    ),

    # ── Dev tools (--install-dev-tools) ─────────────────────────

    *[
        Capability(
            name=tool,
            group="dev-tools",
            cli=tool,
            conditions=["dev_tools"],
            strategies=_native(debian=tool, rhel=tool, brew=tool,
                               choco=tool if tool != "neofetch" else None,
                               scoop=tool if tool in ("jq", "wget") else None),
        )
        for tool in ("jq", "wget", "tree", "htop", "neofetch", "tmux")
    ],
    Capability(
        name="firefox",
        label="Firefox",
        group="dev-tools",
        cli="firefox",
        probe={"macos": ["test", "-d", "/Applications/Firefox.app"]},
        conditions=["dev_tools"],
        strategies=_native(debian="firefox", rhel="firefox", cask="firefox",
                           choco="firefox"),
    ),
    Capability(
        name="postman",
        label="Postman",
        group="dev-tools",
        platforms=["macos"],
        probe={"macos": ["test", "-d", "/Applications/Postman.app"]},
        conditions=["dev_tools"],
        strategies={"macos": [_cask("postman")]},
    ),
    Capability(
        name="build-tools",
        label="Build toolchain",
        group="dev-tools",
        platforms=["linux"],
        probe={
            "linux-debian": ["dpkg", "-s", "build-essential"],
            "linux-rhel": ["rpm", "-q", "gcc", "make"],
        },
        conditions=["dev_tools"],
        strategies={
            "linux-debian": [_apt("build-essential", "software-properties-common")],
            "linux-rhel:dnf": [
                Strategy(name="dnf-group", kind="group",
                         steps=[["dnf", "group", "install", "-y", "@development-tools"]],
                         needs_sudo=True),
            ],
            "linux-rhel:yum": [
                Strategy(name="yum-group", kind="group",
                         steps=[["yum", "groupinstall", "-y", "Development Tools"]],
                         needs_sudo=True),
            ],
        },
    ),

    # ── Desktop (--ensure-taskbar) ──────────────────────────────

    Capability(
        name="gnome-extensions",
        label="GNOME taskbar extensions",
        group="desktop",
        platforms=["linux-rhel"],
        probe={"linux-rhel": ["rpm", "-q", "gnome-shell-extension-dash-to-dock"]},
        conditions=["taskbar", "gnome_session"],
        strategies={
            "linux-rhel:dnf": [
                _rpm("gnome-shell-extension-dash-to-dock",
                     "gnome-shell-extension-apps-menu", "gnome-tweaks", name="dnf"),
            ],
            "linux-rhel:yum": [
                _rpm("gnome-shell-extension-dash-to-dock", "gnome-tweaks", name="yum"),
            ],
        },
    ),
]


# k3s flow only, never part of the default run.
K9S = Capability(
    name="k9s",
    label="k9s",
    group="k3s",
    cli="k9s",
    platforms=["linux"],
    version_command=["k9s", "version", "--short"],
    strategies={"linux": [_binary("github-release", K9S_RELEASE)]},
    hint="k9s",
)


# Run order of groups during ``bootstrap``. The "desktop" group is
# installed by the desktop step, only when a taskbar is requested.
BOOTSTRAP_GROUPS = [
    "core",
    "shell",
    "fonts",
    "prompt",
    "editor",
    "containers",
    "kubernetes",
    "automation",
    "dev-tools",
]


def get_capability(name: str) -> Capability | None:
    """Look up a catalog entry (or k9s) by name."""
    for cap in CAPABILITY_CATALOG:
        if cap.name == name:
            return cap
    if name == K9S.name:
        return K9S
    return None


def extra_package(name: str) -> Capability:
    """Optional capability for a package listed under ``extra_packages``."""
    return Capability(
        name=name,
        group="extra",
        cli=name,
        strategies=_native(debian=name, rhel=name, brew=name, choco=name, scoop=name),
    )
