"""
L0 Data — bundled configuration file contents.

Written verbatim by the configurators when a generated config is not
available (Starship preset offline) or when the content never varies
(systemd drop-in, taskbar helper, autostart entries).
"""

from __future__ import annotations


# ── Starship ────────────────────────────────────────────────────

STARSHIP_PRESET = "catppuccin-powerline"

# Minimal catppuccin-mocha layout without the powerline glyphs, so it
# renders even before the Nerd Font is active.
STARSHIP_FALLBACK_TOML = """\
"$schema" = 'https://starship.rs/config-schema.json'

format = \"\"\"
$os\\
$username\\
$directory\\
$git_branch\\
$git_status\\
$python\\
$nodejs\\
$golang\\
$rust\\
$docker_context\\
$time\\
$line_break$character\"\"\"

palette = 'catppuccin_mocha'

[palettes.catppuccin_mocha]
red = "#f38ba8"
peach = "#fab387"
green = "#a6e3a1"
teal = "#94e2d5"
blue = "#89b4fa"
lavender = "#b4befe"
text = "#cdd6f4"
surface0 = "#313244"
base = "#1e1e2e"
mantle = "#181825"

[os]
disabled = false
style = "bg:surface0 fg:text"

[username]
show_always = true
style_user = "bg:surface0 fg:text"
style_root = "bg:surface0 fg:text"
format = '[ $user ]($style)'

[directory]
style = "fg:mantle bg:peach"
format = "[ $path ]($style)"
truncation_length = 3
truncation_symbol = "…/"

[git_branch]
style = "bg:green"
format = '[ $branch ](fg:base bg:green)'

[git_status]
style = "bg:green"
format = '[($all_status$ahead_behind )](fg:base bg:green)'

[python]
style = "bg:teal"
format = '[ py( $version) ](fg:base bg:teal)'

[nodejs]
style = "bg:teal"
format = '[ node( $version) ](fg:base bg:teal)'

[golang]
style = "bg:teal"
format = '[ go( $version) ](fg:base bg:teal)'

[rust]
style = "bg:teal"
format = '[ rs( $version) ](fg:base bg:teal)'

[docker_context]
style = "bg:mantle"
format = '[ docker( $context) ]($style)'

[time]
disabled = false
time_format = "%R"
format = '[ $time ](fg:mantle bg:lavender)'

[line_break]
disabled = false

[character]
disabled = false
success_symbol = '[>](bold fg:green)'
error_symbol = '[>](bold fg:red)'
"""

STARSHIP_INIT = {
    "zsh": 'eval "$(starship init zsh)"',
    "bash": 'eval "$(starship init bash)"',
}


# ── VS Code ─────────────────────────────────────────────────────

VSCODE_FONT_SETTINGS: dict[str, object] = {
    "editor.fontFamily": "'FiraCode Nerd Font', Jomolhari, Consolas, 'Courier New', monospace",
    "editor.fontLigatures": True,
    "editor.fontSize": 13,
    "terminal.integrated.fontFamily": "'FiraCode Nerd Font', monospace",
    "terminal.integrated.fontLigatures": True,
}

# Variant directory name under the user config root, in probe order.
VSCODE_VARIANTS: list[tuple[str, str]] = [
    ("code", "Code"),
    ("code-oss", "Code - OSS"),
    ("codium", "VSCodium"),
]


# ── Fonts ───────────────────────────────────────────────────────

NERD_FONT_NAME = "FiraCode Nerd Font"
NERD_FONT_ZIP_URL = (
    "https://github.com/ryanoasis/nerd-fonts/releases/latest/download/FiraCode.zip"
)
SYSTEM_FONT_DIR = "/usr/share/fonts/firacode"
USER_FONT_DIR = "~/.local/share/fonts"
GNOME_TERMINAL_FONT = "FiraCode Nerd Font 12"
ITERM_FONT = "FiraCodeNerdFont-Regular 13"
FLATHUB_REPO_URL = "https://dl.flathub.org/repo/flathub.flatpakrepo"


# ── systemd ─────────────────────────────────────────────────────

CGROUP_DELEGATE_PATH = "/etc/systemd/system/user@.service.d/delegate.conf"
CGROUP_DELEGATE_CONF = """\
[Service]
Delegate=cpu cpuset io memory pids
"""


# ── Desktop helpers ─────────────────────────────────────────────

GNOME_DOCK_AUTOSTART = """\
[Desktop Entry]
Type=Application
Exec=/usr/bin/bash -c "sleep 5 && gsettings set org.gnome.shell enabled-extensions \\"['dash-to-dock@micxgx.gmail.com', 'apps-menu@gnome-shell-extensions.gcampax.github.com']\\" && gsettings set org.gnome.shell.extensions.dash-to-dock dock-fixed true"
Hidden=false
NoDisplay=false
X-GNOME-Autostart-enabled=true
Name=Enable Dash to Dock
Comment=Ensures GNOME taskbar/dock is always visible
"""

XFCE_PANEL_AUTOSTART = """\
[Desktop Entry]
Type=Application
Exec=xfce4-panel
Hidden=false
NoDisplay=false
X-GNOME-Autostart-enabled=true
Name=XFCE Panel
Comment=XFCE desktop panel/taskbar
"""

TASKBAR_SCRIPT_NAME = "install-taskbar.sh"
TASKBAR_SCRIPT = """\
#!/bin/bash
# Manual taskbar installation. Run after rebooting into graphical mode.
set -euo pipefail

if [ -z "${DISPLAY:-}" ] && [ -z "${WAYLAND_DISPLAY:-}" ]; then
    echo "No graphical session detected. Run this after logging into the desktop." >&2
    exit 1
fi

if command -v dnf >/dev/null 2>&1; then
    sudo dnf install -y gnome-shell-extension-dash-to-dock gnome-shell-extension-apps-menu gnome-tweaks
elif command -v yum >/dev/null 2>&1; then
    sudo yum install -y gnome-shell-extension-dash-to-dock gnome-tweaks
fi

if command -v gsettings >/dev/null 2>&1; then
    gsettings set org.gnome.shell enabled-extensions "['dash-to-dock@micxgx.gmail.com', 'apps-menu@gnome-shell-extensions.gcampax.github.com']"
    gsettings set org.gnome.shell.extensions.dash-to-dock dock-fixed true
    gsettings set org.gnome.shell.extensions.dash-to-dock intellihide false
    gsettings set org.gnome.shell.extensions.dash-to-dock autohide false
    gsettings set org.gnome.shell.extensions.dash-to-dock dock-position 'BOTTOM'
    gsettings set org.gnome.shell.extensions.dash-to-dock show-running true
    gsettings set org.gnome.shell.extensions.dash-to-dock show-favorites true
    echo "GNOME taskbar configured. Log out and back in to see the changes."
else
    echo "gsettings not available: configure the dock with GNOME Tweaks." >&2
fi
"""
