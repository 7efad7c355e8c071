"""
L0 Data — declarative desktop settings.

Each entry is a ``(schema, key, value)`` tuple passed verbatim to
``gsettings set``. Values are GVariant text, so strings carry their
own quotes.
"""

from __future__ import annotations

GSetting = tuple[str, str, str]

_DOCK = "org.gnome.shell.extensions.dash-to-dock"
_IFACE = "org.gnome.desktop.interface"
_NAUTILUS = "org.gnome.nautilus.preferences"

DOCK_EXTENSIONS = [
    "dash-to-dock@micxgx.gmail.com",
    "apps-menu@gnome-shell-extensions.gcampax.github.com",
]

# Dock and sidebar, applied by ``desktop configure``.
GNOME_DESKTOP_SETTINGS: list[GSetting] = [
    (_DOCK, "dock-position", "'LEFT'"),
    (_DOCK, "extend-height", "true"),
    (_DOCK, "show-apps-at-top", "true"),
    (_DOCK, "click-action", "'cycle-windows'"),
    (_IFACE, "show-battery-percentage", "true"),
    (_IFACE, "clock-show-weekday", "true"),
    (_NAUTILUS, "always-use-location-entry", "false"),
    (_NAUTILUS, "default-folder-viewer", "'list-view'"),
]

# Always-visible bottom taskbar, applied with ``--ensure-taskbar``.
GNOME_TASKBAR_SETTINGS: list[GSetting] = [
    ("org.gnome.shell", "enabled-extensions", str(DOCK_EXTENSIONS[::-1])),
    (_DOCK, "dock-fixed", "true"),
    (_DOCK, "intellihide", "false"),
    (_DOCK, "autohide", "false"),
    (_DOCK, "dock-position", "'BOTTOM'"),
    (_DOCK, "extend-height", "false"),
    (_DOCK, "show-running", "true"),
    (_DOCK, "show-favorites", "true"),
    (_IFACE, "show-battery-percentage", "true"),
    (_IFACE, "clock-show-weekday", "true"),
    (_IFACE, "clock-show-seconds", "false"),
]

GNOME_TERMINAL_PROFILES = "org.gnome.Terminal.ProfilesList"
GNOME_TERMINAL_PROFILE_PATH = "org.gnome.Terminal.Legacy.Profile:/org/gnome/terminal/legacy/profiles:/:{uuid}/"

# Desktop environment → binaries whose presence identifies it.
DESKTOP_BINARIES: dict[str, list[str]] = {
    "gnome": ["gnome-shell", "gnome-session"],
    "kde": ["plasmashell", "plasma-desktop", "startplasma-x11"],
    "xfce": ["xfce4-session", "xfce4-panel"],
    "cinnamon": ["cinnamon-session"],
    "mate": ["mate-session"],
}

# GNOME extension packages for the rhel taskbar.
GNOME_EXTENSION_PACKAGES = [
    "gnome-shell-extension-dash-to-dock",
    "gnome-shell-extension-apps-menu",
    "gnome-tweaks",
]
