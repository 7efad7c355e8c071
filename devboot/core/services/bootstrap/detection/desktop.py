"""
L3 Detection — Desktop session detection.

Read-only: environment variables, one ``systemctl --user`` probe and
PATH lookups through the adapter.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command
from devboot.core.services.bootstrap.data.desktop_settings import DESKTOP_BINARIES

logger = logging.getLogger(__name__)

_GRAPHICAL_TARGET = ["systemctl", "--user", "is-active", "--quiet", "graphical-session.target"]


def _environ(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if env is None else env


def is_graphical_session(adapter: Adapter, env: Mapping[str, str] | None = None) -> bool:
    """DISPLAY, WAYLAND_DISPLAY, or an active graphical-session.target."""
    environ = _environ(env)
    if environ.get("DISPLAY") or environ.get("WAYLAND_DISPLAY"):
        return True
    if not adapter.has("systemctl"):
        return False
    return adapter.probe(Command(argv=_GRAPHICAL_TARGET, timeout=10)).ok


def detect_desktop_kind(adapter: Adapter, env: Mapping[str, str] | None = None) -> str | None:
    """gnome | kde | xfce | cinnamon | mate, or None.

    ``XDG_CURRENT_DESKTOP`` is a colon-separated list (``ubuntu:GNOME``);
    when it is unset the desktop binaries on PATH decide.
    """
    environ = _environ(env)
    current = environ.get("XDG_CURRENT_DESKTOP", "") or environ.get("XDG_SESSION_DESKTOP", "")
    for token in current.lower().split(":"):
        token = token.strip()
        if token in DESKTOP_BINARIES:
            return token
        if token == "plasma":
            return "kde"

    for kind, binaries in DESKTOP_BINARIES.items():
        if any(adapter.has(b) for b in binaries):
            return kind
    return None


def has_desktop(adapter: Adapter, env: Mapping[str, str] | None = None) -> bool:
    """Whether a desktop environment is present, running or not."""
    environ = _environ(env)
    if is_graphical_session(adapter, environ):
        return True
    if environ.get("XDG_CURRENT_DESKTOP"):
        return True
    return detect_desktop_kind(adapter, environ) is not None


def in_gnome_session(env: Mapping[str, str] | None = None) -> bool:
    environ = _environ(env)
    return (
        environ.get("XDG_SESSION_DESKTOP", "").lower() == "gnome"
        or "gnome" in environ.get("XDG_CURRENT_DESKTOP", "").lower().split(":")
    )
