"""
L3 Detection — Condition evaluation.

Evaluates a capability's ``conditions`` against the platform, the run
options and the desktop session. Read-only.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from devboot.adapters.base import Adapter
from devboot.core.models.config import BootstrapConfig
from devboot.core.models.platform import Platform, PlatformFamily
from devboot.core.services.bootstrap.detection.desktop import (
    has_desktop,
    in_gnome_session,
    is_graphical_session,
)

logger = logging.getLogger(__name__)


def evaluate_condition(
    condition: str,
    *,
    platform: Platform,
    config: BootstrapConfig,
    adapter: Adapter,
    env: Mapping[str, str] | None = None,
) -> bool:
    """Evaluate one condition.

    Args:
        condition: One of ``"graphical"``, ``"desktop_apps"``,
                   ``"dev_tools"``, ``"taskbar"``, ``"gnome_session"``,
                   ``"not_root"`` or ``"file_exists:<path>"``.

    Returns:
        True if the condition is met (the capability should be processed).
    """
    environ = os.environ if env is None else env

    if condition == "graphical":
        # VS Code: macOS always has a GUI
        return platform.family == PlatformFamily.MACOS or is_graphical_session(adapter, environ)
    if condition == "desktop_apps":
        return config.install_desktop or has_desktop(adapter, environ)
    if condition == "dev_tools":
        return config.install_dev_tools
    if condition == "taskbar":
        return config.ensure_taskbar
    if condition == "gnome_session":
        return in_gnome_session(environ) or adapter.has("gnome-shell")
    if condition == "not_root":
        geteuid = getattr(os, "geteuid", None)
        return geteuid is None or geteuid() != 0
    if condition.startswith("file_exists:"):
        target_path = condition.split(":", 1)[1]
        return os.path.isfile(os.path.expanduser(target_path))
    logger.warning("Unknown capability condition: %s", condition)
    return True


def unmet_conditions(
    conditions: list[str],
    *,
    platform: Platform,
    config: BootstrapConfig,
    adapter: Adapter,
    env: Mapping[str, str] | None = None,
) -> list[str]:
    """Conditions that evaluate False, in declaration order."""
    return [
        c for c in conditions
        if not evaluate_condition(c, platform=platform, config=config, adapter=adapter, env=env)
    ]
