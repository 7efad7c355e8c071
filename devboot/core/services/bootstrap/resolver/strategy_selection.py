"""
L2 Resolver — Strategy selection.

Turns a Capability's strategy table plus the detected Platform into the
ordered list of concrete strategies to try. Lookup is by platform key,
most specific first; the first key with an entry wins outright.
"""

from __future__ import annotations

import getpass
import logging
import os
import re
from pathlib import Path

from devboot.core.models.capability import Capability, Strategy
from devboot.core.models.platform import Platform, PlatformFamily

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{(pm|arch|os|home|user)\}")


def platform_keys(platform: Platform) -> list[str]:
    """Strategy-table keys for ``platform``, most specific first.

    Examples::

        linux-rhel + dnf  → ["linux-rhel:dnf", "linux-rhel", "linux", "unix"]
        macos + brew      → ["macos:brew", "macos", "unix"]
        windows + scoop   → ["windows:scoop", "windows"]
        unsupported       → []
    """
    if platform.family == PlatformFamily.UNSUPPORTED:
        return []
    keys = []
    if platform.package_manager:
        keys.append(f"{platform.family.value}:{platform.package_manager}")
    keys.append(platform.family.value)
    if platform.is_linux:
        keys.append("linux")
    if platform.family != PlatformFamily.WINDOWS:
        keys.append("unix")
    return keys


def applies_to(capability: Capability, platform: Platform) -> bool:
    """Whether the capability is meant for this platform at all."""
    if not capability.platforms:
        return True
    return any(key in capability.platforms for key in platform_keys(platform))


def placeholder_values(
    platform: Platform,
    *,
    home: Path | None = None,
    user: str | None = None,
) -> dict[str, str]:
    """Values substituted into catalog commands.

    ``home`` and ``user`` default to the current account; a run with an
    injected home passes its own so ``{home}`` matches the files it edits.
    """
    if user is None:
        try:
            user = getpass.getuser()
        except (KeyError, OSError):
            user = os.environ.get("USER", "")
    return {
        "pm": platform.package_manager or "",
        "arch": platform.arch or "",
        "os": platform.os_name,
        "home": str(home if home is not None else Path.home()),
        "user": user,
    }


def render(text: str, values: dict[str, str]) -> str:
    """Fill known ``{placeholder}`` tokens; leave any other braces alone."""
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), text)


def render_argv(argv: list[str], values: dict[str, str]) -> list[str]:
    return [render(arg, values) for arg in argv]


def _render_strategy(strategy: Strategy, values: dict[str, str]) -> Strategy:
    return strategy.model_copy(update={
        "prepare": [render_argv(step, values) for step in strategy.prepare],
        "steps": [render_argv(step, values) for step in strategy.steps],
        "env": {k: render(v, values) for k, v in strategy.env.items()},
    })


def resolve_strategies(
    capability: Capability,
    platform: Platform,
    *,
    limit: int | None = None,
    values: dict[str, str] | None = None,
) -> list[Strategy]:
    """Ordered, rendered strategies for ``capability`` on ``platform``.

    Args:
        capability: Catalog entry.
        platform: Detected platform.
        limit: Cap on the fallback chain (``max_strategies``).
        values: Placeholder values; defaults to ``placeholder_values()``.

    Returns:
        Strategies to try in order. Empty when the platform has no entry.
    """
    for key in platform_keys(platform):
        if key in capability.strategies:
            chosen = capability.strategies[key]
            logger.debug("%s: using strategy table '%s'", capability.name, key)
            break
    else:
        return []

    if limit is not None:
        chosen = chosen[:limit]

    vals = values if values is not None else placeholder_values(platform)
    return [_render_strategy(s, vals) for s in chosen]


def resolve_probe(capability: Capability, platform: Platform) -> list[str] | None:
    """Platform-specific read-only detection command, if the catalog has one."""
    for key in platform_keys(platform):
        if key in capability.probe:
            return capability.probe[key]
    return None
