"""
L3 Detection — Tool presence and version.

The detection half of detect → install → verify. Uses only
``adapter.which`` and ``adapter.probe``, never ``adapter.run``, so
detection can never mutate the host.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command
from devboot.core.models.capability import Capability
from devboot.core.models.platform import Platform
from devboot.core.services.bootstrap.domain.version_constraint import (
    check_version_constraint,
    extract_version,
)
from devboot.core.services.bootstrap.resolver.strategy_selection import resolve_probe

logger = logging.getLogger(__name__)


class Detection(BaseModel):
    """What detection found for one capability."""

    present: bool
    path: str | None = None
    version: str | None = None
    outdated: bool = False
    reason: str = ""


def _version_argv(capability: Capability, found: str) -> list[str]:
    name = os.path.basename(found)
    cmd = capability.version_command
    if not cmd:
        return [name, "--version"]
    if cmd[0] == name:
        return list(cmd)
    # Matched an alternate CLI: keep the flags, swap the binary
    return [name, *cmd[1:]]


def probe_version(capability: Capability, adapter: Adapter, found: str) -> str | None:
    """Run the version command and extract the version, if any."""
    receipt = adapter.probe(Command(argv=_version_argv(capability, found), timeout=30))
    if not receipt.ok:
        return None
    return extract_version(f"{receipt.stdout}\n{receipt.stderr}", capability.version_pattern)


def detect_capability(
    capability: Capability,
    platform: Platform,
    adapter: Adapter,
) -> Detection:
    """Detect whether ``capability`` is already present.

    Present when its CLI (or an alternate) is on PATH, or when its
    platform probe succeeds (and its output contains ``probe_match``).
    A version below ``min_version`` counts as absent.
    """
    found = found_path = None
    for cli in ([capability.cli] if capability.cli else []) + capability.alt_clis:
        found_path = adapter.which(cli)
        if found_path:
            found = cli
            break

    if found is None:
        probe = resolve_probe(capability, platform)
        if probe is None:
            return Detection(present=False, reason="not found on PATH")
        receipt = adapter.probe(Command(argv=probe, timeout=30))
        if not receipt.ok:
            return Detection(present=False, reason=f"probe failed: {' '.join(probe)}")
        if capability.probe_match and capability.probe_match not in receipt.stdout:
            return Detection(present=False, reason=f"'{capability.probe_match}' not reported")
        return Detection(present=True, reason="probe succeeded")

    version = probe_version(capability, adapter, found)
    if capability.min_version and version:
        check = check_version_constraint(version, capability.min_version)
        if not check["valid"]:
            logger.info("%s: %s", capability.name, check["message"])
            return Detection(
                present=False,
                path=found_path,
                version=version,
                outdated=True,
                reason=check["message"],
            )

    return Detection(present=True, path=found_path, version=version)
