"""
L5 Orchestration — Verification report.

Read-only pass over the catalog: which tools are present, at which
version. Used by ``devboot verify`` and at the end of a bootstrap run.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from devboot.adapters.base import Adapter
from devboot.core.models.capability import Capability
from devboot.core.models.platform import Platform
from devboot.core.services.bootstrap.data.capabilities import CAPABILITY_CATALOG
from devboot.core.services.bootstrap.detection.tool_presence import detect_capability
from devboot.core.services.bootstrap.resolver.strategy_selection import applies_to

logger = logging.getLogger(__name__)


class ToolStatus(BaseModel):
    """Presence of one capability."""

    name: str
    label: str
    group: str
    required: bool = False
    applicable: bool = True
    present: bool = False
    version: str | None = None
    path: str | None = None
    note: str = ""


def verify_installations(
    platform: Platform,
    adapter: Adapter,
    capabilities: list[Capability] | None = None,
) -> list[ToolStatus]:
    """Probe every capability without installing anything."""
    statuses = []
    for cap in capabilities if capabilities is not None else CAPABILITY_CATALOG:
        status = ToolStatus(
            name=cap.name,
            label=cap.display_name,
            group=cap.group,
            required=cap.required,
        )
        if not applies_to(cap, platform):
            status.applicable = False
            status.note = f"not used on {platform.family.value}"
            statuses.append(status)
            continue

        detection = detect_capability(cap, platform, adapter)
        status.present = detection.present
        status.version = detection.version
        status.path = detection.path
        if not detection.present:
            status.note = detection.reason
        statuses.append(status)

    missing = [s.name for s in statuses if s.applicable and not s.present]
    if missing:
        logger.info("Not installed: %s", ", ".join(missing))
    return statuses
