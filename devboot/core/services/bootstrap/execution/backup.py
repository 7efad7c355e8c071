"""
L4 Execution — Pre-mutation backup.

Creates timestamped backups (``PATH.bak.YYYYMMDD_HHMMSS``) before a
config file is changed. Exactly one backup per mutation; when the name
is already taken (two writes within the same second) a numeric suffix
is appended.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command

logger = logging.getLogger(__name__)

BACKUP_TIME_FORMAT = "%Y%m%d_%H%M%S"


def backup_path_for(path: Path, now: datetime | None = None) -> Path:
    """First free ``<path>.bak.<timestamp>[_N]`` name."""
    ts = (now or datetime.now()).strftime(BACKUP_TIME_FORMAT)
    candidate = path.with_name(f"{path.name}.bak.{ts}")
    n = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}.bak.{ts}_{n}")
        n += 1
    return candidate


def backup_file(path: Path, *, now: datetime | None = None) -> Path | None:
    """Copy a user-owned file aside before it is modified.

    Returns:
        The backup path, or None when ``path`` does not exist.

    Raises:
        OSError: If the copy fails. Callers must not mutate the file then.
    """
    if not path.exists():
        logger.debug("backup: path does not exist, skipping: %s", path)
        return None
    dest = backup_path_for(path, now)
    shutil.copy2(path, dest)
    logger.info("Backed up %s → %s", path, dest)
    return dest


def backup_system_file(
    path: str,
    adapter: Adapter,
    *,
    needs_sudo: bool = True,
    now: datetime | None = None,
) -> str | None:
    """Back up a root-owned file through the adapter (``cp -p``).

    Failures are logged; the caller decides whether to proceed.

    Returns:
        The backup path, or None if nothing was copied.
    """
    if not Path(path).exists():
        return None
    dest = str(backup_path_for(Path(path), now))
    receipt = adapter.run(Command(argv=["cp", "-p", path, dest], needs_sudo=needs_sudo, timeout=15))
    if receipt.ok:
        logger.info("Backed up %s → %s", path, dest)
        return dest
    if receipt.status == "skipped":
        return None
    logger.warning("Backup failed for %s: %s", path, receipt.error or "unknown")
    return None
