"""
L4 Execution — Single-instance run lock.

Package managers hold their own system locks and break when two
installers race, so only one devboot run may mutate the host at a
time. The lock is a directory (``mkdir`` is atomic) holding
``owner.json`` with the pid and acquisition time. A lock whose owner
is gone, whose owner file is unreadable, or that is older than the TTL
is stale and reclaimed.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from devboot.core.services.bootstrap.domain.errors import RunLockError

logger = logging.getLogger(__name__)

LOCK_TTL_SECONDS = 6 * 60 * 60


def default_lock_dir() -> Path:
    return Path.home() / ".cache" / "devboot" / "run.lock"


def _iso_now() -> str:
    return datetime.now(UTC).isoformat()


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True  # exists, owned by someone else
    except OSError:
        return False
    return True


class RunLock:
    """Directory-based lock, usable as a context manager.

    Usage::

        with RunLock():
            run_bootstrap(...)
    """

    def __init__(self, lock_dir: Path | None = None, ttl_seconds: int = LOCK_TTL_SECONDS):
        self.lock_dir = lock_dir or default_lock_dir()
        self.ttl_seconds = ttl_seconds
        self._held = False

    @property
    def owner_file(self) -> Path:
        return self.lock_dir / "owner.json"

    def owner(self) -> dict | None:
        """Current owner payload, or None when unreadable or absent."""
        try:
            payload = json.loads(self.owner_file.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return payload if isinstance(payload, dict) else None

    def is_stale(self) -> bool:
        payload = self.owner()
        if payload is None:
            return True
        pid = payload.get("pid")
        if isinstance(pid, int) and not _pid_alive(pid):
            return True
        acquired_raw = payload.get("acquired_at")
        if not isinstance(acquired_raw, str) or not acquired_raw.strip():
            return True
        try:
            acquired = datetime.fromisoformat(acquired_raw.replace("Z", "+00:00"))
        except ValueError:
            return True
        if acquired.tzinfo is None:
            acquired = acquired.replace(tzinfo=UTC)
        return (datetime.now(UTC) - acquired).total_seconds() > self.ttl_seconds

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            RunLockError: If another live run holds it.
        """
        self.lock_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.lock_dir.mkdir(parents=False, exist_ok=False)
        except FileExistsError:
            if not self.is_stale():
                owner = self.owner() or {}
                raise RunLockError(
                    f"Another devboot run is in progress (pid {owner.get('pid', '?')}, "
                    f"lock {self.lock_dir})"
                ) from None
            logger.warning("Reclaiming stale run lock at %s", self.lock_dir)
            try:
                self.owner_file.unlink(missing_ok=True)
                os.rmdir(self.lock_dir)
                self.lock_dir.mkdir(parents=False, exist_ok=False)
            except OSError as e:
                raise RunLockError(f"Could not reclaim run lock {self.lock_dir}: {e}") from e

        self.owner_file.write_text(
            json.dumps({"pid": os.getpid(), "acquired_at": _iso_now()}) + "\n",
            encoding="utf-8",
        )
        self._held = True
        logger.debug("Acquired run lock %s", self.lock_dir)

    def release(self) -> None:
        if not self._held:
            return
        try:
            self.owner_file.unlink(missing_ok=True)
            os.rmdir(self.lock_dir)
        except OSError as e:
            logger.warning("Could not remove run lock %s: %s", self.lock_dir, e)
        self._held = False

    def __enter__(self) -> RunLock:
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()
