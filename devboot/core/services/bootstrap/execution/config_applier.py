"""
L4 Execution — Configuration applier.

Idempotent edits of user-owned config files plus the declarative
gsettings routine. Every function checks current state first and is a
no-op when the desired state is already there; every mutation of an
existing file is preceded by exactly one backup.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command
from devboot.core.services.bootstrap.data.desktop_settings import GSetting
from devboot.core.services.bootstrap.execution.backup import backup_file

logger = logging.getLogger(__name__)

ApplyAction = Literal[
    "unchanged", "appended", "created", "merged", "replaced", "written",
    "absent", "planned",
]


class ApplyResult(BaseModel):
    """Outcome of one file edit."""

    path: str
    action: ApplyAction
    backup: str | None = None

    @property
    def changed(self) -> bool:
        return self.action in ("appended", "created", "merged", "replaced", "written")


class SettingsOutcome(BaseModel):
    """Outcome of ``apply_settings``: failures are collected, never raised."""

    applied: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def _write_text(path: Path, content: str, mode: int | None = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mode is not None:
        os.chmod(path, mode)


# ── Marker blocks (.zshrc, .bashrc) ─────────────────────────────


def ensure_block(
    path: Path,
    marker: str,
    lines: list[str],
    *,
    create: bool = False,
    dry_run: bool = False,
    now: datetime | None = None,
) -> ApplyResult:
    """Append ``lines`` to ``path`` unless ``marker`` already occurs in it.

    A file that does not exist is left alone unless ``create`` is set:
    rc files of shells the user does not have are not conjured up.
    """
    if not path.exists():
        if not create:
            return ApplyResult(path=str(path), action="absent")
        if dry_run:
            return ApplyResult(path=str(path), action="planned")
        _write_text(path, "\n".join(lines) + "\n")
        logger.info("Created %s", path)
        return ApplyResult(path=str(path), action="created")

    text = path.read_text(encoding="utf-8", errors="replace")
    if marker in text:
        logger.debug("%s already contains '%s'", path, marker)
        return ApplyResult(path=str(path), action="unchanged")

    if dry_run:
        return ApplyResult(path=str(path), action="planned")

    backup = backup_file(path, now=now)
    sep = "" if text.endswith("\n") or not text else "\n"
    with path.open("a", encoding="utf-8") as f:
        f.write(sep + "\n" + "\n".join(lines) + "\n")
    logger.info("Appended %d line(s) to %s", len(lines), path)
    return ApplyResult(path=str(path), action="appended", backup=str(backup) if backup else None)


# ── JSON settings (VS Code) ─────────────────────────────────────


def merge_json_settings(
    path: Path,
    settings: dict[str, Any],
    *,
    dry_run: bool = False,
    now: datetime | None = None,
) -> ApplyResult:
    """Merge ``settings`` into a JSON object file.

    Keys not in ``settings`` are preserved. A file that cannot be parsed
    as a JSON object (VS Code allows comments) is backed up and replaced
    by a document holding only ``settings``.
    """
    if not path.exists():
        if dry_run:
            return ApplyResult(path=str(path), action="planned")
        _write_text(path, json.dumps(settings, indent=4) + "\n")
        logger.info("Created %s", path)
        return ApplyResult(path=str(path), action="created")

    raw = path.read_text(encoding="utf-8", errors="replace")
    try:
        current = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError:
        current = None
    if not isinstance(current, dict):
        if dry_run:
            return ApplyResult(path=str(path), action="planned")
        logger.warning("%s is not a plain JSON object, replacing it (backup kept)", path)
        backup = backup_file(path, now=now)
        _write_text(path, json.dumps(settings, indent=4) + "\n")
        return ApplyResult(path=str(path), action="replaced", backup=str(backup) if backup else None)

    if all(current.get(k) == v for k, v in settings.items()):
        return ApplyResult(path=str(path), action="unchanged")

    if dry_run:
        return ApplyResult(path=str(path), action="planned")

    backup = backup_file(path, now=now)
    merged = {**current, **settings}
    _write_text(path, json.dumps(merged, indent=4) + "\n")
    logger.info("Merged %d setting(s) into %s", len(settings), path)
    return ApplyResult(path=str(path), action="merged", backup=str(backup) if backup else None)


# ── Whole files ─────────────────────────────────────────────────


def write_if_absent(
    path: Path,
    content: str,
    *,
    force: bool = False,
    mode: int | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
) -> ApplyResult:
    """Create ``path`` with ``content`` unless it exists.

    With ``force`` an existing file with different content is backed up
    and overwritten.
    """
    if path.exists():
        if not force:
            return ApplyResult(path=str(path), action="unchanged")
        if path.read_text(encoding="utf-8", errors="replace") == content:
            return ApplyResult(path=str(path), action="unchanged")
        if dry_run:
            return ApplyResult(path=str(path), action="planned")
        backup = backup_file(path, now=now)
        _write_text(path, content, mode)
        logger.info("Rewrote %s", path)
        return ApplyResult(path=str(path), action="written", backup=str(backup) if backup else None)

    if dry_run:
        return ApplyResult(path=str(path), action="planned")
    _write_text(path, content, mode)
    logger.info("Created %s", path)
    return ApplyResult(path=str(path), action="created")


# ── gsettings ───────────────────────────────────────────────────


def apply_settings(adapter: Adapter, settings: list[GSetting]) -> SettingsOutcome:
    """Apply ``(schema, key, value)`` tuples with ``gsettings set``.

    Each key is read first and only written when it differs. Failures
    (missing schema, extension not installed) are collected.
    """
    outcome = SettingsOutcome()
    if not adapter.has("gsettings"):
        outcome.failed.extend(f"{s}.{k}: gsettings not available" for s, k, _ in settings)
        return outcome

    for schema, key, value in settings:
        label = f"{schema}.{key}"
        current = adapter.probe(Command(argv=["gsettings", "get", schema, key], timeout=10))
        if current.ok and current.stdout.strip() == value:
            outcome.unchanged.append(label)
            continue
        receipt = adapter.run(Command(argv=["gsettings", "set", schema, key, value], timeout=10))
        if receipt.failed:
            outcome.failed.append(f"{label}: {receipt.stderr.strip() or receipt.error}")
        else:
            outcome.applied.append(label)

    if outcome.failed:
        logger.warning("%d desktop setting(s) could not be applied", len(outcome.failed))
    return outcome
