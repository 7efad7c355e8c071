"""
Command and Receipt models — the execution contract.

Commands represent requested external invocations. Receipts represent
results. This is the I/O contract between the installer and adapters:
the installer sends Commands, adapters return Receipts. Never exceptions.
"""

from __future__ import annotations

import shlex
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Command(BaseModel):
    """An external command to run.

    ``argv`` is never passed through a shell. Pipelines such as
    ``curl ... | sh`` are spelled as ``["sh", "-c", "..."]`` explicitly.
    """

    argv: list[str]
    needs_sudo: bool = False
    timeout: int = 900
    input: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None

    def display(self) -> str:
        """Shell-quoted command line for logs and dry-run output."""
        prefix = "sudo " if self.needs_sudo else ""
        return prefix + shlex.join(self.argv)


class Receipt(BaseModel):
    """Result of running a Command.

    Receipts capture the full outcome. Adapters NEVER raise — failures
    are captured here with the exit code and the tail of stderr.
    """

    adapter: str
    command: str
    status: Literal["ok", "skipped", "failed"] = "ok"
    exit_code: int | None = 0

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    stdout: str = ""
    stderr: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the command succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the command failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        command: str,
        stdout: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            command=command,
            status="ok",
            stdout=stdout,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        command: str,
        error: str,
        exit_code: int | None = 1,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            command=command,
            status="failed",
            exit_code=exit_code,
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        command: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(
            adapter=adapter,
            command=command,
            status="skipped",
            exit_code=None,
            stdout=reason,
            **kwargs,
        )
