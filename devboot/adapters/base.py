"""
Adapter base — the protocol contract between the installer and the host.

The installer never calls ``subprocess`` or ``shutil.which`` itself; it
goes through an adapter so that dry runs and tests can substitute the
mock without touching the system.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod

from devboot.core.models.action import Command, Receipt


class Adapter(ABC):
    """Abstract base class for command adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.

    Two entry points are kept apart on purpose:
        - ``run``   may mutate the system (installs, writes, service changes)
        - ``probe`` is read-only (``--version``, ``gsettings get``, ...)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def which(self, cli: str) -> str | None:
        """Resolve ``cli`` on PATH, or None when absent."""

    @abstractmethod
    def run(self, command: Command) -> Receipt:
        """Execute a mutating command and return a receipt.

        MUST never raise exceptions.
        """

    @abstractmethod
    def probe(self, command: Command) -> Receipt:
        """Execute a read-only command and return a receipt.

        MUST never raise exceptions.
        """

    @property
    def dry_run(self) -> bool:
        """Whether ``run`` only pretends to execute."""
        return False

    def has(self, cli: str) -> bool:
        return self.which(cli) is not None

    def prepend_path(self, dirs: list[str]) -> list[str]:
        """Put ``dirs`` in front of PATH for the rest of this run.

        Returns the entries that were actually added.
        """
        current = os.environ.get("PATH", "").split(os.pathsep)
        added = [d for d in dirs if d and d not in current]
        if added:
            os.environ["PATH"] = os.pathsep.join(added + current)
        return added

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
