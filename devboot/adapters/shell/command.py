"""
Shell command adapter — run host commands for real.

The SINGLE PLACE where ``subprocess.run`` is called. Sudo handling,
timeouts, output capture and logging are centralised here.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command, Receipt

logger = logging.getLogger(__name__)

_TAIL = 2000


def _is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


class ShellCommandAdapter(Adapter):
    """Execute commands on the host and capture their output.

    Security invariants for ``sudo_password``:
        - piped via stdin only (``sudo -S``)
        - ``-k`` invalidates cached credentials every time
        - never logged, never part of the command line

    Without a password, ``sudo`` is invoked plainly and may prompt on
    the controlling terminal, which is how the interactive bootstrap is
    normally run.
    """

    def __init__(self, sudo_password: str = ""):
        self._sudo_password = sudo_password

    @property
    def name(self) -> str:
        return "shell"

    def which(self, cli: str) -> str | None:
        return shutil.which(cli)

    def run(self, command: Command) -> Receipt:
        return self._execute(command)

    def probe(self, command: Command) -> Receipt:
        return self._execute(command, quiet=True)

    def _execute(self, command: Command, *, quiet: bool = False) -> Receipt:
        display = command.display()
        argv = list(command.argv)
        stdin_data = command.input

        # ── Sudo handling ──
        if command.needs_sudo and not _is_root():
            if os.name == "nt":
                pass  # elevation is the caller's problem on Windows
            elif not shutil.which("sudo"):
                return Receipt.failure(
                    adapter=self.name,
                    command=display,
                    error="This step requires root and sudo is not available.",
                    exit_code=None,
                    metadata={"needs_sudo": True},
                )
            elif self._sudo_password:
                argv = ["sudo", "-S", "-k"] + argv
                stdin_data = self._sudo_password + "\n" + (stdin_data or "")
            else:
                argv = ["sudo"] + argv

        # ── Environment ──
        env = None
        if command.env:
            env = os.environ.copy()
            for key, value in command.env.items():
                env[key] = os.path.expandvars(value)

        if quiet:
            logger.debug("Probing: %s", display)
        else:
            logger.info("Running: %s", display)

        # ── Execute ──
        start = time.monotonic()
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=command.timeout,
                input=stdin_data,
                env=env,
                cwd=command.cwd,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                command=display,
                error=f"Command timed out after {command.timeout}s",
                exit_code=None,
                metadata={"timeout": command.timeout},
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                command=display,
                error=f"Command not found: {argv[0]}",
                exit_code=127,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                command=display,
                error=f"Command execution error: {e}",
                exit_code=None,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = (result.stdout or "")[-_TAIL:]
        stderr = (result.stderr or "")[-_TAIL:]

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                command=display,
                stdout=stdout,
                stderr=stderr,
                duration_ms=elapsed_ms,
            )

        if not quiet:
            logger.debug("Command failed (exit %d): %s\n%s", result.returncode, display, stderr)
        return Receipt.failure(
            adapter=self.name,
            command=display,
            error=f"Command failed (exit {result.returncode})",
            exit_code=result.returncode,
            stdout=stdout,
            stderr=stderr,
            duration_ms=elapsed_ms,
        )
