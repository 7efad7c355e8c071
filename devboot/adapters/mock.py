"""
Mock adapter — universal test double for host commands.

Used for dry runs and in tests to simulate the host without touching
it. Tools on PATH are a plain set; a successful install command can be
configured to "provide" a tool so that the next detection finds it.
"""

from __future__ import annotations

import shlex

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command, Receipt


class MockAdapter(Adapter):
    """Universal mock adapter.

    By default every ``run`` succeeds and every ``probe`` of a present
    tool succeeds. Responses are matched by substring against the
    command's display string, first registration wins.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        present: set[str] | None = None,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self.present: set[str] = set(present or ())
        self._default_output = default_output
        self._responses: list[tuple[str, Receipt]] = []
        self._probe_responses: list[tuple[str, Receipt]] = []
        self._provides: list[tuple[str, str]] = []
        self._versions: dict[str, str] = {}
        self._call_log: list[Command] = []
        self._probe_log: list[Command] = []
        self.path_entries: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[Command]:
        """Every mutating command this mock has received."""
        return self._call_log

    @property
    def probe_log(self) -> list[Command]:
        """Every read-only command this mock has received."""
        return self._probe_log

    @property
    def call_count(self) -> int:
        """Number of mutating commands executed."""
        return len(self._call_log)

    def commands(self) -> list[str]:
        """Display strings of all mutating commands, in order."""
        return [c.display() for c in self._call_log]

    # ── Configuration ──

    def set_response(self, match: str, receipt: Receipt) -> None:
        """Return ``receipt`` for any run command containing ``match``."""
        self._responses.append((match, receipt))

    def set_failure(
        self,
        match: str,
        error: str = "Mock failure",
        *,
        exit_code: int = 1,
        stderr: str = "",
    ) -> None:
        """Configure run commands containing ``match`` to fail."""
        self._responses.append((
            match,
            Receipt.failure(
                adapter=self._name,
                command=match,
                error=error,
                exit_code=exit_code,
                stderr=stderr,
            ),
        ))

    def set_probe_output(self, match: str, stdout: str, *, ok: bool = True) -> None:
        """Configure read-only commands containing ``match``."""
        if ok:
            receipt = Receipt.success(adapter=self._name, command=match, stdout=stdout)
        else:
            receipt = Receipt.failure(
                adapter=self._name, command=match, error="probe failed", stderr=stdout,
            )
        self._probe_responses.append((match, receipt))

    def provide(self, match: str, cli: str) -> None:
        """After a successful run containing ``match``, ``cli`` is on PATH."""
        self._provides.append((match, cli))

    def set_version(self, cli: str, output: str) -> None:
        """Version output returned when probing ``cli``."""
        self._versions[cli] = output

    # ── Adapter protocol ──

    def which(self, cli: str) -> str | None:
        return f"/usr/bin/{cli}" if cli in self.present else None

    def prepend_path(self, dirs: list[str]) -> list[str]:
        added = [d for d in dirs if d and d not in self.path_entries]
        self.path_entries[:0] = added
        return added

    def run(self, command: Command) -> Receipt:
        self._call_log.append(command)
        display = command.display()

        for match, receipt in self._responses:
            if match in display:
                result = receipt.model_copy(update={"command": display})
                break
        else:
            result = Receipt.success(
                adapter=self._name,
                command=display,
                stdout=self._default_output,
                metadata={"mock": True},
            )

        if result.ok:
            for match, cli in self._provides:
                if match in display:
                    self.present.add(cli)
        return result

    def probe(self, command: Command) -> Receipt:
        self._probe_log.append(command)
        display = command.display()

        for match, receipt in self._probe_responses:
            if match in display:
                return receipt.model_copy(update={"command": display})

        cli = command.argv[0] if command.argv else ""
        if cli not in self.present:
            return Receipt.failure(
                adapter=self._name,
                command=display,
                error=f"Command not found: {cli}",
                exit_code=127,
            )
        output = self._versions.get(cli, f"{cli} version 1.0.0")
        return Receipt.success(adapter=self._name, command=display, stdout=output)

    def reset(self) -> None:
        """Clear call logs and custom responses."""
        self._call_log.clear()
        self._probe_log.clear()
        self._responses.clear()
        self._probe_responses.clear()
        self._provides.clear()


class DryRunAdapter(Adapter):
    """Reads the real host, records mutations instead of running them.

    ``which`` and ``probe`` are delegated to a real adapter so the plan
    reflects what is actually installed; ``run`` returns a skip receipt.
    """

    def __init__(self, delegate: Adapter):
        self._delegate = delegate
        self._call_log: list[Command] = []

    @property
    def name(self) -> str:
        return "dry-run"

    @property
    def dry_run(self) -> bool:
        return True

    @property
    def call_log(self) -> list[Command]:
        return self._call_log

    def which(self, cli: str) -> str | None:
        return self._delegate.which(cli)

    def probe(self, command: Command) -> Receipt:
        return self._delegate.probe(command)

    def prepend_path(self, dirs: list[str]) -> list[str]:
        return []

    def run(self, command: Command) -> Receipt:
        self._call_log.append(command)
        display = command.display()
        return Receipt.skip(
            adapter=self.name,
            command=display,
            reason=f"[dry-run] would run: {display}",
            metadata={"dry_run": True, "argv": shlex.join(command.argv)},
        )
