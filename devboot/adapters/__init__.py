"""Adapters — bindings between the installer and the host.

Public re-exports for convenient access.
"""

from devboot.adapters.base import Adapter
from devboot.adapters.mock import DryRunAdapter, MockAdapter
from devboot.adapters.shell.command import ShellCommandAdapter


def build_adapter(*, dry_run: bool = False, sudo_password: str = "") -> Adapter:
    """Real shell adapter, wrapped for dry runs when requested."""
    shell = ShellCommandAdapter(sudo_password=sudo_password)
    return DryRunAdapter(shell) if dry_run else shell


__all__ = [
    "Adapter",
    "DryRunAdapter",
    "MockAdapter",
    "ShellCommandAdapter",
    "build_adapter",
]
