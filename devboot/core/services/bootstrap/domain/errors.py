"""
L1 Domain — bootstrap exceptions.

Adapters never raise; these are raised by the orchestration layer when
a run cannot continue and caught once, in the CLI.
"""

from __future__ import annotations

from devboot.core.models.capability import ErrorKind, InstallResult
from devboot.core.models.platform import Platform


class BootstrapError(Exception):
    """Base class for errors that end a bootstrap run."""


class FatalCapabilityError(BootstrapError):
    """A required capability could not be provisioned."""

    def __init__(self, result: InstallResult, platform: Platform):
        self.result = result
        self.platform = platform
        kind = result.error_kind or ErrorKind.INSTALL_FAILED
        super().__init__(
            f"Required capability '{result.capability}' failed on "
            f"{platform.label()} ({kind.value}): {result.reason}"
        )


class RunLockError(BootstrapError):
    """Another devboot instance holds the run lock."""


class PackageManagerError(BootstrapError):
    """The package index could not be refreshed."""
