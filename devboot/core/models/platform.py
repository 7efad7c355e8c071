"""
Platform model — the resolved host identity for one run.

Constructed once at startup by the platform detector and passed
explicitly into every installer call. Frozen: nothing mutates it.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class PlatformFamily(StrEnum):
    """Closed set of platforms the catalog knows how to provision."""

    LINUX_DEBIAN = "linux-debian"
    LINUX_RHEL = "linux-rhel"
    MACOS = "macos"
    WINDOWS = "windows"
    UNSUPPORTED = "unsupported"


class Platform(BaseModel):
    """OS family, package manager and architecture of the current host."""

    model_config = ConfigDict(frozen=True)

    family: PlatformFamily
    distro: str = ""                   # os-release ID, "macos", "windows"
    version: str = ""
    machine: str = ""                  # raw uname -m
    arch: str | None = None            # download tag: amd64 | arm64 | arm
    package_manager: str | None = None # apt | dnf | yum | brew | choco | scoop
    wsl: bool = False

    @property
    def supported(self) -> bool:
        return self.family != PlatformFamily.UNSUPPORTED

    @property
    def is_linux(self) -> bool:
        return self.family in (PlatformFamily.LINUX_DEBIAN, PlatformFamily.LINUX_RHEL)

    @property
    def os_name(self) -> str:
        """Lowercase OS name used in release asset names."""
        if self.family == PlatformFamily.MACOS:
            return "darwin"
        if self.family == PlatformFamily.WINDOWS:
            return "windows"
        return "linux"

    def describe(self) -> str:
        """One-line description for logs, e.g. ``linux-rhel (centos 9, x86_64/amd64, dnf)``."""
        details = [d for d in (self.distro, self.version) if d]
        parts = [" ".join(details)] if details else []
        if self.machine:
            parts.append(f"{self.machine}/{self.arch or '?'}")
        if self.package_manager:
            parts.append(self.package_manager)
        suffix = f" ({', '.join(parts)})" if parts else ""
        return f"{self.family.value}{suffix}"

    def label(self) -> str:
        """Name used in user-facing errors: the distro for unsupported hosts."""
        if self.family == PlatformFamily.UNSUPPORTED:
            return self.distro or "unknown"
        return self.family.value
