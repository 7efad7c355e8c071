"""
Domain models — Pydantic types for devboot.

All models are re-exported here for convenient access:

    from devboot.core.models import Capability, Platform, InstallResult
"""

from devboot.core.models.action import Command, Receipt
from devboot.core.models.capability import (
    Attempt,
    BinaryDownload,
    Capability,
    ErrorKind,
    InstallResult,
    InstallStatus,
    Strategy,
)
from devboot.core.models.config import BootstrapConfig, CapabilityOverride
from devboot.core.models.platform import Platform, PlatformFamily

__all__ = [
    # capability.py
    "Attempt",
    "BinaryDownload",
    # config.py
    "BootstrapConfig",
    "Capability",
    "CapabilityOverride",
    # action.py
    "Command",
    "ErrorKind",
    "InstallResult",
    "InstallStatus",
    # platform.py
    "Platform",
    "PlatformFamily",
    "Receipt",
    "Strategy",
]
