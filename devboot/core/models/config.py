"""
Bootstrap configuration model — loaded from devboot.yml.

Every field has a default, so an absent file means "the stock run".
CLI flags are layered on top with ``with_overrides()``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CapabilityOverride(BaseModel):
    """Per-capability tweaks declared under ``capabilities:``."""

    required: bool | None = None
    skip: bool = False


class BootstrapConfig(BaseModel):
    """Effective options for one bootstrap run."""

    skip_ansible: bool = False
    skip_zsh: bool = False
    skip_fonts: bool = False
    install_desktop: bool = False
    install_dev_tools: bool = False
    ensure_taskbar: bool = False
    ansible_script: str = "./setup.yml"
    prefer_scoop: bool = False

    download_attempts: int = Field(default=3, ge=1, le=10)
    command_timeout: int = Field(default=900, ge=10)
    max_strategies: int = Field(default=3, ge=1, le=5)
    overwrite_starship_config: bool = False

    capabilities: dict[str, CapabilityOverride] = Field(default_factory=dict)
    extra_packages: list[str] = Field(default_factory=list)

    def with_overrides(self, **flags: Any) -> BootstrapConfig:
        """Return a copy where every flag that is not None wins."""
        update = {k: v for k, v in flags.items() if v is not None}
        return self.model_copy(update=update)

    def is_skipped(self, name: str) -> bool:
        override = self.capabilities.get(name)
        return bool(override and override.skip)

    def required_override(self, name: str) -> bool | None:
        override = self.capabilities.get(name)
        return override.required if override else None
