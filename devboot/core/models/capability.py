"""
Capability, Strategy and InstallResult models.

A Capability is a tool the bootstrap wants present. Its ``strategies``
map is the install table: platform key → ordered list of Strategy
attempts, primary first, fallbacks after. InstallResult is what the
installer hands back for logging and exit status; it is never stored.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(StrEnum):
    """Why a capability (or one of its strategies) failed."""

    DETECTION_AMBIGUOUS = "detection-ambiguous"
    INSTALL_FAILED = "install-failed"
    NETWORK_FAILURE = "network-failure"
    PRIVILEGE_DENIED = "privilege-denied"
    UNSUPPORTED_PLATFORM = "unsupported-platform"
    VERIFICATION_MISMATCH = "verification-mismatch"


class InstallStatus(StrEnum):
    ALREADY_PRESENT = "already-present"
    INSTALLED = "installed"
    INSTALLED_WITH_FALLBACK = "installed-with-fallback"
    FAILED = "failed"
    SKIPPED = "skipped"
    PLANNED = "planned"


StrategyKind = Literal[
    "package", "group", "repo", "script", "binary", "pip", "cask", "flatpak",
]


class BinaryDownload(BaseModel):
    """A release artifact fetched over HTTP and placed on PATH.

    ``url`` and ``archive_member`` may contain ``{tag}`` (the release tag
    as published, e.g. ``v2.40.1``), ``{version}`` (the tag without its
    leading ``v``), ``{arch}`` and ``{os}`` placeholders. ``version`` is either a
    literal tag or resolved from ``github_repo`` (latest release) or
    ``version_url``, with ``fallback_version`` when unreachable.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    dest: str = "/usr/local/bin/{name}"
    version: str = ""
    github_repo: str = ""
    version_url: str = ""            # plain-text endpoint (kubectl stable.txt)
    fallback_version: str = ""
    archive_member: str = ""         # file to pull out of a .tar.gz
    extract_to: str = ""             # unpack a .zip into this directory
    executable: bool = True
    arches: list[str] = Field(default_factory=lambda: ["amd64", "arm64", "arm"])


class Strategy(BaseModel):
    """One way of installing a capability on one platform."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: StrategyKind = "package"
    prepare: list[list[str]] = Field(default_factory=list)   # best-effort, failures only logged
    steps: list[list[str]] = Field(default_factory=list)
    needs_sudo: bool = False
    download: BinaryDownload | None = None
    error_kind: ErrorKind = ErrorKind.INSTALL_FAILED
    env: dict[str, str] = Field(default_factory=dict)


class Capability(BaseModel):
    """A named tool or feature the bootstrap aims to provision."""

    model_config = ConfigDict(frozen=True)

    name: str
    label: str = ""
    group: str = "core"
    cli: str | None = None              # detection: present when on PATH
    alt_clis: list[str] = Field(default_factory=list)
    probe: dict[str, list[str]] = Field(default_factory=dict)  # platform key → read-only command
    probe_match: str = ""               # probe stdout must contain this
    platforms: list[str] = Field(default_factory=list)         # empty: every platform
    min_version: str | None = None
    version_command: list[str] | None = None
    version_pattern: str = r"(\d+\.\d+(?:\.\d+)?)"
    verify: list[str] | None = None
    strategies: dict[str, list[Strategy]] = Field(default_factory=dict)
    configure: list[str] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)
    required: bool = False
    post_env_path: list[str] = Field(default_factory=list)
    hint: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.name


class Attempt(BaseModel):
    """One strategy attempt with its captured failure, if any."""

    strategy: str
    ok: bool
    command: str = ""
    exit_code: int | None = None
    stderr: str = ""
    error_kind: ErrorKind | None = None
    message: str = ""


class InstallResult(BaseModel):
    """Outcome of provisioning one Capability on one Platform."""

    capability: str
    status: InstallStatus
    required: bool = False
    strategy: str | None = None
    version: str | None = None
    error_kind: ErrorKind | None = None
    reason: str = ""
    attempts: list[Attempt] = Field(default_factory=list)
    configured: list[str] = Field(default_factory=list)
    config_errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != InstallStatus.FAILED

    @property
    def changed(self) -> bool:
        return self.status in (
            InstallStatus.INSTALLED,
            InstallStatus.INSTALLED_WITH_FALLBACK,
        )

    @classmethod
    def failed(
        cls,
        capability: Capability,
        kind: ErrorKind,
        reason: str,
        attempts: list[Attempt] | None = None,
    ) -> InstallResult:
        return cls(
            capability=capability.name,
            status=InstallStatus.FAILED,
            required=capability.required,
            error_kind=kind,
            reason=reason,
            attempts=attempts or [],
        )
