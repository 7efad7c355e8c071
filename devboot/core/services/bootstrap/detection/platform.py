"""
L3 Detection — Platform detection.

Produces the single immutable Platform for a run from OS markers and
the CPU architecture string. Every input is injectable so the function
is a pure mapping from (environment, files, machine) to Platform.
Fails closed: anything unrecognised is ``unsupported``.
"""

from __future__ import annotations

import logging
import os
import platform as _platform
import shutil
from collections.abc import Callable, Mapping
from pathlib import Path

from devboot.core.models.platform import Platform, PlatformFamily

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")
REDHAT_RELEASE = Path("/etc/redhat-release")
PROC_VERSION = Path("/proc/version")

# os-release ID (or ID_LIKE token) → family
_DEBIAN_IDS = frozenset({"ubuntu", "debian"})
_RHEL_IDS = frozenset({"centos", "rhel", "fedora", "rocky", "almalinux"})

# uname -m → release-asset architecture tag
_ARCH_MAP = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
}

_WINDOWS_OSTYPES = ("msys", "cygwin", "win32")


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines of an os-release file.

    Quotes around values are stripped; comments and blank lines ignored.
    """
    info: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        info[key.strip()] = value.strip().strip('"').strip("'")
    return info


def map_arch(machine: str) -> str | None:
    """Map a raw machine string to amd64 | arm64 | arm, or None."""
    return _ARCH_MAP.get(machine.strip().lower())


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def _linux_family(distro_ids: list[str]) -> PlatformFamily | None:
    for did in distro_ids:
        if did in _DEBIAN_IDS:
            return PlatformFamily.LINUX_DEBIAN
        if did in _RHEL_IDS:
            return PlatformFamily.LINUX_RHEL
    return None


def _rhel_pm(which: Callable[[str], str | None]) -> str:
    return "dnf" if which("dnf") else "yum"


def _windows_pm(which: Callable[[str], str | None], prefer_scoop: bool) -> str | None:
    order = ("scoop", "choco") if prefer_scoop else ("choco", "scoop")
    for pm in order:
        if which(pm):
            return pm
    # Neither installed yet: report the preferred one so the error names it
    return order[0]


def detect_platform(
    *,
    env: Mapping[str, str] | None = None,
    os_release: Path = OS_RELEASE,
    redhat_release: Path = REDHAT_RELEASE,
    proc_version: Path = PROC_VERSION,
    machine: str | None = None,
    system: str | None = None,
    which: Callable[[str], str | None] = shutil.which,
    prefer_scoop: bool = False,
) -> Platform:
    """Detect the host platform.

    Resolution order:
        1. ``OSTYPE`` darwin* or system ``Darwin`` → macos
        2. ``OSTYPE`` msys/cygwin/win32, ``WINDIR`` set, or system
           ``Windows`` → windows
        3. os-release ``ID``, then ``ID_LIKE`` tokens → debian / rhel
        4. redhat-release mentioning CentOS or Red Hat → rhel
        5. anything else → unsupported, distro id kept for messages

    Args:
        env: Environment mapping (default ``os.environ``).
        os_release: Path to os-release.
        redhat_release: Path to redhat-release.
        proc_version: Path used for WSL detection.
        machine: Raw machine string (default ``platform.machine()``).
        system: System name (default ``platform.system()``).
        which: PATH lookup used to pick dnf/yum and choco/scoop.
        prefer_scoop: Pick scoop over choco on Windows.

    Returns:
        A frozen Platform.
    """
    environ = os.environ if env is None else env
    raw_machine = machine if machine is not None else _platform.machine()
    sysname = system if system is not None else _platform.system()
    arch = map_arch(raw_machine)
    ostype = environ.get("OSTYPE", "").lower()

    def build(family: PlatformFamily, **kw) -> Platform:
        if arch is None and family != PlatformFamily.UNSUPPORTED:
            logger.warning(
                "Unsupported architecture '%s': binary downloads will be skipped",
                raw_machine,
            )
        result = Platform(family=family, machine=raw_machine, arch=arch, **kw)
        logger.debug("Detected platform: %s", result.describe())
        return result

    # ── macOS ──
    if ostype.startswith("darwin") or sysname == "Darwin":
        return build(
            PlatformFamily.MACOS,
            distro="macos",
            version=_platform.mac_ver()[0] if sysname == "Darwin" else "",
            package_manager="brew",
        )

    # ── Windows ──
    if ostype.startswith(_WINDOWS_OSTYPES) or environ.get("WINDIR") or sysname == "Windows":
        return build(
            PlatformFamily.WINDOWS,
            distro="windows",
            package_manager=_windows_pm(which, prefer_scoop),
        )

    wsl = "microsoft" in (_read(proc_version) or "").lower()

    # ── os-release ──
    text = _read(os_release)
    if text is not None:
        info = parse_os_release(text)
        distro_id = info.get("ID", "").lower()
        version = info.get("VERSION_ID", "")

        family = _linux_family([distro_id])
        if family is None:
            family = _linux_family(info.get("ID_LIKE", "").lower().split())

        if family == PlatformFamily.LINUX_DEBIAN:
            return build(family, distro=distro_id, version=version,
                         package_manager="apt", wsl=wsl)
        if family == PlatformFamily.LINUX_RHEL:
            return build(family, distro=distro_id, version=version,
                         package_manager=_rhel_pm(which), wsl=wsl)

        logger.warning("Unsupported distribution: %s", distro_id or "unknown")
        return build(PlatformFamily.UNSUPPORTED, distro=distro_id, version=version, wsl=wsl)

    # ── redhat-release only (old CentOS) ──
    rh = _read(redhat_release)
    if rh is not None and ("centos" in rh.lower() or "red hat" in rh.lower()):
        distro_id = "centos" if "centos" in rh.lower() else "rhel"
        return build(PlatformFamily.LINUX_RHEL, distro=distro_id,
                     package_manager=_rhel_pm(which), wsl=wsl)

    logger.warning("Could not identify the operating system (%s)", sysname or "unknown")
    return build(PlatformFamily.UNSUPPORTED, distro=(sysname or "unknown").lower(), wsl=wsl)
