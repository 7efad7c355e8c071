"""
Tests for platform detection — OS markers, architecture, package manager.
"""

from pathlib import Path

import pytest

from devboot.core.models.platform import PlatformFamily
from devboot.core.services.bootstrap.detection.platform import (
    detect_platform,
    map_arch,
    parse_os_release,
)


def _which(*present: str):
    return lambda cli: f"/usr/bin/{cli}" if cli in present else None


def _detect(tmp_path: Path, os_release: str | None = None, *, redhat: str | None = None,
            proc: str = "", machine: str = "x86_64", system: str = "Linux",
            env: dict | None = None, which=None, prefer_scoop: bool = False):
    release_file = tmp_path / "os-release"
    if os_release is not None:
        release_file.write_text(os_release)
    redhat_file = tmp_path / "redhat-release"
    if redhat is not None:
        redhat_file.write_text(redhat)
    proc_file = tmp_path / "version"
    proc_file.write_text(proc)
    return detect_platform(
        env=env or {},
        os_release=release_file,
        redhat_release=redhat_file,
        proc_version=proc_file,
        machine=machine,
        system=system,
        which=which or _which(),
        prefer_scoop=prefer_scoop,
    )


class TestOsRelease:
    def test_parses_quoted_values(self):
        info = parse_os_release('NAME="Ubuntu"\nID=ubuntu\nVERSION_ID="22.04"\n# comment\n\n')
        assert info == {"NAME": "Ubuntu", "ID": "ubuntu", "VERSION_ID": "22.04"}

    def test_ignores_garbage_lines(self):
        assert parse_os_release("no equals sign here\nID=fedora") == {"ID": "fedora"}


class TestArch:
    @pytest.mark.parametrize("machine,expected", [
        ("x86_64", "amd64"),
        ("aarch64", "arm64"),
        ("arm64", "arm64"),
        ("armv7l", "arm"),
        ("riscv64", None),
        ("", None),
    ])
    def test_map_arch(self, machine, expected):
        assert map_arch(machine) == expected


class TestLinux:
    def test_ubuntu(self, tmp_path: Path):
        p = _detect(tmp_path, 'ID=ubuntu\nVERSION_ID="22.04"\n')
        assert p.family == PlatformFamily.LINUX_DEBIAN
        assert p.distro == "ubuntu"
        assert p.version == "22.04"
        assert p.package_manager == "apt"
        assert p.arch == "amd64"

    def test_id_like_debian(self, tmp_path: Path):
        p = _detect(tmp_path, "ID=pop\nID_LIKE=\"ubuntu debian\"\n")
        assert p.family == PlatformFamily.LINUX_DEBIAN

    def test_centos_with_dnf(self, tmp_path: Path):
        p = _detect(tmp_path, 'ID="centos"\nVERSION_ID="9"\n', which=_which("dnf"))
        assert p.family == PlatformFamily.LINUX_RHEL
        assert p.package_manager == "dnf"

    def test_centos_without_dnf_uses_yum(self, tmp_path: Path):
        p = _detect(tmp_path, 'ID="centos"\nVERSION_ID="7"\n')
        assert p.package_manager == "yum"

    def test_id_like_rhel(self, tmp_path: Path):
        p = _detect(tmp_path, 'ID="ol"\nID_LIKE="fedora"\n', which=_which("dnf"))
        assert p.family == PlatformFamily.LINUX_RHEL

    def test_redhat_release_fallback(self, tmp_path: Path):
        p = _detect(tmp_path, None, redhat="CentOS Linux release 7.9.2009 (Core)")
        assert p.family == PlatformFamily.LINUX_RHEL
        assert p.distro == "centos"

    def test_wsl_flag(self, tmp_path: Path):
        p = _detect(tmp_path, "ID=ubuntu\n", proc="Linux version 5.15.0-microsoft-standard-WSL2")
        assert p.wsl is True

    def test_arm64(self, tmp_path: Path):
        p = _detect(tmp_path, "ID=debian\n", machine="aarch64")
        assert p.arch == "arm64"

    def test_unknown_arch_keeps_family(self, tmp_path: Path):
        p = _detect(tmp_path, "ID=debian\n", machine="riscv64")
        assert p.family == PlatformFamily.LINUX_DEBIAN
        assert p.arch is None
        assert p.machine == "riscv64"


class TestUnsupported:
    def test_arch_linux(self, tmp_path: Path):
        p = _detect(tmp_path, "ID=arch\n")
        assert p.family == PlatformFamily.UNSUPPORTED
        assert not p.supported
        assert p.label() == "arch"
        assert p.package_manager is None

    def test_nothing_recognisable(self, tmp_path: Path):
        p = _detect(tmp_path, None, system="FreeBSD")
        assert p.family == PlatformFamily.UNSUPPORTED
        assert p.label() == "freebsd"


class TestOtherOs:
    def test_macos_from_ostype(self, tmp_path: Path):
        p = _detect(tmp_path, None, env={"OSTYPE": "darwin23"})
        assert p.family == PlatformFamily.MACOS
        assert p.package_manager == "brew"
        assert p.os_name == "darwin"

    def test_windows_prefers_choco(self, tmp_path: Path):
        p = _detect(tmp_path, None, env={"OSTYPE": "msys"}, which=_which("choco", "scoop"))
        assert p.family == PlatformFamily.WINDOWS
        assert p.package_manager == "choco"

    def test_windows_prefer_scoop(self, tmp_path: Path):
        p = _detect(tmp_path, None, env={"WINDIR": "C:\\Windows"},
                    which=_which("choco", "scoop"), prefer_scoop=True)
        assert p.package_manager == "scoop"

    def test_windows_without_manager_names_preferred(self, tmp_path: Path):
        p = _detect(tmp_path, None, env={"OSTYPE": "cygwin"})
        assert p.package_manager == "choco"


class TestDescribe:
    def test_describe(self, debian):
        assert debian.describe() == "linux-debian (ubuntu 22.04, x86_64/amd64, apt)"

    def test_label_supported_is_family(self, rhel):
        assert rhel.label() == "linux-rhel"
