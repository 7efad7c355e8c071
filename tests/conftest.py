"""
Shared test fixtures and configuration.
"""

import logging
import urllib.error
from pathlib import Path

import pytest

from devboot.adapters.mock import MockAdapter
from devboot.core.models.platform import Platform, PlatformFamily
from devboot.core.services.bootstrap.execution.configurators import ConfigContext


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME and cwd at a temp dir so no test reads or writes real dotfiles."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("DEVBOOT_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture(autouse=True)
def offline(monkeypatch: pytest.MonkeyPatch) -> None:
    """Release-tag lookups fail fast instead of reaching the network."""

    def fetch(url: str, timeout: int = 15) -> str:
        raise urllib.error.URLError(f"offline: {url}")

    monkeypatch.setattr("devboot.core.services.bootstrap.execution.download._fetch_text", fetch)


@pytest.fixture
def debian() -> Platform:
    return Platform(
        family=PlatformFamily.LINUX_DEBIAN,
        distro="ubuntu",
        version="22.04",
        machine="x86_64",
        arch="amd64",
        package_manager="apt",
    )


@pytest.fixture
def rhel() -> Platform:
    return Platform(
        family=PlatformFamily.LINUX_RHEL,
        distro="centos",
        version="9",
        machine="x86_64",
        arch="amd64",
        package_manager="dnf",
    )


@pytest.fixture
def macos() -> Platform:
    return Platform(
        family=PlatformFamily.MACOS,
        distro="macos",
        version="14.4",
        machine="arm64",
        arch="arm64",
        package_manager="brew",
    )


@pytest.fixture
def arch_linux() -> Platform:
    return Platform(
        family=PlatformFamily.UNSUPPORTED,
        distro="arch",
        machine="x86_64",
        arch="amd64",
    )


@pytest.fixture
def mock() -> MockAdapter:
    return MockAdapter()


@pytest.fixture
def no_sleep():
    """Backoff sleep that records delays instead of waiting."""
    delays: list[float] = []
    return delays.append


@pytest.fixture
def context_for(isolated_home: Path):
    """Build a ConfigContext rooted in the temp home."""

    def build(platform: Platform, adapter: MockAdapter, **kwargs) -> ConfigContext:
        kwargs.setdefault("home", isolated_home)
        kwargs.setdefault("env", {})
        kwargs.setdefault("etc_shells", isolated_home / "etc-shells")
        return ConfigContext(platform=platform, adapter=adapter, **kwargs)

    return build


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI installs handlers on the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    raise_exceptions = logging.raiseExceptions
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.raiseExceptions = raise_exceptions
