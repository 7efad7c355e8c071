"""
Tests for release downloads — tag resolution, retry, binary placement.
"""

import json
import urllib.error

import pytest

from devboot.adapters.mock import MockAdapter
from devboot.core.models.action import Command, Receipt
from devboot.core.models.capability import BinaryDownload
from devboot.core.models.platform import Platform, PlatformFamily
from devboot.core.services.bootstrap.data.capabilities import GH_RELEASE, KUBECTL_RELEASE
from devboot.core.services.bootstrap.execution import download
from devboot.core.services.bootstrap.execution.download import (
    backoff_delay,
    fill_template,
    install_binary,
    resolve_release_tag,
    run_with_retry,
)

FETCH = "devboot.core.services.bootstrap.execution.download._fetch_text"


class FlakyAdapter(MockAdapter):
    """Fails the first few runs with a curl timeout."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures

    def run(self, command: Command) -> Receipt:
        if self.failures:
            self.failures -= 1
            self.call_log.append(command)
            return Receipt.failure(
                adapter=self.name,
                command=command.display(),
                error="Command failed (exit 28)",
                exit_code=28,
                stderr="curl: (28) Connection timed out after 15000 milliseconds",
            )
        return super().run(command)


class TestResolveTag:
    def test_pinned_version_wins(self):
        assert resolve_release_tag(BinaryDownload(url="x", version="v1.2.3")) == "v1.2.3"

    def test_latest_github_release(self, monkeypatch):
        monkeypatch.setattr(FETCH, lambda url, timeout=15: json.dumps({"tag_name": "v2.40.1"}))
        assert resolve_release_tag(GH_RELEASE) == "v2.40.1"

    def test_github_unreachable_uses_fallback(self):
        # network is patched out in conftest
        assert resolve_release_tag(GH_RELEASE) == GH_RELEASE.fallback_version

    def test_version_url(self, monkeypatch):
        monkeypatch.setattr(FETCH, lambda url, timeout=15: "v1.30.2\n")
        assert resolve_release_tag(KUBECTL_RELEASE) == "v1.30.2"

    def test_bad_json_uses_fallback(self, monkeypatch):
        monkeypatch.setattr(FETCH, lambda url, timeout=15: "<html>rate limited</html>")
        assert resolve_release_tag(GH_RELEASE) == GH_RELEASE.fallback_version


class TestTemplate:
    def test_version_strips_v(self):
        url = fill_template(GH_RELEASE.url, tag="v2.40.1", arch="arm64", os_name="linux")
        assert url == "https://github.com/cli/cli/releases/download/v2.40.1/gh_2.40.1_linux_arm64.tar.gz"


class TestRetry:
    def test_network_failure_retried_then_succeeds(self, no_sleep):
        adapter = FlakyAdapter(failures=2)
        receipt = run_with_retry(adapter, Command(argv=["curl", "-fsSL", "https://x"]), attempts=3, sleep=no_sleep)
        assert receipt.ok
        assert adapter.call_count == 3

    def test_non_network_failure_not_retried(self, mock: MockAdapter, no_sleep):
        mock.set_failure("curl", "Command failed (exit 22)", exit_code=22, stderr="404 Not Found")
        receipt = run_with_retry(mock, Command(argv=["curl", "https://x"]), attempts=3, sleep=no_sleep)
        assert receipt.failed
        assert mock.call_count == 1

    def test_attempts_bounded(self, mock: MockAdapter):
        delays: list[float] = []
        mock.set_failure("curl", "Command failed (exit 6)", exit_code=6, stderr="Could not resolve host")
        run_with_retry(mock, Command(argv=["curl", "https://x"]), attempts=3, sleep=delays.append)
        assert mock.call_count == 3
        assert len(delays) == 2

    def test_backoff_grows(self):
        assert backoff_delay(1) < 2.0
        assert 4.0 <= backoff_delay(3) <= 4.0 * 1.3
        assert backoff_delay(10) <= 30.0 * 1.3


class TestInstallBinary:
    def test_tarball_member_installed(self, debian, mock: MockAdapter, monkeypatch, no_sleep):
        monkeypatch.setattr(FETCH, lambda url, timeout=15: json.dumps({"tag_name": "v2.40.1"}))
        receipts = install_binary(GH_RELEASE, name="gh", platform=debian, adapter=mock, sleep=no_sleep)

        assert receipts[-1].ok
        cmds = mock.commands()
        assert any("gh_2.40.1_linux_amd64.tar.gz" in c and c.startswith("curl") for c in cmds)
        assert any(c.startswith("tar -xzf") for c in cmds)
        install = next(c for c in cmds if c.startswith("sudo install"))
        assert install.endswith("gh_2.40.1_linux_amd64/bin/gh /usr/local/bin/gh")
        assert cmds[-1].startswith("rm -rf")

    def test_unsupported_arch(self, mock: MockAdapter):
        platform = Platform(family=PlatformFamily.LINUX_DEBIAN, machine="riscv64", arch=None,
                            package_manager="apt")
        receipts = install_binary(GH_RELEASE, name="gh", platform=platform, adapter=mock)
        assert receipts[0].failed
        assert "riscv64" in receipts[0].error
        assert mock.call_count == 0

    def test_arch_not_published(self, mock: MockAdapter):
        platform = Platform(family=PlatformFamily.LINUX_DEBIAN, machine="armv7l", arch="arm",
                            package_manager="apt")
        receipts = install_binary(GH_RELEASE, name="gh", platform=platform, adapter=mock)
        assert receipts[0].failed

    def test_no_version_available(self, debian, mock: MockAdapter):
        release = BinaryDownload(url="https://example.com/{tag}/tool", github_repo="o/r")
        receipts = install_binary(release, name="tool", platform=debian, adapter=mock)
        assert receipts[0].failed
        assert "no release version" in receipts[0].error

    def test_download_failure_stops_sequence(self, debian, mock: MockAdapter, no_sleep):
        mock.set_failure("curl -fsSL", "Command failed (exit 22)", exit_code=22)
        receipts = install_binary(KUBECTL_RELEASE, name="kubectl", platform=debian, adapter=mock, sleep=no_sleep)
        assert receipts[-1].failed
        assert not any(c.startswith("sudo install") for c in mock.commands())

    def test_fetch_errors_are_handled(self, monkeypatch):
        def boom(url, timeout=15):
            raise urllib.error.HTTPError(url, 403, "rate limited", None, None)

        monkeypatch.setattr(FETCH, boom)
        assert download.latest_github_tag("cli/cli") is None


@pytest.mark.parametrize("arch", ["amd64", "arm64"])
def test_kubectl_url_per_arch(arch):
    url = fill_template(KUBECTL_RELEASE.url, tag="v1.31.0", arch=arch, os_name="linux")
    assert url == f"https://dl.k8s.io/release/v1.31.0/bin/linux/{arch}/kubectl"
