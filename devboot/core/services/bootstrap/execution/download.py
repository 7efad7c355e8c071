"""
L4 Execution — Release downloads.

Resolves a release tag (GitHub API, plain-text endpoint, or pinned),
then fetches and places the artifact through the adapter so dry runs
and tests see every step. Network fetches are retried a bounded
number of times with exponential backoff.
"""

from __future__ import annotations

import json
import logging
import os
import random
import tempfile
import time
import urllib.error
import urllib.request
from collections.abc import Callable

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command, Receipt
from devboot.core.models.capability import BinaryDownload, ErrorKind
from devboot.core.models.platform import Platform
from devboot.core.services.bootstrap.domain.error_analysis import classify_failure

logger = logging.getLogger(__name__)

_USER_AGENT = "devboot/0.1"


# ── Retry ───────────────────────────────────────────────────────


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """Exponential backoff with jitter for the given 1-based attempt."""
    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
    return delay + random.uniform(0, delay * 0.3)


def run_with_retry(
    adapter: Adapter,
    command: Command,
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Receipt:
    """Run ``command``, retrying only network failures.

    Returns:
        The first successful (or skipped) receipt, or the last failure.
    """
    receipt = adapter.run(command)
    attempt = 1
    while receipt.failed and attempt < attempts:
        if classify_failure(receipt, ErrorKind.INSTALL_FAILED) != ErrorKind.NETWORK_FAILURE:
            break
        delay = backoff_delay(attempt, base_delay)
        logger.warning(
            "Download failed (attempt %d/%d), retrying in %.1fs: %s",
            attempt, attempts, delay, command.display(),
        )
        sleep(delay)
        attempt += 1
        receipt = adapter.run(command)
    return receipt


# ── Version resolution ──────────────────────────────────────────


def _fetch_text(url: str, timeout: int = 15) -> str:
    """GET ``url`` and return the body as text."""
    req = urllib.request.Request(
        url,
        headers={
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": _USER_AGENT,
        },
    )
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return resp.read().decode("utf-8", errors="replace")


def latest_github_tag(repo: str, *, timeout: int = 15) -> str | None:
    """``tag_name`` of the latest release of ``owner/repo``, or None."""
    api_url = f"https://api.github.com/repos/{repo}/releases/latest"
    try:
        data = json.loads(_fetch_text(api_url, timeout))
    except (urllib.error.URLError, OSError, ValueError) as exc:
        logger.warning("Could not query latest release of %s: %s", repo, exc)
        return None
    tag = data.get("tag_name") if isinstance(data, dict) else None
    return tag or None


def resolve_release_tag(download: BinaryDownload, *, timeout: int = 15) -> str:
    """Pinned version, else latest tag, else the fallback version."""
    if download.version:
        return download.version

    tag: str | None = None
    if download.github_repo:
        tag = latest_github_tag(download.github_repo, timeout=timeout)
    elif download.version_url:
        try:
            tag = _fetch_text(download.version_url, timeout).strip() or None
        except (urllib.error.URLError, OSError) as exc:
            logger.warning("Could not fetch %s: %s", download.version_url, exc)

    if tag:
        return tag
    if download.fallback_version:
        logger.info("Using fallback version %s", download.fallback_version)
    return download.fallback_version


def fill_template(template: str, *, tag: str, arch: str, os_name: str, name: str = "") -> str:
    return (
        template.replace("{tag}", tag)
        .replace("{version}", tag.lstrip("v"))
        .replace("{arch}", arch)
        .replace("{os}", os_name)
        .replace("{name}", name)
    )


# ── Install ─────────────────────────────────────────────────────


def install_binary(
    download: BinaryDownload,
    *,
    name: str,
    platform: Platform,
    adapter: Adapter,
    needs_sudo: bool = True,
    attempts: int = 3,
    timeout: int = 900,
    sleep: Callable[[float], None] = time.sleep,
) -> list[Receipt]:
    """Download a release artifact and put it in place.

    Steps (each through the adapter): fetch with curl, unpack if it is
    an archive, then ``install`` into the destination or unzip into a
    directory. The first failing step ends the sequence.

    Returns:
        Receipts of the steps that ran, the last one deciding success.
    """
    if platform.arch is None or platform.arch not in download.arches:
        return [Receipt.failure(
            adapter=adapter.name,
            command=f"download {name}",
            error=(
                f"Unsupported architecture '{platform.machine or 'unknown'}' "
                f"for {name} (supported: {', '.join(download.arches)})"
            ),
            exit_code=None,
        )]

    tag = resolve_release_tag(download)
    if not tag and ("{tag}" in download.url or "{version}" in download.url):
        return [Receipt.failure(
            adapter=adapter.name,
            command=f"download {name}",
            error=f"Failed to download {name}: no release version available",
            exit_code=None,
        )]

    def fill(t: str) -> str:
        return fill_template(t, tag=tag, arch=platform.arch or "", os_name=platform.os_name, name=name)

    url = fill(download.url)
    workdir = os.path.join(tempfile.gettempdir(), f"devboot-{name}")
    artifact = os.path.join(workdir, url.rsplit("/", 1)[-1] or name)

    receipts: list[Receipt] = []

    def step(argv: list[str], *, sudo: bool = False, retry: bool = False) -> bool:
        cmd = Command(argv=argv, needs_sudo=sudo, timeout=timeout)
        r = run_with_retry(adapter, cmd, attempts=attempts, sleep=sleep) if retry else adapter.run(cmd)
        receipts.append(r)
        return not r.failed

    logger.info("Downloading %s %s", name, tag or "")
    ok = (
        step(["mkdir", "-p", workdir])
        and step(["curl", "-fsSL", "-o", artifact, url], retry=True)
    )

    if ok and download.extract_to:
        target = os.path.expanduser(download.extract_to)
        ok = (
            step(["mkdir", "-p", target], sudo=needs_sudo)
            and step(["unzip", "-o", "-q", artifact, "-d", target], sudo=needs_sudo)
        )
    elif ok:
        source = artifact
        if download.archive_member:
            ok = step(["tar", "-xzf", artifact, "-C", workdir])
            source = os.path.join(workdir, fill(download.archive_member))
        if ok:
            dest = os.path.expanduser(fill(download.dest))
            mode = "0755" if download.executable else "0644"
            ok = step(["install", "-m", mode, source, dest], sudo=needs_sudo)

    # Best-effort cleanup, never part of the outcome
    adapter.run(Command(argv=["rm", "-rf", workdir], timeout=60))
    return receipts
