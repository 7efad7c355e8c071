"""
L1 Domain — Failure classification (pure).

Maps a failed Receipt onto an ErrorKind by looking at the exit code and
the stderr tail. No I/O, no subprocess.
"""

from __future__ import annotations

import re

from devboot.core.models.action import Receipt
from devboot.core.models.capability import ErrorKind

# curl: 6 resolve host, 7 connect, 28 timeout, 35 TLS handshake, 56 recv
_CURL_NETWORK_EXITS = frozenset({6, 7, 28, 35, 56})

_NETWORK_PATTERNS = re.compile(
    r"could not resolve host"
    r"|temporary failure (in name resolution|resolving)"
    r"|connection timed out"
    r"|connection refused"
    r"|network is unreachable"
    r"|failed to download"
    r"|cannot download"
    r"|curl: \(\d+\)",
    re.IGNORECASE,
)

_PRIVILEGE_PATTERNS = re.compile(
    r"permission denied"
    r"|sudo: a password is required"
    r"|is not in the sudoers"
    r"|not in the sudoers"
    r"|requires root"
    r"|sudo is not available"
    r"|are you root\?"
    r"|operation not permitted",
    re.IGNORECASE,
)

_UNSUPPORTED_PATTERNS = re.compile(
    r"command not found"
    r"|unsupported architecture"
    r"|no such file or directory: '?(apt-get|dnf|yum|brew|choco|scoop)",
    re.IGNORECASE,
)


def classify_failure(receipt: Receipt, default: ErrorKind = ErrorKind.INSTALL_FAILED) -> ErrorKind:
    """Classify a failed command.

    Order matters: a missing binary is reported as an unsupported
    platform even when stderr mentions the network, and privilege
    problems win over generic network noise.

    Args:
        receipt: The failed receipt.
        default: Kind declared by the strategy that produced it.

    Returns:
        The most specific ErrorKind that fits.
    """
    text = f"{receipt.error or ''}\n{receipt.stderr}"

    if receipt.exit_code == 127 or _UNSUPPORTED_PATTERNS.search(text):
        return ErrorKind.UNSUPPORTED_PLATFORM

    if _PRIVILEGE_PATTERNS.search(text):
        return ErrorKind.PRIVILEGE_DENIED

    if _NETWORK_PATTERNS.search(text):
        return ErrorKind.NETWORK_FAILURE

    if receipt.exit_code in _CURL_NETWORK_EXITS and "curl" in receipt.command:
        return ErrorKind.NETWORK_FAILURE

    return default


def stderr_tail(receipt: Receipt, lines: int = 5) -> str:
    """Last few stderr lines, for attempt summaries."""
    text = (receipt.stderr or receipt.error or "").strip()
    return "\n".join(text.splitlines()[-lines:])
