"""
L1 Domain — Version parsing and constraint validation (pure).

Pulls a version number out of ``--version`` output and compares it to a
minimum. No I/O, no subprocess.
"""

from __future__ import annotations

import re

_DEFAULT_PATTERN = r"(\d+\.\d+(?:\.\d+)?)"


def extract_version(output: str, pattern: str = _DEFAULT_PATTERN) -> str | None:
    """First version-looking match in ``output``.

    Examples::

        extract_version("git version 2.43.0")           → "2.43.0"
        extract_version("Python 3.12.1")                → "3.12.1"
        extract_version("Client Version: v1.31.0")      → "1.31.0"
    """
    if not output:
        return None
    m = re.search(pattern, output)
    if not m:
        return None
    return m.group(1) if m.groups() else m.group(0)


def _parse_semver(v: str) -> tuple[int, ...]:
    parts = re.findall(r"\d+", v.lstrip("v"))[:3]
    if not parts:
        raise ValueError(f"not a version: {v!r}")
    nums = [int(x) for x in parts]
    while len(nums) < 3:
        nums.append(0)
    return tuple(nums)


def check_version_constraint(selected_version: str, minimum: str) -> dict:
    """Validate a detected version against a ``>=`` minimum.

    Args:
        selected_version: Detected version, e.g. ``"3.9.2"``.
        minimum: Required minimum, e.g. ``"3.6"``.

    Returns:
        ``{"valid": True}`` or ``{"valid": False, "message": "..."}``.
        Unparseable versions are accepted with ``parse_error`` set.
    """
    try:
        sel_parts = _parse_semver(selected_version)
        ref_parts = _parse_semver(minimum)
    except ValueError:
        return {"valid": True, "parse_error": True}

    if sel_parts >= ref_parts:
        return {"valid": True}
    return {
        "valid": False,
        "message": f"Version {selected_version} < {minimum}. Minimum required: {minimum}.",
    }
