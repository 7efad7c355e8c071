"""
Logging setup for the devboot CLI.

main.py calls ``configure_from_cli()`` once; modules only ever do
``logger = logging.getLogger(__name__)``.

Console lines follow the bootstrap log style::

    [2024-05-01 12:30:00] Installing git via apt (1/1)
    [WARNING] kubectl: strategy 'release-binary' failed (network-failure): ...
    [ERROR] Missing required: git

With ``--debug`` every line carries level, logger and line number.
DEVBOOT_LOG_FILE adds a file that always gets the full detail.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from typing import TextIO

import click

CONSOLE_HANDLER = "devboot-console"
FILE_HANDLER = "devboot-file"

_DEBUG_FMT = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d: %(message)s"
_STAMP = "%Y-%m-%d %H:%M:%S"

_TAGS = {
    logging.WARNING: ("[WARNING]", "yellow"),
    logging.ERROR: ("[ERROR]", "red"),
    logging.CRITICAL: ("[ERROR]", "red"),
}


class ConsoleFormatter(logging.Formatter):
    """Bootstrap-style lines: timestamp for progress, a tag for problems."""

    def __init__(self, *, color: bool = False, debug: bool = False):
        super().__init__(_DEBUG_FMT if debug else "%(message)s", datefmt=_STAMP)
        self.color = color
        self.debug = debug

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if self.debug:
            return text
        tag, fg = _TAGS.get(record.levelno, (None, None))
        if tag is None:
            prefix = f"[{self.formatTime(record, self.datefmt)}]"
            fg = "blue"
        else:
            prefix = tag
        if self.color:
            prefix = click.style(prefix, fg=fg)
        return f"{prefix} {text}"


def parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Level name to number; unknown names give ``default``."""
    numeric = getattr(logging, level.upper(), None) if level else None
    return numeric if isinstance(numeric, int) else default


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> int:
    """CLI flag > DEVBOOT_LOG_LEVEL > WARNING."""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    if quiet:
        return logging.ERROR
    env = os.environ if env is None else env
    return parse_level(env.get("DEVBOOT_LOG_LEVEL"))


def _drop_own_handlers(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        if handler.get_name() in (CONSOLE_HANDLER, FILE_HANDLER):
            root.removeHandler(handler)
            handler.close()


def setup_logging(
    level: int | str = logging.WARNING,
    *,
    log_file: str | None = None,
    log_file_level: int | str | None = None,
    stream: TextIO | None = None,
    color: bool | None = None,
) -> logging.Logger:
    """Install devboot's console (and optional file) handler on the root logger.

    Handlers installed by an earlier call are replaced; handlers that
    belong to someone else (pytest's caplog, an embedding app) stay.

    Args:
        level: Console level, as a number or a name.
        log_file: Also write to this file.
        log_file_level: File level; defaults to DEBUG so the file keeps
            the detail the console hides.
        stream: Console stream, stderr by default.
        color: Colour the tags; defaults to whether ``stream`` is a tty.

    Returns:
        The root logger.
    """
    console_level = level if isinstance(level, int) else parse_level(level)
    stream = stream or sys.stderr
    if color is None:
        color = bool(getattr(stream, "isatty", lambda: False)())

    root = logging.getLogger()
    _drop_own_handlers(root)

    console = logging.StreamHandler(stream)
    console.set_name(CONSOLE_HANDLER)
    console.setLevel(console_level)
    console.setFormatter(ConsoleFormatter(color=color, debug=console_level <= logging.DEBUG))
    root.addHandler(console)
    lowest = console_level

    if log_file:
        if log_file_level is None:
            file_level = logging.DEBUG
        elif isinstance(log_file_level, int):
            file_level = log_file_level
        else:
            file_level = parse_level(log_file_level, default=logging.DEBUG)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.set_name(FILE_HANDLER)
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_DEBUG_FMT, datefmt=_STAMP))
        root.addHandler(handler)
        lowest = min(lowest, file_level)

    root.setLevel(lowest)
    logging.raiseExceptions = False
    return root


def configure_from_cli(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> logging.Logger:
    """Entry point for main.py: flags plus the DEVBOOT_LOG_* variables."""
    env = os.environ if env is None else env
    return setup_logging(
        resolve_level(debug=debug, verbose=verbose, quiet=quiet, env=env),
        log_file=env.get("DEVBOOT_LOG_FILE") or None,
        log_file_level=env.get("DEVBOOT_LOG_FILE_LEVEL"),
    )
