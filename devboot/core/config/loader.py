"""
Configuration loader — reads devboot.yml into a BootstrapConfig.

The file is optional: a missing file yields the stock configuration.
A file that exists but is unreadable, not YAML, or fails validation
raises ConfigError, which the CLI turns into exit code 1.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from devboot.core.models.config import BootstrapConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "devboot.yml"

CONFIG_ENV_VAR = "DEVBOOT_CONFIG"


class ConfigError(Exception):
    """Raised when the bootstrap configuration is invalid or missing."""


def user_config_path() -> Path:
    """Per-user fallback location: ``~/.config/devboot/devboot.yml``."""
    return Path.home() / ".config" / "devboot" / CONFIG_FILE


def find_config_file(
    start_dir: Path | None = None,
    env: dict[str, str] | None = None,
) -> Path | None:
    """Locate devboot.yml.

    Search order: ``DEVBOOT_CONFIG``, then walking up from ``start_dir``
    (default: cwd), then the per-user config directory.

    Returns:
        Path to the config file, or None if none was found.
    """
    environ = os.environ if env is None else env

    explicit = environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()

    current = (start_dir or Path.cwd()).resolve()
    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    fallback = user_config_path()
    if fallback.is_file():
        return fallback
    return None


def load_config(path: Path | None = None, *, search: bool = True) -> BootstrapConfig:
    """Load and validate the bootstrap configuration.

    Args:
        path: Explicit path (``--config``). Must exist when given.
        search: When no path is given, look for one with ``find_config_file``.

    Returns:
        Validated BootstrapConfig (defaults when no file is found).

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    explicit = path is not None
    if path is None and search:
        path = find_config_file()
        # DEVBOOT_CONFIG is as explicit as --config
        explicit = bool(os.environ.get(CONFIG_ENV_VAR))

    if path is None:
        logger.debug("No %s found, using defaults", CONFIG_FILE)
        return BootstrapConfig()

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return BootstrapConfig()

    logger.debug("Loading bootstrap config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return BootstrapConfig()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "devboot" key or be flat
    if isinstance(data.get("devboot"), dict):
        data = data["devboot"]

    try:
        config = BootstrapConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid bootstrap configuration in {path}: {e}") from e

    logger.info("Loaded config from %s", path)
    return config
