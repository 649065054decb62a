"""Configuration management module.

Handles loading, saving, and accessing the popfetch configuration.
Config is stored at ~/.config/popfetch/config.toml

Usage:
    from popfetch.config import load_config, get_account_names, resolve_account

    config = load_config()
    for name in get_account_names(config):
        settings = resolve_account(config, name)
"""

import tomllib
from pathlib import Path

import tomli_w

from popfetch.errors import ConfigurationError

from .paths import CONFIG_FILE, ensure_config_dir
from .schema import AccountConfig, PopfetchConfig
from .settings import AccountSettings, resolve_account
from .template import CONFIG_TEMPLATE

# Re-export for convenience
__all__ = [
    "load_config",
    "save_config",
    "init_config",
    "get_account",
    "get_account_names",
    "set_config_value",
    "resolve_account",
    "AccountSettings",
    "CONFIG_FILE",
]

# Module-level cache for loaded config.
# Avoids repeated disk reads during a single CLI invocation.
_cached_config: PopfetchConfig | None = None
_cached_path: Path | None = None

_INT_FIELDS = {"port", "timeout"}
_BOOL_FIELDS = {"tls", "keep", "active"}


def load_config(
    path: Path | None = None, *, force_reload: bool = False
) -> PopfetchConfig:
    """Load configuration from disk.

    Returns empty dict if config file doesn't exist.
    Uses module-level caching to avoid repeated disk reads.

    Args:
        path: Config file to read. Defaults to CONFIG_FILE.
        force_reload: Bypass cache and read from disk (useful after saving).

    Returns:
        The configuration dictionary.

    Raises:
        ConfigurationError: If the file is not valid TOML.
    """
    global _cached_config, _cached_path

    path = path or CONFIG_FILE

    if _cached_config is not None and _cached_path == path and not force_reload:
        return _cached_config

    _cached_path = path

    if not path.exists():
        _cached_config = {}
        return _cached_config

    try:
        with open(path, "rb") as f:
            _cached_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        _cached_config = None
        raise ConfigurationError(f"{path}: {e}") from e

    return _cached_config


def save_config(config: PopfetchConfig) -> None:
    """Save configuration to disk.

    Creates config directory if needed. Updates the module cache.
    The file holds passwords, so it is readable by its owner only.

    Args:
        config: The configuration dictionary to save.
    """
    global _cached_config, _cached_path

    ensure_config_dir()

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(config, f)
    CONFIG_FILE.chmod(0o600)

    # Keep cache in sync with disk
    _cached_config = config
    _cached_path = CONFIG_FILE


def init_config(*, overwrite: bool = False) -> bool:
    """Initialize config directory and create template config file.

    Args:
        overwrite: If True, overwrite existing config file.

    Returns:
        True if config was created, False if it already existed.
    """
    ensure_config_dir()

    if CONFIG_FILE.exists() and not overwrite:
        return False

    CONFIG_FILE.write_text(CONFIG_TEMPLATE)
    CONFIG_FILE.chmod(0o600)
    return True


def get_account(config: PopfetchConfig, name: str) -> AccountConfig | None:
    """Get account configuration by name.

    Args:
        config: The loaded configuration dictionary.
        name: Account name to retrieve.

    Returns:
        The account configuration, or None if not found.
    """
    return config.get("accounts", {}).get(name)


def get_account_names(config: PopfetchConfig) -> list[str]:
    """Get list of configured account names.

    Names are sorted so that processing and reporting order is stable.

    Args:
        config: The loaded configuration dictionary.

    Returns:
        Sorted list of account names, may be empty.

    Raises:
        ConfigurationError: If [accounts] is not a table.
    """
    accounts = config.get("accounts", {})
    if not isinstance(accounts, dict):
        raise ConfigurationError("[accounts] must be a table")

    return sorted(accounts.keys())


def set_config_value(key: str, value: str) -> None:
    """Set a configuration value using dot notation.

    Examples:
        set_config_value("defaults.timeout", "60")
        set_config_value("accounts.work.keep", "true")

    Args:
        key: Dot-separated key path (e.g., "defaults.timeout").
        value: Value to set (will be type-converted for known fields).

    Raises:
        ValueError: If value cannot be converted to expected type.
    """
    config = load_config(force_reload=True)

    parts = key.split(".")

    # Navigate to parent dict, creating intermediate dicts as needed
    current: dict = config
    for part in parts[:-1]:
        if part not in current:
            current[part] = {}
        current = current[part]

    # Set the final value with type conversion
    final_key = parts[-1]
    converted_value = _convert_value(final_key, value)
    current[final_key] = converted_value

    save_config(config)


def _convert_value(key: str, value: str) -> str | int | bool:
    """Convert string value to appropriate type based on field name.

    Known integer fields are converted to int, known boolean fields to
    bool, everything else stays str.

    Args:
        key: The field name (last part of dot notation key).
        value: The string value from CLI.

    Returns:
        Converted value.

    Raises:
        ValueError: If value cannot be converted to expected type.
    """
    if key in _INT_FIELDS:
        return int(value)

    if key in _BOOL_FIELDS:
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
        raise ValueError(f"{key} expects true or false, got {value!r}")

    return value
