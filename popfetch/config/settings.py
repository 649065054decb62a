"""Resolved per-account settings.

The TOML config is a loose dict; the fetch path works on an immutable
AccountSettings snapshot built by resolve_account(), with defaults applied
and every value converted to its proper type.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from popfetch.errors import ConfigurationError

from .paths import DEFAULT_MAILDIR
from .schema import PopfetchConfig

DEFAULT_PORT = 995
DEFAULT_TIMEOUT = 200.0

# Keys that may be set in [defaults] and inherited by every account
INHERITABLE_KEYS = ("port", "tls", "timeout", "keep", "maildir", "active", "proxyport")

# Account names become lock file names
_PATH_SEPARATORS = {sep for sep in (os.sep, os.altsep, "/") if sep}


@dataclass(frozen=True)
class AccountSettings:
    """Immutable settings for one POP3 account.

    Attributes:
        name: Account name (the [accounts.<name>] table name).
        username: POP3 login name.
        password: POP3 password.
        tls_domain: Name the server certificate must match.
        port: Port to dial.
        entry_server: Host to dial instead of tls_domain, if set.
        proxy: SOCKS5 proxy as "host:port", if set.
        tls: Whether to wrap the connection in TLS.
        timeout: Dial and read timeout in seconds.
        keep: Leave fetched messages on the server.
        maildir: Destination Maildir root.
        active: Whether this account is fetched at all.
    """

    name: str
    username: str
    password: str
    tls_domain: str = ""
    port: int = DEFAULT_PORT
    entry_server: str | None = None
    proxy: str | None = None
    tls: bool = True
    timeout: float = DEFAULT_TIMEOUT
    keep: bool = False
    maildir: Path = DEFAULT_MAILDIR
    active: bool = True

    @property
    def dial_host(self) -> str:
        """Host to connect to: the entry server if set, else the TLS domain."""
        return self.entry_server or self.tls_domain

    def validate(self) -> None:
        """Check the settings are complete enough to start a session.

        Raises:
            ConfigurationError: If a mandatory field is empty.
        """
        if not self.username:
            raise ConfigurationError(f"[{self.name}] username is not set")

        if self.tls and not self.tls_domain:
            raise ConfigurationError(
                f"[{self.name}] tlsdomain is required when tls is enabled"
            )

        if not self.dial_host:
            raise ConfigurationError(
                f"[{self.name}] no server to connect to (set tlsdomain or entryserver)"
            )

    def __repr__(self) -> str:
        # Keep the password out of logs and tracebacks
        return (
            f"AccountSettings(name={self.name!r}, username={self.username!r}, "
            f"host={self.dial_host!r}, port={self.port}, tls={self.tls})"
        )


def resolve_account(config: PopfetchConfig, name: str) -> AccountSettings:
    """Build AccountSettings for one account from the loaded config.

    Values from [defaults] apply unless the account sets them itself.

    Args:
        config: The loaded configuration dictionary.
        name: Account name to resolve.

    Returns:
        The resolved settings.

    Raises:
        ConfigurationError: If the account does not exist, its name is not
            usable as a file name, a mandatory key is missing, or a value
            has the wrong type.
    """
    check_account_name(name)

    accounts = config.get("accounts", {})
    if not isinstance(accounts, dict):
        raise ConfigurationError("[accounts] must be a table")

    account = accounts.get(name)
    if account is None:
        raise ConfigurationError(f"Account '{name}' not found")
    if not isinstance(account, dict):
        raise ConfigurationError(f"[accounts.{name}] must be a table")

    defaults = config.get("defaults", {})
    if not isinstance(defaults, dict):
        raise ConfigurationError("[defaults] must be a table")

    merged: dict[str, Any] = {
        key: defaults[key] for key in INHERITABLE_KEYS if key in defaults
    }
    merged.update(account)

    if "password" not in merged:
        raise ConfigurationError(f"[{name}] password is not set")

    maildir = _get_str(merged, "maildir", name)

    return AccountSettings(
        name=name,
        username=_get_str(merged, "username", name) or "",
        password=_get_str(merged, "password", name) or "",
        tls_domain=_get_str(merged, "tlsdomain", name) or "",
        port=_get_int(merged, "port", name, DEFAULT_PORT),
        entry_server=_get_str(merged, "entryserver", name) or None,
        proxy=_get_str(merged, "proxyport", name) or None,
        tls=_get_bool(merged, "tls", name, True),
        timeout=_get_timeout(merged, name),
        keep=_get_bool(merged, "keep", name, False),
        maildir=Path(maildir).expanduser() if maildir else DEFAULT_MAILDIR,
        active=_get_bool(merged, "active", name, True),
    )


def check_account_name(name: str) -> None:
    """Reject account names that cannot serve as a lock file name.

    Raises:
        ConfigurationError: If the name is empty or contains a path separator.
    """
    if not name or any(sep in name for sep in _PATH_SEPARATORS):
        raise ConfigurationError(
            f"Invalid account name '{name}': must not be empty or contain /"
        )


def _get_str(values: dict[str, Any], key: str, name: str) -> str | None:
    value = values.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigurationError(f"[{name}] {key} must be a string")
    return value


def _get_bool(values: dict[str, Any], key: str, name: str, default: bool) -> bool:
    value = values.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"[{name}] {key} must be true or false")
    return value


def _get_int(values: dict[str, Any], key: str, name: str, default: int) -> int:
    value = values.get(key, default)
    # bool is an int subclass; "port = true" is still a mistake
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"[{name}] {key} must be an integer")
    if not 0 < value < 65536:
        raise ConfigurationError(f"[{name}] {key} {value} is out of range")
    return value


def _get_timeout(values: dict[str, Any], name: str) -> float:
    value = values.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"[{name}] timeout must be a number of seconds")
    if value <= 0:
        raise ConfigurationError(f"[{name}] timeout must be positive")
    return float(value)
