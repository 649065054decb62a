"""Configuration schema definitions.

Uses TypedDict for type safety without runtime overhead.
These types match the structure of config.toml; key names follow the
historical m2m account fields (tlsdomain, entryserver, proxyport).
"""

from typing import TypedDict


class DefaultsConfig(TypedDict, total=False):
    """Settings applied to every account unless the account overrides them.

    Attributes:
        port: POP3 port to dial.
        tls: Whether to wrap the connection in TLS.
        timeout: Dial and read timeout in seconds.
        keep: Leave fetched messages on the server.
        maildir: Destination Maildir root.
        active: Whether accounts are fetched at all.
        proxyport: SOCKS5 proxy as "host:port".
    """

    port: int
    tls: bool
    timeout: int
    keep: bool
    maildir: str
    active: bool
    proxyport: str


class AccountConfig(TypedDict, total=False):
    """Single POP3 account configuration.

    Attributes:
        username: POP3 login name.
        password: POP3 password.
        tlsdomain: Name the server certificate must match; also the default
                   host to dial.
        port: POP3 port (995 by default).
        entryserver: Host to dial instead of tlsdomain.
        proxyport: SOCKS5 proxy as "host:port".
        tls: Whether to wrap the connection in TLS (default true).
        timeout: Dial and read timeout in seconds (default 200).
        keep: Leave fetched messages on the server (default false).
        maildir: Destination Maildir root (default ~/Maildir).
        active: Whether this account is fetched (default true).
    """

    username: str
    password: str
    tlsdomain: str
    port: int
    entryserver: str
    proxyport: str
    tls: bool
    timeout: int
    keep: bool
    maildir: str
    active: bool


class PopfetchConfig(TypedDict, total=False):
    """Root configuration structure.

    Attributes:
        defaults: Default settings for all accounts.
        accounts: Dict mapping account names to their configurations.
    """

    defaults: DefaultsConfig
    accounts: dict[str, AccountConfig]
