"""Connection setup for POP3 sessions.

A Dialer opens the raw TCP connection, either directly or through a
SOCKS5 proxy (PySocks). open_transport() then upgrades it to TLS when the
account asks for it, validating the certificate against the account's
TLS domain rather than the host that was dialed.
"""

import logging
import socket
import ssl
from typing import Protocol

import socks

from popfetch.config.settings import AccountSettings
from popfetch.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)


class Dialer(Protocol):
    """Something that can open a TCP connection."""

    def dial(self, host: str, port: int, timeout: float) -> socket.socket:
        ...


class DirectDialer:
    """Dial the server directly."""

    def dial(self, host: str, port: int, timeout: float) -> socket.socket:
        return socket.create_connection((host, port), timeout=timeout)

    def __repr__(self) -> str:
        return "DirectDialer()"


class Socks5Dialer:
    """Dial the server through a SOCKS5 proxy.

    The proxy resolves the target host name, so DNS lookups for the mail
    server do not leak outside the proxy.
    """

    def __init__(self, proxy_host: str, proxy_port: int):
        self.proxy_host = proxy_host
        self.proxy_port = proxy_port

    def dial(self, host: str, port: int, timeout: float) -> socket.socket:
        sock = socks.socksocket()
        sock.set_proxy(
            proxy_type=socks.SOCKS5,
            addr=self.proxy_host,
            port=self.proxy_port,
            rdns=True,
        )
        sock.settimeout(timeout)
        try:
            sock.connect((host, port))
        except BaseException:
            sock.close()
            raise
        return sock

    def __repr__(self) -> str:
        return f"Socks5Dialer({self.proxy_host}:{self.proxy_port})"


def parse_proxy_address(address: str) -> tuple[str, int]:
    """Split a "host:port" proxy address.

    IPv6 hosts may be written in brackets ("[::1]:1080").

    Raises:
        ConfigurationError: If the address has no valid port.
    """
    host, sep, port = address.rpartition(":")
    host = host.strip("[]")

    if not sep or not host or not port.isdigit():
        raise ConfigurationError(f"invalid proxy address {address!r}, expected host:port")

    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ConfigurationError(f"invalid proxy port in {address!r}")

    return host, port_number


def make_dialer(settings: AccountSettings) -> Dialer:
    """Select the dialer for an account, once, from its settings.

    Raises:
        ConfigurationError: If the proxy address is malformed.
    """
    if settings.proxy:
        host, port = parse_proxy_address(settings.proxy)
        return Socks5Dialer(host, port)

    return DirectDialer()


def open_transport(
    settings: AccountSettings, dialer: Dialer | None = None
) -> socket.socket:
    """Connect to the account's POP3 server.

    The returned socket keeps the account timeout for later reads and
    writes.

    Args:
        settings: Account settings (host, port, TLS, proxy, timeout).
        dialer: Dialer to use. Defaults to make_dialer(settings).

    Returns:
        A connected socket, TLS-wrapped if TLS is enabled.

    Raises:
        ConfigurationError: If the proxy address is malformed.
        TransportError: If dialing or the TLS handshake fails, including
            certificate verification failures and timeouts.
    """
    dialer = dialer or make_dialer(settings)
    host, port = settings.dial_host, settings.port

    logger.info("[%s] Connecting to %s:%d via %r", settings.name, host, port, dialer)

    try:
        sock = dialer.dial(host, port, settings.timeout)
    except OSError as e:
        raise TransportError(f"cannot connect to {host}:{port}: {e}") from e

    if not settings.tls:
        return sock

    context = ssl.create_default_context()
    try:
        return context.wrap_socket(sock, server_hostname=settings.tls_domain)
    except OSError as e:
        # ssl.SSLCertVerificationError is an OSError too
        sock.close()
        raise TransportError(
            f"TLS handshake with {host}:{port} as {settings.tls_domain} failed: {e}"
        ) from e
