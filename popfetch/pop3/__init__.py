"""POP3 client: connection setup and the command/response session."""

from .session import POP3Session, parse_status_line
from .transport import (
    DirectDialer,
    Socks5Dialer,
    make_dialer,
    open_transport,
    parse_proxy_address,
)

__all__ = [
    "POP3Session",
    "parse_status_line",
    "DirectDialer",
    "Socks5Dialer",
    "make_dialer",
    "open_transport",
    "parse_proxy_address",
]
