"""Error taxonomy for popfetch.

Every error raised by the fetch path derives from PopfetchError so the
account runner can contain it and turn it into an account status:

- ConfigurationError: missing or invalid account settings
- DeliveryError: Maildir write or rename failure
- Pop3Error: anything raised by the POP3 layer
    - TransportError: dial, TLS, read/write, timeout, EOF
    - ProtocolError: malformed status line or STAT reply
    - ServerError: negative (-ERR) status from the server
"""


class PopfetchError(Exception):
    """Base class for all popfetch errors."""

    pass


class ConfigurationError(PopfetchError):
    """Account settings are missing or invalid."""

    pass


class DeliveryError(PopfetchError):
    """A message could not be stored in the Maildir."""

    pass


class Pop3Error(PopfetchError):
    """Error from the POP3 session or its transport."""

    pass


class TransportError(Pop3Error):
    """The connection failed, timed out or was closed by the peer."""

    pass


class ProtocolError(Pop3Error):
    """The server sent something that does not follow the protocol."""

    pass


class ServerError(Pop3Error):
    """The server answered a command with -ERR.

    Attributes:
        message: Text the server sent after the -ERR status.
    """

    def __init__(self, message: str):
        super().__init__(message or "-ERR")
        self.message = message
