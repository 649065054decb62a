"""POP3 command/response session.

Implements the client side of the POP3 line protocol (RFC 1939) over an
already connected socket:

- greeting validation
- single-line commands answered by one status line
- multi-line commands whose body ends with a lone "." line, with
  leading-dot byte-stuffing removed

Status lines have the form "+OK [text]" or "-ERR [text]". Exactly one
command is outstanding at a time; a session must not be shared between
threads.
"""

import logging
import socket

from popfetch.errors import ProtocolError, ServerError, TransportError

logger = logging.getLogger(__name__)

CRLF = b"\r\n"

# Commands whose arguments must never reach the logs
_SECRET_COMMANDS = {"PASS"}


def parse_status_line(line: str) -> tuple[bool, str]:
    """Parse a POP3 status line.

    Args:
        line: Response line without its line terminator.

    Returns:
        Tuple of (ok, message): ok is True for +OK and False for -ERR;
        message is the text after the status, possibly empty.

    Raises:
        ProtocolError: If the line does not start with +OK or -ERR.
    """
    status, _, message = line.partition(" ")

    if status == "+OK":
        return True, message
    if status == "-ERR":
        return False, message

    raise ProtocolError(f"malformed status: {line!r}")


def _strip_eol(line: bytes) -> bytes:
    if line.endswith(CRLF):
        return line[:-2]
    if line.endswith(b"\n"):
        return line[:-1]
    return line


class POP3Session:
    """One POP3 conversation over a connected socket.

    The socket's timeout (if any) bounds every read and write.

    Example:
        with POP3Session(sock, name="work") as session:
            session.open()
            session.command("USER", "jdoe")
            session.command("PASS", "secret")
            count, size = session.command("STAT").split()
            reply, body = session.command_multi("RETR", 1)
            session.command("QUIT")
    """

    def __init__(self, sock: socket.socket, name: str = ""):
        """Initialize a session.

        Args:
            sock: Connected socket (plain or TLS-wrapped).
            name: Account name used to prefix log lines.
        """
        self._sock = sock
        self._file = sock.makefile("rb")
        self._name = name
        self._closed = False

    def __enter__(self) -> "POP3Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        """Whether the session has been closed."""
        return self._closed

    def open(self) -> str:
        """Read and validate the server greeting.

        Returns:
            The greeting text after +OK.

        Raises:
            ProtocolError: If the greeting is malformed or negative.
            TransportError: If the connection fails before a line arrives.
        """
        line = self._read_line()
        ok, message = parse_status_line(line)

        if not ok:
            raise ProtocolError(f"server refused connection: {message}")

        logger.debug("[%s] greeting: %s", self._name, message)
        return message

    def command(self, verb: str, *args: object) -> str:
        """Send one command and read its single-line response.

        Args:
            verb: Command name (e.g., "USER", "STAT").
            *args: Command arguments, joined with single spaces.

        Returns:
            The response text after +OK.

        Raises:
            ServerError: If the server answers -ERR.
            ProtocolError: If the response is not a status line.
            TransportError: On timeout, reset or EOF.
        """
        self._send(verb, args)
        return self._read_status()

    def command_multi(self, verb: str, *args: object) -> tuple[str, bytes]:
        """Send one command and read a status line plus a multi-line body.

        Body lines are returned with "\\n" line endings and byte-stuffing
        removed. The terminating "." line is not part of the body.

        Args:
            verb: Command name (e.g., "RETR").
            *args: Command arguments.

        Returns:
            Tuple of (response text after +OK, body bytes).

        Raises:
            ServerError: If the server answers -ERR (no body is read).
            ProtocolError: If the response is not a status line.
            TransportError: On timeout, reset, or EOF before the terminator.
        """
        self._send(verb, args)
        message = self._read_status()
        return message, self._read_body()

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return

        self._closed = True
        try:
            self._file.close()
        finally:
            self._sock.close()

    def _send(self, verb: str, args: tuple[object, ...]) -> None:
        line = " ".join([verb, *(str(arg) for arg in args)])

        if "\r" in line or "\n" in line:
            raise ProtocolError(f"line break in {verb} command")

        if verb in _SECRET_COMMANDS:
            logger.debug("[%s] > %s ****", self._name, verb)
        else:
            logger.debug("[%s] > %s", self._name, line)

        try:
            self._sock.sendall(line.encode("utf-8") + CRLF)
        except OSError as e:
            raise TransportError(f"{verb}: send failed: {e}") from e

    def _read_status(self) -> str:
        line = self._read_line()
        ok, message = parse_status_line(line)
        logger.debug("[%s] < %s", self._name, line)

        if not ok:
            raise ServerError(message)

        return message

    def _read_raw_line(self) -> bytes:
        try:
            line = self._file.readline()
        except OSError as e:
            raise TransportError(f"read failed: {e}") from e

        if not line:
            raise TransportError("connection closed by server")

        return line

    def _read_line(self) -> str:
        raw = _strip_eol(self._read_raw_line())
        return raw.decode("utf-8", errors="replace")

    def _read_body(self) -> bytes:
        lines = []

        while True:
            line = _strip_eol(self._read_raw_line())

            if line == b".":
                break

            # Byte-stuffing: a leading "." was doubled by the server
            if line.startswith(b"."):
                line = line[1:]

            lines.append(line + b"\n")

        return b"".join(lines)
