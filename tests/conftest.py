"""Shared fixtures: a scripted POP3 server behind a fake socket.

FakePOP3Server plays the server side of a session in memory. Each line
the client sends is recorded in `commands` and answered immediately, so
tests can assert on the exact command sequence.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from popfetch.config.settings import AccountSettings

# Reply marker: stop answering and report EOF on the next read
EOF = object()


class _Reader:
    """Minimal stand-in for socket.makefile("rb")."""

    def __init__(self):
        self._data = bytearray()
        self.closed = False

    def feed(self, data: bytes) -> None:
        self._data += data

    def readline(self) -> bytes:
        idx = self._data.find(b"\n")
        if idx == -1:
            line = bytes(self._data)
            self._data.clear()
            return line
        line = bytes(self._data[: idx + 1])
        del self._data[: idx + 1]
        return line

    def close(self) -> None:
        self.closed = True


def _stuff(body: bytes) -> bytes:
    """Encode a message body as a dot-terminated POP3 response body."""
    lines = []
    for line in body.splitlines():
        if line.startswith(b"."):
            line = b"." + line
        lines.append(line + b"\r\n")
    return b"".join(lines) + b".\r\n"


class FakePOP3Server:
    """Scripted POP3 server that answers through a fake socket.

    Args:
        messages: Message bodies; message N is messages[N - 1].
        greeting: Greeting line sent on connect (without CRLF).
        replies: Overrides keyed by "VERB" or "VERB ARG". A value is either
                 a full raw response (bytes, CRLF included), a callable
                 taking the argument string and returning one, or EOF.
    """

    def __init__(
        self,
        messages: list[bytes] | None = None,
        greeting: str = "+OK POP3 server ready",
        replies: dict[str, bytes | Callable[[str], bytes] | object] | None = None,
    ):
        self.messages = list(messages or [])
        self.replies = dict(replies or {})
        self.commands: list[str] = []
        self.closed = False
        self._reader = _Reader()
        self._eof = False
        self._reader.feed(greeting.encode() + b"\r\n")

    # socket API used by POP3Session

    def makefile(self, mode: str) -> _Reader:
        return self._reader

    def sendall(self, data: bytes) -> None:
        line = data.decode("utf-8").rstrip("\r\n")
        self.commands.append(line)
        if self._eof:
            return
        reply = self._respond(line)
        if reply is EOF:
            self._eof = True
            return
        self._reader.feed(reply)

    def close(self) -> None:
        self.closed = True

    # helpers for assertions

    def verbs(self, verb: str) -> list[str]:
        """Commands sent with the given verb, in order."""
        return [c for c in self.commands if c.split(" ", 1)[0] == verb]

    def _respond(self, line: str):
        verb, _, arg = line.partition(" ")

        for key in (f"{verb} {arg}", verb):
            if key in self.replies:
                reply = self.replies[key]
                return reply(arg) if callable(reply) else reply

        if verb == "UTF8":
            return b"-ERR unknown command\r\n"
        if verb in ("USER", "PASS"):
            return b"+OK\r\n"
        if verb == "STAT":
            total = sum(len(m) for m in self.messages)
            return f"+OK {len(self.messages)} {total}\r\n".encode()
        if verb == "RETR":
            index = int(arg)
            if not 1 <= index <= len(self.messages):
                return b"-ERR no such message\r\n"
            body = self.messages[index - 1]
            return f"+OK {len(body)} octets\r\n".encode() + _stuff(body)
        if verb == "DELE":
            return f"+OK message {arg} deleted\r\n".encode()
        if verb == "QUIT":
            return b"+OK bye\r\n"

        return b"-ERR unknown command\r\n"


@pytest.fixture
def make_server() -> Callable[..., FakePOP3Server]:
    """Factory for FakePOP3Server instances."""
    return FakePOP3Server


@pytest.fixture
def eof() -> object:
    """Reply marker that makes the fake server hang up."""
    return EOF


@pytest.fixture
def maildir(tmp_path: Path) -> Path:
    """A Maildir root with cur/, new/ and tmp/."""
    root = tmp_path / "Maildir"
    for sub in ("cur", "new", "tmp"):
        (root / sub).mkdir(parents=True)
    return root


@pytest.fixture
def lock_dir(tmp_path: Path) -> Path:
    """Directory for account lock files."""
    return tmp_path / "locks"


@pytest.fixture
def settings(maildir: Path) -> AccountSettings:
    """Settings for a plain, deleting account delivering to `maildir`."""
    return AccountSettings(
        name="work",
        username="jdoe",
        password="secret",
        tls_domain="pop.example.com",
        maildir=maildir,
    )
