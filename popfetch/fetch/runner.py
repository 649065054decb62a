"""Fetch workflow for a single account.

Drives one POP3 session from lock to unlock:

    lock -> connect -> UTF8/USER/PASS -> STAT -> RETR/deliver/DELE x N -> QUIT -> unlock

Per-message failures (a -ERR on RETR or DELE, a Maildir delivery error)
are recorded and the loop moves on to the next message. Anything that
breaks the session ends the account run. Either way the run returns an
AccountSummary; PopfetchError never escapes run(), and the lock is
released on every path.
"""

import logging
import socket
import time
from collections.abc import Callable
from pathlib import Path

from popfetch.config.settings import AccountSettings
from popfetch.errors import (
    ConfigurationError,
    DeliveryError,
    Pop3Error,
    PopfetchError,
    ProtocolError,
    ServerError,
    TransportError,
)
from popfetch.fetch.lock import AccountLock
from popfetch.fetch.models import (
    AccountStatus,
    AccountSummary,
    DeletionOutcome,
    DeliveryOutcome,
    MailboxState,
    MessageResult,
)
from popfetch.pop3.session import POP3Session
from popfetch.pop3.transport import Dialer, make_dialer, open_transport
from popfetch.storage.maildir import deliver

logger = logging.getLogger(__name__)

# Type for connection setup: (settings, dialer) -> connected socket
TransportFactory = Callable[[AccountSettings, Dialer], socket.socket]

# Type for Maildir delivery: (maildir root, message bytes) -> delivered path
DeliverFunc = Callable[[Path, bytes], Path]


def parse_stat_reply(reply: str) -> MailboxState:
    """Parse the text of a STAT reply ("<count> <size>").

    Raises:
        ProtocolError: If the reply is not exactly two non-negative integers.
    """
    tokens = reply.split()

    if len(tokens) != 2 or not all(t.isascii() and t.isdigit() for t in tokens):
        raise ProtocolError(f"malformed STAT reply: {reply!r}")

    return MailboxState(count=int(tokens[0]), size=int(tokens[1]))


def parse_reported_size(reply: str) -> int | None:
    """Get the message size from a RETR reply, if the server sent one.

    The size is informational only; a missing or odd value returns None.
    """
    tokens = reply.split(maxsplit=1)

    if tokens and tokens[0].isascii() and tokens[0].isdigit():
        return int(tokens[0])

    return None


class AccountRunner:
    """Runs the fetch workflow for one account.

    Example:
        settings = resolve_account(config, "work")
        summary = AccountRunner(settings).run()
        print(f"{summary.name}: {summary.message_count} messages")
    """

    def __init__(
        self,
        settings: AccountSettings,
        lock: AccountLock | None = None,
        transport_factory: TransportFactory = open_transport,
        deliver_func: DeliverFunc = deliver,
    ):
        """Initialize the runner.

        Args:
            settings: Resolved account settings.
            lock: Lock guarding this account. Defaults to an AccountLock
                  in the standard lock directory.
            transport_factory: Opens the connection to the server.
            deliver_func: Stores one message in the Maildir.
        """
        self._settings = settings
        self._lock = lock or AccountLock(settings.name)
        self._open_transport = transport_factory
        self._deliver = deliver_func

    @property
    def name(self) -> str:
        return self._settings.name

    def run(self) -> AccountSummary:
        """Fetch all messages of the account.

        Returns:
            AccountSummary with the terminal status, counts and per-message
            outcomes. Elapsed time covers the whole run.
        """
        summary = AccountSummary(name=self.name)
        start = time.monotonic()

        try:
            self._run(summary)
        finally:
            summary.elapsed = time.monotonic() - start

        logger.info(
            "[%s] %s: %d messages, %d delivered, %d deleted in %.2fs",
            self.name,
            summary.status.value,
            summary.message_count,
            summary.delivered,
            summary.deleted,
            summary.elapsed,
        )
        return summary

    def _run(self, summary: AccountSummary) -> None:
        settings = self._settings

        if not settings.active:
            logger.info("[%s] Account is inactive, skipping", self.name)
            summary.status = AccountStatus.skipped_inactive
            return

        try:
            settings.validate()
            dialer = make_dialer(settings)
        except ConfigurationError as e:
            self._abort(summary, AccountStatus.configuration_error, e)
            return

        try:
            acquired = self._lock.acquire()
        except OSError as e:
            self._abort(summary, AccountStatus.configuration_error, e)
            return

        if not acquired:
            logger.warning(
                "[%s] Locked by another run (%s), skipping",
                self.name,
                self._lock.lock_file,
            )
            summary.status = AccountStatus.skipped_locked
            return

        try:
            self._fetch(summary, dialer)
        finally:
            self._lock.release()

    def _fetch(self, summary: AccountSummary, dialer: Dialer) -> None:
        try:
            session = self._connect(dialer)
        except PopfetchError as e:
            self._abort(summary, AccountStatus.connection_error, e)
            return

        with session:
            try:
                self._authenticate(session)
                state = parse_stat_reply(session.command("STAT"))

                summary.message_count = state.count
                summary.mailbox_size = state.size
                logger.info(
                    "[%s] There are %d messages of total size %d bytes",
                    self.name,
                    state.count,
                    state.size,
                )

                for index in range(1, state.count + 1):
                    self._fetch_message(session, index, state.count, summary)
            except TransportError as e:
                self._abort(summary, AccountStatus.connection_error, e)
                return
            except Pop3Error as e:
                self._abort(summary, AccountStatus.protocol_error, e)
                return

            self._quit(session)

    def _connect(self, dialer: Dialer) -> POP3Session:
        sock = self._open_transport(self._settings, dialer)
        session = POP3Session(sock, name=self.name)

        try:
            session.open()
        except BaseException:
            session.close()
            raise

        return session

    def _authenticate(self, session: POP3Session) -> None:
        # Optional capability, many servers do not know it
        try:
            session.command("UTF8")
        except ServerError as e:
            logger.debug("[%s] UTF8 not supported: %s", self.name, e)

        session.command("USER", self._settings.username)
        session.command("PASS", self._settings.password)

    def _fetch_message(
        self, session: POP3Session, index: int, count: int, summary: AccountSummary
    ) -> None:
        try:
            reply, body = session.command_multi("RETR", index)
        except ServerError as e:
            logger.warning("[%s] RETR %d failed: %s", self.name, index, e)
            summary.add_message(
                MessageResult(
                    index=index,
                    delivery=DeliveryOutcome.retrieval_failed,
                    error=str(e),
                )
            )
            return

        size = parse_reported_size(reply)
        logger.info(
            "[%s] Fetching message %d/%d (%s bytes)",
            self.name,
            index,
            count,
            "?" if size is None else size,
        )

        try:
            path = self._deliver(self._settings.maildir, body)
        except DeliveryError as e:
            logger.error("[%s] Delivery of message %d failed: %s", self.name, index, e)
            summary.add_message(
                MessageResult(
                    index=index,
                    delivery=DeliveryOutcome.delivery_failed,
                    size=size,
                    error=str(e),
                )
            )
            return

        result = MessageResult(
            index=index,
            delivery=DeliveryOutcome.delivered,
            size=size,
            path=path,
        )

        if self._settings.keep:
            summary.add_message(result)
            return

        try:
            session.command("DELE", index)
            result.deletion = DeletionOutcome.deleted
        except Pop3Error as e:
            logger.warning("[%s] DELE %d failed: %s", self.name, index, e)
            result.deletion = DeletionOutcome.deletion_failed
            result.error = str(e)
            if not isinstance(e, ServerError):
                summary.add_message(result)
                raise

        summary.add_message(result)

    def _quit(self, session: POP3Session) -> None:
        # The server only applies DELE once QUIT is accepted
        try:
            session.command("QUIT")
        except Pop3Error as e:
            logger.warning("[%s] QUIT failed: %s", self.name, e)

    def _abort(
        self, summary: AccountSummary, status: AccountStatus, error: Exception
    ) -> None:
        logger.error("[%s] %s: %s", self.name, status.value, error)
        summary.status = status
        summary.error = str(error)
