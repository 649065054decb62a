"""Result models for fetch runs."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class AccountStatus(str, Enum):
    """Terminal status of one account run."""

    ok = "ok"
    skipped_locked = "skipped-locked"
    skipped_inactive = "skipped-inactive"
    configuration_error = "configuration-error"
    connection_error = "connection-error"
    protocol_error = "protocol-error"
    internal_error = "internal-error"

    @property
    def is_error(self) -> bool:
        """Whether this status means the account run failed."""
        return self in _ERROR_STATUSES


_ERROR_STATUSES = {
    AccountStatus.configuration_error,
    AccountStatus.connection_error,
    AccountStatus.protocol_error,
    AccountStatus.internal_error,
}


class DeliveryOutcome(str, Enum):
    """What happened to a message on its way into the Maildir."""

    delivered = "delivered"
    retrieval_failed = "retrieval-failed"
    delivery_failed = "delivery-failed"


class DeletionOutcome(str, Enum):
    """What happened to the server copy of a message."""

    deleted = "deleted"
    not_attempted = "not-attempted"
    deletion_failed = "deletion-failed"


@dataclass
class MailboxState:
    """Message count and total size reported by STAT."""

    count: int
    size: int


@dataclass
class MessageResult:
    """Outcome for one message of a session.

    The index is the server-assigned message number, only meaningful
    within the session that produced it.
    """

    index: int
    delivery: DeliveryOutcome
    size: int | None = None  # None when the RETR reply gave no size
    deletion: DeletionOutcome = DeletionOutcome.not_attempted
    path: Path | None = None  # Delivered file under new/
    error: str | None = None


@dataclass
class AccountSummary:
    """Result of one account run.

    Tracks the mailbox size at session start, per-message outcomes and
    the terminal status of the run.
    """

    name: str
    status: AccountStatus = AccountStatus.ok
    message_count: int = 0
    mailbox_size: int = 0
    deleted: int = 0
    elapsed: float = 0.0
    messages: list[MessageResult] = field(default_factory=list)
    error: str | None = None

    @property
    def delivered(self) -> int:
        """Number of messages stored in the Maildir."""
        return sum(
            1 for m in self.messages if m.delivery is DeliveryOutcome.delivered
        )

    @property
    def failed(self) -> int:
        """Number of messages that were not delivered or not deleted."""
        return sum(
            1
            for m in self.messages
            if m.delivery is not DeliveryOutcome.delivered
            or m.deletion is DeletionOutcome.deletion_failed
        )

    def add_message(self, result: MessageResult) -> None:
        """Record the outcome for one message.

        Args:
            result: Outcome of fetching, delivering and deleting it.
        """
        self.messages.append(result)
        if result.deletion is DeletionOutcome.deleted:
            self.deleted += 1


@dataclass
class FetchReport:
    """Summaries of all accounts of one invocation, sorted by account name."""

    summaries: list[AccountSummary] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def has_errors(self) -> bool:
        """Whether any account ended in an error status."""
        return any(s.status.is_error for s in self.summaries)
