"""Account locking, the per-account fetch workflow and its orchestration."""

from .lock import AccountLock
from .models import (
    AccountStatus,
    AccountSummary,
    DeletionOutcome,
    DeliveryOutcome,
    FetchReport,
    MailboxState,
    MessageResult,
)
from .orchestrator import Orchestrator
from .runner import AccountRunner

__all__ = [
    "AccountLock",
    "AccountRunner",
    "AccountStatus",
    "AccountSummary",
    "DeletionOutcome",
    "DeliveryOutcome",
    "FetchReport",
    "MailboxState",
    "MessageResult",
    "Orchestrator",
]
