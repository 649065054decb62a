"""Local mail storage."""

from .maildir import deliver, ensure_maildir

__all__ = ["deliver", "ensure_maildir"]
