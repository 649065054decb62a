"""Fetch mail from POP3 accounts into local Maildir mailboxes."""

__version__ = "0.1.0"
