"""Maildir delivery for fetched messages.

Maildir format uses three subdirectories:
- tmp/: Messages being delivered (atomic write in progress)
- new/: Newly delivered, unread messages
- cur/: Messages that have been seen by a mail reader

Delivery writes the message to tmp/ under a random name, syncs it to disk
and renames it into new/. The rename is the only step that makes a message
visible, so a crash leaves at most an orphaned file in tmp/. new/ is synced
after the rename, before the caller deletes the server copy.

Message filenames are 32 lowercase hex characters derived from 16 random
bytes; collisions are not guarded against.
"""

import contextlib
import logging
import os
import secrets
from pathlib import Path

from popfetch.errors import DeliveryError

logger = logging.getLogger(__name__)

MAILDIR_SUBDIRS = ("cur", "new", "tmp")


def generate_filename() -> str:
    """Generate a unique Maildir filename from 16 random bytes."""
    return secrets.token_hex(16)


def deliver(maildir_root: Path, message_bytes: bytes) -> Path:
    """Atomically deliver one message into a Maildir.

    The tmp/ and new/ subdirectories must already exist; this function
    never creates them.

    Args:
        maildir_root: Root of the Maildir (the directory holding tmp/ and new/).
        message_bytes: Raw message content.

    Returns:
        Path of the delivered file under new/.

    Raises:
        DeliveryError: If the message could not be written, renamed or
            synced. Nothing is left under new/ in that case.
    """
    filename = generate_filename()
    tmp_path = maildir_root / "tmp" / filename
    new_path = maildir_root / "new" / filename

    try:
        # O_EXCL: never clobber another delivery's temporary file
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except OSError as e:
        raise DeliveryError(f"cannot create {tmp_path}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(message_bytes)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        _discard(tmp_path)
        raise DeliveryError(f"cannot write {tmp_path}: {e}") from e

    try:
        # os.rename is atomic on POSIX when tmp/ and new/ share a filesystem
        os.rename(tmp_path, new_path)
    except OSError as e:
        _discard(tmp_path)
        raise DeliveryError(f"cannot move {tmp_path} to {new_path}: {e}") from e

    # The rename must be on disk before the server copy is deleted
    try:
        _sync_directory(new_path.parent)
    except OSError as e:
        _discard(new_path)
        raise DeliveryError(f"cannot sync {new_path.parent}: {e}") from e

    logger.debug("Delivered %d bytes to %s", len(message_bytes), new_path)
    return new_path


def _sync_directory(path: Path) -> None:
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _discard(path: Path) -> None:
    """Remove a leftover temporary file, if any."""
    with contextlib.suppress(OSError):
        path.unlink()


def ensure_maildir(maildir_root: Path) -> Path:
    """Create the Maildir structure with cur/, new/ and tmp/.

    Safe to call multiple times. Used when setting up a new destination;
    delivery itself expects the structure to exist already. The root is
    made private (mode 700) only when this call creates it.

    Args:
        maildir_root: Root directory of the Maildir.

    Returns:
        The Maildir root path.
    """
    created = not maildir_root.exists()

    for subdir in MAILDIR_SUBDIRS:
        (maildir_root / subdir).mkdir(parents=True, exist_ok=True)

    if created:
        maildir_root.chmod(0o700)

    return maildir_root
