"""Per-account lock files.

A lock is a file <lock_dir>/<account>.lock created with O_CREAT | O_EXCL,
so at most one process on the machine can hold it. It contains the PID of
the owner to help with manual cleanup. A process that dies without
releasing its lock leaves the file behind; remove it with
`popfetch unlock <account>`.
"""

import logging
import os
from pathlib import Path

from popfetch.config.paths import LOCK_DIR, ensure_lock_dir

logger = logging.getLogger(__name__)


class AccountLock:
    """Advisory, filesystem-visible lock for one account.

    Example:
        lock = AccountLock("work")
        if not lock.acquire():
            return  # another run is busy with this account
        try:
            ...
        finally:
            lock.release()
    """

    def __init__(self, account_name: str, lock_dir: Path | None = None):
        """Initialize the lock for an account.

        Args:
            account_name: Name of the account (used for the lock file name).
            lock_dir: Directory holding lock files. Defaults to LOCK_DIR.
        """
        self._account_name = account_name
        self._lock_dir = lock_dir or LOCK_DIR
        self._lock_file = self._lock_dir / f"{account_name}.lock"
        self._held = False

    @property
    def lock_file(self) -> Path:
        """Get the path to this account's lock file."""
        return self._lock_file

    @property
    def held(self) -> bool:
        """Whether this instance currently holds the lock."""
        return self._held

    def acquire(self) -> bool:
        """Try to take the lock without waiting.

        Returns:
            True if the lock was taken, False if it is already held.

        Raises:
            OSError: If the lock file cannot be created or written for another
                reason. No lock file is left behind in that case.
        """
        ensure_lock_dir(self._lock_dir)

        try:
            fd = os.open(self._lock_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            return False

        try:
            with os.fdopen(fd, "w") as f:
                f.write(f"{os.getpid()}\n")
        except BaseException:
            # No lock file without an owner PID
            self._lock_file.unlink(missing_ok=True)
            raise

        self._held = True
        logger.debug("[%s] Acquired lock %s", self._account_name, self._lock_file)
        return True

    def release(self) -> None:
        """Remove the lock file if this instance holds it."""
        if not self._held:
            return

        self._held = False
        self._lock_file.unlink(missing_ok=True)
        logger.debug("[%s] Released lock %s", self._account_name, self._lock_file)

    def owner_pid(self) -> int | None:
        """Read the PID recorded in the lock file.

        Returns:
            The PID, or None if there is no lock or it is unreadable.
        """
        try:
            return int(self._lock_file.read_text().strip())
        except (OSError, ValueError):
            return None

    def break_lock(self) -> bool:
        """Remove a lock regardless of who holds it.

        Meant for stale locks left behind by a crashed run.

        Returns:
            True if a lock file was removed.
        """
        try:
            self._lock_file.unlink()
        except FileNotFoundError:
            return False

        logger.info("[%s] Removed lock %s", self._account_name, self._lock_file)
        return True
