"""Path constants and directory utilities for popfetch config.

Follows the XDG Base Directory layout:
- Config: ~/.config/popfetch/
- Locks: ~/.config/popfetch/locks/ (with restricted permissions)
"""

from pathlib import Path


# XDG-compliant config directory
CONFIG_DIR = Path.home() / ".config" / "popfetch"
CONFIG_FILE = CONFIG_DIR / "config.toml"

# One lock file per account while it is being fetched
LOCK_DIR = CONFIG_DIR / "locks"

# Where mail goes when an account does not name a Maildir
DEFAULT_MAILDIR = Path.home() / "Maildir"


def ensure_config_dir() -> Path:
    """Create config directory if it doesn't exist.

    Returns the config directory path.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR


def ensure_lock_dir(lock_dir: Path | None = None) -> Path:
    """Create the lock directory with restricted permissions.

    A directory created here gets permissions 700 (owner only) so other
    users cannot plant or remove account locks. An existing directory is
    used as it is.

    Args:
        lock_dir: Directory to create. Defaults to LOCK_DIR.

    Returns the lock directory path.
    """
    lock_dir = lock_dir or LOCK_DIR

    try:
        lock_dir.mkdir(parents=True)
    except FileExistsError:
        return lock_dir

    lock_dir.chmod(0o700)
    return lock_dir
