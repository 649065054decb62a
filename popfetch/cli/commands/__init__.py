"""CLI commands module."""

from . import config, fetch, unlock

__all__ = ["fetch", "unlock", "config"]
