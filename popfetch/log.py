"""Logging setup for the command line.

Library modules only create loggers (logging.getLogger(__name__)); the CLI
calls configure_logging() once to decide what reaches stderr.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(threadName)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Attach a stderr handler to the popfetch logger.

    Levels:
    - quiet: WARNING and above
    - default: INFO and above
    - verbose: DEBUG, including the POP3 conversation (passwords masked)

    Calling it again replaces the handler instead of adding another one.

    Args:
        verbose: Show debug output. Wins over quiet.
        quiet: Only show warnings and errors.

    Returns:
        The configured "popfetch" logger.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger = logging.getLogger("popfetch")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    return logger
