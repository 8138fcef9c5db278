"""Logging configuration for annosync.

Usage in other modules:
    import logging
    log = logging.getLogger(__name__)

The log level can be configured via the ANNOSYNC_LOG_LEVEL environment variable:
    - DEBUG: Lookup misses and skipped files
    - INFO: Files created or updated (default)
    - WARNING: User notices (missing daily note, missing markers)
    - ERROR: Errors that prevented an operation
"""

import logging
import os
import sys

_quiet_mode = False


def configure_logging() -> None:
    """Configure logging for the annosync package.

    Call this once at application startup (e.g., in cli.py).
    Subsequent calls are no-ops.
    """
    root_logger = logging.getLogger("annosync")

    if root_logger.handlers:
        return

    level_name = os.environ.get("ANNOSYNC_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    if _quiet_mode:
        level = logging.ERROR

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="[%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Prevent propagation to root logger (avoids duplicate messages)
    root_logger.propagate = False


def set_quiet_mode(quiet: bool) -> None:
    """Only show errors when quiet mode is on."""
    global _quiet_mode
    _quiet_mode = quiet

    root_logger = logging.getLogger("annosync")
    level = logging.ERROR if quiet else logging.INFO
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)


def is_quiet_mode() -> bool:
    return _quiet_mode
