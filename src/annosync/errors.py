"""Exceptions and user notices for annosync.

Every exception raised by the engine itself is preceded by a notice so that
a failed daily-note write is never silent. File store I/O errors are not
wrapped here; they propagate to the caller unchanged.
"""

import logging
from collections.abc import Callable
from typing import Literal

Notifier = Callable[[str], None]

_notice_log = logging.getLogger("annosync.notices")


def log_notifier(message: str) -> None:
    """Default notifier: log the notice as a warning."""
    _notice_log.warning(message)


class AnnosyncError(Exception):
    """Base class for errors raised by annosync."""


class ConfigurationError(AnnosyncError):
    """Raised when settings are missing or invalid."""


class RegionNotFoundError(AnnosyncError):
    """Raised when a daily note lacks one of the region marker lines."""

    def __init__(self, marker: str, boundary: Literal["start", "end"]) -> None:
        self.marker = marker
        self.boundary = boundary
        super().__init__(f"cannot find {boundary} marker: {marker}")
