"""Exception types raised by samtranslocations.

The CLI turns every exception into a one-line message and exit status 2, so
these classes mostly exist to let callers tell configuration problems apart
from unreadable inputs.
"""

from __future__ import annotations

from typing import Optional


class ConfigurationError(ValueError):
    """Raised when thresholds or inputs make a scan impossible to start."""


class SourceError(OSError):
    """Raised when an alignment file cannot be opened or its header is invalid."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class ClusterInvariantError(RuntimeError):
    """Raised when breakpoint statistics are requested for an empty cluster."""
