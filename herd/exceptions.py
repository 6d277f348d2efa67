"""Exception hierarchy for herd.

Per-target failures (ConnectionError, RunError) are captured into that
target's ExecutionResult. ConfigError and its subclasses abort the run
before any host is contacted.
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from herd.models import Target


class ErrorKind(Enum):
    """Classification of a per-target failure."""

    RESOLVE = "resolve"
    CONNECT = "connect"
    AUTH = "auth"
    TIMEOUT = "timeout"
    CHANNEL = "channel"
    INTERNAL = "internal"

    @property
    def retryable(self) -> bool:
        """Whether the same attempt with the same inputs could succeed."""
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {ErrorKind.RESOLVE, ErrorKind.CONNECT, ErrorKind.TIMEOUT, ErrorKind.CHANNEL}
)


class HerdError(Exception):
    """Base class for all herd errors."""


class ConfigError(HerdError):
    """Invalid run configuration (exit code 2)."""


class InventoryError(ConfigError):
    """Inventory could not be read or resolved to zero targets."""


class TargetError(HerdError):
    """A classified failure scoped to a single target attempt."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        target: "Target",
        message: str,
        kind: ErrorKind | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize target error.

        Args:
            target: Target the failure belongs to
            message: Human readable description
            kind: Error classification (defaults to the class kind)
            original_error: Underlying exception, if any
        """
        if kind is not None:
            self.kind = kind
        self.target = target
        self.message = message
        self.original_error = original_error
        super().__init__(f"{target}: {message}")

    @property
    def retryable(self) -> bool:
        """Whether repeating the attempt could plausibly succeed."""
        return self.kind.retryable


class ConnectionError(TargetError):
    """Failed to resolve, connect to, or authenticate with a target.

    ``kind`` is one of RESOLVE, CONNECT or AUTH. For CONNECT failures
    ``reason`` holds the diagnostic sub-case (refused, timeout,
    unreachable, handshake).
    """

    kind = ErrorKind.CONNECT

    def __init__(
        self,
        target: "Target",
        message: str,
        kind: ErrorKind | None = None,
        original_error: Exception | None = None,
        reason: str | None = None,
    ):
        super().__init__(target, message, kind=kind, original_error=original_error)
        self.reason = reason


class RunError(TargetError):
    """Transport or protocol failure while a command was executing."""

    kind = ErrorKind.TIMEOUT
