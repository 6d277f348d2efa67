"""Protocol interfaces for dependency inversion.

Defines the seams the dispatcher depends on, so that command builders and
result sinks can be swapped without touching dispatch logic.

Usage Example:

    from herd.protocols import CommandSource

    def resolve(source: CommandSource) -> str:
        return source.build()

    class Uptime:
        def build(self) -> str:
            return "uptime"

    resolve(Uptime())  # Works for any object with build()
"""

from typing import Protocol, runtime_checkable

from herd.models import ExecutionResult, RunSummary


@runtime_checkable
class CommandSource(Protocol):
    """Anything that produces the shell command to run on every target.

    A module-built command and a user-typed command are interchangeable:
    the dispatcher only ever sees the string returned by ``build()``.
    """

    def build(self) -> str:
        """Build the command string.

        Returns:
            Shell command, quoted as it should reach the remote shell

        Raises:
            ConfigError: If the source's arguments are invalid
        """
        ...


@runtime_checkable
class ResultSink(Protocol):
    """Consumer of the per-target result stream."""

    def consume(self, result: ExecutionResult) -> None:
        """Accept one final result; called once per target."""
        ...

    def finish(self) -> RunSummary:
        """Called after the last result; returns the run summary."""
        ...


__all__ = [
    "CommandSource",
    "ResultSink",
]
