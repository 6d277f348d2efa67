"""Command and run result data models."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from herd.exceptions import ErrorKind
from herd.models.target import Target

# Keys of a streamed result record, in emission order.
RECORD_FIELDS = (
    "hostname",
    "port",
    "success",
    "exit_code",
    "stdout",
    "stderr",
    "stdout_lines",
    "duration_ms",
    "attempts",
    "timestamp",
    "error",
)


def split_lines(text: str) -> list[str]:
    """Split output on newlines.

    A trailing empty segment produced by a final newline is dropped, so
    ``"a\\nb\\n"`` and ``"a\\nb"`` both give two lines. One trailing ``\\r``
    is stripped from each line; other control characters are kept.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


@dataclass(frozen=True)
class CommandResult:
    """Result of a remote command execution."""

    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int


@dataclass(frozen=True)
class FailureInfo:
    """Mechanism failure recorded for a target."""

    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class ExecutionResult:
    """Final outcome for one target.

    ``success`` is true only when the command ran and exited 0.
    ``exit_code`` is None when the mechanism itself failed, in which case
    ``error`` describes the last observed failure.
    """

    target: Target
    attempt_count: int
    success: bool
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    error: FailureInfo | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_command(
        cls, target: Target, result: CommandResult, attempt_count: int
    ) -> "ExecutionResult":
        """Build a result from a completed command."""
        return cls(
            target=target,
            attempt_count=attempt_count,
            success=result.exit_code == 0,
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_ms=result.duration_ms,
        )

    @classmethod
    def from_failure(
        cls,
        target: Target,
        kind: ErrorKind,
        message: str,
        attempt_count: int,
        duration_ms: int = 0,
    ) -> "ExecutionResult":
        """Build a result for a target whose attempts all failed."""
        return cls(
            target=target,
            attempt_count=attempt_count,
            success=False,
            duration_ms=duration_ms,
            error=FailureInfo(kind=kind, message=message),
        )

    @property
    def stdout_lines(self) -> list[str]:
        return split_lines(self.stdout)

    @property
    def failure_reason(self) -> str:
        """Short human readable reason for a failed result."""
        if self.error is not None:
            return str(self.error)
        if self.exit_code not in (None, 0):
            return f"exit code {self.exit_code}"
        return ""

    def to_record(self, fields: Iterable[str] | None = None) -> dict[str, Any]:
        """Render the streaming record for this result.

        Mechanism failures carry ``error`` in place of stdout/stderr.

        Args:
            fields: Optional subset of RECORD_FIELDS to keep

        Returns:
            JSON-serializable dict
        """
        record: dict[str, Any] = {
            "hostname": self.target.host,
            "port": self.target.port,
            "success": self.success,
            "exit_code": self.exit_code,
        }
        if self.error is None:
            record["stdout"] = self.stdout
            record["stderr"] = self.stderr
            record["stdout_lines"] = self.stdout_lines
        record["duration_ms"] = self.duration_ms
        record["attempts"] = self.attempt_count
        record["timestamp"] = self.timestamp.isoformat()
        if self.error is not None:
            record["error"] = {"kind": self.error.kind.value, "message": self.error.message}

        if fields is None:
            return record
        wanted = set(fields)
        return {k: v for k, v in record.items() if k in wanted}


@dataclass(frozen=True)
class RunSummary:
    """Aggregate view of a finished run."""

    total: int
    succeeded: int
    failed: int
    results: tuple[ExecutionResult, ...]

    @classmethod
    def from_results(
        cls,
        results: Iterable[ExecutionResult],
        order: Sequence[Target] | None = None,
    ) -> "RunSummary":
        """Fold a result stream into a summary.

        Args:
            results: Results in arrival order
            order: Inventory order to sort results into (arrival order if None)

        Returns:
            RunSummary with counts and ordered results
        """
        collected = list(results)
        if order is not None:
            rank = {target: i for i, target in enumerate(order)}
            collected.sort(key=lambda r: rank.get(r.target, len(rank)))
        succeeded = sum(1 for r in collected if r.success)
        return cls(
            total=len(collected),
            succeeded=succeeded,
            failed=len(collected) - succeeded,
            results=tuple(collected),
        )

    @property
    def successes(self) -> list[ExecutionResult]:
        return [r for r in self.results if r.success]

    @property
    def failures(self) -> list[ExecutionResult]:
        return [r for r in self.results if not r.success]

    @property
    def exit_code(self) -> int:
        """0 when every target succeeded, 1 otherwise."""
        return 0 if self.failed == 0 else 1
