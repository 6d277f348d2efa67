"""Result aggregation and rendering.

Three disciplines, selected by OutputMode:
- TEXT: buffer everything, print a human summary at the end
- JSON_STREAM: write one JSON record per line the moment a result arrives
- JSON_PRETTY: buffer everything, print one indented JSON array at the end

Every aggregator folds the stream into a RunSummary on finish().
"""

import json
import logging
import sys
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TextIO

from herd.models import ExecutionResult, OutputMode, RunSummary, Target

logger = logging.getLogger(__name__)


class Aggregator(ABC):
    """Consumes per-target results and renders them."""

    def __init__(
        self,
        stream: TextIO | None = None,
        field_filter: frozenset[str] | None = None,
        order: Sequence[Target] | None = None,
    ) -> None:
        """Initialize aggregator.

        Args:
            stream: Output stream (default stdout)
            field_filter: Record fields to keep (all when None)
            order: Inventory order used for the final summary
        """
        self.stream = stream or sys.stdout
        self.field_filter = field_filter
        self.order = order
        self._results: list[ExecutionResult] = []
        self._finished = False

    def consume(self, result: ExecutionResult) -> None:
        """Accept one final result from the dispatcher."""
        if self._finished:
            raise RuntimeError("Aggregator already finished")
        self._results.append(result)
        self.on_result(result)

    def finish(self) -> RunSummary:
        """Close the stream of results, render, and return the summary."""
        self._finished = True
        summary = RunSummary.from_results(self._results, order=self.order)
        self.render(summary)
        self.stream.flush()
        return summary

    def on_result(self, result: ExecutionResult) -> None:
        """Hook called for each result as it arrives."""

    @abstractmethod
    def render(self, summary: RunSummary) -> None:
        """Write end-of-run output."""

    def record(self, result: ExecutionResult) -> dict:
        return result.to_record(self.field_filter)

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")


class JsonStreamAggregator(Aggregator):
    """NDJSON: one self-contained record per line, emitted immediately."""

    def on_result(self, result: ExecutionResult) -> None:
        self._write(json.dumps(self.record(result), ensure_ascii=False))
        self.stream.flush()

    def render(self, summary: RunSummary) -> None:
        logger.debug("Streamed %d record(s)", summary.total)


class JsonPrettyAggregator(Aggregator):
    """One indented JSON array in inventory order at end of run."""

    def render(self, summary: RunSummary) -> None:
        records = [self.record(r) for r in summary.results]
        self._write(json.dumps(records, indent=2, ensure_ascii=False))


class TextAggregator(Aggregator):
    """Human-readable end-of-run summary."""

    def _wants(self, name: str) -> bool:
        return self.field_filter is None or name in self.field_filter

    @staticmethod
    def _indent(text: str, prefix: str = "    ") -> list[str]:
        return [prefix + line for line in text.rstrip("\n").splitlines()]

    def render(self, summary: RunSummary) -> None:
        lines = [
            f"=== {summary.total} host(s): "
            f"{summary.succeeded} succeeded, {summary.failed} failed ===",
        ]

        if summary.successes:
            lines.append("")
            lines.append(f"SUCCEEDED ({summary.succeeded})")
            for result in summary.successes:
                header = f"  {result.target}"
                if self._wants("duration_ms"):
                    header += f" ({result.duration_ms}ms)"
                lines.append(header)
                if self._wants("stdout") and result.stdout:
                    lines.extend(self._indent(result.stdout))

        if summary.failures:
            lines.append("")
            lines.append(f"FAILED ({summary.failed})")
            for result in summary.failures:
                header = f"  {result.target}: {result.failure_reason}"
                if result.attempt_count > 1:
                    header += f" (after {result.attempt_count} attempts)"
                lines.append(header)
                if self._wants("stdout") and result.stdout:
                    lines.extend(self._indent(result.stdout))
                if self._wants("stderr") and result.stderr:
                    lines.extend(self._indent(result.stderr))

        self._write("\n".join(lines))


_AGGREGATORS: dict[OutputMode, type[Aggregator]] = {
    OutputMode.TEXT: TextAggregator,
    OutputMode.JSON_STREAM: JsonStreamAggregator,
    OutputMode.JSON_PRETTY: JsonPrettyAggregator,
}


def create_aggregator(
    mode: OutputMode,
    stream: TextIO | None = None,
    field_filter: frozenset[str] | None = None,
    order: Sequence[Target] | None = None,
) -> Aggregator:
    """Build the aggregator for an output mode."""
    return _AGGREGATORS[mode](stream=stream, field_filter=field_filter, order=order)
