"""Bounded-concurrency dispatch of one command across many targets.

Admission Control:
- One asyncio task per target, all created up front
- A task holds one semaphore unit from before it opens any connection
  until its result is final, and releases it on every exit path
- At most ``concurrency_limit`` targets are in flight at any instant

Result Delivery:
- Results are yielded in true completion order as each task finishes
- A slow or hung target only occupies its own unit; its timeouts are the
  only thing that ends it
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

from herd.exceptions import ErrorKind
from herd.models import (
    CommandResult,
    Credentials,
    ExecutionResult,
    RunConfig,
    RunSummary,
    Target,
)
from herd.protocols import ResultSink
from herd.services.connection import establish
from herd.services.executors import run_command
from herd.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

RunTargetFn = Callable[[Target], Awaitable[ExecutionResult]]


class Dispatcher:
    """Runs the configured command on every target with bounded concurrency."""

    def __init__(
        self,
        config: RunConfig,
        credentials: Credentials,
        run_target: RunTargetFn | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            config: Validated run configuration
            credentials: Shared read-only credentials
            run_target: Override for the retry-wrapped per-target execution
        """
        self.config = config
        self.credentials = credentials
        self.retry_policy = RetryPolicy(
            max_retries=config.max_retries, delay=config.retry_delay
        )
        self._run_target = run_target or self.run_target
        self._semaphore = asyncio.Semaphore(config.concurrency_limit)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def attempt(self, target: Target, attempt: int) -> CommandResult:
        """One attempt: fresh session, run the command, close the session."""
        logger.debug("Attempt %d on %s", attempt, target)
        session = await establish(
            target,
            self.credentials,
            self.config.connect_timeout,
            known_hosts=self.config.known_hosts,
        )
        async with session:
            return await run_command(session, self.config.command, self.config.io_timeout)

    async def run_target(self, target: Target) -> ExecutionResult:
        """Execute the command on one target under the retry policy."""
        return await self.retry_policy.execute(target, self.attempt)

    async def _execute(self, target: Target) -> ExecutionResult:
        async with self._semaphore:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await self._run_target(target)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Unexpected error on %s", target)
                return ExecutionResult.from_failure(
                    target, kind=ErrorKind.INTERNAL, message=str(e), attempt_count=1
                )
            finally:
                self.in_flight -= 1

    async def dispatch(self, targets: Sequence[Target]) -> AsyncIterator[ExecutionResult]:
        """Yield one ExecutionResult per target as each completes.

        Args:
            targets: Deduplicated targets in inventory order

        Yields:
            Results in completion order
        """
        logger.info(
            "Dispatching to %d target(s) (concurrency=%d, retries=%d)",
            len(targets),
            self.config.concurrency_limit,
            self.config.max_retries,
        )
        tasks = [
            asyncio.create_task(self._execute(target), name=f"herd:{target}")
            for target in targets
        ]
        try:
            for next_done in asyncio.as_completed(tasks):
                yield await next_done
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    async def run(self, targets: Sequence[Target], sink: ResultSink) -> RunSummary:
        """Stream every result into a sink and return its summary."""
        async for result in self.dispatch(targets):
            sink.consume(result)
        summary = sink.finish()
        logger.info(
            "Run complete: %d succeeded, %d failed (peak in flight %d)",
            summary.succeeded,
            summary.failed,
            self.peak_in_flight,
        )
        return summary
