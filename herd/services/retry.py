"""Per-target retry policy.

Each target moves through::

    Attempting(n) -> Success
                  -> retryable failure     -> Attempting(n + 1) while n <= max_retries
                  -> non-retryable failure -> Exhausted

RESOLVE, CONNECT, TIMEOUT and CHANNEL failures are retryable. AUTH
failures are not: the same credentials will be rejected again. A command
that exits non-zero is a result, not a failure, and is never retried.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable

from herd.exceptions import ErrorKind, TargetError
from herd.models import CommandResult, ExecutionResult, Target

logger = logging.getLogger(__name__)

MAX_RETRY_DELAY = 30.0

# (target, attempt number starting at 1) -> command result
AttemptFn = Callable[[Target, int], Awaitable[CommandResult]]


class RetryPolicy:
    """Bounded, strictly sequential re-attempts for one target at a time."""

    def __init__(
        self,
        max_retries: int = 0,
        delay: float = 0.0,
        jitter: float = 0.25,
        max_delay: float = MAX_RETRY_DELAY,
    ) -> None:
        """Initialize retry policy.

        Args:
            max_retries: Re-attempts allowed after the first attempt
            delay: Base pause before the first retry, doubled per retry
            jitter: Random spread applied to each pause, as a fraction
            max_delay: Upper bound for any single pause

        Raises:
            ValueError: If any argument is negative or jitter exceeds 1
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if delay < 0 or max_delay < 0:
            raise ValueError("delays must be >= 0")
        if not 0 <= jitter <= 1:
            raise ValueError(f"jitter must be within [0, 1], got {jitter}")

        self.max_retries = max_retries
        self.delay = delay
        self.jitter = jitter
        self.max_delay = max_delay

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, attempt: int) -> float:
        """Pause in seconds before the attempt following ``attempt``."""
        if self.delay == 0:
            return 0.0
        base = min(self.delay * 2 ** (attempt - 1), self.max_delay)
        spread = base * self.jitter
        return min(max(0.0, base + random.uniform(-spread, spread)), self.max_delay)

    async def execute(self, target: Target, attempt_fn: AttemptFn) -> ExecutionResult:
        """Run attempts for one target until success or exhaustion.

        TargetError subclasses are classified by kind. Any other exception
        is a bug in the attempt and ends the target as INTERNAL, keeping the
        real attempt count. Cancellation always propagates.

        Args:
            target: Target being executed
            attempt_fn: Opens a fresh session and runs the command once

        Returns:
            The target's single ExecutionResult, annotated with attempt count
        """
        started = time.monotonic()
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await attempt_fn(target, attempt)
            except TargetError as e:
                if not e.retryable or attempt >= self.max_attempts:
                    return self._exhausted(target, e.kind, e.message, attempt, started)

                pause = self.backoff(attempt)
                logger.warning(
                    "Attempt %d/%d on %s failed (%s): %s, retrying in %.1fs",
                    attempt,
                    self.max_attempts,
                    target,
                    e.kind.value,
                    e.message,
                    pause,
                )
                if pause:
                    await asyncio.sleep(pause)
                continue
            except Exception as e:
                logger.exception("Unexpected error on %s (attempt %d)", target, attempt)
                return self._exhausted(
                    target, ErrorKind.INTERNAL, str(e), attempt, started
                )

            if attempt > 1:
                logger.info("Attempt %d on %s succeeded", attempt, target)
            return ExecutionResult.from_command(target, result, attempt)

    def _exhausted(
        self,
        target: Target,
        kind: ErrorKind,
        message: str,
        attempts: int,
        started: float,
    ) -> ExecutionResult:
        logger.error(
            "Giving up on %s after %d attempt(s): %s: %s",
            target,
            attempts,
            kind.value,
            message,
        )
        return ExecutionResult.from_failure(
            target,
            kind=kind,
            message=message,
            attempt_count=attempts,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
