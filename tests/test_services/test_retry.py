"""Tests for the per-target retry policy."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from herd.exceptions import ConnectionError, ErrorKind, RunError
from herd.models import CommandResult, Target
from herd.services.retry import MAX_RETRY_DELAY, RetryPolicy

TARGET = Target("web1")
OK = CommandResult(exit_code=0, stdout="ok\n", stderr="", duration_ms=5)


def connect_refused() -> ConnectionError:
    return ConnectionError(TARGET, "refused", kind=ErrorKind.CONNECT, reason="refused")


@pytest.mark.asyncio
async def test_success_on_first_attempt() -> None:
    """One attempt, one result."""
    attempt_fn = AsyncMock(return_value=OK)

    result = await RetryPolicy(max_retries=3).execute(TARGET, attempt_fn)

    assert result.success
    assert result.attempt_count == 1
    attempt_fn.assert_awaited_once_with(TARGET, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [0, 1, 3])
async def test_attempts_bounded_by_max_retries(max_retries: int) -> None:
    """Retryable failures are attempted exactly max_retries + 1 times."""
    attempt_fn = AsyncMock(side_effect=connect_refused())

    result = await RetryPolicy(max_retries=max_retries).execute(TARGET, attempt_fn)

    assert not result.success
    assert result.attempt_count == max_retries + 1
    assert attempt_fn.await_count == max_retries + 1
    assert result.error.kind is ErrorKind.CONNECT
    assert result.exit_code is None


@pytest.mark.asyncio
async def test_auth_failure_not_retried() -> None:
    """AUTH failures stop after one attempt."""
    attempt_fn = AsyncMock(
        side_effect=ConnectionError(TARGET, "denied", kind=ErrorKind.AUTH)
    )

    result = await RetryPolicy(max_retries=5).execute(TARGET, attempt_fn)

    assert result.attempt_count == 1
    assert result.error.kind is ErrorKind.AUTH


@pytest.mark.asyncio
async def test_nonzero_exit_not_retried() -> None:
    """A command that ran and failed is a final result."""
    attempt_fn = AsyncMock(
        return_value=CommandResult(exit_code=1, stdout="", stderr="boom", duration_ms=3)
    )

    result = await RetryPolicy(max_retries=3).execute(TARGET, attempt_fn)

    assert not result.success
    assert result.exit_code == 1
    assert result.attempt_count == 1
    assert result.error is None


@pytest.mark.asyncio
async def test_recovers_after_transient_failure() -> None:
    """A timeout followed by success reports the attempt count."""
    attempt_fn = AsyncMock(
        side_effect=[RunError(TARGET, "idle", kind=ErrorKind.TIMEOUT), OK]
    )

    result = await RetryPolicy(max_retries=2).execute(TARGET, attempt_fn)

    assert result.success
    assert result.attempt_count == 2


@pytest.mark.asyncio
async def test_last_failure_is_reported() -> None:
    """The final error, not the first, describes the target."""
    attempt_fn = AsyncMock(
        side_effect=[
            connect_refused(),
            ConnectionError(TARGET, "denied", kind=ErrorKind.AUTH),
        ]
    )

    result = await RetryPolicy(max_retries=3).execute(TARGET, attempt_fn)

    assert result.attempt_count == 2
    assert result.error.kind is ErrorKind.AUTH
    assert result.error.message == "denied"


@pytest.mark.asyncio
async def test_unexpected_error_reports_real_attempt_count() -> None:
    """A bug on a later attempt is INTERNAL and keeps the attempts made."""
    attempt_fn = AsyncMock(
        side_effect=[connect_refused(), connect_refused(), RuntimeError("bug")]
    )

    result = await RetryPolicy(max_retries=5).execute(TARGET, attempt_fn)

    assert attempt_fn.await_count == 3
    assert result.attempt_count == 3
    assert result.error.kind is ErrorKind.INTERNAL
    assert result.error.message == "bug"
    assert not result.error.kind.retryable


@pytest.mark.asyncio
async def test_cancellation_propagates() -> None:
    attempt_fn = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await RetryPolicy(max_retries=3).execute(TARGET, attempt_fn)


def test_backoff_bounds() -> None:
    """Backoff grows, stays within jitter, and never exceeds the cap."""
    policy = RetryPolicy(max_retries=10, delay=1.0, jitter=0.25)

    for _ in range(20):
        assert 0.75 <= policy.backoff(1) <= 1.25
        assert 1.5 <= policy.backoff(2) <= 2.5
        assert policy.backoff(10) <= MAX_RETRY_DELAY

    assert RetryPolicy(max_retries=1).backoff(3) == 0.0


@pytest.mark.parametrize(
    "kwargs",
    [{"max_retries": -1}, {"delay": -1.0}, {"jitter": 1.5}],
)
def test_invalid_policy(kwargs) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
