"""Tests for bounded-concurrency dispatch."""

import asyncio
import io
import time
from unittest.mock import AsyncMock, patch

import pytest

from herd.exceptions import ConnectionError, ErrorKind
from herd.models import (
    AuthCandidate,
    CommandResult,
    Credentials,
    ExecutionResult,
    RunConfig,
    Target,
)
from herd.services.aggregator import JsonPrettyAggregator
from herd.services.dispatcher import Dispatcher

CREDS = Credentials(user="root", candidates=(AuthCandidate.password("pw"),))


def make_targets(count: int) -> list[Target]:
    return [Target(f"host{i}") for i in range(count)]


def sleeper(delay: float):
    """Per-target runner that succeeds after a fixed delay."""

    async def run(target: Target) -> ExecutionResult:
        await asyncio.sleep(delay)
        return ExecutionResult.from_command(
            target, CommandResult(0, f"{target.host}\n", "", int(delay * 1000)), 1
        )

    return run


@pytest.mark.asyncio
async def test_peak_in_flight_never_exceeds_limit() -> None:
    """At most concurrency_limit targets run at once."""
    config = RunConfig(command="uptime", concurrency_limit=3)
    dispatcher = Dispatcher(config, CREDS, run_target=sleeper(0.02))

    results = [r async for r in dispatcher.dispatch(make_targets(12))]

    assert len(results) == 12
    assert dispatcher.peak_in_flight == 3
    assert dispatcher.in_flight == 0


@pytest.mark.asyncio
async def test_ten_targets_limit_five_run_in_two_waves() -> None:
    """10 targets of 0.1s with limit 5 take about 0.2s, not 0.1s or 1s."""
    config = RunConfig(command="uptime", concurrency_limit=5)
    dispatcher = Dispatcher(config, CREDS, run_target=sleeper(0.1))

    started = time.monotonic()
    results = [r async for r in dispatcher.dispatch(make_targets(10))]
    elapsed = time.monotonic() - started

    assert len(results) == 10
    assert 0.18 <= elapsed < 0.6
    assert dispatcher.peak_in_flight == 5


@pytest.mark.asyncio
async def test_exactly_one_result_per_target() -> None:
    """Every target appears once in the output."""
    targets = make_targets(7)
    config = RunConfig(command="uptime", concurrency_limit=2)
    dispatcher = Dispatcher(config, CREDS, run_target=sleeper(0))

    results = [r async for r in dispatcher.dispatch(targets)]

    assert sorted(r.target for r in results) == sorted(targets)


@pytest.mark.asyncio
async def test_results_yielded_in_completion_order() -> None:
    """A fast target is yielded before a slow one listed earlier."""
    slow, fast = Target("slow"), Target("fast")

    async def run(target: Target) -> ExecutionResult:
        await asyncio.sleep(0.1 if target == slow else 0.01)
        return ExecutionResult.from_command(target, CommandResult(0, "", "", 1), 1)

    dispatcher = Dispatcher(RunConfig(command="true"), CREDS, run_target=run)

    results = [r async for r in dispatcher.dispatch([slow, fast])]

    assert [r.target for r in results] == [fast, slow]


@pytest.mark.asyncio
async def test_hung_target_does_not_block_others() -> None:
    """Other targets finish while one is stuck until its own timeout."""
    hung = Target("hung")

    async def run(target: Target) -> ExecutionResult:
        if target == hung:
            await asyncio.sleep(0.3)
            return ExecutionResult.from_failure(
                target, kind=ErrorKind.TIMEOUT, message="idle", attempt_count=1
            )
        return ExecutionResult.from_command(target, CommandResult(0, "", "", 1), 1)

    config = RunConfig(command="true", concurrency_limit=2)
    dispatcher = Dispatcher(config, CREDS, run_target=run)
    arrivals = []
    started = time.monotonic()

    async for result in dispatcher.dispatch([hung, *make_targets(4)]):
        arrivals.append((result.target, time.monotonic() - started))

    assert [t for t, _ in arrivals][-1] == hung
    assert all(at < 0.2 for t, at in arrivals if t != hung)


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_result() -> None:
    """A bug in one target's run is isolated as an INTERNAL failure."""
    boom = Target("boom")

    async def run(target: Target) -> ExecutionResult:
        if target == boom:
            raise RuntimeError("unexpected")
        return ExecutionResult.from_command(target, CommandResult(0, "", "", 1), 1)

    dispatcher = Dispatcher(RunConfig(command="true"), CREDS, run_target=run)

    results = {r.target: r async for r in dispatcher.dispatch([boom, Target("ok")])}

    assert results[boom].error.kind is ErrorKind.INTERNAL
    assert "unexpected" in results[boom].error.message
    assert results[Target("ok")].success
    assert dispatcher.in_flight == 0


@pytest.mark.asyncio
async def test_attempt_opens_fresh_session_and_runs_command() -> None:
    """Each attempt establishes, runs and closes its own session."""
    config = RunConfig(command="uptime", connect_timeout=4, io_timeout=9)
    dispatcher = Dispatcher(config, CREDS)
    session = AsyncMock()
    session.__aenter__.return_value = session
    expected = CommandResult(0, "up\n", "", 3)

    with patch(
        "herd.services.dispatcher.establish", AsyncMock(return_value=session)
    ) as establish, patch(
        "herd.services.dispatcher.run_command", AsyncMock(return_value=expected)
    ) as run_command:
        result = await dispatcher.attempt(Target("web1"), 1)

    assert result is expected
    establish.assert_awaited_once_with(Target("web1"), CREDS, 4, known_hosts=None)
    run_command.assert_awaited_once_with(session, "uptime", 9)
    session.__aexit__.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_target_retries_through_attempt() -> None:
    """Retryable connection failures go back through attempt()."""
    config = RunConfig(command="uptime", max_retries=2)
    dispatcher = Dispatcher(config, CREDS)
    target = Target("web1")
    refused = ConnectionError(target, "refused", kind=ErrorKind.CONNECT)

    with patch.object(
        dispatcher,
        "attempt",
        AsyncMock(side_effect=[refused, CommandResult(0, "", "", 1)]),
    ):
        result = await dispatcher.run_target(target)

    assert result.success
    assert result.attempt_count == 2


@pytest.mark.asyncio
async def test_run_feeds_sink_and_returns_summary() -> None:
    """run() streams into the sink and returns its summary."""
    targets = make_targets(3)
    stream = io.StringIO()
    sink = JsonPrettyAggregator(stream=stream, order=targets)
    dispatcher = Dispatcher(RunConfig(command="true"), CREDS, run_target=sleeper(0))

    summary = await dispatcher.run(targets, sink)

    assert summary.total == 3
    assert summary.exit_code == 0
    assert [r.target for r in summary.results] == targets


@pytest.mark.asyncio
async def test_bug_on_later_attempt_keeps_attempt_count() -> None:
    """An unexpected error on attempt 3 is reported as INTERNAL after 3 attempts."""
    dispatcher = Dispatcher(RunConfig(command="uptime", max_retries=5), CREDS)
    target = Target("web1")
    refused = ConnectionError(target, "refused", kind=ErrorKind.CONNECT)

    with patch.object(
        dispatcher,
        "attempt",
        AsyncMock(side_effect=[refused, refused, RuntimeError("bug")]),
    ):
        results = [r async for r in dispatcher.dispatch([target])]

    assert len(results) == 1
    assert results[0].attempt_count == 3
    assert results[0].error.kind is ErrorKind.INTERNAL
