"""Tests for remote command execution."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import asyncssh
import pytest

from herd.exceptions import ErrorKind, RunError
from herd.models import Target
from herd.services.connection import Session
from herd.services.executors import run_command


class FakeStream:
    """Reader that returns queued chunks, then EOF, or blocks forever."""

    def __init__(self, chunks: list[str], hang: bool = False) -> None:
        self.chunks = list(chunks)
        self.hang = hang

    async def read(self, n: int = -1) -> str:
        if self.chunks:
            return self.chunks.pop(0)
        if self.hang:
            await asyncio.Event().wait()
        return ""


def make_process(
    stdout: list[str], stderr: list[str], returncode: int | None = 0, hang: bool = False
) -> MagicMock:
    process = MagicMock()
    process.stdout = FakeStream(stdout, hang=hang)
    process.stderr = FakeStream(stderr, hang=hang)
    process.wait = AsyncMock(return_value=MagicMock(returncode=returncode))
    return process


@pytest.fixture
def session() -> Session:
    """Create a session around a mock connection."""
    return Session(Target("web1"), MagicMock())


@pytest.mark.asyncio
async def test_run_command_captures_output(session: Session) -> None:
    """stdout and stderr are collected separately and joined."""
    process = make_process(["Linux\n", "x86_64\n"], ["warn\n"])
    session.connection.create_process = AsyncMock(return_value=process)

    result = await run_command(session, "uname -sm", io_timeout=5)

    assert result.exit_code == 0
    assert result.stdout == "Linux\nx86_64\n"
    assert result.stderr == "warn\n"
    assert result.duration_ms >= 0
    session.connection.create_process.assert_awaited_once_with(
        "uname -sm", encoding="utf-8", errors="replace"
    )


@pytest.mark.asyncio
async def test_run_command_nonzero_exit_is_a_result(session: Session) -> None:
    """Non-zero exit status does not raise."""
    process = make_process([], ["No such file\n"], returncode=2)
    session.connection.create_process = AsyncMock(return_value=process)

    result = await run_command(session, "ls /missing", io_timeout=5)

    assert result.exit_code == 2
    assert result.stderr == "No such file\n"


@pytest.mark.asyncio
async def test_run_command_missing_exit_status(session: Session) -> None:
    """A command killed by a signal reports exit code -1."""
    process = make_process(["partial"], [], returncode=None)
    session.connection.create_process = AsyncMock(return_value=process)

    result = await run_command(session, "sleep 100", io_timeout=5)

    assert result.exit_code == -1


@pytest.mark.asyncio
async def test_idle_timeout_aborts_session(session: Session) -> None:
    """A command that goes silent is aborted and reported TIMEOUT."""
    process = make_process(["started\n"], [], hang=True)
    session.connection.create_process = AsyncMock(return_value=process)

    with pytest.raises(RunError) as exc_info:
        await run_command(session, "sleep 100", io_timeout=0.05)

    assert exc_info.value.kind is ErrorKind.TIMEOUT
    assert exc_info.value.retryable
    session.connection.abort.assert_called_once()


@pytest.mark.asyncio
async def test_channel_failure_is_channel_kind(session: Session) -> None:
    """A dropped connection while starting the command is CHANNEL."""
    session.connection.create_process = AsyncMock(
        side_effect=asyncssh.ChannelOpenError(2, "open failed")
    )

    with pytest.raises(RunError) as exc_info:
        await run_command(session, "uptime", io_timeout=5)

    assert exc_info.value.kind is ErrorKind.CHANNEL
    session.connection.abort.assert_not_called()
