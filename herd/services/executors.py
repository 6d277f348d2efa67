"""Remote command execution over an established session."""

import asyncio
import logging
import time

import asyncssh

from herd.exceptions import ErrorKind, RunError
from herd.models import CommandResult
from herd.services.connection import Session

logger = logging.getLogger(__name__)

READ_CHUNK = 65536


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


async def _read_streams(
    process: asyncssh.SSHClientProcess,
    stdout: list[str],
    stderr: list[str],
    io_timeout: float,
) -> bool:
    """Drain stdout and stderr concurrently until both reach EOF.

    Returns:
        False if neither stream produced data for ``io_timeout`` seconds
    """
    readers = {
        asyncio.ensure_future(process.stdout.read(READ_CHUNK)): (process.stdout, stdout),
        asyncio.ensure_future(process.stderr.read(READ_CHUNK)): (process.stderr, stderr),
    }
    try:
        while readers:
            done, _ = await asyncio.wait(
                readers, timeout=io_timeout, return_when=asyncio.FIRST_COMPLETED
            )
            if not done:
                return False
            for task in done:
                stream, sink = readers.pop(task)
                data = task.result()
                if data:
                    sink.append(data)
                    readers[asyncio.ensure_future(stream.read(READ_CHUNK))] = (
                        stream,
                        sink,
                    )
        return True
    finally:
        for task in readers:
            task.cancel()


async def run_command(
    session: Session,
    command: str,
    io_timeout: float,
) -> CommandResult:
    """Execute a command verbatim and capture its output.

    A non-zero exit status is a normal result. Only transport failures
    and idle timeouts raise.

    Args:
        session: Established session for this attempt
        command: Shell command, already quoted by the caller
        io_timeout: Max seconds without output or completion

    Returns:
        CommandResult with exit code, stdout, stderr and duration

    Raises:
        RunError: TIMEOUT when idle too long (the session is aborted),
            CHANNEL when the connection drops mid-command
    """
    target = session.target
    stdout: list[str] = []
    stderr: list[str] = []

    started = time.monotonic()
    logger.debug("Running on %s: %s", target, command)
    try:
        process = await asyncio.wait_for(
            session.connection.create_process(
                command, encoding="utf-8", errors="replace"
            ),
            timeout=io_timeout,
        )
        finished = await _read_streams(process, stdout, stderr, io_timeout)
        if finished:
            completed = await asyncio.wait_for(process.wait(), timeout=io_timeout)
    except asyncio.TimeoutError:
        finished = False
    except (asyncssh.Error, OSError) as e:
        raise RunError(
            target,
            f"Channel failed after {_elapsed_ms(started)}ms: {e}",
            kind=ErrorKind.CHANNEL,
            original_error=e,
        ) from e

    duration_ms = _elapsed_ms(started)
    if not finished:
        session.abort()
        logger.warning("Command on %s idle for %ss, aborted", target, io_timeout)
        raise RunError(
            target,
            f"No output or exit status within {io_timeout}s",
            kind=ErrorKind.TIMEOUT,
        )

    exit_code = completed.returncode
    if exit_code is None:
        exit_code = -1
    logger.info("Command on %s exited %d (%dms)", target, exit_code, duration_ms)
    return CommandResult(
        exit_code=exit_code,
        stdout="".join(stdout),
        stderr="".join(stderr),
        duration_ms=duration_ms,
    )
