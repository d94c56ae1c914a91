"""
mcp_executor.py - Child process execution with time and output bounds

Runs one argument vector per call (no shell), capturing stdout and stderr.
A run that exits non-zero, times out or produces more than the output
ceiling raises ExecutionError; nothing is ever returned half-read.
"""

import asyncio
import contextlib
import logging
import shlex
from typing import List, Optional, Sequence

from .mcp_errors import ExecutionError
from .mcp_models import ExecutionResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024
_READ_CHUNK = 64 * 1024
_DIAGNOSTIC_TAIL = 4000


class _OutputLimitExceeded(Exception):
    pass


class _OutputBudget:
    """Combined byte count shared by the stdout and stderr readers."""

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    def consume(self, size: int) -> None:
        self.used += size
        if self.used > self.limit:
            raise _OutputLimitExceeded()


async def _drain(stream: asyncio.StreamReader, sink: bytearray, budget: _OutputBudget) -> None:
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        sink.extend(chunk)
        budget.consume(len(chunk))


async def _finish(proc: asyncio.subprocess.Process, readers: List[asyncio.Future]) -> int:
    await asyncio.gather(*readers)
    return await proc.wait()


async def _terminate(proc: asyncio.subprocess.Process, readers: List[asyncio.Future]) -> None:
    for task in readers:
        task.cancel()
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()
    await asyncio.gather(*readers, return_exceptions=True)


def _decode(data: bytearray) -> str:
    return bytes(data).decode("utf-8", errors="replace")


def _tail(text: str) -> str:
    text = text.strip()
    if len(text) > _DIAGNOSTIC_TAIL:
        return "..." + text[-_DIAGNOSTIC_TAIL:]
    return text


async def run_command(
    argv: Sequence[str],
    timeout: Optional[float] = None,
    max_output_bytes: Optional[int] = None,
) -> ExecutionResult:
    """
    Run argv as a child process and capture its output.

    Args:
        argv: program followed by its arguments
        timeout: wall-clock limit in seconds (default 300)
        max_output_bytes: combined stdout+stderr ceiling (default 10 MiB)

    Returns:
        ExecutionResult: verbatim stdout/stderr of a zero-exit run

    Raises:
        ExecutionError: spawn failure, non-zero exit, timeout or output overflow
    """
    if not argv:
        raise ExecutionError("empty command")

    timeout = DEFAULT_TIMEOUT_SECONDS if timeout is None else timeout
    max_output_bytes = DEFAULT_MAX_OUTPUT_BYTES if max_output_bytes is None else max_output_bytes
    display = shlex.join(argv)

    logger.info(f"[Executor] Executing: {display}")

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error(f"[Executor] Could not start {argv[0]!r}: {e}")
        raise ExecutionError(f"could not start '{argv[0]}': {e}")

    stdout_buf = bytearray()
    stderr_buf = bytearray()
    budget = _OutputBudget(max_output_bytes)
    readers = [
        asyncio.ensure_future(_drain(proc.stdout, stdout_buf, budget)),
        asyncio.ensure_future(_drain(proc.stderr, stderr_buf, budget)),
    ]

    try:
        returncode = await asyncio.wait_for(_finish(proc, readers), timeout=timeout)
    except asyncio.TimeoutError:
        await _terminate(proc, readers)
        stdout, stderr = _decode(stdout_buf), _decode(stderr_buf)
        logger.error(f"[Executor] Timed out after {timeout}s: {display}")
        message = f"'{display}' timed out after {timeout}s"
        partial = _tail(stderr) or _tail(stdout)
        if partial:
            message += f"\n{partial}"
        raise ExecutionError(message, returncode=proc.returncode, stdout=stdout, stderr=stderr)
    except _OutputLimitExceeded:
        await _terminate(proc, readers)
        stdout, stderr = _decode(stdout_buf), _decode(stderr_buf)
        logger.error(f"[Executor] Output exceeded {max_output_bytes} bytes: {display}")
        raise ExecutionError(
            f"'{display}' exceeded the maximum output size of {max_output_bytes} bytes",
            returncode=proc.returncode,
            stdout=stdout,
            stderr=stderr,
        )
    except BaseException:
        # Caller went away (e.g. server shutdown); don't leave the child behind
        await _terminate(proc, readers)
        raise

    stdout, stderr = _decode(stdout_buf), _decode(stderr_buf)

    if returncode != 0:
        diagnostic = _tail(stderr) or _tail(stdout)
        logger.error(f"[Executor] Exit status {returncode}: {display}")
        message = f"'{display}' exited with status {returncode}"
        if diagnostic:
            message += f"\n{diagnostic}"
        raise ExecutionError(message, returncode=returncode, stdout=stdout, stderr=stderr)

    logger.info(f"[Executor] Completed: {display} ({len(stdout_buf) + len(stderr_buf)} bytes)")
    return ExecutionResult(stdout=stdout, stderr=stderr, returncode=returncode)
