"""Subprocess execution and concurrency limits for the external tools."""

import asyncio
import logging
import threading

logger = logging.getLogger(__name__)

KILL_GRACE_SECONDS = 5.0


class ConcurrencyLimiter:
    """Cap the number of tool processes running at once.

    asyncio semaphores belong to one event loop, so one is created lazily per
    running loop. This lets a limiter built at import time serve any loop.
    """

    def __init__(self, max_concurrent: int = 4):
        self._max_concurrent = max_concurrent
        self._local = threading.local()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    def _semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        semaphores = getattr(self._local, "semaphores", None)
        if semaphores is None:
            semaphores = self._local.semaphores = {}
        if id(loop) not in semaphores:
            semaphores[id(loop)] = asyncio.Semaphore(self._max_concurrent)
        return semaphores[id(loop)]

    async def __aenter__(self):
        await self._semaphore().acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._semaphore().release()


class SubprocessTimeoutError(RuntimeError):
    """A tool process outlived its timeout and was killed."""

    def __init__(self, cmd: list[str], timeout: float):
        self.cmd = cmd
        self.timeout = timeout
        super().__init__(f"{cmd[0]} killed after {timeout}s")


async def _kill(proc: asyncio.subprocess.Process, name: str) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(proc.wait(), timeout=KILL_GRACE_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(f"{name} (pid {proc.pid}) still running after kill")


async def safe_subprocess(cmd: list[str], timeout: float = 1800) -> tuple[int, str, str]:
    """Run a command without a shell and wait for it.

    The process gets no stdin; stdout and stderr are captured and decoded
    leniently. A process still running on timeout or cancellation is killed
    and reaped before this returns.

    Args:
        cmd: Executable followed by its arguments.
        timeout: Seconds before the process is killed.

    Returns:
        Tuple of (returncode, stdout, stderr).

    Raises:
        FileNotFoundError: If the executable does not exist.
        SubprocessTimeoutError: If the process exceeds the timeout.
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc, cmd[0])
        raise SubprocessTimeoutError(cmd, timeout) from None
    finally:
        if proc.returncode is None:
            await _kill(proc, cmd[0])

    return (
        proc.returncode,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )
