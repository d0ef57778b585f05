"""
External tool invocation.

Commands are described as structured specifications (tool + argument list)
and executed without a shell. Success is judged only by exit status here;
whether the expected files exist is decided by the output collector.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from .async_utils import ConcurrencyLimiter, SubprocessTimeoutError, safe_subprocess
from .config import ConverterConfig, config as default_config
from .logging_config import ToolError, get_logger

logger = get_logger("tools")

STDERR_EXCERPT_CHARS = 500

Runner = Callable[..., Awaitable[tuple[int, str, str]]]


class Tool(str, Enum):
    """The three external tools behind the conversion pipeline."""

    RASTERIZER = "rasterizer"
    OFFICE = "office"
    TRANSCODER = "transcoder"


@dataclass(frozen=True)
class CommandSpec:
    """A tool invocation: which tool, and its arguments (binary excluded)."""

    tool: Tool
    args: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))


@dataclass(frozen=True)
class ToolResult:
    tool: Tool
    returncode: int
    duration_seconds: float


class ToolInvoker:
    """Run CommandSpecs with per-tool timeouts and typed failures."""

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        runner: Optional[Runner] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
    ):
        self.config = config or default_config
        self._runner = runner or safe_subprocess
        self._limiter = limiter or ConcurrencyLimiter(self.config.max_concurrent)

    def binary_for(self, tool: Tool) -> str:
        if tool is Tool.RASTERIZER:
            return self.config.imagemagick_binary
        elif tool is Tool.OFFICE:
            return self.config.libreoffice_binary
        return self.config.ffmpeg_binary

    def timeout_for(self, tool: Tool) -> int:
        if tool is Tool.RASTERIZER:
            return self.config.image_timeout
        elif tool is Tool.OFFICE:
            return self.config.document_timeout
        return self.config.video_timeout

    def build_command(self, spec: CommandSpec) -> list[str]:
        return [self.binary_for(spec.tool), *spec.args]

    async def run(self, spec: CommandSpec, timeout: Optional[float] = None) -> ToolResult:
        """
        Execute a command specification.

        Args:
            spec: Tool and arguments to run
            timeout: Optional override of the tool's default timeout

        Returns:
            ToolResult on zero exit status

        Raises:
            ToolError: On non-zero exit, timeout, or missing executable
        """
        cmd = self.build_command(spec)
        timeout = timeout or self.timeout_for(spec.tool)

        logger.debug(f"Running {spec.tool.value}: {cmd} (timeout {timeout}s)")
        start = time.monotonic()

        async with self._limiter:
            try:
                returncode, _, stderr = await self._runner(cmd, timeout=timeout)
            except SubprocessTimeoutError:
                logger.error(f"{cmd[0]} timed out after {timeout}s")
                raise ToolError(cmd[0], timed_out=True) from None
            except FileNotFoundError:
                logger.error(f"Executable not found: {cmd[0]}")
                raise ToolError(cmd[0], exit_code=127, stderr_excerpt=f"{cmd[0]}: not found") from None

        duration = time.monotonic() - start

        if returncode != 0:
            excerpt = (stderr or "")[-STDERR_EXCERPT_CHARS:].strip()
            logger.error(f"{cmd[0]} exited with code {returncode}")
            raise ToolError(cmd[0], exit_code=returncode, stderr_excerpt=excerpt)

        logger.debug(f"{cmd[0]} finished in {duration:.2f}s")
        return ToolResult(tool=spec.tool, returncode=returncode, duration_seconds=duration)
