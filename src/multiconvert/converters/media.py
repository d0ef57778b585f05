"""
Audio and video conversion using FFmpeg.

Transcoding is one-to-one: ``ffmpeg -y -i <input> <output>``. Codec selection
is left to FFmpeg's defaults for the output container.
"""

from pathlib import Path
from typing import Optional

from ..config import ConverterConfig
from ..formats import Category
from ..logging_config import get_logger
from ..tools import CommandSpec, Tool, ToolInvoker

logger = get_logger("converters.media")


class MediaConverter:
    """Drive FFmpeg through the tool invoker."""

    def __init__(self, invoker: ToolInvoker, config: Optional[ConverterConfig] = None):
        self.invoker = invoker
        self.config = config or invoker.config

    @staticmethod
    def build_command_spec(source: Path, output: Path) -> CommandSpec:
        return CommandSpec(Tool.TRANSCODER, ("-y", "-i", str(source), str(output)))

    async def convert(
        self, source: Path, output: Path, category: Category = Category.VIDEO
    ) -> Path:
        """Transcode ``source`` into ``output``; audio gets the shorter audio timeout."""
        timeout = self.config.get_timeout_for_category(category)
        await self.invoker.run(self.build_command_spec(source, output), timeout=timeout)
        logger.info(f"Transcoded {source.name} -> {output.name}")
        return output
