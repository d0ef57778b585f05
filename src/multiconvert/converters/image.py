"""
Image conversion using ImageMagick.

Handles raster-to-raster conversion, image-to-PDF, and PDF rasterization.
Rasterizing a multi-page PDF makes ImageMagick write one file per page,
named ``<stem>-<N>.<ext>``.
"""

from pathlib import Path
from typing import Optional

from ..config import ConverterConfig
from ..logging_config import get_logger
from ..tools import CommandSpec, Tool, ToolInvoker

logger = get_logger("converters.image")


class ImageConverter:
    """Drive ImageMagick through the tool invoker."""

    def __init__(self, invoker: ToolInvoker, config: Optional[ConverterConfig] = None):
        self.invoker = invoker
        self.config = config or invoker.config

    @staticmethod
    def build_convert_spec(source: Path, output: Path) -> CommandSpec:
        return CommandSpec(Tool.RASTERIZER, (str(source), str(output)))

    @staticmethod
    def build_rasterize_spec(source: Path, output: Path, density: int) -> CommandSpec:
        return CommandSpec(Tool.RASTERIZER, ("-density", str(density), str(source), str(output)))

    async def convert(self, source: Path, output: Path) -> Path:
        """Convert an image one-to-one; also used for image -> PDF."""
        await self.invoker.run(self.build_convert_spec(source, output))
        logger.info(f"Converted {source.name} -> {output.name}")
        return output

    async def rasterize(self, source: Path, output: Path, density: Optional[int] = None) -> Path:
        """
        Rasterize a PDF into images at a fixed density.

        The caller must collect the produced files; a multi-page source yields
        page-indexed outputs instead of ``output`` itself.
        """
        density = density or self.config.rasterize_density
        await self.invoker.run(self.build_rasterize_spec(source, output, density))
        logger.info(f"Rasterized {source.name} at {density} DPI -> {output.stem}*{output.suffix}")
        return output
