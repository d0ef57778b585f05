"""
Tool adapters and conversion routing.

This package provides:
- ImageConverter: ImageMagick (raster images, image -> PDF, PDF rasterization)
- DocumentConverter: LibreOffice headless
- MediaConverter: FFmpeg (audio and video)
- ConversionRouter: strategy selection across the three tools
- collect: discovery of the files a tool actually produced
"""

from .collector import collect, sweep
from .document import DocumentConverter
from .image import ImageConverter
from .media import MediaConverter
from .router import ConversionRouter, ConversionStrategy, select_strategy

__all__ = [
    "ImageConverter",
    "DocumentConverter",
    "MediaConverter",
    "ConversionRouter",
    "ConversionStrategy",
    "select_strategy",
    "collect",
    "sweep",
]
