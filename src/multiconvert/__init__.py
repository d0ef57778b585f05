"""Batch file conversion through ImageMagick, LibreOffice and FFmpeg."""

__version__ = "0.1.0"
