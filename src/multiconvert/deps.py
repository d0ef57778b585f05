"""Dependency verification module for multiconvert.

This module provides functions to verify that the external conversion tools
(ImageMagick, LibreOffice, FFmpeg) are installed and available.
"""

import asyncio
import shutil
import sys
from typing import Dict, Optional, Tuple

from .config import ConverterConfig, config as default_config
from .logging_config import DependencyError


async def _first_output_line(binary: str, flag: str) -> str:
    proc = await asyncio.create_subprocess_exec(
        binary,
        flag,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, _ = await proc.communicate()
    return stdout.decode(errors="replace").strip().split("\n")[0]


async def check_imagemagick(binary: str = "convert") -> Tuple[bool, str]:
    """Check if ImageMagick is installed and return version information.

    Returns:
        Tuple of (is_installed: bool, message: str)
    """
    if not shutil.which(binary):
        return False, (
            "ImageMagick not found. Install with:\n"
            "  Ubuntu/Debian: sudo apt install imagemagick ghostscript\n"
            "  Fedora/RHEL: sudo dnf install ImageMagick ghostscript\n"
            "  macOS: brew install imagemagick ghostscript"
        )

    return True, await _first_output_line(binary, "-version")


async def check_libreoffice(binary: str = "libreoffice") -> Tuple[bool, str]:
    """Check if LibreOffice is available.

    Returns:
        Tuple of (is_installed: bool, message: str)
    """
    if not shutil.which(binary):
        return False, (
            "LibreOffice not found. Install with:\n"
            "  Ubuntu/Debian: sudo apt install libreoffice-writer libreoffice-draw\n"
            "  Fedora/RHEL: sudo dnf install libreoffice-writer libreoffice-draw\n"
            "  macOS: brew install --cask libreoffice"
        )

    return True, await _first_output_line(binary, "--version")


async def check_ffmpeg(binary: str = "ffmpeg") -> Tuple[bool, str]:
    """Check if FFmpeg is installed and return version information.

    Returns:
        Tuple of (is_installed: bool, message: str)
    """
    if not shutil.which(binary):
        return False, (
            "FFmpeg not found. Install with:\n"
            "  Ubuntu/Debian: sudo apt install ffmpeg\n"
            "  Fedora/RHEL: sudo dnf install ffmpeg\n"
            "  macOS: brew install ffmpeg\n"
            "  Windows: Download from https://ffmpeg.org/download.html"
        )

    return True, await _first_output_line(binary, "-version")


async def check_python_version() -> Tuple[bool, str]:
    """Check if Python version meets requirements.

    Returns:
        Tuple of (is_compatible: bool, message: str)
    """
    py_version = sys.version_info
    py_ok = py_version >= (3, 10)

    message = f"Python {py_version[0]}.{py_version[1]}.{py_version[2]}"
    if not py_ok:
        message += " - Requires Python 3.10+"

    return py_ok, message


async def verify_dependencies(config: Optional[ConverterConfig] = None) -> Dict[str, Dict]:
    """Verify all system dependencies and return status.

    Raises:
        DependencyError: If any external tool is missing

    Returns:
        Dictionary with dependency status for imagemagick, libreoffice,
        ffmpeg and python.
    """
    config = config or default_config
    results = {}

    checks = (
        ("imagemagick", check_imagemagick, config.imagemagick_binary),
        ("libreoffice", check_libreoffice, config.libreoffice_binary),
        ("ffmpeg", check_ffmpeg, config.ffmpeg_binary),
    )
    missing = []
    for name, check, binary in checks:
        ok, message = await check(binary)
        results[name] = {"installed": ok, "message": message}
        if not ok:
            missing.append(name)

    py_ok, py_msg = await check_python_version()
    results["python"] = {"compatible": py_ok, "message": py_msg}

    if missing:
        details = "\n".join(results[name]["message"] for name in missing)
        raise DependencyError(
            f"Required tools missing: {', '.join(missing)}",
            technical_details=details,
        )

    if not py_ok:
        raise DependencyError(f"Python version too old: {py_msg}")

    return results

