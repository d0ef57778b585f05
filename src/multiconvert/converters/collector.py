"""
Output discovery.

Tools may write the requested path, or a page-indexed sequence
(``<base>-<N>.<ext>``) when rasterizing multi-page input. The filesystem is
the single source of truth: a zero exit status with nothing on disk is a
failure.
"""

import re
from pathlib import Path
from typing import Optional

from ..logging_config import NoOutputProducedError, get_logger

logger = get_logger("converters.collector")


def _page_pattern(base: str, ext: str) -> re.Pattern:
    return re.compile(rf"^{re.escape(base)}-(\d+)\.{re.escape(ext)}$")


def collect(
    target_path: str | Path,
    target_dir: Optional[str | Path] = None,
    target_base: Optional[str] = None,
    target_ext: Optional[str] = None,
) -> list[Path]:
    """
    Find the files a conversion actually produced.

    Args:
        target_path: The path that was requested from the tool
        target_dir: Directory to scan (default: target_path's parent)
        target_base: Base filename without extension (default: target_path's stem)
        target_ext: Extension without dot (default: target_path's suffix)

    Returns:
        Page-indexed outputs sorted by page number, or the target path alone

    Raises:
        NoOutputProducedError: If neither indexed pages nor the target exist
    """
    target = Path(target_path)
    directory = Path(target_dir) if target_dir is not None else target.parent
    base = target_base if target_base is not None else target.stem
    ext = target_ext if target_ext is not None else target.suffix.lstrip(".")

    pattern = _page_pattern(base, ext)
    pages: list[tuple[int, Path]] = []
    if directory.is_dir():
        for entry in directory.iterdir():
            match = pattern.match(entry.name)
            if match and entry.is_file():
                pages.append((int(match.group(1)), entry))

    if pages:
        pages.sort(key=lambda page: page[0])
        logger.debug(f"Collected {len(pages)} page outputs for {base}.{ext}")
        return [path for _, path in pages]

    if target.is_file():
        return [target]

    raise NoOutputProducedError(
        f"Conversion produced no output for {target.name}",
        suggestion="The source file may be corrupt or not match its extension",
    )


def sweep(target_path: str | Path) -> list[Path]:
    """List every file next to target_path whose name starts with its stem."""
    target = Path(target_path)
    if not target.parent.is_dir():
        return []
    return sorted(
        entry
        for entry in target.parent.iterdir()
        if entry.is_file() and entry.name.startswith(target.stem)
    )
