"""ZIP bundling of batch outputs."""

import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterable

from .logging_config import IOFailureError, get_logger

logger = get_logger("archive")

ARCHIVE_FILENAME = "converted_files.zip"


def unique_arcname(name: str, taken: set[str]) -> str:
    """Return ``name`` or ``name (N).ext`` so that it is not in ``taken``."""
    if name not in taken:
        return name

    path = PurePosixPath(name)
    counter = 2
    while True:
        candidate = f"{path.stem} ({counter}){path.suffix}"
        if candidate not in taken:
            return candidate
        counter += 1


def write_archive(entries: Iterable[tuple[Path, str]], destination: Path) -> Path:
    """
    Write a ZIP archive of converted files.

    Args:
        entries: (file path, name inside the archive) pairs, in order
        destination: Path of the archive to create

    Returns:
        The archive path

    Raises:
        IOFailureError: If the archive cannot be written
    """
    taken: set[str] = set()
    try:
        with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path, name in entries:
                arcname = unique_arcname(name, taken)
                if arcname != name:
                    logger.debug(f"Archive entry {name} renamed to {arcname}")
                taken.add(arcname)
                archive.write(path, arcname=arcname)
    except OSError as e:
        destination.unlink(missing_ok=True)
        raise IOFailureError("Failed to build archive", technical_details=str(e)) from e

    logger.info(f"Archived {len(taken)} file(s) into {destination.name}")
    return destination
