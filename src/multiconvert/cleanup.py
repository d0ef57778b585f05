"""Deletion of request inputs and generated artifacts.

Cleanup never raises: a failed deletion is logged and the caller's own
result or error stands.
"""

import shutil
from pathlib import Path
from typing import Iterable, Optional

from .logging_config import get_logger

logger = get_logger("cleanup")


def discard_tree(path: Optional[str | Path]) -> bool:
    """Remove a directory and everything below it, returning True if it existed."""
    if path is None:
        return False

    path = Path(path)
    if not path.exists():
        return False

    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.warning(f"Failed to remove directory {path}: {e}")
        return False

    logger.debug(f"Removed directory {path}")
    return True


def discard(path: Optional[str | Path]) -> bool:
    """Remove a single file, returning True if something was deleted."""
    if path is None:
        return False

    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        logger.debug(f"Already removed: {path}")
        return False
    except OSError as e:
        logger.warning(f"Failed to remove {path}: {e}")
        return False

    logger.debug(f"Removed {path}")
    return True


def release(
    outputs: Iterable[str | Path] = (),
    sources: Iterable[str | Path] = (),
) -> int:
    """
    Delete every output and source path of a request.

    Args:
        outputs: Generated files (converted outputs, archives)
        sources: Uploaded input files

    Returns:
        Number of files actually removed
    """
    removed = 0
    for path in [*outputs, *sources]:
        if discard(path):
            removed += 1

    if removed:
        logger.info(f"Cleaned up {removed} file(s)")
    return removed
