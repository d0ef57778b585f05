"""File management for local (non-upload) conversions.

Local files are copied into the working directory before conversion so the
batch can own and delete them, and finished outputs are moved to the caller's
output directory under collision-free names.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from .logging_config import IOFailureError

logger = logging.getLogger(__name__)


class FileManager:
    """Handles staging and delivery with collision handling."""

    def __init__(self, work_dir: str | Path, output_dir: Optional[str | Path] = None):
        """Initialize FileManager.

        Args:
            work_dir: Working directory where conversions run.
            output_dir: Optional output directory. If None, delivery needs an explicit one.
        """
        self.work_dir = Path(work_dir)
        self.output_dir = Path(output_dir) if output_dir else None

    def stage(self, source_path: str | Path, token: str) -> Path:
        """Copy a local file into the working directory.

        Args:
            source_path: File to copy.
            token: Unique token used to name the staged copy.

        Returns:
            Path of the staged copy, keeping the source extension.

        Raises:
            IOFailureError: If the source is not a file or the copy fails.
        """
        source = Path(source_path)

        if not source.exists():
            raise IOFailureError(f"Source file does not exist: {source}")

        if not source.is_file():
            raise IOFailureError(f"Source path is not a file: {source}")

        self.work_dir.mkdir(parents=True, exist_ok=True)
        staged = self.work_dir / f"staged-{token}{source.suffix.lower()}"

        try:
            shutil.copyfile(source, staged)
        except OSError as e:
            raise IOFailureError(f"Failed to stage {source}", technical_details=str(e)) from e

        logger.debug(f"Staged {source} -> {staged}")
        return staged

    def resolve_output_path(self, name: str, output_dir: Optional[str | Path] = None) -> Path:
        """Resolve a delivery path for ``name`` with collision handling.

        Raises:
            IOFailureError: If no output directory is known or too many collisions.
        """
        out_dir = Path(output_dir) if output_dir else self.output_dir
        if out_dir is None:
            raise IOFailureError("Output directory not configured")

        candidate = Path(name)
        output_path = out_dir / candidate.name

        if output_path.exists():
            counter = 1
            while True:
                output_path = out_dir / f"{candidate.stem}_{counter}{candidate.suffix}"
                if not output_path.exists():
                    logger.debug(f"Collision detected, using renamed path: {output_path}")
                    break
                counter += 1
                if counter > 1000:
                    raise IOFailureError(
                        f"Too many file collisions for {name}. Cannot find available output path."
                    )

        return output_path

    def deliver(self, path: Path, name: str, output_dir: Optional[str | Path] = None) -> Path:
        """Move a converted file to the output directory under ``name``.

        Raises:
            IOFailureError: If the move fails.
        """
        if not path.is_file():
            raise IOFailureError(f"Converted file does not exist: {path}")

        dest = self.resolve_output_path(name, output_dir)
        dest.parent.mkdir(parents=True, exist_ok=True)

        try:
            shutil.move(str(path), str(dest))
        except OSError as e:
            raise IOFailureError(
                f"Failed to move file from {path} to {dest}", technical_details=str(e)
            ) from e

        logger.info(f"Delivered {dest}")
        return dest
