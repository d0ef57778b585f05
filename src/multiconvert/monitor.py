"""Resource monitoring for the working directory."""

import logging
from pathlib import Path
from typing import Optional

import psutil

from .logging_config import DiskSpaceError

logger = logging.getLogger(__name__)


class ResourceMonitor:
    """Monitor system resources used by conversions."""

    def __init__(self, min_disk_space_mb: int = 100):
        self.min_disk_space_mb = min_disk_space_mb

    def get_disk_space(self, path: Path) -> dict:
        """Get disk space information for a path."""
        path = Path(path)
        if path.is_file():
            path = path.parent

        usage = psutil.disk_usage(str(path))
        return {
            "total_gb": usage.total / (1024**3),
            "used_gb": usage.used / (1024**3),
            "free_gb": usage.free / (1024**3),
            "free_mb": usage.free / (1024**2),
            "percent_used": usage.percent,
        }

    def check_disk_space(self, path: Path, required_mb: Optional[int] = None) -> bool:
        """Check if there's enough disk space.

        Raises:
            DiskSpaceError: If free space is below the requirement.
        """
        required = required_mb or self.min_disk_space_mb
        space = self.get_disk_space(path)

        if space["free_mb"] < required:
            raise DiskSpaceError(
                f"Insufficient disk space: {space['free_mb']:.0f}MB free, {required}MB required",
                technical_details=f"path={path}",
            )
        logger.debug(f"Disk space check passed: {space['free_mb']:.0f}MB free at {path}")
        return True
