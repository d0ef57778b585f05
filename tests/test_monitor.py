"""Tests for resource monitoring."""

from collections import namedtuple
from unittest.mock import patch

import pytest

from multiconvert.logging_config import DiskSpaceError
from multiconvert.monitor import ResourceMonitor

_Usage = namedtuple("_Usage", "total used free percent")


class TestResourceMonitor:
    """Tests for ResourceMonitor class."""

    def test_monitor_creation(self):
        """Test creating a resource monitor."""
        mon = ResourceMonitor(min_disk_space_mb=200)

        assert mon.min_disk_space_mb == 200

    def test_get_disk_space(self, tmp_path):
        """Test getting disk space information."""
        space = ResourceMonitor().get_disk_space(tmp_path)

        assert {"total_gb", "used_gb", "free_gb", "free_mb", "percent_used"} <= set(space)
        assert space["free_mb"] > 0

    def test_get_disk_space_for_file(self, tmp_path):
        path = tmp_path / "a.png"
        path.write_bytes(b"x")

        assert ResourceMonitor().get_disk_space(path)["free_mb"] > 0

    def test_check_disk_space_sufficient(self, tmp_path):
        """Test disk space check when sufficient."""
        assert ResourceMonitor(min_disk_space_mb=1).check_disk_space(tmp_path) is True

    def test_check_disk_space_insufficient(self, tmp_path):
        """Test disk space check raises when below the minimum."""
        usage = _Usage(total=10 * 1024**3, used=10 * 1024**3 - 50 * 1024**2, free=50 * 1024**2, percent=99.5)

        with patch("psutil.disk_usage", return_value=usage):
            with pytest.raises(DiskSpaceError) as exc_info:
                ResourceMonitor(min_disk_space_mb=100).check_disk_space(tmp_path)

        assert "50MB free, 100MB required" in exc_info.value.message

    def test_required_override(self, tmp_path):
        usage = _Usage(total=1024**3, used=0, free=50 * 1024**2, percent=0.0)

        with patch("psutil.disk_usage", return_value=usage):
            assert ResourceMonitor(min_disk_space_mb=100).check_disk_space(tmp_path, required_mb=10)
