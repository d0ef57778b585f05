"""Configuration management for multiconvert."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .formats import Category


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ConverterConfig:
    """Configuration settings for the converter."""

    work_dir: Path = Path("uploads")
    max_files: int = 4
    max_file_size_mb: int = 1024
    max_concurrent: int = field(default_factory=lambda: min(4, os.cpu_count() or 4))
    min_disk_space_mb: int = 100

    rasterize_density: int = 300
    image_timeout: int = 300
    document_timeout: int = 600
    audio_timeout: int = 1800
    video_timeout: int = 3600

    imagemagick_binary: str = "convert"
    libreoffice_binary: str = "libreoffice"
    ffmpeg_binary: str = "ffmpeg"

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    debug: bool = False

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self):
        if isinstance(self.work_dir, str):
            self.work_dir = Path(self.work_dir)

        if isinstance(self.log_file, str):
            self.log_file = Path(self.log_file)

        if isinstance(self.cors_origins, str):
            self.cors_origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "ConverterConfig":
        """Load configuration from environment variables."""
        return cls(
            work_dir=Path(os.environ.get("MULTICONVERT_WORK_DIR", "uploads")),
            max_files=int(os.environ.get("MULTICONVERT_MAX_FILES", 4)),
            max_file_size_mb=int(os.environ.get("MULTICONVERT_MAX_FILE_SIZE_MB", 1024)),
            max_concurrent=int(
                os.environ.get("MULTICONVERT_MAX_CONCURRENT", min(4, os.cpu_count() or 4))
            ),
            min_disk_space_mb=int(os.environ.get("MULTICONVERT_MIN_DISK_SPACE_MB", 100)),
            rasterize_density=int(os.environ.get("MULTICONVERT_RASTERIZE_DENSITY", 300)),
            image_timeout=int(os.environ.get("MULTICONVERT_IMAGE_TIMEOUT", 300)),
            document_timeout=int(os.environ.get("MULTICONVERT_DOCUMENT_TIMEOUT", 600)),
            audio_timeout=int(os.environ.get("MULTICONVERT_AUDIO_TIMEOUT", 1800)),
            video_timeout=int(os.environ.get("MULTICONVERT_VIDEO_TIMEOUT", 3600)),
            imagemagick_binary=os.environ.get("MULTICONVERT_IMAGEMAGICK", "convert"),
            libreoffice_binary=os.environ.get("MULTICONVERT_LIBREOFFICE", "libreoffice"),
            ffmpeg_binary=os.environ.get("MULTICONVERT_FFMPEG", "ffmpeg"),
            host=os.environ.get("MULTICONVERT_HOST", "0.0.0.0"),
            port=int(os.environ.get("MULTICONVERT_PORT", os.environ.get("PORT", 3000))),
            cors_origins=os.environ.get("MULTICONVERT_CORS_ORIGINS", "*"),
            debug=_env_bool("MULTICONVERT_DEBUG"),
            log_level=os.environ.get("MULTICONVERT_LOG_LEVEL", "INFO"),
            log_file=Path(p) if (p := os.environ.get("MULTICONVERT_LOG_FILE")) else None,
        )

    def get_timeout_for_category(self, category: Category | str) -> int:
        """Get the tool timeout for a format category."""
        category = Category(category)

        if category is Category.VIDEO:
            return self.video_timeout
        elif category is Category.AUDIO:
            return self.audio_timeout
        elif category is Category.DOCUMENT:
            return self.document_timeout
        else:
            return self.image_timeout


config = ConverterConfig.from_env()
