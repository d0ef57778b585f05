"""
Format classification.

Maps file extensions to the coarse category that decides which external tool
handles a file. The membership table is built once at import and is read-only.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping


class Category(str, Enum):
    """Coarse format family."""

    IMAGE = "image"
    DOCUMENT = "document"
    AUDIO = "audio"
    VIDEO = "video"
    UNKNOWN = "unknown"


IMAGE_FORMATS = ("png", "jpg", "jpeg", "gif", "webp", "bmp", "svg", "ico")
DOCUMENT_FORMATS = ("pdf", "docx", "doc", "odt", "txt", "rtf")
AUDIO_FORMATS = ("mp3", "wav", "ogg", "m4a", "flac", "aac")
VIDEO_FORMATS = ("mp4", "avi", "mov", "mkv", "webm", "flv")


def normalize_extension(extension: str) -> str:
    """Lower-case an extension and strip surrounding whitespace and dots."""
    return (extension or "").strip().lstrip(".").lower()


@dataclass(frozen=True)
class FormatTable:
    """Immutable extension -> category table."""

    mapping: Mapping[str, Category]

    @classmethod
    def from_groups(cls, groups: Mapping[Category, Iterable[str]]) -> "FormatTable":
        table: dict[str, Category] = {}
        for category, extensions in groups.items():
            for ext in extensions:
                ext = normalize_extension(ext)
                if ext in table and table[ext] is not category:
                    raise ValueError(
                        f"Extension '{ext}' listed under both {table[ext].value} and {category.value}"
                    )
                table[ext] = category
        return cls(MappingProxyType(table))

    def classify(self, extension: str) -> Category:
        return self.mapping.get(normalize_extension(extension), Category.UNKNOWN)

    def extensions(self, category: Category) -> list[str]:
        """List the extensions belonging to a category, in table order."""
        return [ext for ext, cat in self.mapping.items() if cat is category]

    def as_dict(self) -> dict[str, list[str]]:
        return {
            category.value: self.extensions(category)
            for category in Category
            if category is not Category.UNKNOWN
        }


DEFAULT_FORMATS = FormatTable.from_groups(
    {
        Category.IMAGE: IMAGE_FORMATS,
        Category.DOCUMENT: DOCUMENT_FORMATS,
        Category.AUDIO: AUDIO_FORMATS,
        Category.VIDEO: VIDEO_FORMATS,
    }
)


def classify(extension: str, table: FormatTable = DEFAULT_FORMATS) -> Category:
    """Classify an extension; unmatched extensions yield Category.UNKNOWN."""
    return table.classify(extension)
