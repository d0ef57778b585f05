"""
Conversion strategy selection and routing.

Chooses how to get from a source format to a target format, runs the tool
steps in order, and returns the verified set of output files.
"""

import shutil
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from ..cleanup import discard
from ..config import ConverterConfig, config as default_config
from ..formats import DEFAULT_FORMATS, Category, FormatTable, normalize_extension
from ..logging_config import (
    IOFailureError,
    NoOutputProducedError,
    UnsupportedConversionError,
    UnsupportedFormatError,
    get_logger,
)
from ..tools import ToolInvoker
from .collector import collect, sweep
from .document import DocumentConverter
from .image import ImageConverter
from .media import MediaConverter

logger = get_logger("converters.router")

INTERMEDIATE_FORMAT = "pdf"


class ConversionStrategy(str, Enum):
    """Sequence of tool invocations used for a conversion."""

    SAME_CATEGORY_DIRECT = "same_category_direct"
    IMAGE_TO_DOCUMENT_VIA_PDF = "image_to_document_via_pdf"
    IMAGE_TO_DOCUMENT_DIRECT_PDF = "image_to_document_direct_pdf"
    DOCUMENT_TO_IMAGE_VIA_PDF = "document_to_image_via_pdf"
    UNSUPPORTED = "unsupported"


def select_strategy(
    source_category: Category, target_category: Category, target_ext: str
) -> ConversionStrategy:
    """Pick a strategy from the category pair and the target extension."""
    if Category.UNKNOWN in (source_category, target_category):
        return ConversionStrategy.UNSUPPORTED

    if source_category is target_category:
        return ConversionStrategy.SAME_CATEGORY_DIRECT

    if source_category is Category.IMAGE and target_category is Category.DOCUMENT:
        if normalize_extension(target_ext) == INTERMEDIATE_FORMAT:
            return ConversionStrategy.IMAGE_TO_DOCUMENT_DIRECT_PDF
        return ConversionStrategy.IMAGE_TO_DOCUMENT_VIA_PDF

    if source_category is Category.DOCUMENT and target_category is Category.IMAGE:
        return ConversionStrategy.DOCUMENT_TO_IMAGE_VIA_PDF

    return ConversionStrategy.UNSUPPORTED


def intermediate_path(target: Path) -> Path:
    """Name of the intermediate PDF bridging two steps for ``target``."""
    return target.with_name(f"{target.stem}.intermediate.{INTERMEDIATE_FORMAT}")


class ConversionRouter:
    """Route conversions to ImageMagick, LibreOffice and FFmpeg."""

    def __init__(
        self,
        invoker: Optional[ToolInvoker] = None,
        config: Optional[ConverterConfig] = None,
        table: FormatTable = DEFAULT_FORMATS,
    ):
        self.config = config or (invoker.config if invoker else default_config)
        self.invoker = invoker or ToolInvoker(self.config)
        self.table = table
        self.image = ImageConverter(self.invoker, self.config)
        self.document = DocumentConverter(self.invoker)
        self.media = MediaConverter(self.invoker, self.config)

    def resolve(self, source_ext: str, target_ext: str) -> ConversionStrategy:
        """
        Classify both extensions and select a strategy.

        Raises:
            UnsupportedFormatError: If either extension is unknown
            UnsupportedConversionError: If the category pair has no strategy
        """
        source_category = self.table.classify(source_ext)
        target_category = self.table.classify(target_ext)

        if source_category is Category.UNKNOWN:
            raise UnsupportedFormatError(
                f"Unsupported source format: {normalize_extension(source_ext) or '(none)'}",
                suggestion=self._supported_hint(),
            )
        if target_category is Category.UNKNOWN:
            raise UnsupportedFormatError(
                f"Unsupported target format: {normalize_extension(target_ext) or '(none)'}",
                suggestion=self._supported_hint(),
            )

        strategy = select_strategy(source_category, target_category, target_ext)
        if strategy is ConversionStrategy.UNSUPPORTED:
            raise UnsupportedConversionError(
                f"Cannot convert {source_category.value} to {target_category.value}",
                suggestion="Images and documents convert into each other; audio and video only within their own category",
            )
        return strategy

    def is_conversion_supported(self, source_ext: str, target_ext: str) -> bool:
        try:
            self.resolve(source_ext, target_ext)
            return True
        except UnsupportedConversionError:
            return False

    def describe(self, source_ext: str, target_ext: str) -> dict[str, Any]:
        """Describe how a conversion would be carried out."""
        source_category = self.table.classify(source_ext)
        target_category = self.table.classify(target_ext)
        strategy = select_strategy(source_category, target_category, target_ext)
        return {
            "supported": strategy is not ConversionStrategy.UNSUPPORTED,
            "strategy": strategy.value,
            "source_category": source_category.value,
            "target_category": target_category.value,
        }

    def _supported_hint(self) -> str:
        return "Supported formats: " + ", ".join(sorted(self.table.mapping))

    async def convert(
        self,
        source_path: str | Path,
        target_path: str | Path,
        source_ext: str,
        target_ext: str,
    ) -> list[Path]:
        """
        Convert one file.

        Args:
            source_path: Input file
            target_path: Requested output path (its stem must be unique)
            source_ext: Extension the input is treated as
            target_ext: Extension to produce

        Returns:
            The output files, in page order when the tool produced several

        Raises:
            UnsupportedConversionError: Before any tool runs, if no strategy applies
            ToolError, NoOutputProducedError, IOFailureError: If a step fails
        """
        source = Path(source_path)
        target = Path(target_path)
        source_ext = normalize_extension(source_ext)
        target_ext = normalize_extension(target_ext)

        strategy = self.resolve(source_ext, target_ext)
        logger.info(f"Routing {source.name} ({source_ext}) -> {target.name} via {strategy.value}")

        try:
            if source_ext == target_ext:
                self._copy(source, target)
            else:
                await self._run_strategy(strategy, source, target, source_ext, target_ext)
            return collect(target)
        except BaseException:
            for leftover in sweep(target):
                discard(leftover)
            raise

    async def _run_strategy(
        self,
        strategy: ConversionStrategy,
        source: Path,
        target: Path,
        source_ext: str,
        target_ext: str,
    ) -> None:
        if strategy is ConversionStrategy.SAME_CATEGORY_DIRECT:
            category = self.table.classify(source_ext)
            if category is Category.IMAGE:
                await self.image.convert(source, target)
            elif category is Category.DOCUMENT:
                await self.document.convert(source, target)
            else:
                await self.media.convert(source, target, category)

        elif strategy is ConversionStrategy.IMAGE_TO_DOCUMENT_DIRECT_PDF:
            await self.image.convert(source, target)

        elif strategy is ConversionStrategy.IMAGE_TO_DOCUMENT_VIA_PDF:
            pdf = intermediate_path(target)
            try:
                await self.image.convert(source, pdf)
                self._require(pdf)
                await self.document.convert(pdf, target)
            finally:
                discard(pdf)

        elif strategy is ConversionStrategy.DOCUMENT_TO_IMAGE_VIA_PDF:
            if source_ext == INTERMEDIATE_FORMAT:
                await self.image.rasterize(source, target)
                return

            pdf = intermediate_path(target)
            try:
                await self.document.convert(source, pdf)
                self._require(pdf)
                await self.image.rasterize(pdf, target)
            finally:
                discard(pdf)

    @staticmethod
    def _require(path: Path) -> None:
        if not path.is_file():
            raise NoOutputProducedError(f"Intermediate file {path.name} was not produced")

    @staticmethod
    def _copy(source: Path, target: Path) -> None:
        try:
            shutil.copyfile(source, target)
        except OSError as e:
            raise IOFailureError(
                f"Failed to copy {source.name}", technical_details=str(e)
            ) from e
