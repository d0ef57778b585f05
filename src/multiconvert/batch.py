"""
Batch conversion orchestration.

A batch is every file of one client request, sharing one target format and
one outcome: either every file converts, or the batch fails and everything
it created (outputs and uploaded sources) is deleted before the error
propagates.
"""

import mimetypes
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence

from .archive import ARCHIVE_FILENAME, write_archive
from .cleanup import release
from .config import ConverterConfig, config as default_config
from .converters.router import ConversionRouter
from .formats import normalize_extension
from .logging_config import (
    InvalidInputError,
    NoOutputProducedError,
    UserError,
    get_logger,
    log_conversion_complete,
    log_conversion_start,
    log_error,
)
from .monitor import ResourceMonitor

logger = get_logger("batch")


def unique_token() -> str:
    """Timestamp plus random suffix, unique across concurrent requests."""
    return f"{datetime.now().strftime('%Y%m%d%H%M%S%f')}-{secrets.token_hex(4)}"


@dataclass
class UploadedFile:
    """An accepted upload: the client's filename and where it sits on disk."""

    original_name: str
    path: Path

    def __post_init__(self):
        self.path = Path(self.path)

    @property
    def _name(self) -> PurePosixPath:
        return PurePosixPath((self.original_name or "").replace("\\", "/"))

    @property
    def extension(self) -> str:
        return normalize_extension(self._name.suffix)

    @property
    def stem(self) -> str:
        return self._name.stem or "file"


@dataclass
class ConversionRequest:
    source_path: Path
    source_ext: str
    target_ext: str
    target_path: Path
    display_stem: str

    def display_name(self, output: Path) -> str:
        """User-facing name of an output: the unique stem swapped for the upload's."""
        unique_stem = self.target_path.stem
        if output.name.startswith(unique_stem):
            return f"{self.display_stem}{output.name[len(unique_stem):]}"
        return f"{self.display_stem}{output.suffix}"


@dataclass
class OutputFile:
    path: Path
    name: str


@dataclass
class Deliverable:
    """What the response layer sends: one file or the archive."""

    path: Path
    filename: str
    media_type: str


@dataclass
class BatchResult:
    """All outputs and sources of one request; owner of their cleanup."""

    sources: list[Path] = field(default_factory=list)
    outputs: list[OutputFile] = field(default_factory=list)
    artifacts: list[Path] = field(default_factory=list)
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def is_single(self) -> bool:
        return len(self.outputs) == 1

    @property
    def output_paths(self) -> list[Path]:
        return [output.path for output in self.outputs]

    @property
    def released(self) -> bool:
        return self._released

    def verify(self) -> None:
        """Check that every output is still on disk."""
        if not self.outputs:
            raise NoOutputProducedError("Conversion produced no output")
        for output in self.outputs:
            if not output.path.is_file():
                raise NoOutputProducedError(f"Converted file {output.name} is missing")

    def release(self) -> int:
        """Delete every file of the request. Only the first call has an effect."""
        if self._released:
            return 0
        self._released = True
        return release([*self.output_paths, *self.artifacts], self.sources)


class BatchConverter:
    """Convert the files of one request sequentially, all-or-nothing."""

    def __init__(
        self,
        router: Optional[ConversionRouter] = None,
        config: Optional[ConverterConfig] = None,
        monitor: Optional[ResourceMonitor] = None,
    ):
        self.config = config or (router.config if router else default_config)
        self.router = router or ConversionRouter(config=self.config)
        self.monitor = monitor or ResourceMonitor(self.config.min_disk_space_mb)

    @property
    def work_dir(self) -> Path:
        return self.config.work_dir

    def plan(self, files: Sequence[UploadedFile], target_format: Optional[str]) -> list[ConversionRequest]:
        """
        Validate a batch and assign unique target paths.

        Raises:
            InvalidInputError: If files or target format are missing, or too many files
            UnsupportedFormatError: If an extension is unknown
            UnsupportedConversionError: If a file cannot reach the target format
        """
        if not files:
            raise InvalidInputError("No files uploaded")

        if len(files) > self.config.max_files:
            raise InvalidInputError(
                f"Too many files: {len(files)} uploaded, at most {self.config.max_files} allowed"
            )

        target_ext = normalize_extension(target_format or "")
        if not target_ext:
            raise InvalidInputError("Target format required")

        requests = []
        for upload in files:
            self.router.resolve(upload.extension, target_ext)
            requests.append(
                ConversionRequest(
                    source_path=upload.path,
                    source_ext=upload.extension,
                    target_ext=target_ext,
                    target_path=self.work_dir / f"converted-{unique_token()}.{target_ext}",
                    display_stem=upload.stem,
                )
            )
        return requests

    async def convert(
        self, files: Sequence[UploadedFile], target_format: Optional[str]
    ) -> BatchResult:
        """
        Convert every file of a batch, in upload order.

        Ownership of the uploaded files passes to the returned BatchResult; on
        failure they are deleted together with any outputs before re-raising.
        """
        result = BatchResult(sources=[upload.path for upload in files])
        batch_start = time.monotonic()

        try:
            requests = self.plan(files, target_format)
            self.work_dir.mkdir(parents=True, exist_ok=True)
            self.monitor.check_disk_space(self.work_dir)

            for index, request in enumerate(requests, start=1):
                file_start = time.monotonic()
                log_conversion_start(
                    logger,
                    f"{request.display_stem}.{request.source_ext}",
                    request.target_ext,
                    file=f"{index}/{len(requests)}",
                )
                outputs = await self.router.convert(
                    request.source_path,
                    request.target_path,
                    request.source_ext,
                    request.target_ext,
                )
                result.outputs.extend(
                    OutputFile(path=path, name=request.display_name(path)) for path in outputs
                )
                log_conversion_complete(
                    logger,
                    True,
                    time.monotonic() - file_start,
                    output_file=", ".join(path.name for path in outputs),
                )

            result.verify()

        except BaseException as e:
            if isinstance(e, Exception):
                log_error(logger, e, include_traceback=not isinstance(e, UserError))
                log_conversion_complete(logger, False, time.monotonic() - batch_start)
            result.release()
            raise

        logger.info(
            f"Batch of {len(files)} file(s) produced {len(result.outputs)} output(s) "
            f"in {time.monotonic() - batch_start:.2f}s"
        )
        return result

    def package(self, result: BatchResult) -> Deliverable:
        """
        Decide the response shape: the single output, or a ZIP of all outputs.

        The archive is registered with the result so release() removes it.
        """
        result.verify()

        if result.is_single:
            output = result.outputs[0]
            media_type = mimetypes.guess_type(output.name)[0] or "application/octet-stream"
            return Deliverable(path=output.path, filename=output.name, media_type=media_type)

        archive_path = self.work_dir / f"archive-{unique_token()}.zip"
        result.artifacts.append(archive_path)
        write_archive(((output.path, output.name) for output in result.outputs), archive_path)
        return Deliverable(path=archive_path, filename=ARCHIVE_FILENAME, media_type="application/zip")
