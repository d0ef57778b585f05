"""Pytest configuration and fixtures for multiconvert tests."""

import re
import uuid
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

import pytest

from multiconvert.async_utils import SubprocessTimeoutError
from multiconvert.batch import BatchConverter, UploadedFile
from multiconvert.config import ConverterConfig
from multiconvert.converters.router import ConversionRouter
from multiconvert.tools import ToolInvoker

_PAGES = re.compile(rb"pages=(\d+)")
_PROFILE_FLAG = "-env:UserInstallation="


class FakeToolRunner:
    """Stand-in for safe_subprocess emulating the three tools' file contracts.

    - convert: writes the last argument; with -density and a source holding
      ``pages=N`` (N > 1) writes ``<stem>-0.<ext>`` .. ``<stem>-(N-1).<ext>``
    - libreoffice: writes ``<outdir>/<input-stem>.<ext>`` and populates its
      ``-env:UserInstallation`` profile directory
    - ffmpeg: writes the last argument
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.fail_when: Optional[Callable[[list[str]], bool]] = None
        self.timeout_when: Optional[Callable[[list[str]], bool]] = None
        self.silent_when: Optional[Callable[[list[str]], bool]] = None
        self.crash_after_write_when: Optional[Callable[[list[str]], bool]] = None

    @property
    def binaries(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def __call__(self, cmd, timeout=1800):
        cmd = list(cmd)
        self.calls.append(cmd)

        if self.timeout_when and self.timeout_when(cmd):
            raise SubprocessTimeoutError(cmd, timeout)
        if self.fail_when and self.fail_when(cmd):
            return 1, "", f"{cmd[0]}: simulated failure"
        if self.silent_when and self.silent_when(cmd):
            return 0, "", ""

        if not self._emulate(cmd):
            return 1, "", f"{cmd[0]}: cannot open input"
        if self.crash_after_write_when and self.crash_after_write_when(cmd):
            return 1, "", f"{cmd[0]}: crashed after writing"
        return 0, "", ""

    def _emulate(self, cmd: list[str]) -> bool:
        binary = cmd[0]

        if binary == "libreoffice":
            ext = cmd[cmd.index("--convert-to") + 1]
            outdir = Path(cmd[cmd.index("--outdir") + 1])
            source = Path(cmd[-1])
            for arg in cmd:
                if arg.startswith(_PROFILE_FLAG):
                    profile = Path(unquote(urlparse(arg[len(_PROFILE_FLAG):]).path))
                    (profile / "user").mkdir(parents=True, exist_ok=True)
                    (profile / "user" / "registrymodifications.xcu").write_text("<items/>")
            if not source.is_file():
                return False
            (outdir / f"{source.stem}.{ext}").write_bytes(b"office:" + source.read_bytes())
            return True

        if binary == "convert":
            source, output = Path(cmd[-2]), Path(cmd[-1])
            if not source.is_file():
                return False
            content = source.read_bytes()
            match = _PAGES.search(content)
            pages = int(match.group(1)) if match and "-density" in cmd else 1
            if pages > 1:
                for index in range(pages):
                    page = output.with_name(f"{output.stem}-{index}{output.suffix}")
                    page.write_bytes(b"page %d:" % index + content)
            else:
                output.write_bytes(b"magick:" + content)
            return True

        if binary == "ffmpeg":
            source, output = Path(cmd[cmd.index("-i") + 1]), Path(cmd[-1])
            if not source.is_file():
                return False
            output.write_bytes(b"ffmpeg:" + source.read_bytes())
            return True

        return False


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Working directory holding uploads and generated files."""
    directory = tmp_path / "uploads"
    directory.mkdir()
    return directory


@pytest.fixture
def test_config(work_dir: Path) -> ConverterConfig:
    return ConverterConfig(work_dir=work_dir, min_disk_space_mb=1, max_concurrent=2)


@pytest.fixture
def fake_runner() -> FakeToolRunner:
    return FakeToolRunner()


@pytest.fixture
def invoker(test_config: ConverterConfig, fake_runner: FakeToolRunner) -> ToolInvoker:
    return ToolInvoker(test_config, runner=fake_runner)


@pytest.fixture
def router(invoker: ToolInvoker, test_config: ConverterConfig) -> ConversionRouter:
    return ConversionRouter(invoker, test_config)


@pytest.fixture
def batch_converter(router: ConversionRouter, test_config: ConverterConfig) -> BatchConverter:
    return BatchConverter(router=router, config=test_config)


@pytest.fixture
def make_upload(work_dir: Path) -> Callable[..., UploadedFile]:
    """Create an upload in the working directory the way the HTTP layer saves it."""

    def _make(original_name: str, content: bytes = b"data") -> UploadedFile:
        suffix = Path(original_name).suffix.lower()
        path = work_dir / f"upload-{uuid.uuid4().hex}{suffix}"
        path.write_bytes(content)
        return UploadedFile(original_name=original_name, path=path)

    return _make


@pytest.fixture
def sample_image_file(tmp_path: Path) -> Path:
    """Create a sample PNG image file for testing."""
    from PIL import Image

    image_file = tmp_path / "sample.png"
    img = Image.new("RGB", (4, 4), color=(255, 0, 0))
    img.save(image_file)
    return image_file

