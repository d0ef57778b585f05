"""Tests for all-or-nothing batch conversion."""

import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from multiconvert.batch import (
    BatchConverter,
    BatchResult,
    ConversionRequest,
    OutputFile,
    UploadedFile,
    unique_token,
)
from multiconvert.logging_config import (
    DiskSpaceError,
    InvalidInputError,
    NoOutputProducedError,
    ToolError,
    UnsupportedConversionError,
    UnsupportedFormatError,
)


class TestUploadedFile:
    """Tests for upload name handling."""

    def test_extension_and_stem(self, tmp_path):
        upload = UploadedFile("Quarterly Report.DOCX", tmp_path / "x")

        assert upload.extension == "docx"
        assert upload.stem == "Quarterly Report"

    def test_windows_path_in_filename(self, tmp_path):
        upload = UploadedFile("C:\\Users\\me\\photo.PNG", tmp_path / "x")

        assert upload.extension == "png"
        assert upload.stem == "photo"

    def test_missing_name(self, tmp_path):
        upload = UploadedFile("", tmp_path / "x")

        assert upload.extension == ""
        assert upload.stem == "file"


class TestDisplayNames:
    def test_single_output(self, tmp_path):
        request = ConversionRequest(
            source_path=tmp_path / "upload-1.docx",
            source_ext="docx",
            target_ext="pdf",
            target_path=tmp_path / "converted-1.pdf",
            display_stem="report",
        )

        assert request.display_name(tmp_path / "converted-1.pdf") == "report.pdf"
        assert request.display_name(tmp_path / "converted-1-3.pdf") == "report-3.pdf"

    def test_unique_tokens_differ(self):
        assert len({unique_token() for _ in range(100)}) == 100


class TestPlan:
    """Tests for batch validation."""

    def test_no_files(self, batch_converter):
        with pytest.raises(InvalidInputError, match="No files uploaded"):
            batch_converter.plan([], "pdf")

    def test_too_many_files(self, batch_converter, make_upload):
        uploads = [make_upload(f"f{i}.png") for i in range(5)]

        with pytest.raises(InvalidInputError, match="Too many files"):
            batch_converter.plan(uploads, "pdf")

    @pytest.mark.parametrize("target", [None, "", "  ", "."])
    def test_missing_target(self, batch_converter, make_upload, target):
        with pytest.raises(InvalidInputError, match="Target format required"):
            batch_converter.plan([make_upload("a.png")], target)

    def test_unknown_extension(self, batch_converter, make_upload):
        with pytest.raises(UnsupportedFormatError):
            batch_converter.plan([make_upload("a.png"), make_upload("virus.exe")], "pdf")

    def test_unique_target_paths(self, batch_converter, make_upload, work_dir):
        requests = batch_converter.plan([make_upload("a.png"), make_upload("a.png")], ".PDF")

        assert requests[0].target_path != requests[1].target_path
        for request in requests:
            assert request.target_path.parent == work_dir
            assert request.target_path.name.startswith("converted-")
            assert request.target_ext == "pdf"
            assert request.display_stem == "a"


class TestBatchConvert:
    """Tests for BatchConverter.convert()."""

    @pytest.mark.asyncio
    async def test_single_file(self, batch_converter, make_upload):
        upload = make_upload("report.docx", b"doc")

        result = await batch_converter.convert([upload], "pdf")

        assert result.is_single
        assert result.outputs[0].name == "report.pdf"
        assert result.outputs[0].path.read_bytes() == b"office:doc"
        assert result.sources == [upload.path]

    @pytest.mark.asyncio
    async def test_outputs_follow_upload_order(self, batch_converter, make_upload):
        uploads = [make_upload("b.png"), make_upload("a.gif"), make_upload("c.webp")]

        result = await batch_converter.convert(uploads, "jpg")

        assert [output.name for output in result.outputs] == ["b.jpg", "a.jpg", "c.jpg"]

    @pytest.mark.asyncio
    async def test_multi_page_outputs(self, batch_converter, make_upload):
        result = await batch_converter.convert([make_upload("deck.pdf", b"pages=3")], "png")

        assert not result.is_single
        assert [output.name for output in result.outputs] == [
            "deck-0.png",
            "deck-1.png",
            "deck-2.png",
        ]

    @pytest.mark.asyncio
    async def test_failure_removes_everything(self, batch_converter, fake_runner, make_upload, work_dir):
        """When the second of three files fails, nothing of the batch survives."""
        uploads = [make_upload("a.png", b"one"), make_upload("b.png", b"two"), make_upload("c.png", b"three")]
        second = uploads[1].path
        fake_runner.fail_when = lambda cmd: cmd[1] == str(second)

        with pytest.raises(ToolError):
            await batch_converter.convert(uploads, "jpg")

        assert list(work_dir.iterdir()) == []
        assert len(fake_runner.calls) == 2

    @pytest.mark.asyncio
    async def test_office_crash_after_writing_removes_everything(
        self, batch_converter, fake_runner, make_upload, work_dir
    ):
        """LibreOffice exiting non-zero after writing its output leaves no file behind."""
        fake_runner.crash_after_write_when = lambda cmd: cmd[0] == "libreoffice"

        with pytest.raises(ToolError):
            await batch_converter.convert([make_upload("report.txt")], "docx")

        assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_validation_failure_removes_sources(self, batch_converter, fake_runner, make_upload, work_dir):
        uploads = [make_upload("a.png"), make_upload("b.mp3")]

        with pytest.raises(UnsupportedConversionError):
            await batch_converter.convert(uploads, "pdf")

        assert list(work_dir.iterdir()) == []
        assert fake_runner.calls == []

    @pytest.mark.asyncio
    async def test_disk_space_failure_removes_sources(self, router, test_config, make_upload, work_dir):
        monitor = MagicMock()
        monitor.check_disk_space.side_effect = DiskSpaceError("Insufficient disk space")
        converter = BatchConverter(router=router, config=test_config, monitor=monitor)

        with pytest.raises(DiskSpaceError):
            await converter.convert([make_upload("a.png")], "jpg")

        assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_creates_missing_work_dir(self, router, test_config, tmp_path):
        source = tmp_path / "a.png"
        source.write_bytes(b"png")
        test_config.work_dir = tmp_path / "fresh"
        converter = BatchConverter(router=router, config=test_config)

        result = await converter.convert([UploadedFile("a.png", source)], "jpg")

        assert result.outputs[0].path.parent == tmp_path / "fresh"


class TestPackage:
    """Tests for BatchConverter.package()."""

    @pytest.mark.asyncio
    async def test_single_output_sent_directly(self, batch_converter, make_upload):
        result = await batch_converter.convert([make_upload("report.docx")], "pdf")

        deliverable = batch_converter.package(result)

        assert deliverable.path == result.outputs[0].path
        assert deliverable.filename == "report.pdf"
        assert deliverable.media_type == "application/pdf"
        assert result.artifacts == []

    @pytest.mark.asyncio
    async def test_multiple_outputs_archived(self, batch_converter, make_upload):
        result = await batch_converter.convert(
            [make_upload("a.png", b"one"), make_upload("b.bmp", b"two")], "jpg"
        )

        deliverable = batch_converter.package(result)

        assert deliverable.filename == "converted_files.zip"
        assert deliverable.media_type == "application/zip"
        assert result.artifacts == [deliverable.path]
        with zipfile.ZipFile(deliverable.path) as archive:
            assert archive.namelist() == ["a.jpg", "b.jpg"]
            assert archive.read("a.jpg") == b"magick:one"

    @pytest.mark.asyncio
    async def test_duplicate_names_kept_apart(self, batch_converter, make_upload):
        result = await batch_converter.convert(
            [make_upload("photo.png", b"one"), make_upload("photo.gif", b"two")], "jpg"
        )

        deliverable = batch_converter.package(result)

        with zipfile.ZipFile(deliverable.path) as archive:
            assert archive.namelist() == ["photo.jpg", "photo (2).jpg"]

    @pytest.mark.asyncio
    async def test_release_removes_archive(self, batch_converter, make_upload, work_dir):
        result = await batch_converter.convert([make_upload("a.png"), make_upload("b.png")], "jpg")
        batch_converter.package(result)

        removed = result.release()

        assert removed == 5
        assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_package_detects_vanished_output(self, batch_converter, make_upload):
        result = await batch_converter.convert([make_upload("a.png")], "jpg")
        result.outputs[0].path.unlink()

        with pytest.raises(NoOutputProducedError):
            batch_converter.package(result)


class TestBatchResult:
    """Tests for BatchResult cleanup ownership."""

    def test_release_is_idempotent(self, tmp_path):
        source = tmp_path / "upload-1.png"
        output = tmp_path / "converted-1.jpg"
        source.write_bytes(b"x")
        output.write_bytes(b"x")
        result = BatchResult(sources=[source], outputs=[OutputFile(output, "a.jpg")])

        assert result.release() == 2
        assert result.released
        assert result.release() == 0
        assert not source.exists()
        assert not output.exists()

    def test_release_tolerates_missing_files(self, tmp_path):
        result = BatchResult(
            sources=[tmp_path / "gone.png"],
            outputs=[OutputFile(Path(tmp_path / "gone.jpg"), "gone.jpg")],
        )

        assert result.release() == 0

    def test_verify_empty(self):
        with pytest.raises(NoOutputProducedError):
            BatchResult().verify()
