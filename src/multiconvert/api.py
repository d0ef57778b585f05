"""HTTP API for file conversion.

``POST /convert`` accepts up to ``max_files`` multipart uploads plus a
``targetFormat`` field and answers with the converted file, a ZIP of all
converted files, or a JSON ``{"error": ...}`` body.
"""

import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse

from .batch import BatchConverter, BatchResult, UploadedFile
from .cleanup import discard, release
from .config import ConverterConfig, config as default_config
from .deps import verify_dependencies
from .formats import DEFAULT_FORMATS
from .logging_config import (
    ConverterError,
    FileTooLargeError,
    InvalidInputError,
    UserError,
    error_payload,
    get_logger,
    setup_logging,
)

logger = get_logger("api")

CHUNK_SIZE = 8 * 1024 * 1024


def status_code_for(error: ConverterError) -> int:
    if isinstance(error, FileTooLargeError):
        return 413
    if isinstance(error, UserError):
        return 400
    return 500


class ReleasingFileResponse(FileResponse):
    """FileResponse that releases the batch once the body is sent, or sending fails."""

    def __init__(self, *args, result: BatchResult, **kwargs):
        super().__init__(*args, **kwargs)
        self.result = result

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.result.release()


async def save_upload(upload: UploadFile, work_dir: Path, max_bytes: int) -> UploadedFile:
    """Stream an upload to the working directory, enforcing the size limit."""
    original_name = upload.filename or "upload"
    suffix = Path(original_name.replace("\\", "/")).suffix.lower()
    path = work_dir / f"upload-{uuid.uuid4().hex}{suffix}"

    total = 0
    with open(path, "wb") as f:
        while chunk := await upload.read(CHUNK_SIZE):
            total += len(chunk)
            if total > max_bytes:
                f.close()
                discard(path)
                raise FileTooLargeError(
                    f"File {original_name} is too large",
                    suggestion=f"Maximum size is {max_bytes // (1024 * 1024)}MB per file",
                )
            f.write(chunk)

    logger.debug(f"Saved upload {original_name} ({total} bytes) -> {path.name}")
    return UploadedFile(original_name=original_name, path=path)


def create_app(
    config: Optional[ConverterConfig] = None,
    converter: Optional[BatchConverter] = None,
    check_dependencies: bool = True,
) -> FastAPI:
    """Build the FastAPI application."""
    config = config or (converter.config if converter else default_config)
    converter = converter or BatchConverter(config=config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config.log_level, str(config.log_file) if config.log_file else None)
        config.work_dir.mkdir(parents=True, exist_ok=True)
        if check_dependencies:
            deps = await verify_dependencies(config)
            logger.info(
                "Dependencies verified: "
                + ", ".join(f"{name} {info['message']}" for name, info in deps.items())
            )
        logger.info(f"Working directory: {config.work_dir.resolve()}")
        yield
        logger.info("Server stopped")

    app = FastAPI(title="multiconvert", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.converter = converter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ConverterError)
    async def converter_error_handler(request: Request, exc: ConverterError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"Conversion error: {exc}")
        else:
            logger.info(f"Rejected request: {exc}")
        return JSONResponse(error_payload(exc, debug=config.debug), status_code=status_code)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unexpected error handling {request.url.path}: {exc}")
        return JSONResponse({"error": "Conversion failed"}, status_code=500)

    @app.get("/", response_class=PlainTextResponse)
    async def health() -> str:
        return "Backend is running"

    @app.get("/formats")
    async def formats() -> dict[str, list[str]]:
        return DEFAULT_FORMATS.as_dict()

    @app.post("/convert")
    async def convert(
        files: Optional[List[UploadFile]] = File(None),
        file: Optional[UploadFile] = File(None),
        target_format: Optional[str] = Form(None, alias="targetFormat"),
    ):
        uploads = [*(files or []), *([file] if file is not None else [])]
        if len(uploads) > config.max_files:
            raise InvalidInputError(
                f"Too many files: {len(uploads)} uploaded, at most {config.max_files} allowed"
            )

        config.work_dir.mkdir(parents=True, exist_ok=True)
        saved: list[UploadedFile] = []
        try:
            for upload in uploads:
                saved.append(await save_upload(upload, config.work_dir, config.max_file_size_bytes))
        except BaseException:
            release(sources=[item.path for item in saved])
            raise

        result = await converter.convert(saved, target_format)

        try:
            deliverable = converter.package(result)
        except BaseException:
            result.release()
            raise

        logger.info(f"Sending {deliverable.filename}")
        return ReleasingFileResponse(
            deliverable.path,
            result=result,
            media_type=deliverable.media_type,
            filename=deliverable.filename,
        )

    return app


app = create_app()


def main():
    """Run the HTTP server with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=default_config.host, port=default_config.port)
