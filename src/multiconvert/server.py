"""MCP Server for file conversion.

This module provides a FastMCP-based MCP server exposing the same batch
conversion engine as the HTTP API, operating on local file paths.
"""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from .batch import BatchConverter, UploadedFile, unique_token
from .cleanup import release
from .config import config
from .converters.router import ConversionRouter
from .deps import verify_dependencies
from .file_manager import FileManager
from .formats import DEFAULT_FORMATS
from .logging_config import ConverterError, DependencyError, get_logger, setup_logging

logger = get_logger("server")


class GracefulShutdown:
    """Handle graceful shutdown of the MCP server."""

    def __init__(self):
        self._shutdown = False
        self._tasks: set[asyncio.Task] = set()

    def is_shutting_down(self) -> bool:
        """Check if shutdown has been initiated."""
        return self._shutdown

    def initiate_shutdown(self):
        """Initiate graceful shutdown."""
        if not self._shutdown:
            self._shutdown = True
            logger.info("Shutdown signal received, cleaning up...")

    def register_task(self, task: asyncio.Task):
        """Register a task to be tracked during shutdown."""
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._tasks.discard(t))

    async def wait_for_tasks(self, timeout: float = 10.0):
        """Wait for registered tasks to complete with timeout."""
        if not self._tasks:
            return

        logger.info(f"Waiting for {len(self._tasks)} tasks to complete...")
        try:
            await asyncio.wait_for(
                asyncio.gather(*self._tasks, return_exceptions=True), timeout=timeout
            )
            logger.info("All tasks completed successfully")
        except asyncio.TimeoutError:
            logger.warning(f"Timeout waiting for tasks after {timeout}s")


shutdown_handler = GracefulShutdown()
converter = BatchConverter(config=config)


@asynccontextmanager
async def server_lifespan(app: FastMCP):
    """Manage server startup and shutdown.

    This context manager handles:
    - Dependency verification at startup
    - Graceful shutdown of running conversions
    """
    try:
        logger.info("Starting File Converter MCP Server...")
        logger.info("Verifying system dependencies...")
        try:
            deps = await verify_dependencies(config)
            logger.info(
                "Dependencies verified: "
                + ", ".join(f"{name} {info['message']}" for name, info in deps.items())
            )
        except DependencyError as e:
            logger.error(f"Dependency check failed: {e}")
            raise

        yield

    finally:
        logger.info("Shutting down server...")
        shutdown_handler.initiate_shutdown()
        await shutdown_handler.wait_for_tasks()
        logger.info("Server shutdown complete")


mcp = FastMCP(
    name="File Converter",
    instructions=(
        "MCP server for file format conversion. "
        "Converts images, documents, audio and video using ImageMagick, "
        "LibreOffice and FFmpeg. Images and documents convert into each other."
    ),
    lifespan=server_lifespan,
)


async def _convert(
    sources: list[str], target_format: str, output_dir: str | None
) -> list[str]:
    if not sources:
        raise ValueError("At least one source file is required")

    out_dir = Path(output_dir) if output_dir else Path(sources[0]).parent
    file_manager = FileManager(work_dir=config.work_dir, output_dir=out_dir)

    staged: list[UploadedFile] = []
    try:
        for source in sources:
            path = file_manager.stage(source, unique_token())
            staged.append(UploadedFile(original_name=Path(source).name, path=path))
    except BaseException:
        release(sources=[item.path for item in staged])
        raise

    result = await converter.convert(staged, target_format)
    delivered: list[Path] = []
    try:
        for output in result.outputs:
            delivered.append(file_manager.deliver(output.path, output.name))
    except BaseException:
        release(outputs=delivered)
        raise
    finally:
        result.release()

    return [str(path) for path in delivered]


@mcp.tool()
async def convert_files(
    sources: list[str],
    target_format: str,
    output_dir: str | None = None,
) -> dict[str, Any]:
    """Convert one or more files to a target format.

    Every file must convert or none is delivered. Multi-page documents
    converted to images produce one file per page.

    Args:
        sources: Paths to source files (absolute or relative to current directory)
        target_format: Target extension (e.g., 'png', 'pdf', 'docx', 'mp3', 'webm')
        output_dir: Optional output directory (default: directory of the first source)

    Returns:
        dict with:
            - status: 'success' or 'error'
            - output_paths: Paths of converted files (on success)
            - message: Status message or error description
            - format: Target format
    """
    logger.info(f"Conversion requested: {sources} -> {target_format}")

    if shutdown_handler.is_shutting_down():
        return {
            "status": "error",
            "output_paths": [],
            "message": "Server is shutting down, new conversions not accepted",
            "format": target_format,
        }

    task = asyncio.current_task()
    if task is not None:
        shutdown_handler.register_task(task)

    try:
        output_paths = await _convert(sources, target_format, output_dir)
    except (ConverterError, ValueError) as e:
        logger.error(f"Conversion failed: {e}")
        return {
            "status": "error",
            "output_paths": [],
            "message": str(e),
            "format": target_format,
        }

    return {
        "status": "success",
        "output_paths": output_paths,
        "message": f"Converted {len(sources)} file(s) into {len(output_paths)} {target_format} file(s)",
        "format": target_format,
    }


@mcp.tool()
async def list_supported_formats() -> dict[str, list[str]]:
    """List all supported formats, grouped by category.

    Returns:
        dict with keys image, document, audio, video
    """
    return DEFAULT_FORMATS.as_dict()


@mcp.tool()
async def get_conversion_info(source_format: str, target_format: str) -> dict[str, Any]:
    """Get information about a specific conversion path.

    Args:
        source_format: Source extension (e.g., 'docx', 'mp4')
        target_format: Target extension (e.g., 'png', 'webm')

    Returns:
        dict with:
            - supported: Whether this conversion is supported
            - strategy: How the conversion is carried out
            - source_category / target_category: Format categories
            - notes: Human-readable summary
    """
    router: ConversionRouter = converter.router
    info = router.describe(source_format, target_format)

    if info["supported"]:
        notes = f"{info['source_category']} -> {info['target_category']} via {info['strategy']}"
    else:
        notes = f"Conversion not supported from {source_format} to {target_format}"

    return {**info, "notes": notes}


def main():
    """Main entry point for the MCP server.

    Note: mcp.run() manages its own event loop via anyio, so we call it
    synchronously without wrapping in asyncio.run().
    """
    setup_logging(config.log_level, str(config.log_file) if config.log_file else None)
    try:
        logger.info("Starting server with stdio transport...")
        mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        shutdown_handler.initiate_shutdown()
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Server stopped")


if __name__ == "__main__":
    main()
