"""
Logging configuration and error hierarchy for multiconvert.

This module provides:
- Structured logging setup with console and file handlers
- Custom exception hierarchy for the conversion pipeline
- Error categorization (user vs technical errors)
"""

import logging
import sys
import traceback
from typing import Any, Dict, Optional


class ConverterError(Exception):
    """Base error for all converter operations."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message} (Suggestion: {self.suggestion})"
        return self.message


class UserError(ConverterError):
    """Error caused by user input/action."""

    pass


class SystemError(ConverterError):
    """Error caused by system/environment issues."""

    def __init__(
        self,
        message: str,
        technical_details: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        self.technical_details = technical_details
        super().__init__(message, suggestion)


class ConversionError(ConverterError):
    """Error during conversion process."""

    pass


class InvalidInputError(UserError):
    """Error when user input is invalid."""

    pass


class FileTooLargeError(InvalidInputError):
    """Error when an upload exceeds the configured size limit."""

    pass


class UnsupportedConversionError(UserError):
    """Error when no conversion strategy exists between two formats."""

    pass


class UnsupportedFormatError(UnsupportedConversionError):
    """Error when an extension does not belong to any known category."""

    pass


class ToolError(ConversionError):
    """Error when an external tool exits non-zero or times out."""

    def __init__(
        self,
        tool: str,
        exit_code: Optional[int] = None,
        stderr_excerpt: str = "",
        timed_out: bool = False,
    ):
        self.tool = tool
        self.exit_code = exit_code
        self.stderr_excerpt = stderr_excerpt
        self.timed_out = timed_out
        if timed_out:
            message = f"{tool} timed out"
        else:
            message = f"{tool} failed with exit code {exit_code}"
        super().__init__(message)


class NoOutputProducedError(ConversionError):
    """Error when a tool reported success but the expected output is absent."""

    pass


class IOFailureError(SystemError):
    """Error when a rename, copy or move in the working directory fails."""

    pass


class DependencyError(SystemError):
    """Error when required dependency is missing."""

    pass


class DiskSpaceError(SystemError):
    """Error when insufficient disk space."""

    pass


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration for multiconvert.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        format_string: Optional custom format string

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("multiconvert")
    logger.setLevel(level)
    logger.handlers.clear()

    fmt = format_string or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt, datefmt=datefmt)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (e.g., 'batch', 'converters.router')

    Returns:
        Logger instance for the module
    """
    return logging.getLogger(f"multiconvert.{name}")


root_logger = setup_logging()


def log_conversion_start(
    logger: logging.Logger, source_file: str, target_format: str, **kwargs: Any
) -> None:
    """Log the start of a conversion operation.

    Args:
        logger: Logger instance
        source_file: Path to source file
        target_format: Target format
        **kwargs: Additional metadata
    """
    logger.info("=" * 60)
    logger.info(f"Starting conversion: {source_file} -> {target_format}")
    for key, value in kwargs.items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)


def log_conversion_complete(
    logger: logging.Logger,
    success: bool,
    duration_seconds: float,
    output_file: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Log the completion of a conversion operation.

    Args:
        logger: Logger instance
        success: Whether conversion succeeded
        duration_seconds: Duration in seconds
        output_file: Path to output file (if success)
        **kwargs: Additional metadata
    """
    status = "✓ SUCCESS" if success else "✗ FAILED"
    logger.info("=" * 60)
    logger.info(f"{status} - Conversion completed in {duration_seconds:.2f}s")
    if output_file:
        logger.info(f"  Output: {output_file}")
    for key, value in kwargs.items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)


def log_error(logger: logging.Logger, error: Exception, include_traceback: bool = True) -> None:
    """Log an error with appropriate formatting.

    Args:
        logger: Logger instance
        error: Exception to log
        include_traceback: Whether to include stack trace
    """
    logger.error(f"Error occurred: {error}")

    if isinstance(error, ConverterError) and error.suggestion:
        logger.info(f"Suggestion: {error.suggestion}")

    if isinstance(error, SystemError) and error.technical_details:
        logger.debug(f"Technical details: {error.technical_details}")

    if isinstance(error, ToolError) and error.stderr_excerpt:
        logger.debug(f"{error.tool} stderr: {error.stderr_excerpt}")

    if include_traceback:
        logger.debug("".join(traceback.format_exception(type(error), error, error.__traceback__)))


def error_payload(error: ConverterError, debug: bool = False) -> Dict[str, str]:
    """Build the JSON error body returned to clients."""
    message = error.message
    if debug and isinstance(error, ToolError) and error.stderr_excerpt:
        message = f"{message}: {error.stderr_excerpt}"
    return {"error": message}
