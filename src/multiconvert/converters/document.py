"""
Document conversion using LibreOffice in headless mode.

LibreOffice ignores the requested output name: it writes
``<input-stem>.<ext>`` into ``--outdir``. The converter locates that file and
renames it to the path the caller asked for.

Each call runs on its own user profile (``-env:UserInstallation``) inside the
output directory; concurrent headless instances must not share a profile.
"""

import os
import secrets
from pathlib import Path
from typing import Optional

from ..cleanup import discard, discard_tree
from ..logging_config import IOFailureError, NoOutputProducedError, get_logger
from ..tools import CommandSpec, Tool, ToolInvoker

logger = get_logger("converters.document")

PROFILE_PREFIX = "lo-profile-"


class DocumentConverter:
    """Drive LibreOffice through the tool invoker."""

    def __init__(self, invoker: ToolInvoker):
        self.invoker = invoker

    @staticmethod
    def build_command_spec(
        source: Path,
        target_format: str,
        output_dir: Path,
        profile_dir: Optional[Path] = None,
    ) -> CommandSpec:
        args = ["--headless"]
        if profile_dir is not None:
            args.append(f"-env:UserInstallation={Path(profile_dir).resolve().as_uri()}")
        args += ["--convert-to", target_format, "--outdir", str(output_dir), str(source)]
        return CommandSpec(Tool.OFFICE, args)

    @staticmethod
    def self_named_output(source: Path, target_format: str, output_dir: Path) -> Path:
        """Where LibreOffice writes its result for a given input."""
        return output_dir / f"{source.stem}.{target_format}"

    async def convert(self, source: Path, output: Path) -> Path:
        """
        Convert a document and place the result at ``output``.

        Whatever LibreOffice wrote is removed again if it fails or is
        cancelled; its profile directory is always removed.

        Raises:
            ToolError: If LibreOffice fails or times out
            NoOutputProducedError: If LibreOffice's output file is missing
            IOFailureError: If the output cannot be renamed
        """
        target_format = output.suffix.lstrip(".").lower()
        output_dir = output.parent
        produced = self.self_named_output(source, target_format, output_dir)
        profile_dir = output_dir / f"{PROFILE_PREFIX}{secrets.token_hex(8)}"

        try:
            await self.invoker.run(
                self.build_command_spec(source, target_format, output_dir, profile_dir)
            )
        except BaseException:
            discard(produced)
            raise
        finally:
            discard_tree(profile_dir)

        if not produced.is_file():
            raise NoOutputProducedError(
                f"Document converter did not produce {produced.name}",
                suggestion=f"LibreOffice may not support exporting this file to {target_format}",
            )

        if produced != output:
            try:
                os.replace(produced, output)
            except OSError as e:
                discard(produced)
                raise IOFailureError(
                    f"Failed to rename converted document {produced.name}",
                    technical_details=str(e),
                ) from e

        logger.info(f"Converted {source.name} -> {output.name}")
        return output
