"""Conversion of downloaded files."""

import logging
import shutil
import subprocess
from pathlib import Path

from icaresync.domain.errors import ConversionFailure

logger = logging.getLogger(__name__)


class Converter:
    """Converts downloaded files to a different format.

    Subclasses override `target_extension` and `convert`. The output file
    never exists when `convert` is called.
    """

    def target_extension(self) -> str:
        """Return the extension of converted files, e.g. ``".h5"``."""
        return ""

    def convert(self, input_path: Path, output_path: Path) -> None:
        raise NotImplementedError


class ExternalToolConverter(Converter):
    """Runs a command-line converter as ``<command> <input> <output>``."""

    def __init__(self, command: str = "h4toh5", extension: str = ".h5"):
        self.command = command
        self.extension = extension

    def target_extension(self) -> str:
        return self.extension

    def convert(self, input_path: Path, output_path: Path) -> None:
        executable = shutil.which(self.command)
        if executable is None:
            raise ConversionFailure(f"Converter {self.command} not found on PATH")

        logger.debug(f"Converting {input_path} -> {output_path}")
        try:
            subprocess.run(
                [executable, str(input_path), str(output_path)],
                check=True,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as e:
            Path(output_path).unlink(missing_ok=True)
            raise ConversionFailure(
                f"{self.command} failed for {input_path}: {e.stderr.strip() or e.returncode}"
            ) from e
