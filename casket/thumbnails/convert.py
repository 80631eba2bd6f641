"""
External image conversion.

Some containers (HEIC, exotic DNGs) have no decoder we can rely on in
process, so we shell out to the OS converter and read back a JPEG.
"""
import logging
import os
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol

from .. import config
from ..exceptions import ConversionError


class ImageConverter(Protocol):
    def convert(self, source: Path, output_format: str, dest: Path) -> Path:
        """Writes `source` as `output_format` to `dest`. Raises ConversionError."""
        ...


class SipsConverter:
    """
    Wraps the macOS 'sips' command line utility.
    Must be installed and on the system PATH.
    """

    def __init__(self, command: str = config.CONVERTER_COMMAND, timeout: Optional[float] = None):
        self.command = command
        self.timeout = timeout

    def convert(self, source: Path, output_format: str, dest: Path) -> Path:
        exe = shutil.which(self.command)
        if exe is None:
            raise ConversionError(f"'{self.command}' not found on PATH")

        # -s format <fmt> = set output format, --out = destination file
        cmd = [exe, "-s", "format", output_format, str(source), "--out", str(dest)]
        logging.debug(f"Running {' '.join(cmd)}")

        try:
            res = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.SubprocessError) as e:
            raise ConversionError(f"{self.command} failed to run for {source}: {e}") from e

        if res.returncode != 0:
            # stderr is for diagnostics only
            logging.debug(f"{self.command} stderr for {source}: {res.stderr.strip()}")
            raise ConversionError(f"{self.command} exited with status {res.returncode} for {source}")

        if not dest.exists() or dest.stat().st_size == 0:
            raise ConversionError(f"{self.command} produced no output for {source}")
        return dest


@contextmanager
def temporary_conversion(converter: ImageConverter,
                         source: Path,
                         output_format: str = "jpeg",
                         tmp_dir: Optional[Path] = None) -> Iterator[Optional[Path]]:
    """
    Converts `source` into a single temporary file and yields its path.

    Yields None when the conversion fails. The temporary file is removed on
    every exit path, including exceptions raised by the caller's block.
    """
    fd, name = tempfile.mkstemp(prefix="casket-", suffix=f".{output_format}", dir=tmp_dir)
    os.close(fd)
    tmp = Path(name)
    try:
        try:
            out = converter.convert(source, output_format, tmp)
        except ConversionError as e:
            logging.debug(f"External conversion failed for {source}: {e}")
            out = None
        yield out
    finally:
        tmp.unlink(missing_ok=True)
