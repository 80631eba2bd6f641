import os
import logging
from pathlib import Path
from typing import Iterator, List

from ..exceptions import ScanError
from ..models import FileCandidate

class DiskScanner:
    def scan(self, root: Path) -> List[FileCandidate]:
        """
        Returns every regular file under root as an ordered candidate list.
        Symlinks to files are included; symlinked directories, broken links
        and special files are skipped with a debug log line.
        No filtering happens here; the thumbnail stage decides what it can handle.
        """
        if not root.is_dir():
            raise ScanError(f"Provided path is not a directory: {root}")
        try:
            with os.scandir(root):
                pass
        except OSError as e:
            raise ScanError(f"Cannot read source directory {root}: {e}") from e

        return [FileCandidate(path=p) for p in self._iter_files(root)]

    def _iter_files(self, root: Path) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError:
                logging.warning(f"Permission denied: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                # Directory links are not followed (cycles); file links are
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file():
                    files.append(Path(e.path))
                else:
                    logging.debug(f"Skipping non-regular entry: {e.path}")

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f
