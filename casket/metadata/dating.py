import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from .. import config
from ..models import CaptureMetadata


class DateIndexer:
    """
    Decides which moment a file belongs to.

    The same fallback chain feeds both the catalog's indexed key and the
    YYYY/MM/DD folder the file is stored under, so the two never disagree:
      capture time -> creation time -> modification time -> now
    """

    def resolve(self, path: Path, metadata: CaptureMetadata) -> datetime:
        if metadata.captured_at is not None:
            return metadata.captured_at

        try:
            st = path.stat()
        except OSError as e:
            logging.warning(f"Cannot stat {path} ({e}); indexing with current time.")
            return datetime.now().astimezone()

        for ts in (self._birth_time(st), st.st_mtime):
            if ts is None:
                continue
            try:
                return datetime.fromtimestamp(ts).astimezone()
            except (ValueError, OverflowError, OSError) as e:
                logging.debug(f"Unusable file timestamp {ts} on {path}: {e}")

        logging.warning(f"No usable file time for {path}; indexing with current time.")
        return datetime.now().astimezone()

    def indexed_key(self, path: Path, metadata: CaptureMetadata) -> str:
        return format_indexed_key(self.resolve(path, metadata))

    def date_segments(self, path: Path, metadata: CaptureMetadata) -> Tuple[str, str, str]:
        return format_date_segments(self.resolve(path, metadata))

    def _birth_time(self, st: os.stat_result) -> Optional[float]:
        # Only some platforms (macOS, BSD, recent Windows) report it
        return getattr(st, "st_birthtime", None)


def format_indexed_key(dt: datetime) -> str:
    return dt.strftime(config.INDEXED_KEY_FORMAT)


def format_date_segments(dt: datetime) -> Tuple[str, str, str]:
    year, month, day = (dt.strftime(fmt) for fmt in config.DATE_SEGMENTS)
    return year, month, day
