import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import exifread

from .. import config
from ..models import CaptureMetadata


class MetadataExtractor:
    """
    Best-effort reader of capture metadata (time, make, model).

    Uses 'exifread' for every container it understands (JPEG, TIFF-based RAW,
    HEIC, PNG, WebP). Never raises: a file that cannot be read simply yields
    an empty CaptureMetadata.
    """

    def extract(self, path: Path) -> CaptureMetadata:
        try:
            with path.open('rb') as f:
                # details=False skips maker notes, which is all we need
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            logging.debug(f"ExifRead failed for {path}: {e}")
            return CaptureMetadata()

        if not tags:
            return CaptureMetadata()

        return CaptureMetadata(
            captured_at=self._parse_exif_date(tags, path),
            camera_make=self._display_value(tags, config.MAKE_TAG),
            camera_model=self._display_value(tags, config.MODEL_TAG),
        )

    def _parse_exif_date(self, tags, path: Path) -> Optional[datetime]:
        """Primary capture time first, then the container's DateTime."""
        raw = None
        for tag in config.DATE_TAGS:
            if tag in tags:
                raw = str(tags[tag]).strip()
                break
        if raw is None:
            return None

        try:
            naive = datetime.strptime(raw, config.EXIF_DATE_FORMAT)
        except ValueError:
            logging.debug(f"Unparsable EXIF datetime '{raw}' in {path}")
            return None

        return localize(naive)

    def _display_value(self, tags, key: str) -> Optional[str]:
        if key not in tags:
            return None
        value = str(tags[key]).strip()
        return value or None


def localize(naive: datetime) -> Optional[datetime]:
    """
    Attaches the system local timezone to a naive wall-clock time.

    Ambiguous times (the repeated hour when DST ends) resolve to the earlier
    instant. Times that do not exist locally (skipped by DST) return None, as
    do times at the edges of the calendar that cannot be shifted to local time.
    """
    candidate = naive.replace(fold=0)
    try:
        aware = candidate.astimezone()
    except (ValueError, OverflowError, OSError) as e:
        logging.debug(f"Cannot localize {naive}: {e}")
        return None
    if aware.replace(tzinfo=None) != candidate:
        logging.debug(f"Local time {naive} does not exist in this timezone")
        return None
    return aware
