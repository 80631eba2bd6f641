import io
import logging
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from .. import config
from .convert import ImageConverter, SipsConverter
from .tiers import DecodeContext, run_chain, tiers_for


def jpeg_quality(quality: int) -> int:
    """Maps the 1..10 scale onto JPEG quality 10..100."""
    return max(10, min(int(quality) * 10, 100))


def bounded_size(size: Tuple[int, int], max_long_edge: int) -> Tuple[int, int]:
    """
    Scales (w, h) so the long edge fits max_long_edge. Never upscales.
    """
    w, h = size
    long_edge = max(w, h)
    if long_edge <= max_long_edge:
        return w, h

    scale = max_long_edge / long_edge
    if w >= h:
        return max_long_edge, max(1, round(h * scale))
    return max(1, round(w * scale)), max_long_edge


class ThumbnailSynthesizer:
    """
    Produces a bounded-size JPEG preview for a file, or nothing.

    The file extension picks a format family; each family has an ordered
    chain of decode tiers (see tiers.py). Whatever tier wins, the image is
    normalized the same way: fit the long edge, RGB, JPEG.
    """

    def __init__(self,
                 converter: Optional[ImageConverter] = None,
                 tmp_dir: Optional[Path] = None):
        self.ctx = DecodeContext(converter=converter or SipsConverter(), tmp_dir=tmp_dir)

    def synthesize(self,
                   source_path: Path,
                   dest_base: Path,
                   max_long_edge: int = config.THUMBNAIL_MAX_EDGE,
                   quality: int = config.THUMBNAIL_QUALITY) -> Optional[Path]:
        """
        Returns the written thumbnail path, or None when no preview could be
        made. Only an OSError while writing a successfully encoded thumbnail
        propagates.
        """
        ext = source_path.suffix.lower()
        family = config.EXT_TO_FAMILY.get(ext, 'unknown')
        tiers = tiers_for(family, ext)
        if not tiers:
            logging.debug(f"No thumbnail for {source_path} (family={family})")
            return None

        img = run_chain(tiers, source_path, self.ctx)
        if img is None:
            logging.info(f"Could not decode {source_path}; skipping thumbnail.")
            return None

        try:
            data = self._encode(img, max_long_edge, quality)
        except Exception as e:
            logging.warning(f"Thumbnail encode failed for {source_path}: {e}")
            return None
        finally:
            img.close()

        thumb_path = dest_base.with_suffix(config.THUMBNAIL_SUFFIX)
        thumb_path.write_bytes(data)
        logging.debug(f"Thumbnail saved to {thumb_path}")
        return thumb_path

    def _encode(self, img: Image.Image, max_long_edge: int, quality: int) -> bytes:
        """Resizes and encodes fully in memory so a failure writes nothing."""
        if img.mode != "RGB":
            img = img.convert("RGB")

        size = bounded_size(img.size, max_long_edge)
        if size != img.size:
            img = img.resize(size, Image.Resampling.LANCZOS)

        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=jpeg_quality(quality))
        return buf.getvalue()
