"""
Decode tiers for thumbnail synthesis.

Each tier is a plain function `(path, ctx) -> Image | None`. A chain is an
ordered list of tiers; the first one returning an image wins. Exceptions
raised inside a tier are logged at debug level and the chain moves on.
"""
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import exifread
import numpy as np
import rawpy
from PIL import Image, ImageOps

from .. import config
from .convert import ImageConverter, temporary_conversion


@dataclass
class DecodeContext:
    converter: ImageConverter
    tmp_dir: Optional[Path] = None


Tier = Callable[[Path, DecodeContext], Optional[Image.Image]]


def _open_detached(source) -> Image.Image:
    """Opens an image and returns an upright copy that outlives the file handle."""
    with Image.open(source) as img:
        img.load()
        return ImageOps.exif_transpose(img)


# --- Standard raster ---

def decode_raster(path: Path, ctx: DecodeContext) -> Optional[Image.Image]:
    return _open_detached(path)


# --- Camera RAW ---

def decode_raw_8bit(path: Path, ctx: DecodeContext) -> Optional[Image.Image]:
    """Full demosaic straight to 8-bit RGB."""
    with rawpy.imread(str(path)) as raw:
        rgb = raw.postprocess(use_camera_wb=True, output_bps=8)
    return Image.fromarray(rgb)


def decode_raw_16bit(path: Path, ctx: DecodeContext) -> Optional[Image.Image]:
    """Demosaic to 16-bit, then keep the high byte of each channel."""
    with rawpy.imread(str(path)) as raw:
        rgb16 = raw.postprocess(use_camera_wb=True, output_bps=16)
    rgb8 = (np.asarray(rgb16, dtype=np.uint16) >> 8).astype(np.uint8)
    return Image.fromarray(rgb8)


def locate_preview(tags) -> Optional[Tuple[int, int]]:
    """
    Returns (offset, length) of the embedded JPEG preview, if the container
    advertises one. The thumbnail IFD is checked before the primary IFD.
    """
    for offset_key, length_key in config.PREVIEW_TAGS:
        if offset_key not in tags or length_key not in tags:
            continue
        offset = _first_int(tags[offset_key])
        length = _first_int(tags[length_key])
        if offset is not None and length:
            return offset, length
    return None


def _first_int(tag) -> Optional[int]:
    values = getattr(tag, "values", tag)
    if isinstance(values, (list, tuple)):
        if not values:
            return None
        values = values[0]
    try:
        return int(values)
    except (TypeError, ValueError):
        return None


def decode_embedded_preview(path: Path, ctx: DecodeContext) -> Optional[Image.Image]:
    with path.open('rb') as f:
        tags = exifread.process_file(f, details=False)
        span = locate_preview(tags)
        if span is None:
            return None
        offset, length = span
        f.seek(offset)
        data = f.read(length)

    if len(data) != length:
        logging.debug(f"Truncated preview in {path}: wanted {length} bytes, got {len(data)}")
        return None
    return _open_detached(io.BytesIO(data))


# --- External conversion (HEIC, DNG last resort) ---

def decode_external(path: Path, ctx: DecodeContext) -> Optional[Image.Image]:
    with temporary_conversion(ctx.converter, path, "jpeg", ctx.tmp_dir) as converted:
        if converted is None:
            return None
        return _open_detached(converted)


RASTER_TIERS: List[Tier] = [decode_raster]
RAW_TIERS: List[Tier] = [decode_raw_8bit, decode_raw_16bit, decode_embedded_preview]
HEIF_TIERS: List[Tier] = [decode_external]


def tiers_for(family: str, ext: str) -> List[Tier]:
    if family == 'raster':
        return RASTER_TIERS
    if family == 'raw':
        if ext in config.EXTERNAL_RAW_EXTS:
            return RAW_TIERS + [decode_external]
        return RAW_TIERS
    if family == 'heif':
        return HEIF_TIERS
    return []


def run_chain(tiers: List[Tier], path: Path, ctx: DecodeContext) -> Optional[Image.Image]:
    for tier in tiers:
        try:
            img = tier(path, ctx)
        except Exception as e:
            logging.debug(f"{tier.__name__} failed for {path}: {e}")
            continue
        if img is not None:
            logging.debug(f"{tier.__name__} decoded {path}")
            return img
    return None
