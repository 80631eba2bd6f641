import io
import sqlite3
import struct

import pytest
from PIL import Image

from casket.database.schema import ensure_schema
from casket.database.ops import CatalogStore
from casket.models import CatalogConfig

@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:")
    ensure_schema(c)
    try:
        yield c
    finally:
        c.close()

@pytest.fixture
def store(conn):
    """Returns a CatalogStore attached to the in-memory DB."""
    return CatalogStore(conn)

@pytest.fixture
def catalog(tmp_path):
    return CatalogConfig(
        name="test",
        data_root=tmp_path / "data",
        thumbnail_root=tmp_path / "thumbs",
    )


def jpeg_bytes(size=(64, 48), color=(200, 30, 30), exif=None) -> bytes:
    buf = io.BytesIO()
    img = Image.new("RGB", size, color)
    if exif is not None:
        img.save(buf, format="JPEG", exif=exif)
    else:
        img.save(buf, format="JPEG")
    return buf.getvalue()


def tiff_with_preview(preview: bytes) -> bytes:
    """
    A minimal little-endian TIFF container whose only IFD advertises an
    embedded JPEG via JPEGInterchangeFormat/Length. No decodable sensor data.
    """
    entries = 2
    ifd_offset = 8
    ifd_size = 2 + entries * 12 + 4
    data_offset = ifd_offset + ifd_size

    out = bytearray(b"II*\x00")
    out += struct.pack("<I", ifd_offset)
    out += struct.pack("<H", entries)
    # tag, type (4 = LONG), count, value
    out += struct.pack("<HHII", 0x0201, 4, 1, data_offset)
    out += struct.pack("<HHII", 0x0202, 4, 1, len(preview))
    out += struct.pack("<I", 0)
    out += preview
    return bytes(out)


@pytest.fixture
def make_jpeg(tmp_path):
    def _make(name="photo.jpg", size=(64, 48), exif=None, directory=None):
        p = (directory or tmp_path) / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(jpeg_bytes(size=size, exif=exif))
        return p
    return _make

@pytest.fixture
def make_raw_with_preview(tmp_path):
    def _make(name="shot.dng", preview_size=(120, 80), directory=None):
        p = (directory or tmp_path) / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(tiff_with_preview(jpeg_bytes(size=preview_size, color=(10, 120, 240))))
        return p
    return _make
