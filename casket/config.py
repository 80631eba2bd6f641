"""
Configuration constants and catalog definitions for casket.
"""
import logging
import os
import tomllib
from pathlib import Path
from typing import Dict, Optional

from .exceptions import CatalogNotFoundError, ConfigError
from .models import CatalogConfig

# --- File Type Definitions ---
RASTER_EXTS = {'.jpg', '.jpeg', '.jpe', '.png', '.tif', '.tiff', '.webp', '.bmp', '.gif'}
RAW_EXTS = {'.cr2', '.cr3', '.nef', '.arw', '.orf', '.rw2', '.dng'}
HEIF_EXTS = {'.heic', '.heif'}
VIDEO_EXTS = {'.mp4', '.mov', '.m4v', '.avi', '.mts', '.m2ts', '.3gp', '.mpg', '.mpeg', '.tod'}

# Extension to Format Family Mapping
# Used to pick a thumbnail strategy without complex if/else chains
EXT_TO_FAMILY = {}
for ext in RASTER_EXTS: EXT_TO_FAMILY[ext] = 'raster'
for ext in RAW_EXTS: EXT_TO_FAMILY[ext] = 'raw'
for ext in HEIF_EXTS: EXT_TO_FAMILY[ext] = 'heif'
for ext in VIDEO_EXTS: EXT_TO_FAMILY[ext] = 'video'

# RAW containers where the OS converter is tried as a last resort
EXTERNAL_RAW_EXTS = {'.dng'}

# --- Metadata Parsing ---
# Primary first; the second tag lives in the same container
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'Image DateTime',
]
EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"
MAKE_TAG = 'Image Make'
MODEL_TAG = 'Image Model'

# Embedded preview locations, thumbnail IFD before primary IFD
PREVIEW_TAGS = [
    ('Thumbnail JPEGInterchangeFormat', 'Thumbnail JPEGInterchangeFormatLength'),
    ('Image JPEGInterchangeFormat', 'Image JPEGInterchangeFormatLength'),
]

# --- Indexing & Organization ---
INDEXED_KEY_FORMAT = "%Y%m%d%H"
DATE_SEGMENTS = ("%Y", "%m", "%d")

# --- Thumbnails ---
THUMBNAIL_MAX_EDGE = 256
THUMBNAIL_QUALITY = 8  # 1..10, mapped to JPEG 10..100
THUMBNAIL_SUFFIX = ".jpg"
CONVERTER_COMMAND = "sips"

# --- Catalog ---
DB_FILENAME = "casket.db"
LOG_FILENAME = "casket.log"
CONFIG_DIRNAME = "casket"
CONFIG_FILENAME = "catalogs.toml"


def default_config_path() -> Path:
    """~/.config/casket/catalogs.toml, honouring XDG_CONFIG_HOME."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / CONFIG_DIRNAME / CONFIG_FILENAME


def load_catalogs(path: Optional[Path] = None) -> Dict[str, CatalogConfig]:
    """
    Reads every catalog table from the TOML file.

    A missing file is not an error: it simply defines no catalogs.
    Each top-level table is one catalog:

        [photos]
        data_path = "~/Archive/photos"
        thumbnail_path = "~/Archive/photos-thumbs"
    """
    path = path or default_config_path()
    logging.debug(f"Loading config from: {path}")

    if not path.exists():
        logging.info(f"Config file not found at {path}; no catalogs defined.")
        return {}

    try:
        with path.open("rb") as f:
            raw = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    catalogs: Dict[str, CatalogConfig] = {}
    for name, table in raw.items():
        if not isinstance(table, dict):
            raise ConfigError(f"Catalog '{name}' must be a table in {path}")
        try:
            data_path = table["data_path"]
            thumbnail_path = table["thumbnail_path"]
        except KeyError as e:
            raise ConfigError(f"Catalog '{name}' is missing {e.args[0]} in {path}") from e

        catalogs[name] = CatalogConfig(
            name=name,
            data_root=Path(str(data_path)).expanduser(),
            thumbnail_root=Path(str(thumbnail_path)).expanduser(),
        )
    return catalogs


def resolve_catalog(name: str, path: Optional[Path] = None) -> CatalogConfig:
    catalogs = load_catalogs(path)
    if name not in catalogs:
        available = ", ".join(sorted(catalogs)) or "(none)"
        raise CatalogNotFoundError(f"Catalog '{name}' not found in configuration. Available catalogs: {available}")
    return catalogs[name]
