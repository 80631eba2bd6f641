import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .core import Ingestor
from .database.db import DBManager
from .database.ops import CatalogStore
from .exceptions import CasketError
from .models import IngestSummary
from .scanning.filesystem import DiskScanner

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

def setup_logging(verbose: bool):
    """Console logging; the catalog log file is attached once the catalog is known."""
    log_level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)

def attach_log_file(log_dir: Path):
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / config.LOG_FILENAME, encoding='utf-8', errors='backslashreplace')
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)

def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description="casket: import camera files into a catalog")

    p.add_argument("-s", "--source", type=Path, required=True, help="Source directory to import from")
    p.add_argument("-c", "--catalog", dest="catalog_name", required=True, help="Catalog name from the config file")

    p.add_argument("--config", type=Path, default=None, help="Catalog config (default: ~/.config/casket/catalogs.toml)")
    p.add_argument("--db", type=Path, default=None, help="Custom path for SQLite DB (default: thumbnail_path/casket.db)")
    p.add_argument("--thumb-size", type=int, default=config.THUMBNAIL_MAX_EDGE, help="Max thumbnail long edge in pixels")
    p.add_argument("--thumb-quality", type=int, default=config.THUMBNAIL_QUALITY, help="Thumbnail quality, 1 (low) to 10 (high)")
    p.add_argument("--strict-db", action="store_true", help="Roll back the whole batch if any record fails to save")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return p.parse_args(argv)

def report(summary: IngestSummary):
    logging.info("=== Summary ===")
    logging.info(f"Files processed: {summary.processed}")
    logging.info(f"Files failed:    {summary.failed}")
    for path, message in summary.errors:
        logging.info(f"  {path}: {message}")

    res = summary.persisted
    if res is None:
        return
    logging.info(f"Rows inserted:   {res.inserted}")
    logging.info(f"Rows ignored:    {res.ignored}")
    logging.info(f"Rows errored:    {res.errored}")
    if not res.committed:
        logging.warning("Database batch was rolled back; nothing was saved.")
    elif res.is_partial:
        logging.warning("Database batch was only partially saved; check the errors above.")

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    logging.info("=== casket Started ===")
    logging.info(f"Source:  {args.source}")
    logging.info(f"Catalog: {args.catalog_name}")

    # 1. Catalog
    try:
        catalog = config.resolve_catalog(args.catalog_name, args.config)
        attach_log_file(catalog.thumbnail_root)
    except CasketError as e:
        logging.error(f"Error loading configuration: {e}")
        return 1
    except OSError as e:
        logging.error(f"Cannot prepare catalog directories: {e}")
        return 1

    logging.info(f"Data path:      {catalog.data_root}")
    logging.info(f"Thumbnail path: {catalog.thumbnail_root}")

    # 2. Scan
    try:
        candidates = DiskScanner().scan(args.source.resolve())
    except CasketError as e:
        logging.error(f"Error scanning source directory {args.source}: {e}")
        return 1

    logging.info(f"Found {len(candidates)} files to process.")
    if not candidates:
        logging.info("No files found in the source directory. Exiting.")
        return 0

    # 3. Ingest & Persist
    db_path = args.db if args.db else catalog.thumbnail_root / config.DB_FILENAME
    try:
        with DBManager(db_path) as conn:
            ingestor = Ingestor(
                catalog,
                CatalogStore(conn),
                max_long_edge=args.thumb_size,
                quality=args.thumb_quality,
                rollback_on_error=args.strict_db,
            )
            summary = ingestor.ingest(candidates)
    except CasketError as e:
        logging.error(f"Fatal database error: {e}")
        return 1

    report(summary)

    if summary.all_failed:
        logging.error("No files were processed successfully.")
        return 1

    logging.info("All tasks finished.")
    return 0

if __name__ == "__main__":
    sys.exit(main())
