import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional

from tqdm import tqdm

from . import config
from .database.ops import CatalogStore
from .exceptions import FileOperationError
from .metadata.dating import DateIndexer, format_date_segments, format_indexed_key
from .metadata.extract import MetadataExtractor
from .models import CatalogConfig, FileCandidate, IngestSummary, ProcessedRecord
from .thumbnails.synthesizer import ThumbnailSynthesizer

class Ingestor:
    def __init__(self,
                 catalog: CatalogConfig,
                 store: CatalogStore,
                 extractor: Optional[MetadataExtractor] = None,
                 indexer: Optional[DateIndexer] = None,
                 synthesizer: Optional[ThumbnailSynthesizer] = None,
                 max_long_edge: int = config.THUMBNAIL_MAX_EDGE,
                 quality: int = config.THUMBNAIL_QUALITY,
                 rollback_on_error: bool = False):
        self.catalog = catalog
        self.store = store
        self.extractor = extractor or MetadataExtractor()
        self.indexer = indexer or DateIndexer()
        self.synthesizer = synthesizer or ThumbnailSynthesizer()
        self.max_long_edge = max_long_edge
        self.quality = quality
        self.rollback_on_error = rollback_on_error

    def ingest(self, candidates: Iterable[FileCandidate]) -> IngestSummary:
        """
        Runs the per-file pipeline over every candidate, one at a time:
        1. Extract capture metadata
        2. Resolve the file's date (index key + folder)
        3. Place & Copy into data_root/YYYY/MM/DD
        4. Synthesize the thumbnail

        A file that cannot be placed or copied is recorded and skipped.
        Everything that succeeded is persisted in a single batch at the end.
        """
        summary = IngestSummary()
        records = []
        candidates = list(candidates)

        for candidate in tqdm(candidates, desc="Ingesting"):
            try:
                record = self.process_file(candidate)
            except FileOperationError as e:
                logging.error(f"Error processing file {candidate.path}: {e}")
                summary.errors.append((candidate.path, str(e)))
                continue
            records.append(record)
        summary.processed = len(records)

        logging.info(
            f"Processing complete. {summary.processed} files processed successfully, "
            f"{summary.failed} errors."
        )

        if records:
            summary.persisted = self.store.persist_batch(records, rollback_on_error=self.rollback_on_error)
        return summary

    def process_file(self, candidate: FileCandidate) -> ProcessedRecord:
        src = candidate.path
        logging.debug(f"Processing file: {src}")

        metadata = self.extractor.extract(src)
        when = self.indexer.resolve(src, metadata)
        if metadata.captured_at is None:
            logging.debug(f"No capture time in {src}; using file time {when.isoformat()}")

        name = src.name
        if not name:
            raise FileOperationError(f"Invalid file path (no file name): {src}")

        segments = format_date_segments(when)
        data_dir = self.catalog.data_root.joinpath(*segments)
        thumb_dir = self.catalog.thumbnail_root.joinpath(*segments)

        try:
            data_dir.mkdir(parents=True, exist_ok=True)
            thumb_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(f"Cannot create destination directories for {src}: {e}") from e

        data_dest = data_dir / name
        try:
            shutil.copy2(str(src), str(data_dest))
        except OSError as e:
            raise FileOperationError(f"Failed to copy {src} -> {data_dest}: {e}") from e

        try:
            thumb_dest = self.synthesizer.synthesize(src, thumb_dir / name, self.max_long_edge, self.quality)
        except OSError as e:
            raise FileOperationError(f"Failed to write thumbnail for {src}: {e}") from e

        return ProcessedRecord(
            original_path=src,
            data_dest_path=data_dest,
            thumbnail_dest_path=thumb_dest,
            metadata=metadata,
            indexed_key=format_indexed_key(when),
        )
