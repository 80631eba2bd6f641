from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class FileCandidate:
    """A file found by the scanner, waiting to be ingested."""
    path: Path


@dataclass
class CaptureMetadata:
    """
    Capture metadata read from the image container.
    Every field is optional; nothing is defaulted when the container lacks it.
    """
    captured_at: Optional[datetime] = None   # timezone-aware, local
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None


@dataclass(frozen=True)
class ProcessedRecord:
    """
    One successfully copied file, ready to be persisted.
    """
    original_path: Path
    data_dest_path: Path
    thumbnail_dest_path: Optional[Path]
    metadata: CaptureMetadata
    indexed_key: str        # YYYYMMDDHH


@dataclass(frozen=True)
class CatalogConfig:
    name: str
    data_root: Path
    thumbnail_root: Path


@dataclass(frozen=True)
class PersistResult:
    inserted: int = 0
    ignored: int = 0
    errored: int = 0
    committed: bool = True

    @property
    def is_partial(self) -> bool:
        """Rows were committed while other records in the batch failed."""
        return self.committed and self.errored > 0


@dataclass
class IngestSummary:
    """
    What a run did, without the records themselves; those belong to the
    catalog once persisted.
    """
    processed: int = 0
    errors: List[Tuple[Path, str]] = field(default_factory=list)
    persisted: Optional[PersistResult] = None

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def all_failed(self) -> bool:
        return self.processed == 0 and self.failed > 0
