import sqlite3
import logging
from typing import Any, Dict, Iterable, Optional, Tuple, Union
from pathlib import Path

from ..exceptions import DatabaseError
from ..models import ProcessedRecord, PersistResult

class CatalogStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def persist_batch(self, records: Iterable[ProcessedRecord], rollback_on_error: bool = False) -> PersistResult:
        """
        Inserts all records inside one transaction.

        Duplicates (same original_path) are ignored, not errors. Any other
        per-record failure is counted and logged; by default the successful
        rows are still committed and the result reports a partial batch.
        With rollback_on_error=True a single failure discards the whole batch.
        """
        inserted = ignored = errored = 0
        cur = self.conn.cursor()

        try:
            if not self.conn.in_transaction:
                cur.execute("BEGIN")
            for rec in records:
                try:
                    row = self._row(rec)
                    cur.execute("""
                        INSERT OR IGNORE INTO media_items (
                            original_path, data_path, thumbnail_path,
                            datetime_original, datetime_indexed, camera_make, camera_model
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                    """, row)
                except (sqlite3.Error, ValueError) as e:
                    # ValueError covers paths that cannot be encoded as UTF-8
                    errored += 1
                    logging.error(f"Error saving info for {rec.original_path}: {e}")
                    continue

                if cur.rowcount > 0:
                    inserted += 1
                    logging.debug(f"Saved info for {rec.original_path}")
                else:
                    ignored += 1
                    logging.debug(f"Ignored duplicate entry for {rec.original_path}")

            if errored and rollback_on_error:
                self.conn.rollback()
                logging.error(f"Database batch rolled back: {errored} record(s) failed.")
                return PersistResult(inserted=0, ignored=0, errored=errored, committed=False)

            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            raise DatabaseError(f"Database batch failed: {e}") from e

        result = PersistResult(inserted=inserted, ignored=ignored, errored=errored)
        if result.is_partial:
            logging.warning(
                f"Database save finished with errors. {inserted} new records saved, "
                f"{ignored} duplicates ignored, {errored} errors."
            )
        else:
            logging.info(f"Database save complete. {inserted} new records saved, {ignored} duplicates ignored.")
        return result

    def _row(self, rec: ProcessedRecord) -> Tuple:
        captured = rec.metadata.captured_at
        return (
            str(rec.original_path),
            str(rec.data_dest_path),
            str(rec.thumbnail_dest_path) if rec.thumbnail_dest_path else None,
            captured.isoformat(timespec="seconds") if captured else None,
            rec.indexed_key,
            rec.metadata.camera_make,
            rec.metadata.camera_model,
        )

    def count(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM media_items")
        return cur.fetchone()[0]

    def fetch_by_original_path(self, path: Union[str, Path]) -> Optional[Dict[str, Any]]:
        """Returns the catalog row for a source path as a dict, or None."""
        cur = self.conn.cursor()
        cur.execute("""
            SELECT id, original_path, data_path, thumbnail_path, datetime_original,
                   datetime_indexed, camera_make, camera_model, imported_at
            FROM media_items
            WHERE original_path = ?
        """, (str(path),))
        row = cur.fetchone()
        if row is None:
            return None
        cols = [d[0] for d in cur.description]
        return dict(zip(cols, row))
