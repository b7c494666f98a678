"""Base loader interface for the target project."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from datetime import datetime
import logging
import threading

from ..exceptions import MigrationCancelled
from ..models.record import BatchResult, LoadResult, Row, TableRecordSet

logger = logging.getLogger(__name__)


class BaseLoader(ABC):
    """
    Base class for table loaders.

    Loaders write rows into the target in a fixed table order, one batch at a
    time. A failed batch is recorded and the next batch is attempted.
    """

    def __init__(
        self,
        batch_size: int = 100,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Initialize the loader.

        Args:
            batch_size: Number of rows per write
            cancel_event: Set to stop between batches
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.cancel_event = cancel_event

    @abstractmethod
    def write_batch(self, table: str, rows: List[Row]) -> None:
        """
        Write one batch of rows.

        Raises:
            Exception: Any failure; the caller records it against the batch
        """
        pass

    def load_batch(self, table: str, rows: List[Row], start: int) -> BatchResult:
        """Write one batch and record the outcome."""
        end = start + len(rows)
        batch = BatchResult(table=table, start=start, end=end)

        try:
            self.write_batch(table, rows)
            batch.success = True
            logger.info(f"Imported batch {start}-{end} for table {table}")
        except Exception as e:
            batch.error = str(e)
            logger.error(f"Error importing batch {start}-{end} for table {table}: {e}")

        return batch

    def load_table(self, table: str, rows: List[Row]) -> LoadResult:
        """Write all rows of one table in sequential batches."""
        result = LoadResult(table=table)
        result.started_at = datetime.utcnow()

        for start in range(0, len(rows), self.batch_size):
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise MigrationCancelled(f"import of {table}")
            result.add_batch(self.load_batch(table, rows[start:start + self.batch_size], start))

        result.completed_at = datetime.utcnow()
        return result

    def load_all(
        self,
        records: TableRecordSet,
        order: List[str]
    ) -> Dict[str, LoadResult]:
        """
        Load all tables following ``order``.

        Args:
            records: Rows per table
            order: Table order (referenced tables first)

        Returns:
            Dictionary of table -> LoadResult
        """
        results = {}

        for table in order:
            rows = records.get(table)
            if not rows:
                logger.info(f"Skipping empty table: {table}")
                continue

            logger.info(f"Importing table: {table} ({len(rows)} records)")
            results[table] = self.load_table(table, rows)
            logger.info(
                f"Imported {table}: {results[table].total_succeeded}/{results[table].total_attempted} succeeded"
            )

        for table in records:
            if table not in order:
                logger.warning(f"Ignoring unknown table: {table}")

        return results
