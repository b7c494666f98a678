"""Extractor that reads whole tables through a query client."""

import logging
import threading
from typing import List, Optional
from datetime import datetime

from .base import BaseExtractor, ExtractionResult
from ..clients.base import QueryClient
from ..exceptions import MigrationCancelled
from ..models.record import Row, TableRecordSet

logger = logging.getLogger(__name__)


class TableExtractor(BaseExtractor):
    """
    Reads every row of the known tables from the source project.

    A table that cannot be read becomes an empty list in the result; the
    remaining tables are still exported.
    """

    def __init__(
        self,
        client: QueryClient,
        page_size: int = 1000,
        cancel_event: Optional[threading.Event] = None,
        order_by: str = "id"
    ):
        """
        Initialize the table extractor.

        Args:
            client: Query client of the source project
            page_size: Rows requested per read
            cancel_event: Set to stop between tables and pages
            order_by: Column that gives pages a stable order
        """
        super().__init__(page_size)
        self.client = client
        self.cancel_event = cancel_event
        self.order_by = order_by

    def extract_batch(self, table: str, offset: int = 0, limit: int = 1000) -> List[Row]:
        return self.client.select(table, "*", limit=limit, offset=offset, order=self.order_by)

    def extract_table(self, table: str) -> List[Row]:
        """Read every row of one table, raising on failure."""
        rows: List[Row] = []
        for batch in self.stream(table):
            self._check_cancelled(table)
            rows.extend(batch)
        return rows

    def extract(self, tables: List[str]) -> ExtractionResult:
        """Export each table in order, isolating per-table failures."""
        self.reset()
        started_at = datetime.utcnow()
        records: TableRecordSet = {}

        for table in tables:
            self._check_cancelled(table)
            logger.info(f"Exporting table: {table}")

            try:
                records[table] = self.extract_table(table)
                logger.info(f"Exported {len(records[table])} records from {table}")
            except MigrationCancelled:
                raise
            except Exception as e:
                records[table] = []
                self.add_error(f"Could not export table {table}: {e}", table=table)
                logger.warning(f"Could not export table {table}: {e}")

        result = self.get_extraction_result(records)
        result.started_at = started_at
        result.completed_at = datetime.utcnow()
        return result

    def _check_cancelled(self, table: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise MigrationCancelled(f"export of {table}")
