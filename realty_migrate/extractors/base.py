"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from datetime import datetime

from ..models.record import Row, TableRecordSet, count_records


@dataclass
class ExtractionResult:
    """Result of an extraction operation."""
    records: TableRecordSet = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total_extracted(self) -> int:
        return count_records(self.records)

    @property
    def failed_tables(self) -> List[str]:
        return [e["table"] for e in self.errors if e.get("table")]

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def success(self) -> bool:
        """Check if extraction was successful."""
        return len(self.errors) == 0


class BaseExtractor(ABC):
    """
    Base class for table extractors.

    Extractors pull every row of a set of tables out of a source and hand
    them back as a ``TableRecordSet``.
    """

    def __init__(self, page_size: int = 1000):
        """
        Initialize the extractor.

        Args:
            page_size: Rows requested per read
        """
        self.page_size = page_size
        self._errors: List[Dict[str, Any]] = []

    @abstractmethod
    def extract_batch(self, table: str, offset: int = 0, limit: int = 1000) -> List[Row]:
        """
        Extract a page of rows.

        Args:
            table: Table to read
            offset: Starting offset
            limit: Maximum rows to extract

        Returns:
            List of rows
        """
        pass

    @abstractmethod
    def extract(self, tables: List[str]) -> ExtractionResult:
        """
        Extract all rows of the given tables.

        Returns:
            ExtractionResult containing one entry per table
        """
        pass

    def stream(self, table: str, page_size: Optional[int] = None) -> Iterator[List[Row]]:
        """
        Stream a table in pages.

        Args:
            table: Table to read
            page_size: Size of each page (defaults to self.page_size)

        Yields:
            Pages of rows
        """
        page_size = page_size or self.page_size
        offset = 0

        while True:
            batch = self.extract_batch(table, offset=offset, limit=page_size)
            if not batch:
                break

            yield batch
            offset += len(batch)

            if len(batch) < page_size:
                break

    def add_error(
        self,
        message: str,
        table: Optional[str] = None
    ) -> None:
        """Add an error to the extraction."""
        error = {
            "message": message,
            "table": table,
            "timestamp": datetime.utcnow().isoformat(),
        }
        self._errors.append(error)

    def get_extraction_result(self, records: TableRecordSet) -> ExtractionResult:
        return ExtractionResult(
            records=records,
            errors=self._errors.copy(),
        )

    def reset(self) -> None:
        """Reset the extractor state."""
        self._errors = []
