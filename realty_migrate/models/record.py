"""Record models for migration data."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime

# Table name -> rows; each row maps column name to a JSON-compatible value.
Row = Dict[str, Any]
TableRecordSet = Dict[str, List[Row]]


def count_records(records: TableRecordSet) -> int:
    """Total number of rows across all tables."""
    return sum(len(rows) for rows in records.values())


@dataclass
class BatchResult:
    """Result of writing one batch of rows."""
    table: str
    start: int
    end: int
    success: bool = False
    error: Optional[str] = None

    @property
    def size(self) -> int:
        return self.end - self.start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "start": self.start,
            "end": self.end,
            "success": self.success,
            "error": self.error,
        }


@dataclass
class LoadResult:
    """Result of importing one table."""
    table: str
    total_attempted: int = 0
    total_succeeded: int = 0
    total_failed: int = 0
    batches: List[BatchResult] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def add_batch(self, batch: BatchResult) -> None:
        self.batches.append(batch)
        self.total_attempted += batch.size
        if batch.success:
            self.total_succeeded += batch.size
        else:
            self.total_failed += batch.size

    @property
    def errors(self) -> List[Dict[str, Any]]:
        return [b.to_dict() for b in self.batches if not b.success]

    @property
    def success_rate(self) -> float:
        if self.total_attempted == 0:
            return 0.0
        return self.total_succeeded / self.total_attempted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "total_attempted": self.total_attempted,
            "total_succeeded": self.total_succeeded,
            "total_failed": self.total_failed,
            "success_rate": self.success_rate,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "errors": self.errors,
        }


@dataclass
class StorageMigrationResult:
    """Result of copying the storage tree."""
    buckets: List[str] = field(default_factory=list)
    files_migrated: List[str] = field(default_factory=list)
    files_updated: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    skipped: bool = False

    @property
    def files_copied(self) -> int:
        return len(self.files_migrated) + len(self.files_updated)

    @property
    def files_failed(self) -> int:
        return sum(1 for e in self.errors if e.get("kind") == "file")

    def add_error(self, kind: str, path: str, message: str) -> None:
        self.errors.append({
            "kind": kind,
            "path": path,
            "error": message,
            "timestamp": datetime.utcnow().isoformat(),
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buckets": self.buckets,
            "files_migrated": len(self.files_migrated),
            "files_updated": len(self.files_updated),
            "files_failed": self.files_failed,
            "errors": self.errors,
            "skipped": self.skipped,
        }
