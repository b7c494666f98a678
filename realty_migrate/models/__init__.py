"""Data models for the migration engine."""

from .schema import (
    EXPORT_TABLES,
    IMPORT_ORDER,
    TABLE_DEPENDENCIES,
    COLUMN_MAPPINGS,
    map_column_name,
    map_column_names,
)
from .migration import (
    MigrationConfig,
    MigrationOptions,
    MigrationRun,
    MigrationStep,
    MigrationStatus,
    StepName,
    ConnectionTestResult,
    StorageStats,
)
from .record import (
    Row,
    TableRecordSet,
    BatchResult,
    LoadResult,
    StorageMigrationResult,
    count_records,
)

__all__ = [
    "EXPORT_TABLES",
    "IMPORT_ORDER",
    "TABLE_DEPENDENCIES",
    "COLUMN_MAPPINGS",
    "map_column_name",
    "map_column_names",
    "MigrationConfig",
    "MigrationOptions",
    "MigrationRun",
    "MigrationStep",
    "MigrationStatus",
    "StepName",
    "ConnectionTestResult",
    "StorageStats",
    "Row",
    "TableRecordSet",
    "BatchResult",
    "LoadResult",
    "StorageMigrationResult",
    "count_records",
]
