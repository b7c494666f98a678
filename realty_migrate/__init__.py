"""
Realty Migrate

Migration engine for the real-estate application's backend project: moves the
database schema, table data and storage files from one project to another.

Supports:
- Connection checks against source and target projects
- Schema export as a DDL script
- Paged data export, optionally rendered as re-runnable SQL
- Data import in foreign-key order with batch-level failure isolation
- Recursive storage bucket and file copy
- Tracked, resumable and cancellable runs through the admin API
"""

__version__ = "0.1.0"

from .exceptions import ClientError, ConfigurationError, MigrationCancelled, MigrationError
from .models.migration import MigrationConfig, MigrationOptions, MigrationRun
from .orchestrator import DatabaseMigration

__all__ = [
    "DatabaseMigration",
    "MigrationConfig",
    "MigrationOptions",
    "MigrationRun",
    "MigrationError",
    "ConfigurationError",
    "MigrationCancelled",
    "ClientError",
]
