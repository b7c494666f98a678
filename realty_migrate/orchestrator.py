"""Migration orchestrator - moves schema, data and storage between projects."""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, Optional

from .clients.base import QueryClient, StorageClient
from .clients.sdk import create_query_client, create_storage_client
from .exceptions import MigrationCancelled
from .extractors.table_extractor import TableExtractor
from .loaders.table_loader import TableLoader
from .models.migration import (
    ConnectionTestResult,
    MigrationConfig,
    MigrationOptions,
    MigrationRun,
    MigrationStatus,
    StepName,
    StorageStats,
)
from .models.record import LoadResult, StorageMigrationResult, TableRecordSet, count_records
from .models.schema import EXPORT_TABLES, IMPORT_ORDER
from .services.schema_provider import SchemaProvider, StaticSchemaProvider
from .services.sql_generator import SQLGenerator
from .services.storage_migrator import StorageMigrator

logger = logging.getLogger(__name__)

QueryClientFactory = Callable[[str, str], QueryClient]
StorageClientFactory = Callable[[str, str], StorageClient]

CONNECTION_CHECK_TABLE = "categories"


class DatabaseMigration:
    """
    Migrates one backend project into another.

    Handles:
    - Connectivity probing of both endpoints
    - Schema export (DDL script, applied manually by the operator)
    - Data export, optionally rendered as conflict-safe SQL
    - Data import in foreign-key order
    - Recursive storage bucket copy
    - Step tracking for the admin screen and resumable runs
    """

    def __init__(
        self,
        config: MigrationConfig,
        query_client_factory: QueryClientFactory = create_query_client,
        storage_client_factory: StorageClientFactory = create_storage_client,
        schema_provider: Optional[SchemaProvider] = None
    ):
        """
        Initialize the migration engine.

        Args:
            config: Source and target endpoints
            query_client_factory: Builds a query client from (url, key)
            storage_client_factory: Builds a storage client from (url, key)
            schema_provider: Supplies the DDL script (static template by default)

        Raises:
            ValueError: If an endpoint URL is malformed
        """
        self.config = config
        self.schema_provider = schema_provider or StaticSchemaProvider()
        self._storage_client_factory = storage_client_factory

        self.source_client = query_client_factory(config.source_url, config.source_key)
        self.target_client: Optional[QueryClient] = None
        if config.target_url:
            self.target_client = query_client_factory(config.target_url, config.target_key)

    def _require_target(self) -> QueryClient:
        if self.target_client is None:
            raise ValueError("Target URL and key are required for this operation")
        return self.target_client

    def test_connections(self) -> ConnectionTestResult:
        """
        Check both endpoints with a one-row read.

        Never raises; failures are reported in ``source_error`` and
        ``target_error``.
        """
        logger.info("Testing database connections...")
        result = ConnectionTestResult()

        result.source, result.source_error = self._check_connection("Source", self.source_client)
        if self.target_client is None:
            result.target_error = "Target URL and key are required"
            logger.error(f"Target database connection failed: {result.target_error}")
        else:
            result.target, result.target_error = self._check_connection("Target", self.target_client)

        return result

    def _check_connection(self, label: str, client: QueryClient):
        try:
            client.select(CONNECTION_CHECK_TABLE, "id", limit=1)
        except Exception as e:
            message = str(e) or "Unknown connection error"
            logger.error(f"{label} database connection failed: {message}")
            return False, message

        logger.info(f"{label} database connected")
        return True, None

    def export_schema(self) -> str:
        """Return the DDL script for the target project."""
        logger.info("Exporting database schema...")
        return self.schema_provider.get_schema()

    def export_data(
        self,
        options: Optional[MigrationOptions] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> TableRecordSet:
        """
        Read every known table from the source.

        A table that fails to read is returned as an empty list.
        """
        options = options or MigrationOptions()
        logger.info("Exporting data from source database...")

        tables = [t for t in EXPORT_TABLES if t not in options.skip_tables]
        extractor = TableExtractor(
            self.source_client,
            page_size=options.read_batch_size,
            cancel_event=cancel_event,
        )
        result = extractor.extract(tables)

        logger.info(
            f"Exported {result.total_extracted} records from {len(tables)} tables "
            f"in {result.duration_seconds:.2f}s"
        )
        if not result.success:
            logger.warning(f"Tables exported empty after read errors: {', '.join(result.failed_tables)}")
        return result.records

    def export_data_as_sql(self, options: Optional[MigrationOptions] = None) -> Dict[str, str]:
        """Export data and render one conflict-safe SQL script per table."""
        logger.info("Exporting data as SQL INSERT statements...")
        records = self.export_data(options)
        return SQLGenerator().generate(records)

    def import_data(
        self,
        records: TableRecordSet,
        options: Optional[MigrationOptions] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Dict[str, LoadResult]:
        """Write records to the target in foreign-key order, batch by batch."""
        options = options or MigrationOptions()
        logger.info("Importing data to target database...")

        loader = TableLoader(
            self._require_target(),
            batch_size=options.batch_size,
            upsert=options.upsert,
            cancel_event=cancel_event,
        )
        return loader.load_all(records, IMPORT_ORDER)

    def _storage_migrator(self, cancel_event: Optional[threading.Event] = None) -> StorageMigrator:
        source = self._storage_client_factory(self.config.source_url, self.config.source_service_key)
        target = None
        if self.config.target_service_key:
            target = self._storage_client_factory(self.config.target_url, self.config.target_service_key)
        return StorageMigrator(
            source,
            target,
            bucket=self.config.storage_bucket,
            cancel_event=cancel_event,
        )

    def migrate_storage(self, cancel_event: Optional[threading.Event] = None) -> StorageMigrationResult:
        """
        Copy all storage buckets and files to the target.

        Requires both service keys; without them this logs a warning and
        returns a skipped result.
        """
        if not self.config.has_service_keys:
            logger.warning("Service keys required for storage migration. Skipping...")
            return StorageMigrationResult(skipped=True)

        return self._storage_migrator(cancel_event).migrate()

    def get_storage_stats(self) -> StorageStats:
        """Count source buckets, files and bytes without writing anything."""
        if not self.config.source_service_key:
            return StorageStats()
        return self._storage_migrator().stats()

    def migrate(
        self,
        options: Optional[MigrationOptions] = None,
        run: Optional[MigrationRun] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> MigrationRun:
        """
        Run the selected phases in order.

        Args:
            options: Phases and tuning
            run: A previous run; steps it already completed are skipped
            cancel_event: Set to stop between units of work

        Returns:
            The run with per-step status

        Raises:
            Exception: Any fatal error, after marking the current step
        """
        options = options or (run.options if run else MigrationOptions())
        run = run or MigrationRun(options=options)
        run.options = options
        run.status = MigrationStatus.RUNNING
        run.started_at = run.started_at or datetime.utcnow()
        run.error = None

        logger.info("Starting database migration...")
        logger.info(
            f"Options: Schema: {options.include_schema}, Data: {options.include_data}, "
            f"Storage: {options.include_storage}"
        )

        try:
            if options.test_connections and (options.include_data or options.include_storage):
                # Runs on every resume, even when the ledger shows it completed.
                with self._step(run, StepName.TEST_CONNECTIONS, cancel_event, force=True) as step:
                    if step:
                        connections = self.test_connections()
                        if not connections.ok:
                            message = f"Connection failed - {connections.summary()}"
                            for hint in connections.hints():
                                logger.info(hint)
                            step.fail(message)
                            run.status = MigrationStatus.ERROR
                            run.error = message
                            logger.error(message)
                            return run

            if options.include_schema:
                with self._step(run, StepName.EXPORT_SCHEMA, cancel_event) as step:
                    if step:
                        run.schema_sql = self.export_schema()
                        logger.info("Schema exported. Run this SQL manually on the target database:")
                        logger.info("=" * 50 + "\n" + run.schema_sql + "\n" + "=" * 50)

            if options.include_data and not run.is_completed(StepName.IMPORT_DATA):
                records: TableRecordSet = {}
                with self._step(run, StepName.EXPORT_DATA, cancel_event, force=True) as step:
                    records = self.export_data(options, cancel_event)
                    step.records_processed = count_records(records)
                    logger.info(f"Data exported: {step.records_processed} records")

                with self._step(run, StepName.IMPORT_DATA, cancel_event) as step:
                    results = self.import_data(records, options, cancel_event)
                    step.records_processed = sum(r.total_succeeded for r in results.values())
                    logger.info(f"Data imported: {step.records_processed} records")

            if options.include_storage:
                with self._step(run, StepName.MIGRATE_STORAGE, cancel_event) as step:
                    if step:
                        storage = self.migrate_storage(cancel_event)
                        step.records_processed = storage.files_copied

        except Exception as e:
            run.status = MigrationStatus.ERROR
            run.error = str(e)
            logger.error(f"Migration failed: {e}")
            raise

        finally:
            run.completed_at = datetime.utcnow()

        run.status = MigrationStatus.COMPLETED
        logger.info("Migration completed successfully!")
        return run

    @contextmanager
    def _step(
        self,
        run: MigrationRun,
        name: StepName,
        cancel_event: Optional[threading.Event],
        force: bool = False
    ) -> Iterator:
        """
        Track one step of a run.

        Yields the step, or None when the ledger shows it already completed
        (unless ``force``). Exceptions mark the step as failed and propagate.
        """
        step = run.get_step(name)
        if step.status == MigrationStatus.COMPLETED and not force:
            logger.info(f"Skipping completed step: {step.label}")
            yield None
            return

        if cancel_event is not None and cancel_event.is_set():
            step.fail("Cancelled")
            raise MigrationCancelled(step.label)

        step.start()
        try:
            yield step
        except Exception as e:
            step.fail(str(e))
            raise

        if step.status == MigrationStatus.RUNNING:
            step.complete()
