"""Migration endpoints: connection checks, exports and tracked runs."""

import dataclasses
import logging
import threading
from typing import Callable, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..models import (
    ConnectionConfig,
    ConnectionTestResponse,
    ExportRequest,
    RunCreate,
    RunListResponse,
    RunResponse,
    SchemaResponse,
    StorageStatsResponse,
)
from ..storage import RunLogHandler, migration_storage
from ...exceptions import ConfigurationError
from ...models.migration import MigrationConfig, MigrationOptions, MigrationRun, MigrationStatus
from ...orchestrator import DatabaseMigration

logger = logging.getLogger(__name__)

router = APIRouter()

ENGINE_LOGGER = "realty_migrate"

EngineFactory = Callable[[MigrationConfig], DatabaseMigration]


def get_engine_factory() -> EngineFactory:
    """Dependency returning the engine constructor; overridden in tests."""
    return DatabaseMigration


def _validated(config: MigrationConfig, schema_only: bool = False) -> MigrationConfig:
    errors = config.validate(schema_only=schema_only)
    if errors:
        raise ConfigurationError(errors)
    return config


def _build_engine(factory: EngineFactory, config: MigrationConfig) -> DatabaseMigration:
    try:
        return factory(config)
    except ValueError as e:
        raise ConfigurationError([str(e)]) from e


def _run_response(run: MigrationRun) -> RunResponse:
    return RunResponse(**run.to_dict())


@router.post("/test-connections", response_model=ConnectionTestResponse)
def test_connections(
    data: ConnectionConfig,
    engine_factory: EngineFactory = Depends(get_engine_factory)
):
    """Check source and target with a one-row read."""
    config = _validated(data.to_config())
    result = _build_engine(engine_factory, config).test_connections()
    return ConnectionTestResponse(**result.to_dict(), ok=result.ok, hints=result.hints())


@router.post("/schema", response_model=SchemaResponse)
def export_schema(
    data: ConnectionConfig,
    engine_factory: EngineFactory = Depends(get_engine_factory)
):
    """Return the DDL script to apply on the target."""
    config = _validated(data.to_config(), schema_only=True)
    return SchemaResponse(sql=_build_engine(engine_factory, config).export_schema())


@router.post("/storage-stats", response_model=StorageStatsResponse)
def storage_stats(
    data: ConnectionConfig,
    engine_factory: EngineFactory = Depends(get_engine_factory)
):
    """Count buckets, files and bytes on the source."""
    config = _validated(data.to_config(), schema_only=True)
    stats = _build_engine(engine_factory, config).get_storage_stats()
    return StorageStatsResponse(**stats.to_dict())


@router.post("/export-sql")
def export_sql(
    request: ExportRequest,
    engine_factory: EngineFactory = Depends(get_engine_factory)
) -> Dict[str, str]:
    """Export source data as one SQL script per table."""
    config = _validated(request.config.to_config(), schema_only=True)
    engine = _build_engine(engine_factory, config)
    return engine.export_data_as_sql(request.options.to_options())


@router.post("/runs", response_model=RunResponse)
def start_run(
    request: RunCreate,
    background_tasks: BackgroundTasks,
    engine_factory: EngineFactory = Depends(get_engine_factory)
):
    """Start a full migration run in the background."""
    options = request.options.to_options()
    config = request.config.to_config()
    if options.include_storage and not config.include_storage:
        config = dataclasses.replace(config, include_storage=True)

    schema_only = not options.include_data and not options.include_storage
    config = _validated(config, schema_only=schema_only)
    engine = _build_engine(engine_factory, config)

    if request.resume_run_id:
        run = migration_storage.get(request.resume_run_id)
        if not run:
            raise HTTPException(status_code=404, detail="Run not found")
        if migration_storage.is_active(run.id):
            raise HTTPException(
                status_code=409,
                detail=f"Cannot resume run in status: {run.status.value}"
            )
        run.status = MigrationStatus.PENDING
    else:
        run = MigrationRun(options=options)

    cancel_event = migration_storage.add(run, config)
    background_tasks.add_task(run_migration_task, engine, run, options, cancel_event)

    return _run_response(run)


@router.get("/runs", response_model=RunListResponse)
def list_runs():
    """List all runs, newest first."""
    runs = migration_storage.list_all()
    return RunListResponse(runs=[_run_response(r) for r in runs], total=len(runs))


@router.get("/runs/{run_id}", response_model=RunResponse)
def get_run(run_id: str):
    """Get a run with its steps and log lines."""
    run = migration_storage.get(run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return _run_response(run)


@router.post("/runs/{run_id}/cancel")
def cancel_run(run_id: str):
    """Ask a pending or running run to stop at the next unit of work."""
    run = migration_storage.get(run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")

    if not migration_storage.is_active(run_id):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot cancel run in status: {run.status.value}"
        )

    migration_storage.cancel(run_id)
    return {"status": "cancelling", "run_id": run_id}


def run_migration_task(
    engine: DatabaseMigration,
    run: MigrationRun,
    options: MigrationOptions,
    cancel_event: threading.Event
) -> None:
    """Background task executing a run and capturing its log lines."""
    engine_logger = logging.getLogger(ENGINE_LOGGER)
    previous_level = engine_logger.level
    if engine_logger.getEffectiveLevel() > logging.INFO:
        engine_logger.setLevel(logging.INFO)

    handler = RunLogHandler(run)
    engine_logger.addHandler(handler)
    try:
        engine.migrate(options, run=run, cancel_event=cancel_event)
    except Exception as e:
        logger.error(f"Run {run.id} failed: {e}")
    finally:
        engine_logger.removeHandler(handler)
        engine_logger.setLevel(previous_level)
