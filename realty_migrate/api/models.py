"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ..models.migration import MigrationConfig, MigrationOptions


# Request Models
class ConnectionConfig(BaseModel):
    source_url: str = ""
    source_key: str = ""
    target_url: str = ""
    target_key: str = ""
    source_service_key: Optional[str] = None
    target_service_key: Optional[str] = None
    include_storage: bool = False
    storage_bucket: Optional[str] = None

    def to_config(self) -> MigrationConfig:
        return MigrationConfig(
            source_url=self.source_url,
            source_key=self.source_key,
            target_url=self.target_url,
            target_key=self.target_key,
            source_service_key=self.source_service_key,
            target_service_key=self.target_service_key,
            include_storage=self.include_storage,
            storage_bucket=self.storage_bucket,
        )


class RunOptions(BaseModel):
    skip_tables: List[str] = Field(default_factory=list)
    batch_size: int = Field(default=100, ge=1)
    read_batch_size: int = Field(default=1000, ge=1)
    include_schema: bool = True
    include_data: bool = True
    include_storage: bool = False
    test_connections: bool = True
    upsert: bool = True

    def to_options(self) -> MigrationOptions:
        return MigrationOptions(
            skip_tables=list(self.skip_tables),
            batch_size=self.batch_size,
            read_batch_size=self.read_batch_size,
            include_schema=self.include_schema,
            include_data=self.include_data,
            include_storage=self.include_storage,
            test_connections=self.test_connections,
            upsert=self.upsert,
        )


class ExportRequest(BaseModel):
    config: ConnectionConfig
    options: RunOptions = Field(default_factory=RunOptions)


class RunCreate(BaseModel):
    """Start a run; ``resume_run_id`` continues a previous run, skipping its completed steps."""
    config: ConnectionConfig
    options: RunOptions = Field(default_factory=RunOptions)
    resume_run_id: Optional[str] = None


# Response Models
class ConnectionTestResponse(BaseModel):
    source: bool
    target: bool
    source_error: Optional[str] = None
    target_error: Optional[str] = None
    ok: bool
    hints: List[str] = Field(default_factory=list)


class SchemaResponse(BaseModel):
    sql: str


class StorageStatsResponse(BaseModel):
    buckets: int
    total_files: int
    total_size: int


class StepResponse(BaseModel):
    id: str
    name: str
    label: str
    status: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None
    records_processed: int = 0


class RunResponse(BaseModel):
    id: str
    status: str
    options: Dict[str, Any]
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    steps: List[StepResponse]
    current_step: Optional[str] = None
    progress: int = 0
    logs: List[str] = Field(default_factory=list)
    schema_sql: Optional[str] = None
    error: Optional[str] = None


class RunListResponse(BaseModel):
    runs: List[RunResponse]
    total: int
