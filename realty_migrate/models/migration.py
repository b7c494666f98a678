"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import uuid


class MigrationStatus(str, Enum):
    """Status of a migration step or run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class StepName(str, Enum):
    """Steps of a full migration run, in execution order."""
    TEST_CONNECTIONS = "test_connections"
    EXPORT_SCHEMA = "export_schema"
    EXPORT_DATA = "export_data"
    IMPORT_DATA = "import_data"
    MIGRATE_STORAGE = "migrate_storage"


STEP_LABELS = {
    StepName.TEST_CONNECTIONS: "Test connections",
    StepName.EXPORT_SCHEMA: "Export schema",
    StepName.EXPORT_DATA: "Export data",
    StepName.IMPORT_DATA: "Import data",
    StepName.MIGRATE_STORAGE: "Migrate storage",
}


def _mask(key: Optional[str]) -> Optional[str]:
    if not key:
        return key
    return f"{key[:4]}...{key[-4:]}" if len(key) > 12 else "****"


@dataclass(frozen=True)
class MigrationConfig:
    """Source and target endpoints for one migration run."""
    source_url: str
    source_key: str
    target_url: str = ""
    target_key: str = ""
    source_service_key: Optional[str] = None
    target_service_key: Optional[str] = None
    include_storage: bool = False
    storage_bucket: Optional[str] = None  # Restrict storage work to one bucket

    def validate(self, schema_only: bool = False) -> List[str]:
        """
        Validate the configuration.

        Args:
            schema_only: Only the source endpoint is needed

        Returns:
            List of validation error messages
        """
        errors = []

        if not self.source_url:
            errors.append("Source URL is required")
        if not self.source_key:
            errors.append("Source key is required")

        if schema_only:
            return errors

        if not self.target_url:
            errors.append("Target URL is required")
        if not self.target_key:
            errors.append("Target key is required")

        if self.include_storage:
            if not self.source_service_key:
                errors.append("Source service key required for storage migration")
            if not self.target_service_key:
                errors.append("Target service key required for storage migration")

        return errors

    @property
    def has_service_keys(self) -> bool:
        """Both privileged keys are present."""
        return bool(self.source_service_key and self.target_service_key)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation with keys masked."""
        return {
            "source_url": self.source_url,
            "source_key": _mask(self.source_key),
            "source_service_key": _mask(self.source_service_key),
            "target_url": self.target_url,
            "target_key": _mask(self.target_key),
            "target_service_key": _mask(self.target_service_key),
            "include_storage": self.include_storage,
            "storage_bucket": self.storage_bucket,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            source_url=data.get("source_url", ""),
            source_key=data.get("source_key", ""),
            target_url=data.get("target_url", ""),
            target_key=data.get("target_key", ""),
            source_service_key=data.get("source_service_key"),
            target_service_key=data.get("target_service_key"),
            include_storage=data.get("include_storage", False),
            storage_bucket=data.get("storage_bucket"),
        )

    @classmethod
    def from_storage_configs(
        cls,
        source: Dict[str, Any],
        target: Dict[str, Any]
    ) -> "MigrationConfig":
        """
        Build a config from two ``storage_configs`` rows.

        Storage migration is enabled only when both rows carry a service key,
        and covers every bucket; a row's ``bucket_name`` does not narrow it.
        """
        return cls(
            source_url=source.get("storage_url", ""),
            source_key=source.get("storage_key", ""),
            source_service_key=source.get("service_key"),
            target_url=target.get("storage_url", ""),
            target_key=target.get("storage_key", ""),
            target_service_key=target.get("service_key"),
            include_storage=bool(source.get("service_key")) and bool(target.get("service_key")),
        )


@dataclass
class MigrationOptions:
    """Per-call tuning for export, import and the full run."""
    skip_tables: List[str] = field(default_factory=list)
    batch_size: int = 100  # Rows per insert request
    read_batch_size: int = 1000  # Rows per select page
    include_schema: bool = True
    include_data: bool = True
    include_storage: bool = False
    test_connections: bool = True
    upsert: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "skip_tables": list(self.skip_tables),
            "batch_size": self.batch_size,
            "read_batch_size": self.read_batch_size,
            "include_schema": self.include_schema,
            "include_data": self.include_data,
            "include_storage": self.include_storage,
            "test_connections": self.test_connections,
            "upsert": self.upsert,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationOptions":
        """Create from dictionary representation."""
        return cls(
            skip_tables=list(data.get("skip_tables", [])),
            batch_size=data.get("batch_size", 100),
            read_batch_size=data.get("read_batch_size", 1000),
            include_schema=data.get("include_schema", True),
            include_data=data.get("include_data", True),
            include_storage=data.get("include_storage", False),
            test_connections=data.get("test_connections", True),
            upsert=data.get("upsert", True),
        )


@dataclass
class ConnectionTestResult:
    """Outcome of probing the source and target endpoints."""
    source: bool = False
    target: bool = False
    source_error: Optional[str] = None
    target_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.source and self.target

    def summary(self) -> str:
        """One-line description, e.g. ``Source: OK, Target: FAILED (...)``."""
        parts = []
        for label, ok, error in (
            ("Source", self.source, self.source_error),
            ("Target", self.target, self.target_error),
        ):
            if ok:
                parts.append(f"{label}: OK")
            else:
                parts.append(f"{label}: FAILED ({error})" if error else f"{label}: FAILED")
        return ", ".join(parts)

    def hints(self) -> List[str]:
        """Operator guidance derived from the target error."""
        if not self.target_error:
            return []

        error = self.target_error.lower()
        if "relation" in error and "does not exist" in error:
            return [
                "The target database does not have the required tables.",
                "Apply the exported schema SQL on the target first.",
            ]
        if "authentication" in error or "jwt" in error:
            return ["Authentication problem: check that the target anon key is correct."]
        if "network" in error or "connection" in error or "fetch" in error:
            return ["Network problem: check that the target URL is correct and reachable."]
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "source_error": self.source_error,
            "target_error": self.target_error,
        }


@dataclass
class StorageStats:
    """Size of the source storage tree."""
    buckets: int = 0
    total_files: int = 0
    total_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buckets": self.buckets,
            "total_files": self.total_files,
            "total_size": self.total_size,
        }


@dataclass
class MigrationStep:
    """A single step in a migration run."""
    name: StepName
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: MigrationStatus = MigrationStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    records_processed: int = 0

    @property
    def label(self) -> str:
        return STEP_LABELS[self.name]

    def start(self) -> None:
        self.status = MigrationStatus.RUNNING
        self.started_at = datetime.utcnow()
        self.completed_at = None
        self.error = None

    def complete(self) -> None:
        self.status = MigrationStatus.COMPLETED
        self.completed_at = datetime.utcnow()

    def fail(self, error: str) -> None:
        self.status = MigrationStatus.ERROR
        self.error = error
        self.completed_at = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name.value,
            "label": self.label,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
            "records_processed": self.records_processed,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class MigrationRun:
    """
    A complete migration run.

    The step list doubles as a completion ledger: handing a previous run back
    to ``DatabaseMigration.migrate`` skips every step already completed.
    """
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: MigrationStatus = MigrationStatus.PENDING
    options: MigrationOptions = field(default_factory=MigrationOptions)

    created_at: datetime = field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    steps: List[MigrationStep] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)
    schema_sql: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self):
        if not self.steps:
            self.steps = [MigrationStep(name=name) for name in StepName]

    def get_step(self, name: StepName) -> MigrationStep:
        """Get a step by name."""
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)

    def is_completed(self, name: StepName) -> bool:
        return self.get_step(name).status == MigrationStatus.COMPLETED

    @property
    def current_step(self) -> Optional[MigrationStep]:
        for step in self.steps:
            if step.status == MigrationStatus.RUNNING:
                return step
        return None

    @property
    def progress(self) -> int:
        """Percentage of steps completed."""
        done = sum(1 for s in self.steps if s.status == MigrationStatus.COMPLETED)
        return int(done * 100 / len(self.steps))

    def add_log(self, message: str, at: Optional[datetime] = None) -> None:
        """Append a timestamped log line."""
        timestamp = (at or datetime.now()).strftime("%H:%M:%S")
        self.logs.append(f"[{timestamp}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        current = self.current_step
        return {
            "id": self.id,
            "status": self.status.value,
            "options": self.options.to_dict(),
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "steps": [s.to_dict() for s in self.steps],
            "current_step": current.name.value if current else None,
            "progress": self.progress,
            "logs": list(self.logs),
            "schema_sql": self.schema_sql,
            "error": self.error,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None
