"""Tests for configuration, run and result models."""

from datetime import datetime

import pytest

from realty_migrate.models.migration import (
    ConnectionTestResult,
    MigrationConfig,
    MigrationOptions,
    MigrationRun,
    MigrationStatus,
    StepName,
)
from realty_migrate.models.record import StorageMigrationResult


class TestMigrationConfig:
    def test_full_migration_needs_target(self):
        errors = MigrationConfig(source_url="https://a", source_key="k").validate()

        assert errors == ["Target URL is required", "Target key is required"]

    def test_schema_only_needs_source_only(self):
        assert MigrationConfig(source_url="https://a", source_key="k").validate(schema_only=True) == []
        assert MigrationConfig(source_url="", source_key="").validate(schema_only=True) == [
            "Source URL is required",
            "Source key is required",
        ]

    def test_storage_needs_service_keys(self):
        config = MigrationConfig(
            source_url="https://a",
            source_key="k",
            target_url="https://b",
            target_key="k",
            include_storage=True,
        )

        assert config.validate() == [
            "Source service key required for storage migration",
            "Target service key required for storage migration",
        ]
        assert not config.has_service_keys

    def test_to_dict_masks_keys(self):
        config = MigrationConfig(source_url="https://a", source_key="secret-source-key")

        data = config.to_dict()

        assert "secret-source-key" not in str(data)
        assert data["source_url"] == "https://a"

    def test_from_storage_configs(self):
        config = MigrationConfig.from_storage_configs(
            {"storage_url": "https://a", "storage_key": "ka", "service_key": "sa", "bucket_name": "images"},
            {"storage_url": "https://b", "storage_key": "kb", "service_key": "sb"},
        )

        assert config.include_storage
        assert config.storage_bucket is None
        assert config.validate() == []


def test_options_round_trip_through_dict():
    options = MigrationOptions(skip_tables=["messages"], batch_size=10, include_storage=True)

    assert MigrationOptions.from_dict(options.to_dict()) == options


class TestConnectionTestResult:
    def test_summary_includes_errors(self):
        result = ConnectionTestResult(source=True, target=False, target_error="Invalid JWT")

        assert not result.ok
        assert result.summary() == "Source: OK, Target: FAILED (Invalid JWT)"

    @pytest.mark.parametrize("error, fragment", [
        ('relation "public.categories" does not exist', "schema"),
        ("Invalid JWT", "anon key"),
        ("Network error: connection refused", "URL"),
    ])
    def test_hints(self, error, fragment):
        result = ConnectionTestResult(source=True, target=False, target_error=error)

        assert any(fragment in hint for hint in result.hints())

    def test_no_hints_without_target_error(self):
        assert ConnectionTestResult(source=True, target=True).hints() == []


class TestMigrationRun:
    def test_declares_every_step_pending(self):
        run = MigrationRun()

        assert [s.name for s in run.steps] == list(StepName)
        assert all(s.status == MigrationStatus.PENDING for s in run.steps)
        assert run.progress == 0

    def test_step_lifecycle_and_progress(self):
        run = MigrationRun()
        step = run.get_step(StepName.EXPORT_SCHEMA)

        step.start()
        assert run.current_step is step
        step.complete()

        assert run.is_completed(StepName.EXPORT_SCHEMA)
        assert run.progress == 20
        assert step.duration_seconds is not None

    def test_log_lines_are_timestamped(self):
        run = MigrationRun()

        run.add_log("Exporting table: categories", at=datetime(2024, 1, 1, 9, 5, 7))

        assert run.logs == ["[09:05:07] Exporting table: categories"]

    def test_to_dict(self):
        run = MigrationRun()
        run.get_step(StepName.TEST_CONNECTIONS).fail("boom")

        data = run.to_dict()

        assert data["status"] == "pending"
        assert data["steps"][0]["status"] == "error"
        assert data["steps"][0]["error"] == "boom"
        assert data["steps"][0]["label"] == "Test connections"


def test_storage_result_counts():
    result = StorageMigrationResult(files_migrated=["a/1"], files_updated=["a/2"])
    result.add_error("file", "a/3", "not found")
    result.add_error("folder", "a/x", "denied")

    assert result.files_copied == 2
    assert result.files_failed == 1
    assert result.to_dict()["files_failed"] == 1
