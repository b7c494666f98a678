"""Tests for the admin API."""

import logging
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from realty_migrate.api.main import app
from realty_migrate.api.routes.migrations import get_engine_factory
from realty_migrate.api.storage import MigrationRunStorage, migration_storage
from realty_migrate.models.migration import MigrationRun, MigrationStatus

from conftest import SOURCE_URL, TARGET_URL, FakeQueryClient, FakeStorageClient, make_config, make_engine


CONFIG = {
    "source_url": SOURCE_URL,
    "source_key": "source-anon",
    "target_url": TARGET_URL,
    "target_key": "target-anon",
}


@pytest.fixture
def projects(categories):
    return {
        "source": FakeQueryClient({"categories": categories}),
        "target": FakeQueryClient(),
        "source_storage": FakeStorageClient({"images": {"a/b.png": b"123"}}),
        "target_storage": FakeStorageClient(),
    }


@pytest.fixture
def client(projects):
    app.dependency_overrides[get_engine_factory] = lambda: (
        lambda config: make_engine(config, **projects)
    )
    migration_storage.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    migration_storage.clear()


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_test_connections(client, projects):
    projects["target"].fail_select = {"categories"}

    response = client.post("/api/migrations/test-connections", json=CONFIG)

    body = response.json()
    assert response.status_code == 200
    assert body["source"] is True
    assert body["target"] is False
    assert body["ok"] is False
    assert body["hints"]


def test_invalid_config_returns_errors(client):
    response = client.post("/api/migrations/test-connections", json={"source_url": SOURCE_URL})

    assert response.status_code == 422
    assert "Source key is required" in response.json()["errors"]


def test_schema_needs_only_source(client):
    response = client.post(
        "/api/migrations/schema",
        json={"source_url": SOURCE_URL, "source_key": "k"},
    )

    assert response.status_code == 200
    assert "CREATE TABLE public.categories" in response.json()["sql"]


def test_storage_stats(client):
    response = client.post(
        "/api/migrations/storage-stats",
        json={**CONFIG, "source_service_key": "service"},
    )

    assert response.json() == {"buckets": 1, "total_files": 1, "total_size": 3}


def test_export_sql(client):
    response = client.post("/api/migrations/export-sql", json={"config": CONFIG})

    scripts = response.json()
    assert "INSERT INTO categories" in scripts["categories"]
    assert scripts["brokers"].startswith("-- No data found")


def test_run_executes_in_background_and_captures_logs(client, projects, categories):
    response = client.post("/api/migrations/runs", json={"config": CONFIG})
    assert response.status_code == 200
    run_id = response.json()["id"]

    run = client.get(f"/api/migrations/runs/{run_id}").json()

    assert run["status"] == "completed"
    assert [s["status"] for s in run["steps"]] == [
        "completed", "completed", "completed", "completed", "pending",
    ]
    assert any("Exporting table: categories" in line for line in run["logs"])
    assert all(line.startswith("[") for line in run["logs"])
    assert projects["target"].tables["categories"] == categories


def test_run_with_storage(client, projects):
    config = {**CONFIG, "source_service_key": "s1", "target_service_key": "s2"}

    response = client.post(
        "/api/migrations/runs",
        json={"config": config, "options": {"include_storage": True}},
    )
    run = client.get(f"/api/migrations/runs/{response.json()['id']}").json()

    assert run["steps"][-1]["status"] == "completed"
    assert projects["target_storage"].files["images"] == {"a/b.png": b"123"}


def test_run_requires_service_keys_for_storage(client):
    response = client.post(
        "/api/migrations/runs",
        json={"config": CONFIG, "options": {"include_storage": True}},
    )

    assert response.status_code == 422


def test_list_runs(client):
    client.post("/api/migrations/runs", json={"config": CONFIG})
    client.post("/api/migrations/runs", json={"config": CONFIG, "options": {"include_data": False}})

    body = client.get("/api/migrations/runs").json()

    assert body["total"] == 2


def test_resume_unknown_run(client):
    response = client.post(
        "/api/migrations/runs",
        json={"config": CONFIG, "resume_run_id": "missing"},
    )

    assert response.status_code == 404


def test_resume_skips_completed_steps(client, projects):
    first = client.post("/api/migrations/runs", json={"config": CONFIG}).json()
    inserts = len(projects["target"].inserts)

    second = client.post(
        "/api/migrations/runs",
        json={"config": CONFIG, "resume_run_id": first["id"]},
    ).json()

    assert second["id"] == first["id"]
    assert len(projects["target"].inserts) == inserts


def test_get_unknown_run(client):
    assert client.get("/api/migrations/runs/missing").status_code == 404


def test_cancel_finished_run_is_rejected(client):
    run_id = client.post("/api/migrations/runs", json={"config": CONFIG}).json()["id"]

    response = client.post(f"/api/migrations/runs/{run_id}/cancel")

    assert response.status_code == 400


def test_cancel_pending_run(client):
    run = MigrationRun()
    event = migration_storage.add(run, make_config())

    response = client.post(f"/api/migrations/runs/{run.id}/cancel")

    assert response.status_code == 200
    assert event.is_set()


def test_run_restores_engine_log_level(client):
    engine_logger = logging.getLogger("realty_migrate")
    engine_logger.setLevel(logging.WARNING)
    try:
        run_id = client.post("/api/migrations/runs", json={"config": CONFIG}).json()["id"]

        assert engine_logger.level == logging.WARNING
        assert client.get(f"/api/migrations/runs/{run_id}").json()["logs"]
    finally:
        engine_logger.setLevel(logging.NOTSET)


def test_store_evicts_oldest_finished_runs():
    store = MigrationRunStorage(max_runs=2)
    old, active, new = MigrationRun(), MigrationRun(), MigrationRun()
    old.created_at = datetime(2024, 1, 1)
    active.created_at = datetime(2024, 1, 2)
    new.created_at = datetime(2024, 1, 3)
    old.status = MigrationStatus.COMPLETED

    for run in (old, active, new):
        store.add(run, make_config())

    assert store.get(old.id) is None
    assert store.get_config(old.id) is None
    assert [r.id for r in store.list_all()] == [new.id, active.id]


def test_store_keeps_active_runs_over_the_limit():
    store = MigrationRunStorage(max_runs=1)
    first, second = MigrationRun(), MigrationRun()

    store.add(first, make_config())
    store.add(second, make_config())

    assert store.get(first.id) is first
    assert store.get(second.id) is second
