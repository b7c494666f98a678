"""Tests for the recursive storage copy."""

import threading

import pytest

from realty_migrate.exceptions import MigrationCancelled
from realty_migrate.services.storage_migrator import StorageMigrator, split_path

from conftest import FakeStorageClient


@pytest.fixture
def source():
    return FakeStorageClient({
        "images": {
            "logo.png": b"logo",
            "properties/p1/front.png": b"front",
            "properties/p1/back.png": b"back",
            "properties/p2/pool.png": b"pool",
        },
        "documents": {
            "contracts/lease.pdf": b"lease",
        },
    })


def test_split_path():
    assert split_path("a/b/c.png") == ("a/b", "c.png")
    assert split_path("c.png") == ("", "c.png")


def test_copies_every_file_exactly_once(source):
    target = FakeStorageClient()

    result = StorageMigrator(source, target).migrate()

    assert target.files == source.files
    assert sorted(result.buckets) == ["documents", "images"]
    assert result.files_copied == 5
    assert len(target.uploads) == len(set(target.uploads)) == 5
    assert all(upsert for _, _, upsert in target.uploads)


def test_recreates_missing_buckets_and_tolerates_existing(source):
    target = FakeStorageClient({"images": {}})

    result = StorageMigrator(source, target).migrate()

    assert set(target.buckets) == {"images", "documents"}
    assert result.errors == []


def test_existing_file_is_reported_as_updated(source):
    target = FakeStorageClient({"images": {"logo.png": b"old"}})

    result = StorageMigrator(source, target).migrate()

    assert result.files_updated == ["images/logo.png"]
    assert "images/logo.png" not in result.files_migrated
    assert target.files["images"]["logo.png"] == b"logo"


def test_failed_download_does_not_stop_siblings(source):
    source.fail_download = {"images/properties/p1/front.png"}
    target = FakeStorageClient()

    result = StorageMigrator(source, target).migrate()

    assert result.files_failed == 1
    assert result.errors[0]["path"] == "images/properties/p1/front.png"
    assert "properties/p1/back.png" in target.files["images"]
    assert "properties/p2/pool.png" in target.files["images"]


def test_failed_folder_listing_skips_only_that_folder(source):
    source.fail_list = {"images/properties/p1"}
    target = FakeStorageClient()

    result = StorageMigrator(source, target).migrate()

    assert result.errors[0]["kind"] == "folder"
    assert set(target.files["images"]) == {"logo.png", "properties/p2/pool.png"}
    assert "contracts/lease.pdf" in target.files["documents"]


def test_bucket_listing_failure_is_recorded():
    source = FakeStorageClient(fail_buckets="permission denied")

    result = StorageMigrator(source, FakeStorageClient()).migrate()

    assert result.buckets == []
    assert result.errors[0]["kind"] == "bucket"


def test_single_bucket_restriction(source):
    target = FakeStorageClient()

    result = StorageMigrator(source, target, bucket="documents").migrate()

    assert result.buckets == ["documents"]
    assert "images" not in target.files


def test_listing_follows_pages(source):
    target = FakeStorageClient()

    result = StorageMigrator(source, target, page_size=1).migrate()

    assert result.files_copied == 5


def test_stats_count_nested_files(source):
    stats = StorageMigrator(source).stats()

    assert stats.buckets == 2
    assert stats.total_files == 5
    assert stats.total_size == len(b"logo" + b"front" + b"back" + b"pool" + b"lease")
    assert source.downloads == []


def test_migrate_requires_target(source):
    with pytest.raises(ValueError):
        StorageMigrator(source).migrate()


def test_cancellation_stops_between_files(source):
    event = threading.Event()
    event.set()

    with pytest.raises(MigrationCancelled):
        StorageMigrator(source, FakeStorageClient(), cancel_event=event).migrate()
