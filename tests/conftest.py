"""Shared fixtures: in-memory stand-ins for the project's query and storage clients."""

from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from realty_migrate.clients.base import BucketInfo, ClientError, QueryClient, StorageClient, StorageEntry
from realty_migrate.models.migration import MigrationConfig
from realty_migrate.orchestrator import DatabaseMigration

SOURCE_URL = "https://source.example.co"
TARGET_URL = "https://target.example.co"


class FakeQueryClient(QueryClient):
    """Tables kept in dictionaries; ``id`` is treated as the primary key."""

    def __init__(
        self,
        tables: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        fail_select: Tuple[str, ...] = (),
        fail_insert: Optional[Callable[[str, List[Dict[str, Any]]], bool]] = None,
        error: Optional[str] = None,
        unstable_order: bool = False
    ):
        self.tables = {t: [dict(r) for r in rows] for t, rows in (tables or {}).items()}
        self.fail_select = set(fail_select)
        self.fail_insert = fail_insert
        self.error = error
        # Unordered reads come back in a different order on every call.
        self.unstable_order = unstable_order
        self.selects: List[Tuple[str, Optional[int], Optional[int], Optional[str]]] = []
        self.inserts: List[Tuple[str, List[Dict[str, Any]], bool]] = []

    def select(self, table, columns="*", filters=None, limit=None, offset=None, order=None):
        if self.error:
            raise ClientError(self.error)
        self.selects.append((table, limit, offset, order))
        if table in self.fail_select:
            raise ClientError(f'relation "public.{table}" does not exist', 404)

        rows = self.tables.get(table, [])
        if filters:
            rows = [r for r in rows if all(r.get(k) == v for k, v in filters.items())]
        if order:
            rows = sorted(rows, key=lambda r: str(r.get(order)))
        elif self.unstable_order and rows:
            shift = len(self.selects) % len(rows)
            rows = rows[shift:] + rows[:shift]
        start = offset or 0
        end = start + limit if limit is not None else None
        return [dict(r) for r in rows[start:end]]

    def insert(self, table, rows, upsert=False, on_conflict="id"):
        if self.error:
            raise ClientError(self.error)
        self.inserts.append((table, [dict(r) for r in rows], upsert))
        if self.fail_insert and self.fail_insert(table, rows):
            raise ClientError("insert or update violates foreign key constraint", 409)

        existing = self.tables.setdefault(table, [])
        for row in rows:
            key = row.get(on_conflict)
            match = next((r for r in existing if key is not None and r.get(on_conflict) == key), None)
            if match is None:
                existing.append(dict(row))
            elif upsert:
                match.update(row)
            else:
                raise ClientError("duplicate key value violates unique constraint", 409)

    def rpc(self, name, params=None):
        return None


class FakeStorageClient(StorageClient):
    """Buckets of flat ``path -> bytes`` files; folders are implied by slashes."""

    def __init__(
        self,
        buckets: Optional[Dict[str, Dict[str, bytes]]] = None,
        fail_list: Tuple[str, ...] = (),
        fail_download: Tuple[str, ...] = (),
        fail_buckets: Optional[str] = None
    ):
        self.buckets: Dict[str, BucketInfo] = {}
        self.files: Dict[str, Dict[str, bytes]] = {}
        for name, files in (buckets or {}).items():
            self.buckets[name] = BucketInfo(name=name, public=True)
            self.files[name] = dict(files)
        self.fail_list = set(fail_list)
        self.fail_download = set(fail_download)
        self.fail_buckets = fail_buckets
        self.uploads: List[Tuple[str, str, bool]] = []
        self.downloads: List[Tuple[str, str]] = []

    def list(self, bucket, path="", limit=100, offset=0, sort_by=("name", "asc"), search=None):
        if f"{bucket}/{path}" in self.fail_list:
            raise ClientError(f"Cannot list {bucket}/{path}")

        prefix = f"{path}/" if path else ""
        entries: Dict[str, StorageEntry] = {}
        for file_path, data in self.files.get(bucket, {}).items():
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix):]
            if "/" in rest:
                name = rest.split("/", 1)[0]
                entries.setdefault(name, StorageEntry(name=name))
            else:
                entries[rest] = StorageEntry(
                    name=rest,
                    id=f"id-{file_path}",
                    metadata={"size": len(data), "mimetype": "image/png"},
                )

        names = sorted(entries)
        if search:
            names = [n for n in names if search in n]
        return [entries[n] for n in names[offset:offset + limit]]

    def list_buckets(self):
        if self.fail_buckets:
            raise ClientError(self.fail_buckets)
        return list(self.buckets.values())

    def create_bucket(self, name, public=False, allowed_mime_types=None, file_size_limit=None):
        if name in self.buckets:
            raise ClientError("The resource already exists", 409)
        self.buckets[name] = BucketInfo(name, public, allowed_mime_types, file_size_limit)
        self.files[name] = {}

    def download(self, bucket, path):
        self.downloads.append((bucket, path))
        if f"{bucket}/{path}" in self.fail_download:
            raise ClientError(f"Object not found: {path}", 404)
        return self.files[bucket][path]

    def upload(self, bucket, path, data, content_type=None, upsert=False, cache_control="3600"):
        if path in self.files[bucket] and not upsert:
            raise ClientError("The resource already exists", 409)
        self.uploads.append((bucket, path, upsert))
        self.files[bucket][path] = data

    def remove(self, bucket, paths):
        for path in paths:
            self.files[bucket].pop(path, None)

    def move(self, bucket, from_path, to_path):
        self.files[bucket][to_path] = self.files[bucket].pop(from_path)

    def create_signed_url(self, bucket, path, expires_in=3600):
        return f"https://signed/{bucket}/{path}?expires={expires_in}"

    def get_public_url(self, bucket, path):
        return f"https://public/{bucket}/{path}"


def make_config(**overrides) -> MigrationConfig:
    values = {
        "source_url": SOURCE_URL,
        "source_key": "source-anon",
        "target_url": TARGET_URL,
        "target_key": "target-anon",
    }
    values.update(overrides)
    return MigrationConfig(**values)


def make_engine(
    config: MigrationConfig,
    source: Optional[FakeQueryClient] = None,
    target: Optional[FakeQueryClient] = None,
    source_storage: Optional[FakeStorageClient] = None,
    target_storage: Optional[FakeStorageClient] = None
) -> DatabaseMigration:
    """Engine whose factories hand out the given fakes by URL."""
    source = source or FakeQueryClient()
    target = target or FakeQueryClient()
    source_storage = source_storage or FakeStorageClient()
    target_storage = target_storage or FakeStorageClient()

    return DatabaseMigration(
        config,
        query_client_factory=lambda url, key: source if url == SOURCE_URL else target,
        storage_client_factory=lambda url, key: source_storage if url == SOURCE_URL else target_storage,
    )


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def storage_config():
    return make_config(
        source_service_key="source-service",
        target_service_key="target-service",
        include_storage=True,
    )


@pytest.fixture
def categories():
    return [
        {"id": "c1", "name": "Casa", "iconUrl": "https://icons/casa.svg", "translations": {"en": "House"}},
        {"id": "c2", "name": "Apartamento", "iconUrl": "https://icons/apto.svg", "translations": None},
    ]
