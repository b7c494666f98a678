"""Query and storage clients backed by the supabase SDK."""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlparse

import httpx
from postgrest.exceptions import APIError
from storage3.utils import StorageException
from supabase import Client, create_client

from .base import BucketInfo, ClientError, QueryClient, StorageClient, StorageEntry
from ..models.record import Row


def _validate_url(url: str) -> str:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid project URL: {url!r}")
    return url.rstrip("/")


@contextmanager
def sdk_errors() -> Iterator[None]:
    """Re-raise SDK and transport failures as ``ClientError``."""
    try:
        yield
    except APIError as e:
        raise ClientError(e.message or str(e)) from e
    except StorageException as e:
        status = getattr(e, "status", None)
        raise ClientError(
            getattr(e, "message", None) or str(e),
            int(status) if str(status).isdigit() else None,
        ) from e
    except httpx.HTTPError as e:
        raise ClientError(f"Network error: {e}") from e


class SupabaseQueryClient(QueryClient):
    """Relational access through the SDK's PostgREST builder."""

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        self.url = _validate_url(url)
        self._client = client or create_client(self.url, key)

    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order: Optional[str] = None
    ) -> List[Row]:
        query = self._client.table(table).select(columns)
        for column, value in (filters or {}).items():
            query = query.is_(column, "null") if value is None else query.eq(column, value)
        if order:
            query = query.order(order, desc=False)
        if limit is not None:
            start = offset or 0
            query = query.range(start, start + limit - 1)

        with sdk_errors():
            return query.execute().data or []

    def insert(
        self,
        table: str,
        rows: List[Row],
        upsert: bool = False,
        on_conflict: str = "id"
    ) -> None:
        builder = self._client.table(table)
        query = builder.upsert(rows, on_conflict=on_conflict) if upsert else builder.insert(rows)

        with sdk_errors():
            query.execute()

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        with sdk_errors():
            return self._client.rpc(name, params or {}).execute().data


class SupabaseStorageClient(StorageClient):
    """Object storage through the SDK's storage proxy."""

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        self.url = _validate_url(url)
        self._client = client or create_client(self.url, key)

    def _bucket(self, bucket: str):
        return self._client.storage.from_(bucket)

    def list(
        self,
        bucket: str,
        path: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_by: Tuple[str, str] = ("name", "asc"),
        search: Optional[str] = None
    ) -> List[StorageEntry]:
        options: Dict[str, Any] = {
            "limit": limit,
            "offset": offset,
            "sortBy": {"column": sort_by[0], "order": sort_by[1]},
        }
        if search:
            options["search"] = search

        with sdk_errors():
            items = self._bucket(bucket).list(path, options)
        return [StorageEntry.from_dict(item) for item in items or []]

    def list_buckets(self) -> List[BucketInfo]:
        with sdk_errors():
            buckets = self._client.storage.list_buckets()
        return [
            BucketInfo(
                name=bucket.name or bucket.id,
                public=bool(bucket.public),
                allowed_mime_types=getattr(bucket, "allowed_mime_types", None),
                file_size_limit=getattr(bucket, "file_size_limit", None),
            )
            for bucket in buckets or []
        ]

    def create_bucket(
        self,
        name: str,
        public: bool = False,
        allowed_mime_types: Optional[List[str]] = None,
        file_size_limit: Optional[int] = None
    ) -> None:
        options: Dict[str, Any] = {"public": public}
        if allowed_mime_types is not None:
            options["allowed_mime_types"] = allowed_mime_types
        if file_size_limit is not None:
            options["file_size_limit"] = file_size_limit

        with sdk_errors():
            self._client.storage.create_bucket(name, options=options)

    def download(self, bucket: str, path: str) -> bytes:
        with sdk_errors():
            return self._bucket(bucket).download(path)

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False,
        cache_control: str = "3600"
    ) -> None:
        file_options = {
            "content-type": content_type or "application/octet-stream",
            "cache-control": cache_control,
            "upsert": "true" if upsert else "false",
        }
        with sdk_errors():
            self._bucket(bucket).upload(path, data, file_options=file_options)

    def remove(self, bucket: str, paths: List[str]) -> None:
        with sdk_errors():
            self._bucket(bucket).remove(paths)

    def move(self, bucket: str, from_path: str, to_path: str) -> None:
        with sdk_errors():
            self._bucket(bucket).move(from_path, to_path)

    def create_signed_url(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        with sdk_errors():
            result = self._bucket(bucket).create_signed_url(path, expires_in)
        return result.get("signedURL") or result.get("signedUrl", "")

    def get_public_url(self, bucket: str, path: str) -> str:
        return self._bucket(bucket).get_public_url(path)


def create_query_client(url: str, key: str) -> QueryClient:
    """Default factory for relational clients."""
    return SupabaseQueryClient(url, key)


def create_storage_client(url: str, key: str) -> StorageClient:
    """Default factory for storage clients."""
    return SupabaseStorageClient(url, key)
