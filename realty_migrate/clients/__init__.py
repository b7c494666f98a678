"""Clients for the backend-as-a-service project."""

from .base import BucketInfo, ClientError, QueryClient, StorageClient, StorageEntry
from .sdk import (
    SupabaseQueryClient,
    SupabaseStorageClient,
    create_query_client,
    create_storage_client,
)

__all__ = [
    "BucketInfo",
    "ClientError",
    "QueryClient",
    "StorageClient",
    "StorageEntry",
    "SupabaseQueryClient",
    "SupabaseStorageClient",
    "create_query_client",
    "create_storage_client",
]
