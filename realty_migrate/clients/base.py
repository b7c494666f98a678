"""Capability interfaces for the backend-as-a-service project."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ClientError
from ..models.record import Row

__all__ = [
    "BucketInfo",
    "ClientError",
    "QueryClient",
    "StorageClient",
    "StorageEntry",
]


@dataclass
class BucketInfo:
    """A storage bucket and its upload restrictions."""
    name: str
    public: bool = False
    allowed_mime_types: Optional[List[str]] = None
    file_size_limit: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BucketInfo":
        return cls(
            name=data.get("name") or data.get("id", ""),
            public=bool(data.get("public", False)),
            allowed_mime_types=data.get("allowed_mime_types"),
            file_size_limit=data.get("file_size_limit"),
        )


@dataclass
class StorageEntry:
    """
    An entry returned by a storage listing.

    Folders carry no ``id``; files do.
    """
    name: str
    id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        return self.id is None

    @property
    def size(self) -> int:
        return int(self.metadata.get("size") or 0)

    @property
    def content_type(self) -> Optional[str]:
        return self.metadata.get("mimetype")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageEntry":
        return cls(
            name=data.get("name", ""),
            id=data.get("id"),
            metadata=data.get("metadata") or {},
        )


class QueryClient(ABC):
    """Typed access to the relational store of one project."""

    @abstractmethod
    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order: Optional[str] = None
    ) -> List[Row]:
        """
        Read rows from a table.

        Without ``order`` the backend guarantees no row order, so paged
        reads must always pass one.

        Args:
            table: Table name
            columns: Column list, ``*`` for all
            filters: Equality filters, column -> value
            limit: Maximum rows to return
            offset: Rows to skip
            order: Column to sort ascending by

        Returns:
            List of rows

        Raises:
            ClientError: If the read fails
        """
        pass

    @abstractmethod
    def insert(
        self,
        table: str,
        rows: List[Row],
        upsert: bool = False,
        on_conflict: str = "id"
    ) -> None:
        """
        Insert rows into a table.

        Args:
            table: Table name
            rows: Rows to write
            upsert: Update rows whose ``on_conflict`` column already exists
            on_conflict: Conflict target for upserts

        Raises:
            ClientError: If the write fails
        """
        pass

    @abstractmethod
    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a stored procedure."""
        pass


class StorageClient(ABC):
    """Object storage of one project."""

    @abstractmethod
    def list(
        self,
        bucket: str,
        path: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_by: Tuple[str, str] = ("name", "asc"),
        search: Optional[str] = None
    ) -> List[StorageEntry]:
        """List entries directly under ``path``."""
        pass

    @abstractmethod
    def list_buckets(self) -> List[BucketInfo]:
        pass

    @abstractmethod
    def create_bucket(
        self,
        name: str,
        public: bool = False,
        allowed_mime_types: Optional[List[str]] = None,
        file_size_limit: Optional[int] = None
    ) -> None:
        pass

    @abstractmethod
    def download(self, bucket: str, path: str) -> bytes:
        pass

    @abstractmethod
    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False,
        cache_control: str = "3600"
    ) -> None:
        pass

    @abstractmethod
    def remove(self, bucket: str, paths: List[str]) -> None:
        pass

    @abstractmethod
    def move(self, bucket: str, from_path: str, to_path: str) -> None:
        pass

    @abstractmethod
    def create_signed_url(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        pass

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        pass
