"""Recursive copy of storage buckets between projects."""

import logging
import posixpath
import threading
from typing import Iterator, List, Optional, Tuple

from ..clients.base import BucketInfo, StorageClient, StorageEntry
from ..exceptions import MigrationCancelled
from ..models.migration import StorageStats
from ..models.record import StorageMigrationResult

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000


def join_path(folder: str, name: str) -> str:
    return f"{folder}/{name}" if folder else name


def split_path(path: str) -> Tuple[str, str]:
    """Split ``a/b/c.png`` into (``a/b``, ``c.png``)."""
    parent, name = posixpath.split(path)
    return parent, name


class StorageMigrator:
    """
    Copies every bucket and file from a source storage to a target storage.

    The walk is depth-first and sequential. Failures on a single file or
    folder are logged and recorded; siblings are still processed. Files are
    always uploaded with overwrite, an existing target file only changes the
    log wording from "Migrated" to "Updated".
    """

    def __init__(
        self,
        source: StorageClient,
        target: Optional[StorageClient] = None,
        bucket: Optional[str] = None,
        page_size: int = LIST_PAGE_SIZE,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Initialize the storage migrator.

        Args:
            source: Storage client of the source project (service key)
            target: Storage client of the target project (service key);
                only needed for migration, not for stats
            bucket: Restrict work to this bucket
            page_size: Entries requested per listing call
            cancel_event: Set to stop between files
        """
        self.source = source
        self.target = target
        self.bucket = bucket
        self.page_size = page_size
        self.cancel_event = cancel_event

    def source_buckets(self) -> List[BucketInfo]:
        buckets = self.source.list_buckets()
        if self.bucket:
            buckets = [b for b in buckets if b.name == self.bucket]
        return buckets

    def iter_entries(self, client: StorageClient, bucket: str, path: str) -> Iterator[StorageEntry]:
        """List every entry under ``path``, following pages."""
        offset = 0
        while True:
            page = client.list(
                bucket,
                path,
                limit=self.page_size,
                offset=offset,
                sort_by=("name", "asc"),
            )
            yield from page
            if len(page) < self.page_size:
                break
            offset += len(page)

    def migrate(self) -> StorageMigrationResult:
        """Copy all buckets and files."""
        if self.target is None:
            raise ValueError("A target storage client is required for migration")

        result = StorageMigrationResult()
        logger.info("Migrating storage...")

        try:
            buckets = self.source_buckets()
        except Exception as e:
            logger.error(f"Error listing source buckets: {e}")
            result.add_error("bucket", "", str(e))
            return result

        for bucket in buckets:
            logger.info(f"Migrating bucket: {bucket.name}")

            if not self.ensure_bucket(bucket, result):
                continue

            result.buckets.append(bucket.name)
            self.migrate_folder(bucket.name, "", result)

        logger.info(
            f"Storage migration finished: {len(result.files_migrated)} migrated, "
            f"{len(result.files_updated)} updated, {result.files_failed} failed"
        )
        return result

    def ensure_bucket(self, bucket: BucketInfo, result: StorageMigrationResult) -> bool:
        """Create the bucket on the target; an existing bucket counts as success."""
        try:
            self.target.create_bucket(
                bucket.name,
                public=bucket.public,
                allowed_mime_types=bucket.allowed_mime_types,
                file_size_limit=bucket.file_size_limit,
            )
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.debug(f"Bucket {bucket.name} already exists on target")
                return True
            logger.error(f"Error creating bucket {bucket.name}: {e}")
            result.add_error("bucket", bucket.name, str(e))
            return False
        return True

    def migrate_folder(self, bucket: str, folder: str, result: StorageMigrationResult) -> None:
        """Copy every file under ``folder``, recursing into subfolders."""
        try:
            entries = list(self.iter_entries(self.source, bucket, folder))
        except Exception as e:
            logger.error(f"Error listing files in {bucket}/{folder}: {e}")
            result.add_error("folder", f"{bucket}/{folder}", str(e))
            return

        for entry in entries:
            self._check_cancelled(bucket)
            path = join_path(folder, entry.name)

            if entry.is_folder:
                logger.info(f"Processing folder: {path}")
                self.migrate_folder(bucket, path, result)
            else:
                self.migrate_file(bucket, path, entry, result)

    def migrate_file(
        self,
        bucket: str,
        path: str,
        entry: StorageEntry,
        result: StorageMigrationResult
    ) -> None:
        """Download one file from the source and upload it to the target."""
        try:
            data = self.source.download(bucket, path)
            exists = self.target_file_exists(bucket, path)

            self.target.upload(
                bucket,
                path,
                data,
                content_type=entry.content_type,
                upsert=True,
                cache_control="3600",
            )
        except Exception as e:
            logger.error(f"Error migrating file {bucket}/{path}: {e}")
            result.add_error("file", f"{bucket}/{path}", str(e))
            return

        if exists:
            result.files_updated.append(f"{bucket}/{path}")
            logger.info(f"Updated file: {path}")
        else:
            result.files_migrated.append(f"{bucket}/{path}")
            logger.info(f"Migrated file: {path}")

    def target_file_exists(self, bucket: str, path: str) -> bool:
        """Whether a same-named file already sits at ``path`` on the target."""
        parent, name = split_path(path)
        try:
            entries = self.target.list(bucket, parent, search=name)
        except Exception as e:
            logger.debug(f"Could not check {bucket}/{path} on target: {e}")
            return False
        return any(e.name == name for e in entries)

    def stats(self) -> StorageStats:
        """Count buckets, files and bytes on the source without writing."""
        try:
            buckets = self.source_buckets()
        except Exception as e:
            logger.warning(f"Could not get storage stats: {e}")
            return StorageStats()

        stats = StorageStats(buckets=len(buckets))
        for bucket in buckets:
            files, size = self.folder_stats(bucket.name, "")
            stats.total_files += files
            stats.total_size += size
        return stats

    def folder_stats(self, bucket: str, folder: str) -> Tuple[int, int]:
        """(file count, byte size) under ``folder``."""
        try:
            entries = list(self.iter_entries(self.source, bucket, folder))
        except Exception as e:
            logger.warning(f"Could not list {bucket}/{folder}: {e}")
            return 0, 0

        files = 0
        size = 0
        for entry in entries:
            if entry.is_folder:
                sub_files, sub_size = self.folder_stats(bucket, join_path(folder, entry.name))
                files += sub_files
                size += sub_size
            else:
                files += 1
                size += entry.size
        return files, size

    def _check_cancelled(self, bucket: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise MigrationCancelled(f"storage migration of {bucket}")
