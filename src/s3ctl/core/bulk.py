import logging
import os
import threading
from collections.abc import Callable, Iterator
from contextlib import closing

from s3ctl.core.backend import StorageBackend
from s3ctl.core.errors import LocalIOError, OperationCancelledError, S3CtlError
from s3ctl.core.listing import ListingIterator
from s3ctl.core.transfer import TransferEngine
from s3ctl.core.walker import walk

logger = logging.getLogger(__name__)

Walker = Callable[[str, str], Iterator[tuple[str, str]]]


class BulkOps:
    """
    Directory-level operations composed from the listing, the tree walker
    and the transfer engine.

    Every batch is sequential and fail-fast: the first failing item aborts
    the rest and its error propagates unchanged.
    """

    def __init__(
        self,
        backend: StorageBackend,
        engine: TransferEngine | None = None,
        lister: ListingIterator | None = None,
        walker: Walker = walk,
        cancel: threading.Event | None = None,
    ):
        self.backend = backend
        self.cancel = cancel or threading.Event()
        self.engine = engine or TransferEngine(backend, cancel=self.cancel)
        self.lister = lister or ListingIterator(backend, cancel=self.cancel)
        self.walker = walker

    def upload_directory(
        self,
        bucket: str,
        local_dir: str,
        dest_prefix: str = "",
        is_public: bool = False,
    ) -> int:
        count = 0
        for path, key in self.walker(local_dir, dest_prefix):
            self._check_cancelled("upload", local_dir)
            self.engine.upload_file(bucket, path, key, is_public)
            count += 1
        logger.debug("Uploaded %d files from %s", count, local_dir)
        return count

    def download_directory(self, bucket: str, prefix: str, dest_dir: str) -> int:
        root = os.path.abspath(dest_dir)
        count = 0
        with closing(self.lister.list(bucket, prefix, recursive=True)) as entries:
            for entry in entries:
                self._check_cancelled("download", f"{bucket}/{prefix}")
                entry.unwrap()
                if entry.is_prefix_marker:
                    continue

                relative = entry.key.removeprefix(prefix)
                local_path = self.local_path_for(root, relative)
                self.engine.get_object(bucket, entry.key, local_path)
                count += 1
        logger.debug("Downloaded %d objects from %s/%s", count, bucket, prefix)
        return count

    def delete_directory(self, bucket: str, prefix: str) -> int:
        count = 0
        listing = self.lister.list(bucket, prefix, recursive=True, folders_only=False)
        with closing(listing) as entries:
            for entry in entries:
                self._check_cancelled("delete", f"{bucket}/{prefix}")
                entry.unwrap()
                self.engine.delete_object(bucket, entry.key)
                count += 1
        logger.debug("Deleted %d objects under %s/%s", count, bucket, prefix)
        return count

    def make_bucket(self, bucket: str) -> bool:
        """
        Returns False when the bucket already exists instead of failing.
        """
        self._check_cancelled("make bucket", bucket)
        # us-east-1 answers CreateBucket for an owned bucket with success
        if self.backend.bucket_exists(bucket):
            return False
        try:
            self.backend.make_bucket(bucket)
        except S3CtlError:
            if self.backend.bucket_exists(bucket):
                return False
            raise
        return True

    def remove_bucket(self, bucket: str) -> bool:
        """
        Removes an empty bucket. Returns False, leaving the bucket intact,
        when it still holds objects.
        """
        self._check_cancelled("remove bucket", bucket)
        if self.lister.has_entries(bucket):
            return False
        self.backend.remove_bucket(bucket)
        return True

    @staticmethod
    def local_path_for(root: str, relative: str) -> str:
        parts = [part for part in relative.split("/") if part]
        path = os.path.normpath(os.path.join(root, *parts)) if parts else root
        if path == root or os.path.commonpath([root, path]) != root:
            raise LocalIOError(
                "key resolves outside destination", "download", relative
            )
        return path

    def _check_cancelled(self, operation: str, target: str) -> None:
        if self.cancel.is_set():
            raise OperationCancelledError(operation, target)
