from collections.abc import Iterator
from typing import BinaryIO, Protocol

from s3ctl.core.models import BucketInfo, ListingEntry, ObjectInfo


class StorageBackend(Protocol):
    """
    Capability the core needs from an S3-compatible service.

    Implementations raise ``NotFoundError`` for absent buckets/objects and
    ``BackendError`` for any other protocol failure. Retries, if any, happen
    inside the implementation.
    """

    def list_buckets(self) -> list[BucketInfo]: ...

    def list_objects(
        self, bucket: str, prefix: str, recursive: bool, page_size: int
    ) -> Iterator[ListingEntry]: ...

    def put_object(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO,
        size: int,
        content_type: str,
        public: bool,
    ) -> None: ...

    def get_object(self, bucket: str, key: str) -> tuple[BinaryIO, int]: ...

    def stat_object(self, bucket: str, key: str) -> ObjectInfo: ...

    def remove_object(self, bucket: str, key: str) -> None: ...

    def make_bucket(self, bucket: str) -> None: ...

    def bucket_exists(self, bucket: str) -> bool: ...

    def remove_bucket(self, bucket: str) -> None: ...

    def presign_get(self, bucket: str, key: str, ttl: int) -> str: ...
