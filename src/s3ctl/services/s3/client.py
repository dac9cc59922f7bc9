import heapq
import logging
from collections.abc import Callable, Iterator
from functools import wraps
from typing import Any, BinaryIO, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from s3ctl.core.errors import BackendError, NotFoundError
from s3ctl.core.models import (
    BucketInfo,
    ListingEntry,
    ObjectInfo,
    SignatureVersion,
    StorageConfig,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOT_FOUND_CODES = {"NoSuchBucket", "NoSuchKey", "NotFound", "404"}

SIGNATURE_MAP = {
    SignatureVersion.V2: "s3",
    SignatureVersion.V4: "s3v4",
}

PUBLIC_READ_ACL = "public-read"


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def describe_target(args: tuple[Any, ...]) -> str:
    names = [str(arg) for arg in args[:2] if isinstance(arg, str)]
    return "/".join(names)


def translate_error(
    error: ClientError | BotoCoreError, operation: str, target: str
) -> NotFoundError | BackendError:
    if isinstance(error, ClientError):
        code = error_code(error)
        if code in NOT_FOUND_CODES:
            return NotFoundError(f"{code}: {error}", operation, target)
        return BackendError(f"{code}: {error}", operation, target)
    return BackendError(str(error), operation, target)


def aws_call(operation: str) -> Callable:
    """
    Decorator mapping botocore failures onto the s3ctl error taxonomy.

    The first two string positional arguments (bucket, key) become the error
    target.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            try:
                return func(self, *args, **kwargs)
            except (ClientError, BotoCoreError) as e:
                target = describe_target(args)
                logger.debug("AWS Error in %s for %s: %s", operation, target, e)
                raise translate_error(e, operation, target) from e

        return wrapper

    return decorator


class S3Backend:
    """
    Boto3 implementation of the StorageBackend capability.
    """

    def __init__(self, client: Any = None, session: boto3.Session | None = None):
        if client is None:
            session = session or boto3.Session()
            client = session.client("s3", config=self.build_config())
        self._client = client

    @staticmethod
    def build_config(
        signature_version: SignatureVersion = SignatureVersion.V4,
    ) -> Config:
        return Config(
            signature_version=SIGNATURE_MAP[signature_version],
            s3={"addressing_style": "path"},
            retries={"mode": "adaptive", "max_attempts": 10},
        )

    @classmethod
    def from_config(
        cls,
        config: StorageConfig,
        signature_version: SignatureVersion | None = None,
    ) -> "S3Backend":
        session = boto3.Session(
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
        )
        client = session.client(
            "s3",
            endpoint_url=config.endpoint_url,
            config=cls.build_config(signature_version or config.signature_version),
        )
        return cls(client=client)

    @aws_call("list buckets")
    def list_buckets(self) -> list[BucketInfo]:
        response = self._client.list_buckets()
        return [
            BucketInfo(name=bucket["Name"], creation_date=bucket.get("CreationDate"))
            for bucket in response.get("Buckets", [])
        ]

    def list_objects(
        self, bucket: str, prefix: str, recursive: bool, page_size: int
    ) -> Iterator[ListingEntry]:
        """
        Pages through ``list_objects_v2``. Without ``recursive`` the listing is
        delimited on '/', and common prefixes come back as prefix markers merged
        into key order within each page.
        """
        params: dict[str, Any] = {"Bucket": bucket, "PaginationConfig": {}}
        if page_size > 0:
            params["PaginationConfig"]["PageSize"] = page_size
        if prefix:
            params["Prefix"] = prefix
        if not recursive:
            params["Delimiter"] = "/"

        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**params):
                objects = [
                    ListingEntry(
                        key=item["Key"],
                        size=item.get("Size", 0),
                        last_modified=item.get("LastModified"),
                        is_prefix_marker=item["Key"].endswith("/"),
                    )
                    for item in page.get("Contents", [])
                ]
                markers = [
                    ListingEntry(key=common["Prefix"], is_prefix_marker=True)
                    for common in page.get("CommonPrefixes", [])
                ]
                yield from heapq.merge(objects, markers, key=lambda e: e.key)
        except (ClientError, BotoCoreError) as e:
            target = f"{bucket}/{prefix}"
            logger.debug("AWS Error listing %s: %s", target, e)
            raise translate_error(e, "list", target) from e

    @aws_call("put")
    def put_object(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO,
        size: int,
        content_type: str,
        public: bool,
    ) -> None:
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "Body": stream,
            "ContentLength": size,
            "ContentType": content_type,
        }
        if public:
            params["ACL"] = PUBLIC_READ_ACL
        self._client.put_object(**params)

    @aws_call("get")
    def get_object(self, bucket: str, key: str) -> tuple[BinaryIO, int]:
        response = self._client.get_object(Bucket=bucket, Key=key)
        return response["Body"], response.get("ContentLength", 0)

    @aws_call("stat")
    def stat_object(self, bucket: str, key: str) -> ObjectInfo:
        response = self._client.head_object(Bucket=bucket, Key=key)
        return ObjectInfo(
            bucket=bucket,
            key=key,
            size=response.get("ContentLength", 0),
            last_modified=response.get("LastModified"),
            content_type=response.get("ContentType"),
            etag=response.get("ETag"),
        )

    @aws_call("delete")
    def remove_object(self, bucket: str, key: str) -> None:
        self._client.delete_object(Bucket=bucket, Key=key)

    @aws_call("make bucket")
    def make_bucket(self, bucket: str) -> None:
        self._client.create_bucket(Bucket=bucket)

    @aws_call("stat bucket")
    def bucket_exists(self, bucket: str) -> bool:
        try:
            self._client.head_bucket(Bucket=bucket)
        except ClientError as e:
            if error_code(e) in NOT_FOUND_CODES:
                return False
            raise
        return True

    @aws_call("remove bucket")
    def remove_bucket(self, bucket: str) -> None:
        self._client.delete_bucket(Bucket=bucket)

    @aws_call("presign")
    def presign_get(self, bucket: str, key: str, ttl: int) -> str:
        return self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=ttl,
        )
