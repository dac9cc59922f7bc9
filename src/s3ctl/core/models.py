from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

SCHEME = "s3://"


class SignatureVersion(StrEnum):
    V2 = "v2"
    V4 = "v4"


@dataclass(frozen=True)
class Address:
    """A parsed s3://bucket/key address."""

    bucket: str
    key: str = ""
    is_prefix: bool = True

    @property
    def uri(self) -> str:
        return f"{SCHEME}{self.bucket}/{self.key}"


@dataclass
class ListingEntry:
    """
    One item of a remote listing.

    An entry carrying ``err`` is always the last item of its sequence.
    """

    key: str
    size: int = 0
    last_modified: datetime | None = None
    is_prefix_marker: bool = False
    err: Exception | None = None

    @classmethod
    def failure(cls, key: str, err: Exception) -> "ListingEntry":
        return cls(key=key, is_prefix_marker=key.endswith("/"), err=err)

    def unwrap(self) -> "ListingEntry":
        if self.err is not None:
            raise self.err
        return self


@dataclass(frozen=True)
class TransferUnit:
    """A single file-to-object or object-to-file mapping."""

    source_ref: str
    dest_ref: str
    size_hint: int | None = None
    is_public: bool = False


@dataclass
class ProgressState:
    total_size: int
    bytes_transferred: int = 0
    start_time: float = 0.0
    last_sample_time: float = 0.0
    last_sample_bytes: int = 0
    last_printed_percent: int = 0


@dataclass
class ObjectInfo:
    bucket: str
    key: str
    size: int = 0
    last_modified: datetime | None = None
    content_type: str | None = None
    etag: str | None = None


@dataclass
class BucketInfo:
    name: str
    creation_date: datetime | None = None


@dataclass
class StorageConfig:
    """Connection settings for one named profile."""

    endpoint: str
    access_key_id: str
    secret_access_key: str
    use_ssl: bool = True
    signature_version: SignatureVersion = SignatureVersion.V4
    region: str = "us-east-1"
    name: str = "default"

    @property
    def endpoint_url(self) -> str:
        if "://" in self.endpoint:
            return self.endpoint
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.endpoint}"
