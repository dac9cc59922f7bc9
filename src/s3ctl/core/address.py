from s3ctl.core.errors import AddressError, InvalidAddressError
from s3ctl.core.models import SCHEME, Address


def resolve(raw: str) -> Address:
    """
    Parses an ``s3://bucket[/key]`` string into an Address.

    The result is purely syntactic: nothing is checked against the backend.
    A bucket-only address, or a key ending with ``/``, is a prefix.

    Raises:
        InvalidAddressError: when ``raw`` does not start with ``s3://``.
    """
    if not raw.startswith(SCHEME):
        raise InvalidAddressError(
            f"expected {SCHEME}bucket/key", operation="resolve", target=raw
        )

    bucket, _, key = raw[len(SCHEME) :].partition("/")
    if not bucket:
        raise AddressError("bucket name is empty", operation="resolve", target=raw)

    return Address(bucket=bucket, key=key, is_prefix=is_prefix_key(key))


def resolve_bucket(raw: str) -> str:
    """
    Parses a bucket-only ``s3://bucket`` address (a trailing slash is allowed).
    """
    address = resolve(raw)
    if address.key:
        raise AddressError(
            "bucket name cannot contain '/'", operation="resolve", target=raw
        )
    return address.bucket


def is_prefix_key(key: str) -> bool:
    return key == "" or key.endswith("/")


def join_key(prefix: str, relative: str) -> str:
    """Joins an object-key prefix and a relative key with a single '/'."""
    if not prefix:
        return relative
    return f"{prefix.rstrip('/')}/{relative}"
