import io

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from s3ctl.core.errors import BackendError, NotFoundError
from s3ctl.core.models import SignatureVersion, StorageConfig
from s3ctl.services.s3.client import S3Backend, aws_call, translate_error


def client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": "message"}}, operation)


@pytest.mark.parametrize("code", ["NoSuchBucket", "NoSuchKey", "NotFound", "404"])
def test_translate_not_found_codes(code):
    error = translate_error(client_error(code), "stat", "bucket/key")
    assert isinstance(error, NotFoundError)
    assert error.target == "bucket/key"


def test_translate_other_codes_to_backend_error():
    error = translate_error(client_error("AccessDenied"), "put", "bucket/key")
    assert isinstance(error, BackendError)
    assert "AccessDenied" in str(error)


def test_translate_connection_failure():
    failure = EndpointConnectionError(endpoint_url="https://s3.invalid")
    assert isinstance(translate_error(failure, "list", "bucket/"), BackendError)


def test_aws_call_decorator_builds_target():
    class Fake:
        @aws_call("get")
        def fetch(self, bucket, key):
            raise client_error("NoSuchKey", "GetObject")

    with pytest.raises(NotFoundError) as excinfo:
        Fake().fetch("bucket", "dir/key.txt")
    assert excinfo.value.operation == "get"
    assert excinfo.value.target == "bucket/dir/key.txt"


def test_build_config_signatures():
    assert S3Backend.build_config(SignatureVersion.V2).signature_version == "s3"
    config = S3Backend.build_config(SignatureVersion.V4)
    assert config.signature_version == "s3v4"
    assert config.s3 == {"addressing_style": "path"}
    assert config.retries["mode"] == "adaptive"


def test_from_config_uses_endpoint_and_region():
    config = StorageConfig(
        endpoint="minio.local:9000",
        access_key_id="key",
        secret_access_key="secret",
        use_ssl=False,
        region="eu-west-1",
    )
    backend = S3Backend.from_config(config)
    assert backend._client.meta.endpoint_url == "http://minio.local:9000"
    assert backend._client.meta.region_name == "eu-west-1"


def test_list_buckets(backend, s3_mock):
    s3_mock.create_bucket(Bucket="one")
    s3_mock.create_bucket(Bucket="two")
    assert [b.name for b in backend.list_buckets()] == ["one", "two"]


def test_list_objects_merges_markers_in_key_order(backend, bucket, s3_mock):
    for key in ["b.txt", "a/x", "c/y", "d.txt"]:
        s3_mock.put_object(Bucket=bucket, Key=key, Body=b"12345")

    entries = list(backend.list_objects(bucket, "", False, 1000))

    assert [(e.key, e.is_prefix_marker) for e in entries] == [
        ("a/", True),
        ("b.txt", False),
        ("c/", True),
        ("d.txt", False),
    ]
    assert entries[1].size == 5
    assert entries[1].last_modified is not None


def test_list_objects_pages(backend, bucket, s3_mock):
    for index in range(5):
        s3_mock.put_object(Bucket=bucket, Key=f"k{index}", Body=b"x")
    keys = [e.key for e in backend.list_objects(bucket, "", True, 2)]
    assert keys == ["k0", "k1", "k2", "k3", "k4"]


def test_list_objects_missing_bucket(backend):
    with pytest.raises(NotFoundError):
        list(backend.list_objects("no-such-bucket", "", True, 10))


def test_put_and_get_object(backend, bucket):
    backend.put_object(bucket, "k.txt", io.BytesIO(b"hello"), 5, "text/plain", False)

    body, size = backend.get_object(bucket, "k.txt")
    assert size == 5
    assert body.read() == b"hello"

    info = backend.stat_object(bucket, "k.txt")
    assert info.size == 5
    assert info.content_type == "text/plain"


def test_stat_missing_object(backend, bucket):
    with pytest.raises(NotFoundError) as excinfo:
        backend.stat_object(bucket, "absent")
    assert excinfo.value.target == f"{bucket}/absent"


def test_bucket_lifecycle(backend):
    assert backend.bucket_exists("lifecycle") is False
    backend.make_bucket("lifecycle")
    assert backend.bucket_exists("lifecycle") is True
    backend.remove_bucket("lifecycle")
    assert backend.bucket_exists("lifecycle") is False


def test_remove_object(backend, bucket, s3_mock):
    s3_mock.put_object(Bucket=bucket, Key="x", Body=b"x")
    backend.remove_object(bucket, "x")
    with pytest.raises(NotFoundError):
        backend.stat_object(bucket, "x")


def test_presign_get(backend, bucket):
    url = backend.presign_get(bucket, "file.txt", 600)
    assert url.startswith("https://")
    assert "file.txt" in url


def test_presign_signature_styles(backend_factory, bucket):
    v4 = backend_factory(SignatureVersion.V4).presign_get(bucket, "f.txt", 600)
    v2 = backend_factory(SignatureVersion.V2).presign_get(bucket, "f.txt", 600)

    assert "X-Amz-Signature=" in v4
    assert "X-Amz-Expires=600" in v4
    assert "AWSAccessKeyId=" in v2
    assert "Signature=" in v2
    assert "X-Amz-Signature" not in v2
