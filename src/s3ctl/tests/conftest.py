import json
import os
import threading
from io import StringIO

import boto3
import pytest
from moto import mock_aws
from rich.console import Console

from s3ctl.core.models import SignatureVersion, StorageConfig
from s3ctl.core.progress import NullProgress
from s3ctl.core.runner import S3Context
from s3ctl.core.transfer import TransferEngine
from s3ctl.services.s3.client import S3Backend

TEST_BUCKET = "test-bucket"


@pytest.fixture(scope="function")
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture(scope="function")
def s3_mock(aws_credentials):
    with mock_aws():
        yield boto3.client("s3", region_name="us-east-1")


def moto_backend(signature_version=SignatureVersion.V4):
    """A backend configured like production, served by moto."""
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        config=S3Backend.build_config(signature_version),
    )
    return S3Backend(client=client)


@pytest.fixture
def backend(s3_mock):
    return moto_backend()


@pytest.fixture
def backend_factory(s3_mock):
    return moto_backend


@pytest.fixture
def bucket(s3_mock):
    s3_mock.create_bucket(Bucket=TEST_BUCKET)
    return TEST_BUCKET


@pytest.fixture
def quiet_console():
    return Console(file=StringIO(), width=120)


@pytest.fixture
def storage_config():
    return StorageConfig(
        endpoint="s3.example.com",
        access_key_id="testing",
        secret_access_key="testing-secret",
    )


@pytest.fixture
def s3_context(backend, storage_config, quiet_console):
    """A command context wired to the moto backend, with silent transfers."""
    context = S3Context(config=storage_config, backend=backend)
    engine = TransferEngine(
        backend,
        cancel=context.cancel,
        progress_factory=lambda size: NullProgress(),
        console=quiet_console,
    )
    context.engine = engine
    context.bulk.engine = engine
    return context


@pytest.fixture
def cancel_event():
    return threading.Event()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "s3ctl.json"
    path.write_text(
        json.dumps(
            {
                "current": "primary",
                "services": {
                    "primary": {
                        "endpoint": "minio.local:9000",
                        "access_key_id": "PRIMARYKEY",
                        "secret_access_key": "PRIMARYSECRET",
                        "use_ssl": False,
                    },
                    "backup": {
                        "endpoint": "https://s3.backup.example.com",
                        "access_key_id": "BACKUPKEY",
                        "secret_access_key": "BACKUPSECRET",
                        "signature_version": "v2",
                    },
                },
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("S3CTL_CONFIG", str(path))
    return path
