import pytest
from typer.testing import CliRunner

from s3ctl.core.models import SignatureVersion
from s3ctl.main import app

runner = CliRunner()


@pytest.fixture
def patched_context(mocker, s3_context):
    return mocker.patch("s3ctl.core.runner.build_context", return_value=s3_context)


@pytest.fixture
def populated(bucket, s3_mock):
    for key in ["docs/a.txt", "docs/sub/b.txt", "top.txt"]:
        s3_mock.put_object(Bucket=bucket, Key=key, Body=b"hello")
    return bucket


def test_ls_without_target_lists_buckets(patched_context, bucket):
    result = runner.invoke(app, ["ls"])

    assert result.exit_code == 0
    assert "BUCKET" in result.output
    assert f"s3://{bucket}/" in result.output


def test_ls_without_buckets(patched_context, s3_mock):
    result = runner.invoke(app, ["ls"])

    assert result.exit_code == 0
    assert "No buckets found" in result.output


def test_ls_prefix_shows_relative_rows(patched_context, populated):
    result = runner.invoke(app, ["ls", f"s3://{populated}/docs/"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert any(line.endswith(" a.txt") and "5 B" in line for line in lines)
    assert any(line.endswith(" sub/") and "DIR" in line for line in lines)
    assert "b.txt" not in result.output


def test_ls_recursive_full_path(patched_context, populated):
    result = runner.invoke(app, ["ls", "-r", "-p", f"s3://{populated}/"])

    assert result.exit_code == 0
    assert f"s3://{populated}/docs/sub/b.txt" in result.output
    assert f"s3://{populated}/top.txt" in result.output


def test_ls_folders_only(patched_context, populated):
    result = runner.invoke(app, ["ls", "--folders", f"s3://{populated}/"])

    assert result.exit_code == 0
    assert "docs/" in result.output
    assert "top.txt" not in result.output


def test_ls_missing_bucket_is_informational(patched_context, s3_mock):
    result = runner.invoke(app, ["ls", "s3://no-such-bucket/"])

    assert result.exit_code == 0
    assert "does not exist" in result.output


def test_ls_rejects_address_without_scheme(patched_context):
    result = runner.invoke(app, ["ls", "bucket/x"])

    assert result.exit_code == 1
    assert "Error:" in result.output
    patched_context.assert_not_called()


def test_put_single_file(patched_context, bucket, s3_mock, tmp_path):
    source = tmp_path / "report.csv"
    source.write_text("a,b\n")

    result = runner.invoke(app, ["put", str(source), f"s3://{bucket}/reports/"])

    assert result.exit_code == 0
    assert "File uploaded" in result.output
    head = s3_mock.head_object(Bucket=bucket, Key="reports/report.csv")
    assert head["ContentType"] == "text/csv"


def test_put_directory(patched_context, bucket, s3_mock, tmp_path):
    (tmp_path / "site" / "img").mkdir(parents=True)
    (tmp_path / "site" / "index.html").write_text("<html/>")
    (tmp_path / "site" / "img" / "logo.png").write_bytes(b"\x89PNG")

    result = runner.invoke(
        app, ["put", "--public", str(tmp_path / "site"), f"s3://{bucket}/www/"]
    )

    assert result.exit_code == 0
    assert "Uploaded 2 files" in result.output
    listed = s3_mock.list_objects_v2(Bucket=bucket, Prefix="www/")
    assert sorted(o["Key"] for o in listed["Contents"]) == [
        "www/img/logo.png",
        "www/index.html",
    ]


def test_put_missing_source_fails(patched_context, bucket, tmp_path):
    result = runner.invoke(
        app, ["put", str(tmp_path / "absent.txt"), f"s3://{bucket}/x.txt"]
    )

    assert result.exit_code == 1
    assert "absent.txt" in result.output


def test_download_object_into_directory(patched_context, populated, tmp_path):
    result = runner.invoke(
        app, ["download", f"s3://{populated}/docs/a.txt", str(tmp_path)]
    )

    assert result.exit_code == 0
    assert (tmp_path / "a.txt").read_bytes() == b"hello"


def test_download_object_to_file(patched_context, populated, tmp_path):
    target = tmp_path / "renamed.txt"
    result = runner.invoke(app, ["download", f"s3://{populated}/top.txt", str(target)])

    assert result.exit_code == 0
    assert target.read_bytes() == b"hello"


def test_download_prefix(patched_context, populated, tmp_path):
    result = runner.invoke(
        app, ["download", f"s3://{populated}/docs/", str(tmp_path / "out")]
    )

    assert result.exit_code == 0
    assert "Downloaded 2 files" in result.output
    assert (tmp_path / "out" / "sub" / "b.txt").exists()


def test_download_missing_object(patched_context, bucket, tmp_path):
    result = runner.invoke(
        app, ["download", f"s3://{bucket}/missing.txt", str(tmp_path)]
    )

    assert result.exit_code == 1
    assert not (tmp_path / "missing.txt").exists()


def test_delete_object(patched_context, populated, s3_mock):
    result = runner.invoke(app, ["del", f"s3://{populated}/top.txt"])

    assert result.exit_code == 0
    keys = [o["Key"] for o in s3_mock.list_objects_v2(Bucket=populated)["Contents"]]
    assert "top.txt" not in keys


def test_delete_folder_is_recursive(patched_context, populated, s3_mock):
    result = runner.invoke(app, ["del", f"s3://{populated}/docs/"])

    assert result.exit_code == 0
    assert "Deleted 2 objects" in result.output
    keys = [o["Key"] for o in s3_mock.list_objects_v2(Bucket=populated)["Contents"]]
    assert keys == ["top.txt"]


def test_delete_bucket_root_requires_trailing_slash(
    patched_context, populated, s3_mock
):
    result = runner.invoke(app, ["del", f"s3://{populated}"])

    assert result.exit_code == 1
    assert s3_mock.list_objects_v2(Bucket=populated)["KeyCount"] == 3


def test_url_prints_presigned_link(patched_context, populated):
    result = runner.invoke(app, ["url", f"s3://{populated}/top.txt", "-e", "1h"])

    assert result.exit_code == 0
    assert "top.txt" in result.output
    assert "X-Amz-Expires=3600" in result.output


def test_url_v2_requests_v2_signing(patched_context, populated):
    result = runner.invoke(app, ["url", "--v2", f"s3://{populated}/top.txt"])

    assert result.exit_code == 0
    args, _ = patched_context.call_args
    assert args[1] is SignatureVersion.V2


def test_url_missing_object(patched_context, bucket):
    result = runner.invoke(app, ["url", f"s3://{bucket}/absent.txt"])

    assert result.exit_code == 1


def test_url_rejects_bad_expiry(patched_context, populated):
    result = runner.invoke(app, ["url", f"s3://{populated}/top.txt", "-e", "soon"])

    assert result.exit_code == 2
    patched_context.assert_not_called()


def test_url_signature_follows_profile_and_flag(
    config_file, populated, backend_factory, mocker
):
    mocker.patch(
        "s3ctl.core.runner.S3Backend.from_config",
        side_effect=lambda config, signature_version=None: backend_factory(
            signature_version or config.signature_version
        ),
    )
    target = f"s3://{populated}/top.txt"

    v4 = runner.invoke(app, ["url", target])
    v2 = runner.invoke(app, ["url", "--v2", target])

    assert v4.exit_code == 0
    assert v2.exit_code == 0
    assert "X-Amz-Signature=" in v4.output
    assert "AWSAccessKeyId=" in v2.output
    assert "X-Amz-Signature" not in v2.output
