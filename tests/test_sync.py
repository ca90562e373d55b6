import os
import re
import time

import boto3
import pytest
from botocore.exceptions import NoCredentialsError
from moto import mock_aws

from filedrop.aws import sync
from filedrop.core.config import Configuration
from filedrop.core.errors import RemoteError

REGION = "us-east-1"
BUCKET = "drop-bucket"
LOG_LINE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[+-]\d{2}:\d{2} ")


@pytest.fixture
def aws_mock():
    with mock_aws():
        s3 = boto3.client("s3", region_name=REGION)
        s3.create_bucket(Bucket=BUCKET)
        yield s3


@pytest.fixture
def config(tmp_path):
    return Configuration(
        bucket=BUCKET,
        region=REGION,
        prefix="uploads",
        upload_dir=str(tmp_path / "uploads"),
        sync_log=str(tmp_path / "log" / "sync.log"),
    )


def _write(config, rel, content=b"hello", mtime=1000):
    path = os.path.join(config.upload_dir, rel)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(content)
    # Default mtime predates any upload in the test
    os.utime(path, (mtime, mtime))
    return path


def _keys(s3):
    return sorted(o["Key"] for o in s3.list_objects_v2(Bucket=BUCKET).get("Contents", []))


def _log_lines(config):
    with open(config.sync_log, encoding="utf-8") as fh:
        return fh.read().splitlines()


class FailingSts:
    def get_caller_identity(self):
        raise NoCredentialsError()


def test_credentials_available_success(aws_mock, config):
    assert sync.credentials_available(config) is True


def test_credentials_available_no_credentials_failure(config, monkeypatch):
    monkeypatch.setattr(sync, "sts_client_factory", lambda _config: FailingSts())
    assert sync.credentials_available(config) is False


def test_mirror_uploads_new_files_success(aws_mock, config):
    _write(config, "a.txt")
    _write(config, "nested/dir/b.txt", b"bee")

    report = sync.mirror(config)

    assert sorted(report.uploaded) == ["uploads/a.txt", "uploads/nested/dir/b.txt"]
    assert report.deleted == []
    assert _keys(aws_mock) == ["uploads/a.txt", "uploads/nested/dir/b.txt"]
    body = aws_mock.get_object(Bucket=BUCKET, Key="uploads/nested/dir/b.txt")["Body"].read()
    assert body == b"bee"


def test_mirror_creates_missing_upload_dir_success(aws_mock, config):
    assert not os.path.exists(config.upload_dir)
    report = sync.mirror(config)
    assert os.path.isdir(config.upload_dir)
    assert report.uploaded == [] and report.deleted == []


def test_mirror_second_run_transfers_nothing_success(aws_mock, config):
    _write(config, "a.txt")
    sync.mirror(config)

    report = sync.mirror(config)
    assert report.uploaded == []
    assert report.deleted == []


def test_mirror_reuploads_changed_file_success(aws_mock, config):
    _write(config, "a.txt", b"v1")
    sync.mirror(config)

    _write(config, "a.txt", b"version two")
    report = sync.mirror(config)

    assert report.uploaded == ["uploads/a.txt"]
    assert aws_mock.get_object(Bucket=BUCKET, Key="uploads/a.txt")["Body"].read() == b"version two"


def test_mirror_reuploads_newer_same_size_file_success(aws_mock, config):
    _write(config, "a.txt", b"v1")
    sync.mirror(config)

    # Same size, modified well after the remote copy
    future = int(time.time()) + 3600
    _write(config, "a.txt", b"v2", mtime=future)
    report = sync.mirror(config)

    assert report.uploaded == ["uploads/a.txt"]
    assert report.deleted == []
    assert aws_mock.get_object(Bucket=BUCKET, Key="uploads/a.txt")["Body"].read() == b"v2"


def test_mirror_deletes_orphans_only_under_prefix_success(aws_mock, config):
    aws_mock.put_object(Bucket=BUCKET, Key="uploads/gone.txt", Body=b"x")
    aws_mock.put_object(Bucket=BUCKET, Key="uploads-archive/keep.txt", Body=b"x")
    aws_mock.put_object(Bucket=BUCKET, Key="other/keep.txt", Body=b"x")
    _write(config, "a.txt")

    report = sync.mirror(config)

    assert report.deleted == ["uploads/gone.txt"]
    assert _keys(aws_mock) == ["other/keep.txt", "uploads-archive/keep.txt", "uploads/a.txt"]


def test_mirror_without_prefix_success(aws_mock, tmp_path):
    config = Configuration(bucket=BUCKET, region=REGION, upload_dir=str(tmp_path / "up"))
    aws_mock.put_object(Bucket=BUCKET, Key="stale.txt", Body=b"x")
    _write(config, "a.txt")

    report = sync.mirror(config)

    assert report.uploaded == ["a.txt"]
    assert report.deleted == ["stale.txt"]
    assert _keys(aws_mock) == ["a.txt"]


def test_mirror_missing_bucket_failure(aws_mock, tmp_path):
    config = Configuration(bucket="no-such-bucket", region=REGION, upload_dir=str(tmp_path / "up"))
    with pytest.raises(RemoteError):
        sync.mirror(config)


def test_run_sync_success(aws_mock, config):
    _write(config, "a.txt")

    assert sync.run_sync(config) == 0

    lines = _log_lines(config)
    assert all(LOG_LINE.match(line) for line in lines)
    assert "syncing" in lines[0] and "-> s3://drop-bucket/uploads" in lines[0]
    assert any("upload:" in line and "s3://drop-bucket/uploads/a.txt" in line for line in lines)
    assert lines[-1].endswith("sync complete (1 uploaded, 0 deleted)")


def test_run_sync_appends_to_existing_log_success(aws_mock, config):
    sync.run_sync(config)
    first = len(_log_lines(config))
    sync.run_sync(config)
    assert len(_log_lines(config)) == 2 * first


def test_run_sync_skips_without_credentials_success(config, monkeypatch):
    monkeypatch.setattr(sync, "sts_client_factory", lambda _config: FailingSts())

    def no_s3(_config):
        raise AssertionError("S3 must not be called when credentials are missing")

    monkeypatch.setattr(sync, "s3_client_factory", no_s3)
    _write(config, "a.txt")

    assert sync.run_sync(config) == 0

    lines = _log_lines(config)
    assert len(lines) == 1
    assert LOG_LINE.match(lines[0])
    assert lines[0].endswith("no-credentials: instance role not available; skipping sync")


def test_run_sync_mirror_failure(aws_mock, tmp_path):
    config = Configuration(
        bucket="no-such-bucket",
        region=REGION,
        upload_dir=str(tmp_path / "up"),
        sync_log=str(tmp_path / "sync.log"),
    )

    assert sync.run_sync(config) == 1

    lines = _log_lines(config)
    assert any("error:" in line for line in lines)
    assert lines[-1].endswith("sync failed")
