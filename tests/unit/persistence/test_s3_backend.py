"""Unit tests for S3ObjectStore using moto."""

from __future__ import annotations

import boto3
import pytest
from botocore.exceptions import EndpointConnectionError
from moto import mock_aws

from eventcrawl.core.exceptions import StorageError
from eventcrawl.persistence.s3_backend import S3ObjectStore

BUCKET = "test-eventcrawl-data"


@pytest.fixture
def s3_backend():
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield S3ObjectStore(bucket=BUCKET, region="us-east-1")


class TestWrite:
    def test_write_returns_path(self, s3_backend):
        result = s3_backend.write("input/movies/file.csv", b"a,b,c")
        assert result == "input/movies/file.csv"

    def test_write_stores_bytes(self, s3_backend):
        s3_backend.write("test/data.bin", b"\x00\x01\x02")
        assert s3_backend.read("test/data.bin") == b"\x00\x01\x02"


class TestRead:
    def test_read_returns_bytes(self, s3_backend):
        s3_backend.write("docs/hello.txt", b"Hello")
        assert s3_backend.read("docs/hello.txt") == b"Hello"

    def test_read_missing_key_raises(self, s3_backend):
        with pytest.raises(StorageError):
            s3_backend.read("does/not/exist.txt")


class TestReadSample:
    def test_sample_is_truncated(self, s3_backend):
        s3_backend.write("input/big.csv", b"hello world")
        assert s3_backend.read_sample("input/big.csv", 5) == b"hello"

    def test_sample_larger_than_object(self, s3_backend):
        s3_backend.write("input/small.csv", b"a,b\n1,2\n")
        assert s3_backend.read_sample("input/small.csv", 1024) == b"a,b\n1,2\n"

    def test_sample_missing_key_raises(self, s3_backend):
        with pytest.raises(StorageError):
            s3_backend.read_sample("input/gone.csv", 10)


class TestListFiles:
    def test_list_returns_matching_keys(self, s3_backend):
        s3_backend.write("prefix/b.csv", b"2")
        s3_backend.write("prefix/a.csv", b"1")
        s3_backend.write("other/c.csv", b"3")
        assert s3_backend.list_files("prefix/") == ["prefix/a.csv", "prefix/b.csv"]

    def test_folder_markers_are_skipped(self, s3_backend):
        s3_backend.write("prefix/sub/", b"")
        s3_backend.write("prefix/sub/a.csv", b"1")
        assert s3_backend.list_files("prefix/") == ["prefix/sub/a.csv"]

    def test_list_empty_prefix_returns_nothing(self, s3_backend):
        assert s3_backend.list_files("nonexistent/") == []

    def test_list_handles_pagination(self, s3_backend):
        for i in range(1050):
            s3_backend.write(f"bulk/{i:04d}.txt", b"x")
        assert len(s3_backend.list_files("bulk/")) == 1050


def test_missing_bucket_raises():
    with mock_aws():
        store = S3ObjectStore(bucket="no-such-bucket", region="us-east-1")
        with pytest.raises(StorageError):
            store.list_files("input/")


def test_unreachable_endpoint_is_storage_error(s3_backend, monkeypatch):
    def refuse(**kwargs):
        raise EndpointConnectionError(endpoint_url="http://127.0.0.1:1")

    monkeypatch.setattr(s3_backend._client, "get_object", refuse)
    with pytest.raises(StorageError):
        s3_backend.read_sample("input/a.csv", 10)
    with pytest.raises(StorageError):
        s3_backend.read("input/a.csv")
