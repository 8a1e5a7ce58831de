"""S3 object storage backend implementing IObjectStore."""

from __future__ import annotations

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from eventcrawl.core.exceptions import StorageError


class S3ObjectStore:
    """Production IObjectStore backed by S3."""

    def __init__(self, bucket: str, region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._bucket = bucket
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("s3", **kwargs)

    @property
    def bucket(self) -> str:
        return self._bucket

    def read(self, path: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=path)
            return resp["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 read failed for {path!r}: {exc}") from exc

    def read_sample(self, path: str, max_bytes: int) -> bytes:
        """Read at most the first ``max_bytes`` bytes with a ranged GET."""
        try:
            resp = self._client.get_object(
                Bucket=self._bucket, Key=path, Range=f"bytes=0-{max_bytes - 1}",
            )
            return resp["Body"].read()[:max_bytes]
        except (BotoCoreError, ClientError) as exc:
            # Zero-length objects reject any range
            if isinstance(exc, ClientError) and exc.response.get("Error", {}).get("Code") == "InvalidRange":
                return b""
            raise StorageError(f"S3 sample read failed for {path!r}: {exc}") from exc

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        try:
            self._client.put_object(
                Bucket=self._bucket, Key=path, Body=data, ContentType=content_type,
            )
            return path
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 write failed for {path!r}: {exc}") from exc

    def list_files(self, prefix: str) -> list[str]:
        try:
            keys: list[str] = []
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    if not obj["Key"].endswith("/"):
                        keys.append(obj["Key"])
            return sorted(keys)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 list failed for prefix={prefix!r}: {exc}") from exc
