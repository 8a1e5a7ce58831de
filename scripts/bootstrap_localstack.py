"""Provision the crawler's storage, queue and catalog, then load the sample data.

Creates the catalog table, an encrypted bucket, the change
notification queue and its policy, wires ObjectCreated notifications on the
input prefix to the queue, uploads ``data/`` under ``input/`` and finally makes
the bucket TLS-only (skipped for plain-http endpoints such as LocalStack).

Usage:
    python scripts/bootstrap_localstack.py --endpoint-url http://localhost:4566 --bucket eventcrawl-data
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import boto3

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def create_catalog_table(ddb: Any, table_name: str = "eventcrawl-catalog", suffix: str = "") -> str:
    """Create the PK/SK catalog table. Skips if it already exists."""
    client = ddb.meta.client
    full_name = f"{table_name}{suffix}"
    if full_name in client.list_tables().get("TableNames", []):
        print(f"  Table {full_name} already exists, skipping")
        return full_name
    client.create_table(
        TableName=full_name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    print(f"  Created table {full_name}")
    return full_name


def create_bucket(s3: Any, bucket: str, region: str = "us-east-1") -> None:
    """Create the data bucket with SSE-S3 encryption."""
    existing = [b["Name"] for b in s3.list_buckets().get("Buckets", [])]
    if bucket not in existing:
        kwargs: dict[str, Any] = {"Bucket": bucket}
        if region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
        s3.create_bucket(**kwargs)
        print(f"  Created bucket {bucket}")
    s3.put_bucket_encryption(
        Bucket=bucket,
        ServerSideEncryptionConfiguration={
            "Rules": [{"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}],
        },
    )


def enforce_tls(s3: Any, bucket: str) -> None:
    """Deny every non-TLS request to the bucket.

    Plain-http endpoints are locked out afterwards, so this runs after the upload.
    """
    s3.put_bucket_policy(Bucket=bucket, Policy=json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Sid": "EnforceSSL",
            "Effect": "Deny",
            "Principal": "*",
            "Action": "s3:*",
            "Resource": [f"arn:aws:s3:::{bucket}", f"arn:aws:s3:::{bucket}/*"],
            "Condition": {"Bool": {"aws:SecureTransport": "false"}},
        }],
    }))
    print(f"  Bucket {bucket} is TLS-only")


def create_queue(sqs: Any, name: str, bucket: str) -> tuple[str, str]:
    """Create the notification queue and let the bucket send to it.

    Returns:
        Tuple of (queue_url, queue_arn).
    """
    queue_url = sqs.create_queue(QueueName=name)["QueueUrl"]
    queue_arn = sqs.get_queue_attributes(
        QueueUrl=queue_url, AttributeNames=["QueueArn"],
    )["Attributes"]["QueueArn"]
    sqs.set_queue_attributes(QueueUrl=queue_url, Attributes={"Policy": json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"Service": "s3.amazonaws.com"},
            "Action": "sqs:SendMessage",
            "Resource": queue_arn,
            "Condition": {"ArnLike": {"aws:SourceArn": f"arn:aws:s3:::{bucket}"}},
        }],
    })})
    print(f"  Queue {queue_url}")
    return queue_url, queue_arn


def wire_notifications(s3: Any, bucket: str, queue_arn: str, prefix: str = "input/") -> None:
    """Send one notification per object created under ``prefix`` to the queue."""
    s3.put_bucket_notification_configuration(
        Bucket=bucket,
        NotificationConfiguration={
            "QueueConfigurations": [{
                "Id": "eventcrawl-object-created",
                "QueueArn": queue_arn,
                "Events": ["s3:ObjectCreated:*"],
                "Filter": {"Key": {"FilterRules": [{"Name": "prefix", "Value": prefix}]}},
            }],
        },
    )
    print(f"  Wired s3://{bucket}/{prefix} -> {queue_arn}")


def upload_dataset(s3: Any, bucket: str, data_dir: Path = DATA_DIR, prefix: str = "input/") -> int:
    """Upload every file under ``data_dir`` beneath ``prefix``, keeping relative paths."""
    count = 0
    for path in sorted(p for p in data_dir.rglob("*") if p.is_file()):
        key = f"{prefix}{path.relative_to(data_dir).as_posix()}"
        s3.put_object(Bucket=bucket, Key=key, Body=path.read_bytes())
        count += 1
    print(f"  Uploaded {count} files to s3://{bucket}/{prefix}")
    return count


def main() -> None:
    parser = argparse.ArgumentParser(description="Provision EventCrawl resources")
    parser.add_argument("--endpoint-url", default=None, help="AWS endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--bucket", default="eventcrawl-data", help="Data bucket name")
    parser.add_argument("--queue-name", default="eventcrawl-events", help="Notification queue name")
    parser.add_argument("--table-name", default="eventcrawl-catalog", help="Catalog table name")
    parser.add_argument("--table-suffix", default="", help="Catalog table suffix (e.g. -dev)")
    parser.add_argument("--input-prefix", default="input/", help="Monitored prefix")
    parser.add_argument("--skip-upload", action="store_true", help="Do not load the sample data")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)
    s3 = boto3.client("s3", **kwargs)
    sqs = boto3.client("sqs", **kwargs)

    print("Creating catalog...")
    create_catalog_table(ddb, args.table_name, suffix=args.table_suffix)

    print("Creating bucket and queue...")
    create_bucket(s3, args.bucket, args.region)
    queue_url, queue_arn = create_queue(sqs, args.queue_name, args.bucket)
    wire_notifications(s3, args.bucket, queue_arn, args.input_prefix)

    if not args.skip_upload:
        print("Loading sample data...")
        upload_dataset(s3, args.bucket, prefix=args.input_prefix)

    if args.endpoint_url and args.endpoint_url.startswith("http://"):
        print("  Skipping TLS-only bucket policy for plain-http endpoint")
    else:
        enforce_tls(s3, args.bucket)

    print(f"Done! export EVENTCRAWL_SQS_QUEUE_URL={queue_url}")


if __name__ == "__main__":
    main()
