"""Integration test fixtures: LocalStack S3, SQS and DynamoDB."""

from __future__ import annotations

import os
import sys
import uuid

import boto3
import pytest
from botocore.exceptions import BotoCoreError, ClientError

# Default LocalStack endpoint
LOCALSTACK_URL = os.environ.get("LOCALSTACK_URL", "http://localhost:4566")
REGION = "us-east-1"
TABLE_SUFFIX = "-inttest"


def _localstack_available() -> bool:
    """Check if LocalStack is reachable."""
    try:
        client = boto3.client("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL)
        client.list_tables()
        return True
    except (BotoCoreError, ClientError):
        return False


skip_no_localstack = pytest.mark.skipif(
    not _localstack_available(),
    reason="LocalStack not available",
)


@pytest.fixture(scope="session")
def localstack_clients():
    """(dynamodb resource, s3 client, sqs client) pointing at LocalStack."""
    kwargs = {"region_name": REGION, "endpoint_url": LOCALSTACK_URL}
    return boto3.resource("dynamodb", **kwargs), boto3.client("s3", **kwargs), boto3.client("sqs", **kwargs)


@pytest.fixture
def provisioned(localstack_clients):
    """Fresh bucket and queue wired together, plus the catalog table."""
    sys.path.insert(0, str(os.path.join(os.path.dirname(__file__), "..", "..", "scripts")))
    from bootstrap_localstack import create_bucket, create_catalog_table, create_queue, wire_notifications

    ddb, s3, sqs = localstack_clients
    run = uuid.uuid4().hex[:8]
    bucket = f"eventcrawl-inttest-{run}"
    create_catalog_table(ddb, suffix=TABLE_SUFFIX)
    create_bucket(s3, bucket, REGION)
    queue_url, queue_arn = create_queue(sqs, f"eventcrawl-inttest-{run}", bucket)
    wire_notifications(s3, bucket, queue_arn, "input/")
    return {"bucket": bucket, "queue_url": queue_url, "namespace": f"inttest{run}"}
