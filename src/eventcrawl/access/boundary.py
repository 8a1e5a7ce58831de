"""Least-privilege access boundary for the crawl identity.

The crawler may read its monitored prefixes, read and write its own catalog
namespace, and receive from its own queue. Nothing else. The boundary renders
as an IAM policy document and is enforced in-process by the scoped wrappers
in ``eventcrawl.access.scoped``.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from eventcrawl.core.config import AppSettings

READ_ACTIONS = ["s3:GetObject"]
LIST_ACTIONS = ["s3:ListBucket"]
CATALOG_ACTIONS = ["dynamodb:GetItem", "dynamodb:PutItem", "dynamodb:Query"]
QUEUE_ACTIONS = [
    "sqs:ReceiveMessage",
    "sqs:DeleteMessage",
    "sqs:ChangeMessageVisibility",
    "sqs:GetQueueAttributes",
]

_LOCAL_ACCOUNT = "000000000000"


def queue_arn_from_url(queue_url: str, region: str) -> str:
    """Derive an SQS ARN from a queue URL (AWS or LocalStack form)."""
    parts = [p for p in urlparse(queue_url).path.split("/") if p]
    if len(parts) < 2:
        name = parts[0] if parts else "eventcrawl-queue"
        return f"arn:aws:sqs:{region}:{_LOCAL_ACCOUNT}:{name}"
    account, name = parts[-2], parts[-1]
    return f"arn:aws:sqs:{region}:{account}:{name}"


def _account_of(arn: str) -> str:
    parts = arn.split(":")
    return parts[4] if len(parts) > 4 and parts[4] else "*"


class AccessBoundary(BaseModel):
    """The {read, write catalog, receive} triple for one crawler."""

    bucket: str
    read_prefixes: list[str] = Field(default_factory=list)
    namespace: str
    catalog_table_arn: str
    queue_arn: str

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "AccessBoundary":
        queue_arn = queue_arn_from_url(settings.sqs.queue_url, settings.sqs.region)
        table_name = f"{settings.catalog.table_name}{settings.catalog.table_suffix}"
        return cls(
            bucket=settings.s3.bucket,
            read_prefixes=[t.path for t in settings.crawl_targets()],
            namespace=settings.namespace,
            catalog_table_arn=(
                f"arn:aws:dynamodb:{settings.catalog.region}:{_account_of(queue_arn)}"
                f":table/{table_name}"
            ),
            queue_arn=queue_arn,
        )

    @property
    def bucket_arn(self) -> str:
        return f"arn:aws:s3:::{self.bucket}"

    def object_arn(self, key: str) -> str:
        return f"{self.bucket_arn}/{key}"

    @property
    def leading_key(self) -> str:
        return f"NAMESPACE#{self.namespace}"

    def statements(self) -> list[dict[str, Any]]:
        return [
            {
                "Sid": "ReadMonitoredPrefixes",
                "Effect": "Allow",
                "Action": READ_ACTIONS,
                "Resource": [self.object_arn(f"{p}*") for p in self.read_prefixes],
            },
            {
                "Sid": "ListMonitoredPrefixes",
                "Effect": "Allow",
                "Action": LIST_ACTIONS,
                "Resource": [self.bucket_arn],
                "Condition": {"StringLike": {"s3:prefix": [f"{p}*" for p in self.read_prefixes]}},
            },
            {
                "Sid": "WriteCatalogNamespace",
                "Effect": "Allow",
                "Action": CATALOG_ACTIONS,
                "Resource": [self.catalog_table_arn],
                "Condition": {"ForAllValues:StringLike": {"dynamodb:LeadingKeys": [self.leading_key]}},
            },
            {
                "Sid": "ReceiveChangeEvents",
                "Effect": "Allow",
                "Action": QUEUE_ACTIONS,
                "Resource": [self.queue_arn],
            },
        ]

    def policy_document(self) -> dict[str, Any]:
        """IAM identity policy for the crawl role."""
        return {"Version": "2012-10-17", "Statement": self.statements()}

    def allows(self, action: str, resource: str,
               context: Optional[dict[str, str]] = None) -> bool:
        """Evaluate an action against the Allow statements (implicit deny otherwise)."""
        context = context or {}
        for stmt in self.statements():
            if action not in stmt["Action"]:
                continue
            if not any(fnmatchcase(resource, pattern) for pattern in stmt["Resource"]):
                continue
            conditions = stmt.get("Condition", {})
            if all(
                key in context and any(fnmatchcase(context[key], p) for p in patterns)
                for operator in conditions.values()
                for key, patterns in operator.items()
            ):
                return True
        return False
