"""Wrappers that hold backends to the access boundary."""

from __future__ import annotations

from typing import Optional

from eventcrawl.access.boundary import AccessBoundary
from eventcrawl.core.exceptions import AccessDeniedError
from eventcrawl.core.protocols import ICatalog, IEventQueue, IObjectStore
from eventcrawl.models.catalog import CatalogNamespace, TableSchema
from eventcrawl.models.events import QueueMessage


def _require(boundary: AccessBoundary, action: str, resource: str,
             context: Optional[dict[str, str]] = None) -> None:
    if not boundary.allows(action, resource, context):
        raise AccessDeniedError(action, resource)


class ScopedObjectStore:
    """Read-only view of the monitored prefixes."""

    def __init__(self, inner: IObjectStore, boundary: AccessBoundary) -> None:
        self._inner = inner
        self._boundary = boundary

    def read(self, path: str) -> bytes:
        _require(self._boundary, "s3:GetObject", self._boundary.object_arn(path))
        return self._inner.read(path)

    def read_sample(self, path: str, max_bytes: int) -> bytes:
        _require(self._boundary, "s3:GetObject", self._boundary.object_arn(path))
        return self._inner.read_sample(path, max_bytes)

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        _require(self._boundary, "s3:PutObject", self._boundary.object_arn(path))
        return self._inner.write(path, data, content_type)

    def list_files(self, prefix: str) -> list[str]:
        _require(self._boundary, "s3:ListBucket", self._boundary.bucket_arn, {"s3:prefix": prefix})
        return self._inner.list_files(prefix)


class ScopedEventQueue:
    """Receive-and-acknowledge view of the crawler's own queue."""

    def __init__(self, inner: IEventQueue, boundary: AccessBoundary) -> None:
        self._inner = inner
        self._boundary = boundary

    def send(self, body: str) -> str:
        _require(self._boundary, "sqs:SendMessage", self._boundary.queue_arn)
        return self._inner.send(body)

    def receive(self, max_messages: int = 10, wait_time_seconds: int = 0) -> list[QueueMessage]:
        _require(self._boundary, "sqs:ReceiveMessage", self._boundary.queue_arn)
        return self._inner.receive(max_messages, wait_time_seconds)

    def acknowledge(self, receipt_handles: list[str]) -> None:
        _require(self._boundary, "sqs:DeleteMessage", self._boundary.queue_arn)
        self._inner.acknowledge(receipt_handles)


class ScopedCatalog:
    """Catalog view limited to the crawler's namespace."""

    def __init__(self, inner: ICatalog, boundary: AccessBoundary) -> None:
        self._inner = inner
        self._boundary = boundary

    def _check(self, action: str, namespace: str) -> None:
        _require(self._boundary, action, self._boundary.catalog_table_arn,
                 {"dynamodb:LeadingKeys": f"NAMESPACE#{namespace}"})

    def create_namespace(self, namespace: CatalogNamespace) -> CatalogNamespace:
        self._check("dynamodb:PutItem", namespace.name)
        return self._inner.create_namespace(namespace)

    def get_namespace(self, name: str) -> Optional[CatalogNamespace]:
        self._check("dynamodb:GetItem", name)
        return self._inner.get_namespace(name)

    def get_table(self, namespace: str, name: str) -> Optional[TableSchema]:
        self._check("dynamodb:GetItem", namespace)
        return self._inner.get_table(namespace, name)

    def put_table(self, table: TableSchema, expected_version: Optional[int]) -> TableSchema:
        self._check("dynamodb:PutItem", table.namespace)
        return self._inner.put_table(table, expected_version)

    def list_tables(self, namespace: str) -> list[TableSchema]:
        self._check("dynamodb:Query", namespace)
        return self._inner.list_tables(namespace)
