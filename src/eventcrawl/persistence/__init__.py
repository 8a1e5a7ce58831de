"""Pluggable backends behind Protocol interfaces."""

from __future__ import annotations

from eventcrawl.core.config import AppSettings
from eventcrawl.core.protocols import ICatalog, IEventQueue, IObjectStore
from eventcrawl.persistence.dynamodb_backend import DynamoDBCatalog
from eventcrawl.persistence.memory_backend import MemoryCatalog, MemoryEventQueue, MemoryObjectStore
from eventcrawl.persistence.s3_backend import S3ObjectStore
from eventcrawl.persistence.sqs_backend import SQSEventQueue


def create_persistence(
    settings: AppSettings | None = None,
) -> tuple[IObjectStore, IEventQueue, ICatalog]:
    """Create wired-up backends from application settings.

    Returns:
        Tuple of (object_store, event_queue, catalog).
    """
    if settings is None:
        settings = AppSettings()

    if settings.backend == "memory":
        queue = MemoryEventQueue()
        store = MemoryObjectStore(
            bucket=settings.s3.bucket, notifier=queue, notify_prefix=settings.s3.input_prefix,
        )
        return store, queue, MemoryCatalog()

    object_store = S3ObjectStore(
        bucket=settings.s3.bucket,
        region=settings.s3.region,
        endpoint_url=settings.s3.endpoint_url,
    )

    event_queue = SQSEventQueue(
        queue_url=settings.sqs.queue_url,
        region=settings.sqs.region,
        endpoint_url=settings.sqs.endpoint_url,
        visibility_timeout=settings.sqs.visibility_timeout,
    )

    catalog = DynamoDBCatalog(
        table_name=settings.catalog.table_name,
        table_suffix=settings.catalog.table_suffix,
        region=settings.catalog.region,
        endpoint_url=settings.catalog.endpoint_url,
    )

    return object_store, event_queue, catalog
