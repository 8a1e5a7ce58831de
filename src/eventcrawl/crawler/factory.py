"""Wire a CrawlCoordinator from settings."""

from __future__ import annotations

from typing import Optional

from eventcrawl.access.boundary import AccessBoundary
from eventcrawl.access.scoped import ScopedCatalog, ScopedEventQueue, ScopedObjectStore
from eventcrawl.classifiers.registry import ClassifierRegistry
from eventcrawl.core.config import AppSettings
from eventcrawl.core.protocols import ICatalog, IEventQueue, IObjectStore
from eventcrawl.crawler.coordinator import CrawlCoordinator
from eventcrawl.models.catalog import CatalogNamespace
from eventcrawl.persistence import create_persistence


def build_coordinator(
    settings: AppSettings,
    *,
    store: Optional[IObjectStore] = None,
    queue: Optional[IEventQueue] = None,
    catalog: Optional[ICatalog] = None,
    enforce_boundary: bool = True,
) -> CrawlCoordinator:
    """Validate configuration, wire backends and ensure the catalog namespace.

    Raises ConfigurationError for invalid settings, before touching any backend.
    """
    settings.validate_startup()
    registry = ClassifierRegistry(
        settings.classifier_specs(), include_builtin=settings.classifier.include_builtin,
    )

    if store is None or queue is None or catalog is None:
        default_store, default_queue, default_catalog = create_persistence(settings)
        store = store or default_store
        queue = queue or default_queue
        catalog = catalog or default_catalog

    if enforce_boundary:
        boundary = AccessBoundary.from_settings(settings)
        store = ScopedObjectStore(store, boundary)
        queue = ScopedEventQueue(queue, boundary)
        catalog = ScopedCatalog(catalog, boundary)

    coordinator = CrawlCoordinator(
        store=store,
        queue=queue,
        catalog=catalog,
        registry=registry,
        targets=settings.crawl_targets(),
        namespace=CatalogNamespace(name=settings.namespace, location_uri=settings.location_uri),
        table_separator=settings.catalog.table_separator,
        location_root=f"s3://{settings.s3.bucket}/",
        policy=settings.schema_change_policy(),
        recrawl_behavior=settings.crawler.recrawl_behavior,
        sample_bytes=settings.s3.sample_bytes,
        max_workers=settings.crawler.max_workers,
        prefix_timeout_seconds=settings.crawler.prefix_timeout_seconds,
        merge_max_retries=settings.crawler.merge_max_retries,
        receive_max_messages=settings.sqs.max_messages,
        receive_wait_seconds=settings.sqs.wait_time_seconds,
    )
    coordinator.ensure_namespace()
    return coordinator
