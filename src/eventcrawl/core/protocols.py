"""Protocol interfaces for the external capabilities the crawler consumes.

Structural typing, no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from eventcrawl.models.catalog import CatalogNamespace, TableSchema
from eventcrawl.models.events import QueueMessage


# ---------------------------------------------------------------------------
# Object Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IObjectStore(Protocol):
    """S3-compatible object storage interface."""

    def read(self, path: str) -> bytes: ...

    def read_sample(self, path: str, max_bytes: int) -> bytes: ...

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str: ...

    def list_files(self, prefix: str) -> list[str]: ...


# ---------------------------------------------------------------------------
# Event Queue
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventQueue(Protocol):
    """At-least-once change notification queue."""

    def send(self, body: str) -> str: ...

    def receive(self, max_messages: int = 10, wait_time_seconds: int = 0) -> list[QueueMessage]: ...

    def acknowledge(self, receipt_handles: list[str]) -> None: ...


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@runtime_checkable
class ICatalog(Protocol):
    """Schema catalog with per-table compare-and-update."""

    def create_namespace(self, namespace: CatalogNamespace) -> CatalogNamespace: ...

    def get_namespace(self, name: str) -> Optional[CatalogNamespace]: ...

    def get_table(self, namespace: str, name: str) -> Optional[TableSchema]: ...

    def put_table(self, table: TableSchema, expected_version: Optional[int]) -> TableSchema: ...

    def list_tables(self, namespace: str) -> list[TableSchema]: ...
