"""EventCrawl exception hierarchy."""

from __future__ import annotations


class EventCrawlError(Exception):
    """Base exception for all EventCrawl errors."""


class ConfigurationError(EventCrawlError):
    """Invalid or missing configuration. Fatal at startup."""


class StorageError(EventCrawlError):
    """Object store operation failed."""


class QueueError(EventCrawlError):
    """Event queue operation failed."""


class ClassificationError(EventCrawlError):
    """An object sample could not be classified (undecodable or malformed)."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"Classification of {key!r} failed: {message}")


class CatalogError(EventCrawlError):
    """Catalog read or write failed."""


class CatalogConflictError(CatalogError):
    """A conditional table write lost against a concurrent update."""

    def __init__(self, namespace: str, table: str, expected_version: int | None) -> None:
        self.namespace = namespace
        self.table = table
        self.expected_version = expected_version
        super().__init__(
            f"Concurrent update on {namespace}.{table} (expected version {expected_version})"
        )


class NamespaceNotFoundError(CatalogError):
    """Catalog namespace does not exist."""


class AccessDeniedError(EventCrawlError):
    """Operation falls outside the crawler's access boundary."""

    def __init__(self, action: str, resource: str) -> None:
        self.action = action
        self.resource = resource
        super().__init__(f"Access denied: {action} on {resource}")
