"""Dict-backed backends for tests and local runs."""

from __future__ import annotations

import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from hashlib import md5
from typing import Optional

from eventcrawl.core.exceptions import (
    CatalogConflictError,
    NamespaceNotFoundError,
    StorageError,
)
from eventcrawl.core.protocols import IEventQueue
from eventcrawl.models.catalog import CatalogNamespace, TableSchema
from eventcrawl.models.events import QueueMessage, build_s3_notification, parse_notification


class MemoryObjectStore:
    """Dict-backed IObjectStore.

    With a ``notifier`` queue attached, every write under ``notify_prefix``
    enqueues one S3-format ObjectCreated notification.
    """

    def __init__(self, bucket: str = "memory", notifier: Optional[IEventQueue] = None,
                 notify_prefix: str = "") -> None:
        self._bucket = bucket
        self._files: dict[str, bytes] = {}
        self._lock = threading.Lock()
        self._notifier = notifier
        self._notify_prefix = notify_prefix

    def read(self, path: str) -> bytes:
        with self._lock:
            try:
                return self._files[path]
            except KeyError:
                raise StorageError(f"No such object {path!r}") from None

    def read_sample(self, path: str, max_bytes: int) -> bytes:
        return self.read(path)[:max_bytes]

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        with self._lock:
            self._files[path] = data
        if self._notifier is not None and path.startswith(self._notify_prefix):
            self._notifier.send(build_s3_notification(
                self._bucket, path, size=len(data), etag=md5(data).hexdigest(),
                event_time=datetime.now(timezone.utc),
            ))
        return path

    def delete(self, path: str) -> None:
        with self._lock:
            self._files.pop(path, None)

    def list_files(self, prefix: str) -> list[str]:
        with self._lock:
            return sorted(k for k in self._files if k.startswith(prefix))


class MemoryEventQueue:
    """At-least-once IEventQueue.

    Received messages stay in flight until acknowledged; ``expire_inflight``
    returns unacknowledged ones to the queue, as a visibility timeout would.
    """

    def __init__(self) -> None:
        self._visible: deque[tuple[str, str]] = deque()
        self._inflight: dict[str, tuple[str, str]] = {}
        self._cond = threading.Condition()

    def send(self, body: str) -> str:
        message_id = str(uuid.uuid4())
        with self._cond:
            self._visible.append((message_id, body))
            self._cond.notify_all()
        return message_id

    def receive(self, max_messages: int = 10, wait_time_seconds: int = 0) -> list[QueueMessage]:
        with self._cond:
            if not self._visible and wait_time_seconds > 0:
                self._cond.wait(timeout=wait_time_seconds)
            messages: list[QueueMessage] = []
            while self._visible and len(messages) < max_messages:
                message_id, body = self._visible.popleft()
                handle = str(uuid.uuid4())
                self._inflight[handle] = (message_id, body)
                messages.append(QueueMessage(
                    message_id=message_id,
                    receipt_handle=handle,
                    events=parse_notification(body),
                ))
            return messages

    def acknowledge(self, receipt_handles: list[str]) -> None:
        with self._cond:
            for handle in receipt_handles:
                self._inflight.pop(handle, None)

    def expire_inflight(self) -> int:
        """Make every unacknowledged message visible again."""
        with self._cond:
            count = len(self._inflight)
            self._visible.extend(self._inflight.values())
            self._inflight.clear()
            self._cond.notify_all()
            return count

    @property
    def depth(self) -> int:
        with self._cond:
            return len(self._visible)

    @property
    def inflight(self) -> int:
        with self._cond:
            return len(self._inflight)


class MemoryCatalog:
    """Dict-backed ICatalog with version-checked writes under a lock."""

    def __init__(self) -> None:
        self._namespaces: dict[str, CatalogNamespace] = {}
        self._tables: dict[tuple[str, str], TableSchema] = {}
        self._lock = threading.Lock()

    def create_namespace(self, namespace: CatalogNamespace) -> CatalogNamespace:
        with self._lock:
            return self._namespaces.setdefault(namespace.name, namespace)

    def get_namespace(self, name: str) -> Optional[CatalogNamespace]:
        with self._lock:
            return self._namespaces.get(name)

    def get_table(self, namespace: str, name: str) -> Optional[TableSchema]:
        with self._lock:
            table = self._tables.get((namespace, name))
            return table.model_copy(deep=True) if table is not None else None

    def put_table(self, table: TableSchema, expected_version: Optional[int]) -> TableSchema:
        with self._lock:
            if table.namespace not in self._namespaces:
                raise NamespaceNotFoundError(f"Namespace {table.namespace!r} does not exist")
            current = self._tables.get((table.namespace, table.name))
            current_version = current.version if current is not None else None
            if current_version != expected_version:
                raise CatalogConflictError(table.namespace, table.name, expected_version)
            self._tables[(table.namespace, table.name)] = table.model_copy(deep=True)
            return table

    def list_tables(self, namespace: str) -> list[TableSchema]:
        with self._lock:
            return [
                t.model_copy(deep=True)
                for (ns, _), t in sorted(self._tables.items())
                if ns == namespace
            ]
