"""Shared test doubles: re-exported memory backends."""

from __future__ import annotations

from eventcrawl.persistence.memory_backend import (
    MemoryCatalog,
    MemoryEventQueue,
    MemoryObjectStore,
)

__all__ = ["MemoryCatalog", "MemoryEventQueue", "MemoryObjectStore"]
