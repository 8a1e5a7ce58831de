"""Crawl targets and crawl reporting models."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from eventcrawl.models.catalog import MergeAction


class RecrawlBehavior(StrEnum):
    CRAWL_EVENT_MODE = "CRAWL_EVENT_MODE"
    CRAWL_EVERYTHING = "CRAWL_EVERYTHING"


class CrawlTarget(BaseModel):
    """One monitored storage location and the queue that reports its changes."""

    path: str
    queue_url: str = ""
    table_prefix: str = ""

    def contains(self, key: str) -> bool:
        return key.startswith(self.path)


class ObjectFailure(BaseModel):
    """An object skipped during a crawl."""

    key: str
    reason: str


class PrefixOutcome(BaseModel):
    """Result of crawling one table prefix."""

    prefix: str
    table_name: str
    action: Optional[MergeAction] = None
    objects_scanned: int = 0
    objects_classified: int = 0
    failures: list[ObjectFailure] = Field(default_factory=list)
    added_columns: list[str] = Field(default_factory=list)
    deprecated_columns: list[str] = Field(default_factory=list)
    revived_columns: list[str] = Field(default_factory=list)
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return not self.error


class CrawlResult(BaseModel):
    """Result of one batch of crawls."""

    outcomes: list[PrefixOutcome] = Field(default_factory=list)
    ignored_events: int = 0
    acknowledged: int = 0

    @property
    def failures(self) -> list[ObjectFailure]:
        return [f for o in self.outcomes for f in o.failures]

    @property
    def failed_prefixes(self) -> list[str]:
        return [o.prefix for o in self.outcomes if not o.succeeded]

    def outcome_for(self, prefix: str) -> Optional[PrefixOutcome]:
        for outcome in self.outcomes:
            if outcome.prefix == prefix:
                return outcome
        return None
