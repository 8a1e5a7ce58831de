"""Crawl coordinator: drains change events and runs incremental crawls.

Events are collapsed to table prefixes (the first folder below a crawl target,
or the target itself for objects directly under it). Each affected prefix is
re-listed, classified and merged into the catalog independently of the
others. Queue messages are acknowledged only once every prefix they touch
has been merged, so a failure anywhere before that point means redelivery
and a fresh, idempotent retry.
"""

from __future__ import annotations

import math
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Iterable, Optional, Sequence

import structlog

from eventcrawl.catalog.merge import combine_inferred
from eventcrawl.catalog.writer import apply_crawl
from eventcrawl.classifiers.registry import ClassifierRegistry
from eventcrawl.core.exceptions import ClassificationError, EventCrawlError, QueueError
from eventcrawl.core.protocols import ICatalog, IEventQueue, IObjectStore
from eventcrawl.models.catalog import (
    CatalogNamespace,
    MergeAction,
    SchemaChangePolicy,
    SchemaStatus,
)
from eventcrawl.models.classifier import InferredSchema
from eventcrawl.models.crawl import (
    CrawlResult,
    CrawlTarget,
    ObjectFailure,
    PrefixOutcome,
    RecrawlBehavior,
)
from eventcrawl.models.events import ChangeEvent

log = structlog.get_logger()

_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def _drop_partial_line(sample: bytes) -> bytes:
    cut = sample.rfind(b"\n")
    return sample[:cut + 1] if cut >= 0 else sample


class CrawlCoordinator:
    """Consumes change events and keeps the catalog in step with storage."""

    def __init__(
        self,
        *,
        store: IObjectStore,
        queue: IEventQueue,
        catalog: ICatalog,
        registry: ClassifierRegistry,
        targets: Sequence[CrawlTarget],
        namespace: CatalogNamespace,
        table_separator: str = "_",
        location_root: str = "",
        policy: Optional[SchemaChangePolicy] = None,
        recrawl_behavior: RecrawlBehavior = RecrawlBehavior.CRAWL_EVENT_MODE,
        sample_bytes: int = 1024 * 1024,
        max_workers: int = 4,
        prefix_timeout_seconds: float = 300.0,
        merge_max_retries: int = 5,
        receive_max_messages: int = 10,
        receive_wait_seconds: int = 0,
    ) -> None:
        self._store = store
        self._queue = queue
        self._catalog = catalog
        self._registry = registry
        self._targets = list(targets)
        self._namespace = namespace
        self._separator = table_separator
        self._location_root = location_root
        self._policy = policy or SchemaChangePolicy()
        self._recrawl_behavior = recrawl_behavior
        self._sample_bytes = sample_bytes
        self._max_workers = max_workers
        self._prefix_timeout = prefix_timeout_seconds
        self._merge_max_retries = merge_max_retries
        self._receive_max_messages = receive_max_messages
        self._receive_wait_seconds = receive_wait_seconds
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="crawl")

    @property
    def namespace(self) -> CatalogNamespace:
        return self._namespace

    @property
    def targets(self) -> list[CrawlTarget]:
        return list(self._targets)

    @property
    def catalog(self) -> ICatalog:
        return self._catalog

    def ensure_namespace(self) -> CatalogNamespace:
        self._namespace = self._catalog.create_namespace(self._namespace)
        return self._namespace

    # ---- routing ----

    def target_for(self, key: str) -> Optional[CrawlTarget]:
        for target in self._targets:
            if target.contains(key):
                return target
        return None

    @staticmethod
    def table_prefix_for(target: CrawlTarget, key: str) -> str:
        head, sep, _ = key[len(target.path):].partition("/")
        return f"{target.path}{head}/" if sep else target.path

    def table_name_for(self, target: CrawlTarget, prefix: str) -> str:
        relative = prefix[len(target.path):].strip("/")
        base = relative or target.path.rstrip("/").rsplit("/", 1)[-1]
        base = _NON_ALNUM.sub("_", base.lower()).strip("_") or "root"
        if not target.table_prefix:
            return base
        return f"{target.table_prefix}{self._separator}{base}"

    def _location(self, prefix: str) -> str:
        return f"{self._location_root}{prefix}"

    def _list_table_objects(self, target: CrawlTarget, prefix: str) -> list[str]:
        keys = [k for k in self._store.list_files(prefix) if not k.endswith("/")]
        if prefix == target.path:
            keys = [k for k in keys if "/" not in k[len(prefix):]]
        return sorted(keys)

    def _table_prefixes(self, target: CrawlTarget) -> list[str]:
        keys = self._store.list_files(target.path)
        return sorted({self.table_prefix_for(target, k) for k in keys if not k.endswith("/")})

    # ---- crawling ----

    def _classify_object(self, key: str, outcome: PrefixOutcome) -> Optional[InferredSchema]:
        sample = self._store.read_sample(key, self._sample_bytes)
        if len(sample) >= self._sample_bytes:
            sample = _drop_partial_line(sample)
        try:
            schema = self._registry.classify(sample, key=key)
        except ClassificationError as exc:
            outcome.failures.append(ObjectFailure(key=key, reason=str(exc)))
            log.warning("object_classification_failed", key=key, error=str(exc))
            return None
        if schema is None:
            outcome.failures.append(ObjectFailure(key=key, reason="no classifier matched"))
            log.warning("object_no_classifier_match", key=key)
        return schema

    def crawl_prefix(self, target: CrawlTarget, prefix: str) -> PrefixOutcome:
        """List, classify and merge one table prefix."""
        table_name = self.table_name_for(target, prefix)
        outcome = PrefixOutcome(prefix=prefix, table_name=table_name)
        try:
            keys = self._list_table_objects(target, prefix)
            outcome.objects_scanned = len(keys)
            schemas = [s for s in (self._classify_object(k, outcome) for k in keys) if s is not None]
            outcome.objects_classified = len(schemas)

            if keys and not schemas:
                outcome.action = MergeAction.UNCHANGED
                log.warning("prefix_unclassified", prefix=prefix, table=table_name,
                            objects=len(keys))
                return outcome

            merged = apply_crawl(
                self._catalog,
                combine_inferred(schemas),
                name=table_name,
                namespace=self._namespace.name,
                location=self._location(prefix),
                policy=self._policy,
                max_retries=self._merge_max_retries,
            )
        except EventCrawlError as exc:
            outcome.error = str(exc)
            log.warning("prefix_crawl_failed", prefix=prefix, table=table_name, error=str(exc))
            return outcome

        outcome.action = merged.action
        outcome.added_columns = merged.added_columns
        outcome.deprecated_columns = merged.deprecated_columns
        outcome.revived_columns = merged.revived_columns
        if merged.type_conflicts:
            log.warning("column_type_conflict", table=table_name,
                        conflicts={k: list(v) for k, v in merged.type_conflicts.items()})
        log.info("prefix_crawled", prefix=prefix, table=table_name, action=merged.action,
                 objects=outcome.objects_scanned, classified=outcome.objects_classified,
                 added=merged.added_columns, deprecated=merged.deprecated_columns,
                 revived=merged.revived_columns, logged_only=merged.logged_only)
        return outcome

    def _crawl_many(self, work: dict[str, CrawlTarget]) -> list[PrefixOutcome]:
        """Crawl prefixes on the shared pool under one deadline for the whole batch.

        The deadline allows ``prefix_timeout_seconds`` per round of ``max_workers``
        prefixes. Crawls still running at the deadline are abandoned: they keep
        their pool thread until they finish, so abandoned work never grows the
        pool past ``max_workers`` threads.
        """
        if not work:
            return []
        rounds = math.ceil(len(work) / self._max_workers)
        deadline = self._prefix_timeout * rounds
        futures: dict[str, Future] = {
            prefix: self._pool.submit(self.crawl_prefix, target, prefix)
            for prefix, target in work.items()
        }
        wait(futures.values(), timeout=deadline)

        outcomes: list[PrefixOutcome] = []
        for prefix, future in futures.items():
            target = work[prefix]
            if not future.done():
                # Abandoned; a later crawl of the same prefix is a safe retry
                future.cancel()
                log.warning("prefix_crawl_timeout", prefix=prefix, timeout_seconds=deadline)
                outcomes.append(PrefixOutcome(
                    prefix=prefix,
                    table_name=self.table_name_for(target, prefix),
                    error=f"crawl timed out after {deadline}s",
                ))
                continue
            try:
                outcomes.append(future.result())
            except Exception as exc:
                log.exception("prefix_crawl_crashed", prefix=prefix)
                outcomes.append(PrefixOutcome(
                    prefix=prefix,
                    table_name=self.table_name_for(target, prefix),
                    error=f"{type(exc).__name__}: {exc}",
                ))
        return outcomes

    def close(self) -> None:
        """Release the crawl pool without waiting for abandoned crawls."""
        self._pool.shutdown(wait=False, cancel_futures=True)

    def on_events(self, events: Iterable[ChangeEvent]) -> CrawlResult:
        """Crawl every prefix touched by a batch of events, once each."""
        work: dict[str, CrawlTarget] = {}
        hit_targets: dict[str, CrawlTarget] = {}
        ignored = 0
        for event in events:
            target = self.target_for(event.key)
            if target is None or event.key.endswith("/"):
                ignored += 1
                continue
            if self._recrawl_behavior == RecrawlBehavior.CRAWL_EVERYTHING:
                hit_targets.setdefault(target.path, target)
            else:
                work.setdefault(self.table_prefix_for(target, event.key), target)

        if hit_targets:
            result = self.crawl_all(list(hit_targets.values()))
        else:
            result = CrawlResult(outcomes=self._crawl_many(work))
        result.ignored_events = ignored
        return result

    def crawl_all(self, targets: Optional[Sequence[CrawlTarget]] = None) -> CrawlResult:
        """Full scan: crawl every table prefix and deprecate tables whose objects are gone."""
        work: dict[str, CrawlTarget] = {}
        errors: list[PrefixOutcome] = []
        for target in targets or self._targets:
            try:
                prefixes = self._table_prefixes(target)
                stale = self._stale_prefixes(target, prefixes)
            except EventCrawlError as exc:
                log.warning("target_listing_failed", target=target.path, error=str(exc))
                errors.append(PrefixOutcome(prefix=target.path, table_name="", error=str(exc)))
                continue
            for prefix in [*prefixes, *stale]:
                work.setdefault(prefix, target)
        return CrawlResult(outcomes=errors + self._crawl_many(work))

    def _stale_prefixes(self, target: CrawlTarget, live: list[str]) -> list[str]:
        root = self._location(target.path)
        stale: list[str] = []
        for table in self._catalog.list_tables(self._namespace.name):
            if table.status != SchemaStatus.ACTIVE or not table.location.startswith(root):
                continue
            prefix = table.location[len(self._location_root):]
            if prefix not in live:
                stale.append(prefix)
        return stale

    # ---- queue ----

    def _event_settled(self, event: ChangeEvent, result: CrawlResult) -> bool:
        target = self.target_for(event.key)
        if target is None or event.key.endswith("/"):
            return True
        if self._recrawl_behavior == RecrawlBehavior.CRAWL_EVERYTHING:
            return all(o.succeeded for o in result.outcomes if o.prefix.startswith(target.path))
        outcome = result.outcome_for(self.table_prefix_for(target, event.key))
        return outcome is not None and outcome.succeeded

    def drain(self, max_messages: Optional[int] = None) -> CrawlResult:
        """Receive one batch, crawl it, acknowledge what was fully merged."""
        messages = self._queue.receive(
            max_messages or self._receive_max_messages, self._receive_wait_seconds,
        )
        if not messages:
            return CrawlResult()

        events = [event for message in messages for event in message.events]
        result = self.on_events(events)

        settled = [
            m.receipt_handle for m in messages
            if all(self._event_settled(e, result) for e in m.events)
        ]
        if settled:
            self._queue.acknowledge(settled)
        result.acknowledged = len(settled)
        log.info("batch_drained", messages=len(messages), events=len(events),
                 acknowledged=len(settled), ignored=result.ignored_events,
                 failed_prefixes=result.failed_prefixes,
                 failed_objects=len(result.failures))
        return result

    def run(self, stop: threading.Event, error_backoff_seconds: float = 5.0,
            idle_wait_seconds: float = 1.0) -> None:
        """Drain until ``stop`` is set. Backend errors back off and retry."""
        log.info("coordinator_started", namespace=self._namespace.name,
                 targets=[t.path for t in self._targets])
        while not stop.is_set():
            try:
                result = self.drain()
                if not result.outcomes and not result.acknowledged and not self._receive_wait_seconds:
                    stop.wait(idle_wait_seconds)
            except QueueError as exc:
                log.warning("queue_unavailable", error=str(exc))
                stop.wait(error_backoff_seconds)
            except EventCrawlError as exc:
                log.warning("drain_failed", error=str(exc))
                stop.wait(error_backoff_seconds)
        self.close()
        log.info("coordinator_stopped", namespace=self._namespace.name)
