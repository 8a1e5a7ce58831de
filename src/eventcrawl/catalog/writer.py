"""Apply merges to a catalog with per-table compare-and-update."""

from __future__ import annotations

from typing import Optional

import structlog

from eventcrawl.catalog.merge import merge_schema
from eventcrawl.core.exceptions import CatalogConflictError
from eventcrawl.core.protocols import ICatalog
from eventcrawl.models.catalog import MergeOutcome, SchemaChangePolicy
from eventcrawl.models.classifier import InferredSchema

log = structlog.get_logger()


def apply_crawl(
    catalog: ICatalog,
    inferred: Optional[InferredSchema],
    *,
    name: str,
    namespace: str,
    location: str = "",
    policy: Optional[SchemaChangePolicy] = None,
    max_retries: int = 5,
) -> MergeOutcome:
    """Read, merge and conditionally write one table.

    A lost race re-reads the current state and merges again. Raises
    CatalogConflictError once ``max_retries`` attempts have all lost.
    """
    expected: Optional[int] = None
    for attempt in range(1, max_retries + 1):
        existing = catalog.get_table(namespace, name)
        outcome = merge_schema(
            existing, inferred,
            name=name, namespace=namespace, location=location, policy=policy,
        )
        if outcome.logged_only:
            log.info("schema_change_logged", namespace=namespace, table=name,
                     action=outcome.action, added=outcome.added_columns,
                     deprecated=outcome.deprecated_columns)
        if not outcome.changed:
            return outcome

        expected = existing.version if existing is not None else None
        try:
            outcome.table = catalog.put_table(outcome.table, expected_version=expected)
        except CatalogConflictError:
            log.info("catalog_merge_conflict", namespace=namespace, table=name,
                     attempt=attempt, expected_version=expected)
            continue
        return outcome

    raise CatalogConflictError(namespace, name, expected)
