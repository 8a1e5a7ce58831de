"""Catalog merge policy: additive updates, soft deprecation, re-entrant revival.

Each crawl result moves a table through a small state machine:

    (none)      --crawl-->          ACTIVE      (CREATED)
    ACTIVE      --new columns-->    ACTIVE      (UPDATED, columns appended)
    ACTIVE      --columns missing-> ACTIVE      (UPDATED, columns DEPRECATED)
    ACTIVE      --no objects-->     DEPRECATED  (DEPRECATED)
    DEPRECATED  --crawl-->          ACTIVE      (UPDATED, table revived)

Recorded column types are never changed. A deprecated column that reappears is
revived with the type it was first recorded with.
"""

from __future__ import annotations

from typing import Iterable, Optional

from eventcrawl.classifiers.inference import common_type
from eventcrawl.models.catalog import (
    Column,
    DeleteBehavior,
    MergeAction,
    MergeOutcome,
    SchemaChangePolicy,
    SchemaStatus,
    TableSchema,
    UpdateBehavior,
)
from eventcrawl.models.classifier import ColumnDef, InferredSchema


def combine_inferred(schemas: Iterable[InferredSchema]) -> Optional[InferredSchema]:
    """Union per-object schemas of one prefix, in the order given.

    Columns keep first-seen order; a column seen with several types gets their
    common type.
    """
    schemas = list(schemas)
    if not schemas:
        return None
    observed: dict[str, list[str]] = {}
    for schema in schemas:
        for col in schema.columns:
            observed.setdefault(col.name, []).append(col.type)
    classifications = {s.classification for s in schemas}
    return InferredSchema(
        columns=[ColumnDef(name=n, type=common_type(t)) for n, t in observed.items()],
        classifier=schemas[0].classifier,
        classification=classifications.pop() if len(classifications) == 1 else "mixed",
        row_count=sum(s.row_count for s in schemas),
    )


def merge_schema(
    existing: Optional[TableSchema],
    inferred: Optional[InferredSchema],
    *,
    name: str,
    namespace: str,
    location: str = "",
    policy: Optional[SchemaChangePolicy] = None,
) -> MergeOutcome:
    """Merge one crawl of a prefix into the current table state.

    ``inferred`` is None when the prefix no longer holds any objects. The
    returned outcome carries the table to write when ``outcome.changed``.
    """
    policy = policy or SchemaChangePolicy()

    if existing is None:
        if inferred is None:
            return MergeOutcome(action=MergeAction.UNCHANGED)
        table = TableSchema(
            name=name,
            namespace=namespace,
            location=location,
            classification=inferred.classification,
            columns=[Column(name=c.name, type=c.type) for c in inferred.columns],
            version=1,
        )
        return MergeOutcome(
            action=MergeAction.CREATED,
            table=table,
            added_columns=inferred.column_names,
        )

    if inferred is None:
        if existing.status == SchemaStatus.DEPRECATED:
            return MergeOutcome(action=MergeAction.UNCHANGED, table=existing)
        if policy.delete_behavior == DeleteBehavior.LOG:
            return MergeOutcome(action=MergeAction.DEPRECATED, table=existing, logged_only=True)
        table = existing.model_copy(deep=True)
        table.status = SchemaStatus.DEPRECATED
        table.version = existing.version + 1
        return MergeOutcome(action=MergeAction.DEPRECATED, table=table)

    apply_updates = policy.update_behavior == UpdateBehavior.UPDATE_IN_DATABASE
    apply_deletes = policy.delete_behavior == DeleteBehavior.DEPRECATE_IN_DATABASE

    table = existing.model_copy(deep=True)
    observed = {c.name: c.type for c in inferred.columns}
    added: list[str] = []
    deprecated: list[str] = []
    revived: list[str] = []
    conflicts: dict[str, tuple[str, str]] = {}
    applied = False

    for col in table.columns:
        if col.name in observed:
            if col.type != observed[col.name]:
                conflicts[col.name] = (col.type, observed[col.name])
            if col.status == SchemaStatus.DEPRECATED:
                revived.append(col.name)
                if apply_updates:
                    col.status = SchemaStatus.ACTIVE
                    applied = True
        elif col.status == SchemaStatus.ACTIVE:
            deprecated.append(col.name)
            if apply_deletes:
                col.status = SchemaStatus.DEPRECATED
                applied = True

    known = {c.name for c in existing.columns}
    for col in inferred.columns:
        if col.name not in known:
            added.append(col.name)
            if apply_updates:
                table.columns.append(Column(name=col.name, type=col.type))
                applied = True

    table_revived = existing.status == SchemaStatus.DEPRECATED
    if table_revived and apply_updates:
        table.status = SchemaStatus.ACTIVE
        applied = True

    has_changes = bool(added or deprecated or revived or table_revived)
    if not has_changes:
        return MergeOutcome(action=MergeAction.UNCHANGED, table=existing, type_conflicts=conflicts)

    if applied:
        table.version = existing.version + 1
    return MergeOutcome(
        action=MergeAction.UPDATED,
        table=table if applied else existing,
        added_columns=added,
        deprecated_columns=deprecated,
        revived_columns=revived,
        type_conflicts=conflicts,
        table_revived=table_revived,
        logged_only=not applied,
    )
