"""Tests for compare-and-update application of merges."""

from __future__ import annotations

from typing import Optional

import pytest

from eventcrawl.catalog.writer import apply_crawl
from eventcrawl.core.exceptions import CatalogConflictError
from eventcrawl.models.catalog import CatalogNamespace, Column, MergeAction, TableSchema
from eventcrawl.models.classifier import ColumnDef, InferredSchema
from tests.fakes import MemoryCatalog

NS = "ns"


def _inferred(*names: str) -> InferredSchema:
    return InferredSchema(columns=[ColumnDef(name=n, type="string") for n in names])


class RacingCatalog(MemoryCatalog):
    """Lets a competing writer land just before our first ``losses`` writes."""

    def __init__(self, losses: int) -> None:
        super().__init__()
        self.losses = losses
        self.attempts = 0

    def put_table(self, table: TableSchema, expected_version: Optional[int]) -> TableSchema:
        self.attempts += 1
        if self.attempts <= self.losses:
            current = self.get_table(table.namespace, table.name)
            rival = TableSchema(
                name=table.name, namespace=table.namespace,
                columns=(current.columns if current else []) + [Column(name=f"rival{self.attempts}", type="string")],
                version=(current.version if current else 0) + 1,
            )
            super().put_table(rival, current.version if current else None)
        return super().put_table(table, expected_version)


@pytest.fixture
def catalog():
    cat = MemoryCatalog()
    cat.create_namespace(CatalogNamespace(name=NS))
    return cat


def test_creates_table(catalog):
    outcome = apply_crawl(catalog, _inferred("a"), name="t", namespace=NS)
    assert outcome.action == MergeAction.CREATED
    assert catalog.get_table(NS, "t").version == 1


def test_unchanged_crawl_does_not_write(catalog):
    apply_crawl(catalog, _inferred("a"), name="t", namespace=NS)
    outcome = apply_crawl(catalog, _inferred("a"), name="t", namespace=NS)
    assert outcome.action == MergeAction.UNCHANGED
    assert catalog.get_table(NS, "t").version == 1


def test_conflict_is_retried_against_fresh_state():
    catalog = RacingCatalog(losses=1)
    catalog.create_namespace(CatalogNamespace(name=NS))
    outcome = apply_crawl(catalog, _inferred("a"), name="t", namespace=NS)
    table = catalog.get_table(NS, "t")
    assert outcome.action == MergeAction.UPDATED
    assert catalog.attempts == 2
    # the rival's column is kept (soft-deprecated), ours is added
    assert table.column("rival1") is not None
    assert table.column("a") is not None
    assert table.version == 2


def test_gives_up_after_max_retries():
    catalog = RacingCatalog(losses=10)
    catalog.create_namespace(CatalogNamespace(name=NS))
    with pytest.raises(CatalogConflictError):
        apply_crawl(catalog, _inferred("a"), name="t", namespace=NS, max_retries=3)
    assert catalog.attempts == 3
