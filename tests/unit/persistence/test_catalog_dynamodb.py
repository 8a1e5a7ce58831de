"""Unit tests for DynamoDBCatalog using moto."""

from __future__ import annotations

import boto3
import pytest
from botocore.exceptions import EndpointConnectionError
from moto import mock_aws

from eventcrawl.core.exceptions import CatalogConflictError, CatalogError, NamespaceNotFoundError
from eventcrawl.models.catalog import CatalogNamespace, Column, SchemaStatus, TableSchema
from eventcrawl.persistence.dynamodb_backend import DynamoDBCatalog

TABLE_SUFFIX = "-test"
REGION = "us-east-1"


def _create_table(client, name: str):
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def catalog():
    with mock_aws():
        client = boto3.client("dynamodb", region_name=REGION)
        _create_table(client, f"eventcrawl-catalog{TABLE_SUFFIX}")
        cat = DynamoDBCatalog(table_suffix=TABLE_SUFFIX, region=REGION)
        cat.create_namespace(CatalogNamespace(name="ns", location_uri="s3://b/output/"))
        yield cat


def _table(version: int, *cols: str, status: SchemaStatus = SchemaStatus.ACTIVE) -> TableSchema:
    return TableSchema(
        name="ns_movies", namespace="ns", location="s3://b/input/movies/",
        classification="csv", status=status, version=version,
        columns=[Column(name=c, type="bigint") for c in cols],
    )


class TestNamespaces:
    def test_round_trip(self, catalog):
        ns = catalog.get_namespace("ns")
        assert ns.location_uri == "s3://b/output/"

    def test_create_is_idempotent(self, catalog):
        again = catalog.create_namespace(CatalogNamespace(name="ns", location_uri="other"))
        assert again.location_uri == "s3://b/output/"

    def test_missing_namespace(self, catalog):
        assert catalog.get_namespace("nope") is None


class TestTables:
    def test_create_and_read(self, catalog):
        catalog.put_table(_table(1, "id"), expected_version=None)
        table = catalog.get_table("ns", "ns_movies")
        assert table.version == 1
        assert isinstance(table.version, int)
        assert table.columns == [Column(name="id", type="bigint")]

    def test_deprecated_status_round_trips(self, catalog):
        catalog.put_table(_table(1, "id", status=SchemaStatus.DEPRECATED), expected_version=None)
        assert catalog.get_table("ns", "ns_movies").status == SchemaStatus.DEPRECATED

    def test_missing_table(self, catalog):
        assert catalog.get_table("ns", "nope") is None

    def test_update_with_matching_version(self, catalog):
        catalog.put_table(_table(1, "id"), expected_version=None)
        catalog.put_table(_table(2, "id", "x"), expected_version=1)
        assert [c.name for c in catalog.get_table("ns", "ns_movies").columns] == ["id", "x"]

    def test_stale_version_conflicts(self, catalog):
        catalog.put_table(_table(1, "id"), expected_version=None)
        catalog.put_table(_table(2, "id", "x"), expected_version=1)
        with pytest.raises(CatalogConflictError):
            catalog.put_table(_table(2, "id", "y"), expected_version=1)

    def test_double_create_conflicts(self, catalog):
        catalog.put_table(_table(1, "id"), expected_version=None)
        with pytest.raises(CatalogConflictError):
            catalog.put_table(_table(1, "other"), expected_version=None)

    def test_update_of_missing_table_conflicts(self, catalog):
        with pytest.raises(CatalogConflictError):
            catalog.put_table(_table(2, "id"), expected_version=1)

    def test_unknown_namespace(self, catalog):
        table = _table(1, "id").model_copy(update={"namespace": "ghost"})
        with pytest.raises(NamespaceNotFoundError):
            catalog.put_table(table, expected_version=None)


def test_list_tables_is_scoped_and_sorted(catalog):
    catalog.create_namespace(CatalogNamespace(name="other"))
    for name in ("ns_b", "ns_a"):
        catalog.put_table(_table(1, "id").model_copy(update={"name": name}), expected_version=None)
    catalog.put_table(
        _table(1, "id").model_copy(update={"name": "x", "namespace": "other"}), expected_version=None,
    )
    assert [t.name for t in catalog.list_tables("ns")] == ["ns_a", "ns_b"]


def test_unreachable_endpoint_is_catalog_error(catalog, monkeypatch):
    def refuse(**kwargs):
        raise EndpointConnectionError(endpoint_url="http://127.0.0.1:1")

    monkeypatch.setattr(catalog._table, "get_item", refuse)
    with pytest.raises(CatalogError):
        catalog.get_table("ns", "ns_movies")
