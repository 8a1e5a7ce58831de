"""DynamoDB backend implementing ICatalog with conditional writes."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from eventcrawl.core.exceptions import (
    CatalogConflictError,
    CatalogError,
    NamespaceNotFoundError,
)
from eventcrawl.models.catalog import CatalogNamespace, Column, TableSchema

_CONDITION_FAILED = "ConditionalCheckFailedException"


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "")
    return ""


def _decode_decimals(value: Any) -> Any:
    """Convert Decimal values in a DynamoDB item to int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == int(value) else float(value)
    if isinstance(value, dict):
        return {k: _decode_decimals(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode_decimals(v) for v in value]
    return value


def _namespace_pk(name: str) -> str:
    return f"NAMESPACE#{name}"


def _table_item(table: TableSchema) -> dict[str, Any]:
    return {
        "PK": _namespace_pk(table.namespace),
        "SK": f"TABLE#{table.name}",
        "name": table.name,
        "namespace": table.namespace,
        "location": table.location,
        "classification": table.classification,
        "status": str(table.status),
        "version": table.version,
        "columns": [
            {"name": c.name, "type": c.type, "status": str(c.status)} for c in table.columns
        ],
    }


def _item_table(item: dict[str, Any]) -> TableSchema:
    item = _decode_decimals(item)
    return TableSchema(
        name=item["name"],
        namespace=item["namespace"],
        location=item.get("location", ""),
        classification=item.get("classification", ""),
        status=item.get("status", "ACTIVE"),
        version=item.get("version", 0),
        columns=[Column(**c) for c in item.get("columns", [])],
    )


class DynamoDBCatalog:
    """Production ICatalog backed by a single PK/SK DynamoDB table.

    Layout: ``PK=NAMESPACE#<ns>`` with ``SK=META`` for the namespace and
    ``SK=TABLE#<name>`` for each table schema.
    """

    def __init__(self, table_name: str = "eventcrawl-catalog", table_suffix: str = "",
                 region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._table_name = f"{table_name}{table_suffix}"
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)
        self._table = self._ddb.Table(self._table_name)

    @property
    def table_name(self) -> str:
        return self._table_name

    def create_namespace(self, namespace: CatalogNamespace) -> CatalogNamespace:
        try:
            self._table.put_item(
                Item={
                    "PK": _namespace_pk(namespace.name),
                    "SK": "META",
                    "name": namespace.name,
                    "location_uri": namespace.location_uri,
                },
                ConditionExpression="attribute_not_exists(PK)",
            )
            return namespace
        except (BotoCoreError, ClientError) as exc:
            if _error_code(exc) != _CONDITION_FAILED:
                raise CatalogError(f"Namespace create failed for {namespace.name!r}: {exc}") from exc
        existing = self.get_namespace(namespace.name)
        return existing or namespace

    def get_namespace(self, name: str) -> Optional[CatalogNamespace]:
        try:
            resp = self._table.get_item(Key={"PK": _namespace_pk(name), "SK": "META"})
        except (BotoCoreError, ClientError) as exc:
            raise CatalogError(f"Namespace read failed for {name!r}: {exc}") from exc
        item = resp.get("Item")
        if item is None:
            return None
        return CatalogNamespace(name=item["name"], location_uri=item.get("location_uri", ""))

    def get_table(self, namespace: str, name: str) -> Optional[TableSchema]:
        try:
            resp = self._table.get_item(
                Key={"PK": _namespace_pk(namespace), "SK": f"TABLE#{name}"},
                ConsistentRead=True,
            )
        except (BotoCoreError, ClientError) as exc:
            raise CatalogError(f"Table read failed for {namespace}.{name}: {exc}") from exc
        item = resp.get("Item")
        return _item_table(item) if item else None

    def put_table(self, table: TableSchema, expected_version: Optional[int]) -> TableSchema:
        if self.get_namespace(table.namespace) is None:
            raise NamespaceNotFoundError(f"Namespace {table.namespace!r} does not exist")
        kwargs: dict[str, Any] = {"Item": _table_item(table)}
        if expected_version is None:
            kwargs["ConditionExpression"] = "attribute_not_exists(PK)"
        else:
            kwargs["ConditionExpression"] = "version = :expected"
            kwargs["ExpressionAttributeValues"] = {":expected": expected_version}
        try:
            self._table.put_item(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            if _error_code(exc) == _CONDITION_FAILED:
                raise CatalogConflictError(table.namespace, table.name, expected_version) from exc
            raise CatalogError(f"Table write failed for {table.namespace}.{table.name}: {exc}") from exc
        return table

    def list_tables(self, namespace: str) -> list[TableSchema]:
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": "PK = :pk AND begins_with(SK, :sk)",
            "ExpressionAttributeValues": {":pk": _namespace_pk(namespace), ":sk": "TABLE#"},
        }
        tables: list[TableSchema] = []
        try:
            while True:
                resp = self._table.query(**kwargs)
                tables.extend(_item_table(item) for item in resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    break
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except (BotoCoreError, ClientError) as exc:
            raise CatalogError(f"Table list failed for {namespace!r}: {exc}") from exc
        return sorted(tables, key=lambda t: t.name)
