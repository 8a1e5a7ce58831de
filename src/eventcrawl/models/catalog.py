"""Catalog namespace and table schema models."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field


class SchemaStatus(StrEnum):
    ACTIVE = "ACTIVE"
    DEPRECATED = "DEPRECATED"


class MergeAction(StrEnum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DEPRECATED = "DEPRECATED"
    UNCHANGED = "UNCHANGED"


class UpdateBehavior(StrEnum):
    UPDATE_IN_DATABASE = "UPDATE_IN_DATABASE"
    LOG = "LOG"


class DeleteBehavior(StrEnum):
    DEPRECATE_IN_DATABASE = "DEPRECATE_IN_DATABASE"
    LOG = "LOG"


class SchemaChangePolicy(BaseModel):
    """How crawls are allowed to change the catalog."""

    update_behavior: UpdateBehavior = UpdateBehavior.UPDATE_IN_DATABASE
    delete_behavior: DeleteBehavior = DeleteBehavior.DEPRECATE_IN_DATABASE


class CatalogNamespace(BaseModel):
    """A catalog database. Owns its table schemas."""

    name: str
    location_uri: str = ""


class Column(BaseModel):
    name: str
    type: str
    status: SchemaStatus = SchemaStatus.ACTIVE


class TableSchema(BaseModel):
    """Versioned schema of one table. Never physically deleted."""

    name: str
    namespace: str
    location: str = ""
    classification: str = ""
    status: SchemaStatus = SchemaStatus.ACTIVE
    columns: list[Column] = Field(default_factory=list)
    version: int = 0

    def column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    @property
    def active_columns(self) -> list[Column]:
        return [c for c in self.columns if c.status == SchemaStatus.ACTIVE]


class MergeOutcome(BaseModel):
    """Result of merging one crawl into one table."""

    action: MergeAction
    table: Optional[TableSchema] = None
    added_columns: list[str] = Field(default_factory=list)
    deprecated_columns: list[str] = Field(default_factory=list)
    revived_columns: list[str] = Field(default_factory=list)
    type_conflicts: dict[str, tuple[str, str]] = Field(default_factory=dict)
    table_revived: bool = False
    logged_only: bool = False

    @property
    def changed(self) -> bool:
        return self.action != MergeAction.UNCHANGED and not self.logged_only
