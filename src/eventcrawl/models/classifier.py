"""Classifier specification models."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FormatKind(StrEnum):
    CSV = "csv"
    JSON = "json"


class HeaderMode(StrEnum):
    UNKNOWN = "UNKNOWN"
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"


class ClassifierSpec(BaseModel):
    """A format classifier and its parameters. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    name: str
    format_kind: FormatKind = FormatKind.CSV
    delimiter: str = ","
    quote_symbol: str = '"'
    header_mode: HeaderMode = HeaderMode.UNKNOWN
    column_names: Optional[tuple[str, ...]] = None
    allow_single_column: bool = False
    trim_values: bool = True

    @model_validator(mode="after")
    def _check_parameters(self) -> "ClassifierSpec":
        if not self.name:
            raise ValueError("classifier name is required")
        if self.format_kind != FormatKind.CSV:
            return self
        if len(self.delimiter) != 1:
            raise ValueError(f"{self.name}: delimiter must be a single character")
        if len(self.quote_symbol) != 1:
            raise ValueError(f"{self.name}: quote_symbol must be a single character")
        if self.delimiter == self.quote_symbol:
            raise ValueError(f"{self.name}: delimiter and quote_symbol must differ")
        if self.header_mode == HeaderMode.ABSENT and not self.column_names:
            raise ValueError(f"{self.name}: header_mode ABSENT requires column_names")
        if self.header_mode == HeaderMode.UNKNOWN and self.column_names:
            raise ValueError(f"{self.name}: column_names need header_mode PRESENT or ABSENT")
        if self.column_names is not None:
            if any(not c.strip() for c in self.column_names):
                raise ValueError(f"{self.name}: column_names may not be blank")
            if len(set(self.column_names)) != len(self.column_names):
                raise ValueError(f"{self.name}: column_names must be unique")
        return self


class ColumnDef(BaseModel):
    """A column as inferred from a single crawl."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str


class InferredSchema(BaseModel):
    """Result of a successful classification."""

    columns: list[ColumnDef] = Field(default_factory=list)
    classifier: str = ""
    classification: str = "csv"
    row_count: int = 0

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]
