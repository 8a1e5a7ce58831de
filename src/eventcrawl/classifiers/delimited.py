"""Delimited-text classifier with configurable delimiter, quote and header handling."""

from __future__ import annotations

import csv
import io
from typing import Optional

from eventcrawl.classifiers.inference import STRING, common_type, infer_value_type
from eventcrawl.models.classifier import ClassifierSpec, ColumnDef, HeaderMode, InferredSchema


def _normalize_names(names: list[str]) -> list[str]:
    """Blank names become colN; duplicates get the first free _2, _3 ... suffix."""
    taken = {raw.strip() for raw in names}
    out: list[str] = []
    used: set[str] = set()
    for i, raw in enumerate(names):
        name = raw.strip() or f"col{i}"
        if name in used:
            n = 2
            while f"{name}_{n}" in used or f"{name}_{n}" in taken:
                n += 1
            name = f"{name}_{n}"
        used.add(name)
        out.append(name)
    return out


class DelimitedClassifier:
    """Infers a schema from delimited text when every row has the same field count."""

    classification = "csv"

    def __init__(self, spec: ClassifierSpec) -> None:
        self.spec = spec

    @property
    def name(self) -> str:
        return self.spec.name

    def _rows(self, text: str) -> Optional[list[list[str]]]:
        reader = csv.reader(
            io.StringIO(text),
            delimiter=self.spec.delimiter,
            quotechar=self.spec.quote_symbol,
            strict=True,
        )
        try:
            rows = [row for row in reader if row and any(v.strip() for v in row)]
        except csv.Error:
            return None
        if self.spec.trim_values:
            rows = [[v.strip() for v in row] for row in rows]
        return rows

    def _signature_matches(self, rows: list[list[str]]) -> bool:
        if not rows:
            return False
        width = len(rows[0])
        if width < 2 and not self.spec.allow_single_column:
            return False
        return all(len(row) == width for row in rows)

    @staticmethod
    def _column_types(data: list[list[str]], width: int) -> list[str]:
        return [
            common_type(infer_value_type(row[i]) for row in data if row[i] != "")
            for i in range(width)
        ]

    def _looks_like_header(self, rows: list[list[str]]) -> bool:
        if len(rows) < 2:
            return False
        first = rows[0]
        if not all(v and infer_value_type(v) == STRING for v in first):
            return False
        data_types = self._column_types(rows[1:], len(first))
        return any(t != STRING for t in data_types)

    def classify(self, text: str) -> Optional[InferredSchema]:
        rows = self._rows(text)
        if rows is None or not self._signature_matches(rows):
            return None
        width = len(rows[0])
        explicit = list(self.spec.column_names) if self.spec.column_names else None
        mode = self.spec.header_mode

        typed: Optional[list[list[str]]] = None
        if mode == HeaderMode.PRESENT:
            names, data = explicit or rows[0], rows[1:]
        elif mode == HeaderMode.ABSENT:
            names, data = explicit or [], rows
            # A header row matching the supplied names stays a data row but is not typed
            if rows[0] == names:
                typed = rows[1:]
        elif self._looks_like_header(rows):
            names, data = rows[0], rows[1:]
        else:
            names, data = [f"col{i}" for i in range(width)], rows

        if len(names) != width:
            return None

        types = self._column_types(data if typed is None else typed, width)
        columns = [
            ColumnDef(name=name, type=type_)
            for name, type_ in zip(_normalize_names(names), types)
        ]
        return InferredSchema(
            columns=columns,
            classifier=self.name,
            classification=self.classification,
            row_count=len(data),
        )
