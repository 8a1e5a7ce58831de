"""JSON classifier: newline-delimited objects, or one document of objects."""

from __future__ import annotations

import json
from typing import Any, Optional

from eventcrawl.classifiers.inference import common_type, json_value_type
from eventcrawl.models.classifier import ClassifierSpec, ColumnDef, InferredSchema


class JsonClassifier:
    classification = "json"

    def __init__(self, spec: ClassifierSpec) -> None:
        self.spec = spec

    @property
    def name(self) -> str:
        return self.spec.name

    @staticmethod
    def _records(text: str) -> Optional[list[dict[str, Any]]]:
        lines = [line for line in text.splitlines() if line.strip()]
        if not lines:
            return None
        try:
            records = [json.loads(line) for line in lines]
        except json.JSONDecodeError:
            records = None
        if records is not None and all(isinstance(r, dict) for r in records):
            return records

        try:
            document = json.loads(text)
        except json.JSONDecodeError:
            return None
        if isinstance(document, dict):
            return [document]
        if isinstance(document, list) and document and all(isinstance(r, dict) for r in document):
            return document
        return None

    def classify(self, text: str) -> Optional[InferredSchema]:
        records = self._records(text)
        if not records:
            return None

        observed: dict[str, list[Optional[str]]] = {}
        for record in records:
            for key, value in record.items():
                observed.setdefault(key, []).append(json_value_type(value))
        if not observed:
            return None

        return InferredSchema(
            columns=[ColumnDef(name=k, type=common_type(v)) for k, v in observed.items()],
            classifier=self.name,
            classification=self.classification,
            row_count=len(records),
        )
