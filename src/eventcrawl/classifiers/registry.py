"""Ordered classifier registry: custom classifiers first, then built-ins."""

from __future__ import annotations

from typing import Optional, Sequence, Union

import structlog

from eventcrawl.classifiers.delimited import DelimitedClassifier
from eventcrawl.classifiers.json_lines import JsonClassifier
from eventcrawl.core.exceptions import ClassificationError, ConfigurationError
from eventcrawl.models.classifier import ClassifierSpec, FormatKind, InferredSchema

log = structlog.get_logger()

Classifier = Union[DelimitedClassifier, JsonClassifier]

BUILTIN_SPECS: tuple[ClassifierSpec, ...] = (
    ClassifierSpec(name="builtin-json", format_kind=FormatKind.JSON),
    ClassifierSpec(name="builtin-csv"),
)


def build_classifier(spec: ClassifierSpec) -> Classifier:
    if spec.format_kind == FormatKind.CSV:
        return DelimitedClassifier(spec)
    if spec.format_kind == FormatKind.JSON:
        return JsonClassifier(spec)
    raise ConfigurationError(f"Unsupported classifier format {spec.format_kind!r}")


class ClassifierRegistry:
    """Evaluates classifiers in fixed priority order; the first signature match wins."""

    def __init__(self, specs: Sequence[ClassifierSpec] = (), include_builtin: bool = True) -> None:
        names = [s.name for s in specs]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate classifier names in {names}")
        self._custom = [build_classifier(s) for s in specs]
        self._builtin = [build_classifier(s) for s in BUILTIN_SPECS] if include_builtin else []

    @property
    def specs(self) -> list[ClassifierSpec]:
        return [c.spec for c in self._custom + self._builtin]

    def _chain(self, hints: Optional[Sequence[ClassifierSpec]]) -> list[Classifier]:
        custom = self._custom if hints is None else [build_classifier(s) for s in hints]
        return custom + self._builtin

    def classify(
        self,
        sample: bytes,
        specs: Optional[Sequence[ClassifierSpec]] = None,
        *,
        key: str = "",
    ) -> Optional[InferredSchema]:
        """Classify a sample. Returns None when no classifier matches.

        ``specs`` replaces the registered custom classifiers for this call.
        Raises ClassificationError when the sample is not decodable text.
        """
        try:
            text = sample.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ClassificationError(key, f"sample is not UTF-8 text: {exc}") from exc
        if "\x00" in text:
            raise ClassificationError(key, "sample contains NUL bytes")

        for classifier in self._chain(specs):
            schema = classifier.classify(text)
            if schema is not None:
                log.debug("classifier_matched", key=key, classifier=classifier.name,
                          columns=len(schema.columns))
                return schema
        log.debug("classifier_no_match", key=key)
        return None
