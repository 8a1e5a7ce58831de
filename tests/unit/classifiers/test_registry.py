"""Tests for classifier precedence and the JSON classifier."""

from __future__ import annotations

import pytest

from eventcrawl.classifiers.registry import ClassifierRegistry
from eventcrawl.core.exceptions import ClassificationError, ConfigurationError
from eventcrawl.models.classifier import ClassifierSpec, FormatKind, HeaderMode

MOVIES = b"movieId,title,genres\n1,Toy Story,Animation"


class TestPrecedence:
    def test_first_matching_custom_classifier_wins(self):
        registry = ClassifierRegistry([
            ClassifierSpec(name="pipes", delimiter="|"),
            ClassifierSpec(name="commas", header_mode=HeaderMode.PRESENT),
        ])
        schema = registry.classify(MOVIES)
        assert schema.classifier == "commas"

    def test_custom_before_builtin(self):
        registry = ClassifierRegistry([ClassifierSpec(name="movies", header_mode=HeaderMode.PRESENT)])
        assert registry.classify(MOVIES).classifier == "movies"

    def test_builtin_csv_is_fallback(self):
        registry = ClassifierRegistry([ClassifierSpec(name="tabs", delimiter="\t")])
        assert registry.classify(MOVIES).classifier == "builtin-csv"

    def test_no_builtin_means_no_match(self):
        registry = ClassifierRegistry([ClassifierSpec(name="tabs", delimiter="\t")],
                                      include_builtin=False)
        assert registry.classify(MOVIES) is None

    def test_hint_specs_replace_registered(self):
        registry = ClassifierRegistry([ClassifierSpec(name="movies", header_mode=HeaderMode.PRESENT)],
                                      include_builtin=False)
        hint = ClassifierSpec(name="names", header_mode=HeaderMode.ABSENT,
                              column_names=["movieId", "title", "genres"])
        schema = registry.classify(MOVIES, [hint])
        assert schema.classifier == "names"
        assert schema.row_count == 2

    def test_header_modes_yield_identical_schema(self):
        present = ClassifierRegistry([ClassifierSpec(name="p", header_mode=HeaderMode.PRESENT)])
        absent = ClassifierRegistry([ClassifierSpec(
            name="a", header_mode=HeaderMode.ABSENT, column_names=["movieId", "title", "genres"],
        )])
        assert present.classify(MOVIES).columns == absent.classify(MOVIES).columns

    def test_duplicate_names_rejected(self):
        with pytest.raises(ConfigurationError):
            ClassifierRegistry([ClassifierSpec(name="x"), ClassifierSpec(name="x", delimiter=";")])

    def test_plain_text_is_no_match(self):
        assert ClassifierRegistry().classify(b"just some words\nmore words\n") is None


class TestFailures:
    def test_undecodable_sample_raises(self):
        with pytest.raises(ClassificationError) as exc:
            ClassifierRegistry().classify(b"\xff\xfe\x00bad", key="input/x/bin.dat")
        assert exc.value.key == "input/x/bin.dat"

    def test_nul_bytes_raise(self):
        with pytest.raises(ClassificationError):
            ClassifierRegistry().classify(b"a,b\x00\n1,2\n")

    def test_utf8_bom_is_stripped(self):
        schema = ClassifierRegistry().classify(b"\xef\xbb\xbf" + MOVIES)
        assert schema.column_names[0] == "movieId"


class TestJson:
    def test_json_lines(self):
        sample = b'{"id": 1, "name": "a"}\n{"id": 2.5, "tags": ["x"]}\n'
        schema = ClassifierRegistry().classify(sample)
        assert schema.classification == "json"
        assert [(c.name, c.type) for c in schema.columns] == [
            ("id", "double"), ("name", "string"), ("tags", "array"),
        ]

    def test_json_document_array(self):
        schema = ClassifierRegistry().classify(b'[{"a": true}, {"a": false, "b": {"c": 1}}]')
        assert [(c.name, c.type) for c in schema.columns] == [("a", "boolean"), ("b", "struct")]

    def test_custom_json_classifier(self):
        registry = ClassifierRegistry([ClassifierSpec(name="events", format_kind=FormatKind.JSON)],
                                      include_builtin=False)
        assert registry.classify(b'{"a": null}\n').columns[0].type == "string"
