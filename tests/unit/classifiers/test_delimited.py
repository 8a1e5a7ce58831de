"""Tests for the delimited-text classifier."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from eventcrawl.classifiers.delimited import DelimitedClassifier
from eventcrawl.models.classifier import ClassifierSpec, HeaderMode

MOVIES = "movieId,title,genres\n1,Toy Story,Animation\n"


def _classifier(**kwargs) -> DelimitedClassifier:
    return DelimitedClassifier(ClassifierSpec(name="test-csv", **kwargs))


class TestHeaderModes:
    def test_present_takes_names_from_first_row(self):
        schema = _classifier(header_mode=HeaderMode.PRESENT).classify(MOVIES)
        assert schema.column_names == ["movieId", "title", "genres"]
        assert schema.row_count == 1

    def test_absent_with_names_treats_first_row_as_data(self):
        schema = _classifier(
            header_mode=HeaderMode.ABSENT, column_names=["movieId", "title", "genres"],
        ).classify(MOVIES)
        assert schema.column_names == ["movieId", "title", "genres"]
        assert schema.row_count == 2
        assert [c.type for c in schema.columns] == ["bigint", "string", "string"]

    def test_absent_types_non_matching_first_row(self):
        schema = _classifier(
            header_mode=HeaderMode.ABSENT, column_names=["id", "name"],
        ).classify("id_col,name\n1,a\n")
        assert [c.type for c in schema.columns] == ["string", "string"]

    def test_present_with_names_replaces_header_text(self):
        schema = _classifier(
            header_mode=HeaderMode.PRESENT, column_names=["id", "name", "kind"],
        ).classify(MOVIES)
        assert schema.column_names == ["id", "name", "kind"]
        assert schema.row_count == 1

    def test_unknown_detects_header(self):
        schema = _classifier().classify(MOVIES)
        assert schema.column_names == ["movieId", "title", "genres"]
        assert [c.type for c in schema.columns] == ["bigint", "string", "string"]

    def test_unknown_without_distinct_header_uses_positional_names(self):
        schema = _classifier().classify("a,b\nc,d\n")
        assert schema.column_names == ["col0", "col1"]
        assert schema.row_count == 2

    def test_unknown_single_row_has_no_header(self):
        schema = _classifier().classify("x,y\n")
        assert schema.column_names == ["col0", "col1"]

    def test_absent_name_count_mismatch_is_no_match(self):
        classifier = _classifier(header_mode=HeaderMode.ABSENT, column_names=["a", "b"])
        assert classifier.classify(MOVIES) is None


class TestSignature:
    def test_inconsistent_field_counts_do_not_match(self):
        assert _classifier().classify("a,b,c\n1,2\n") is None

    def test_single_column_needs_opt_in(self):
        text = "name\nalice\nbob\n"
        assert _classifier().classify(text) is None
        schema = _classifier(allow_single_column=True, header_mode=HeaderMode.PRESENT).classify(text)
        assert schema.column_names == ["name"]

    def test_empty_input_does_not_match(self):
        assert _classifier().classify("\n\n") is None

    def test_custom_delimiter_and_quote(self):
        text = "id|note\n1|'a|b'\n2|'c'\n"
        schema = _classifier(delimiter="|", quote_symbol="'").classify(text)
        assert schema.column_names == ["id", "note"]
        assert schema.row_count == 2

    def test_quoted_delimiters_do_not_split(self):
        text = 'id,title\n1,"Toy Story, The"\n'
        schema = _classifier(header_mode=HeaderMode.PRESENT).classify(text)
        assert schema.column_names == ["id", "title"]


class TestTypes:
    def test_infers_column_types(self):
        text = (
            "id,price,active,day,seen_at,label\n"
            "1,2.5,true,2024-01-01,2024-01-01 10:00:00,x\n"
            "2,3,false,2024-01-02,2024-01-02T11:00:00Z,y\n"
        )
        schema = _classifier().classify(text)
        assert [c.type for c in schema.columns] == [
            "bigint", "double", "boolean", "date", "timestamp", "string",
        ]

    def test_empty_values_are_ignored(self):
        schema = _classifier(header_mode=HeaderMode.PRESENT).classify("a,b\n1,\n2,\n")
        assert [c.type for c in schema.columns] == ["bigint", "string"]

    def test_blank_and_duplicate_header_names(self):
        schema = _classifier(header_mode=HeaderMode.PRESENT).classify("a,,a\n1,2,3\n")
        assert schema.column_names == ["a", "col1", "a_2"]

    def test_duplicate_suffix_skips_existing_names(self):
        schema = _classifier(header_mode=HeaderMode.PRESENT).classify("a,a,a_2\n1,2,3\n")
        assert schema.column_names == ["a", "a_3", "a_2"]
        assert len(set(schema.column_names)) == 3


class TestSpecValidation:
    def test_absent_requires_names(self):
        with pytest.raises(ValidationError):
            ClassifierSpec(name="x", header_mode=HeaderMode.ABSENT)

    def test_delimiter_must_be_single_char(self):
        with pytest.raises(ValidationError):
            ClassifierSpec(name="x", delimiter=",,")

    def test_delimiter_and_quote_must_differ(self):
        with pytest.raises(ValidationError):
            ClassifierSpec(name="x", delimiter='"')

    def test_unknown_mode_rejects_names(self):
        with pytest.raises(ValidationError):
            ClassifierSpec(name="x", column_names=["a"])
