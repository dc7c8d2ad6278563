"""Tests for field standardization."""

import pytest

from reu_ingestion.normalizer.fields import (
    CANONICAL_FIELDS,
    FieldStandardizer,
    classify_token,
    split_field_text,
    standardize_fields,
)


def test_molecular_biology_and_biochem():
    assert standardize_fields("molecular biology and biochem") == {"Biology", "Chemistry"}


def test_list_input():
    assert standardize_fields(["Astrophysics", "Machine Learning"]) == {"Physics", "Computer Science"}


def test_no_match_returns_default():
    assert standardize_fields("") == {"N/A"}
    assert standardize_fields(None) == {"N/A"}


def test_custom_default():
    assert standardize_fields("summer research", default="STEM") == {"STEM"}


def test_excluded_and_numeric_tokens_dropped():
    assert standardize_fields("research, program, 2024 cohort") == {"N/A"}


def test_short_tokens_dropped():
    # "AI" alone is two characters long and never reaches the keyword tables
    assert standardize_fields("AI") == {"N/A"}


def test_short_keywords_match_whole_words_only():
    assert standardize_fields("physics") == {"Physics"}
    assert classify_token("training") is None


def test_description_and_title_words_contribute():
    result = standardize_fields([], description="Students study geology", title="Summer REU")
    assert result == {"Earth Science"}


@pytest.mark.parametrize("name", sorted(CANONICAL_FIELDS))
def test_canonical_names_map_to_themselves(name):
    assert standardize_fields([name]) == {name}


@pytest.mark.parametrize(
    "raw",
    [
        "molecular biology and biochem",
        "Data Science; Statistics",
        ["Earth Science", "Social Science"],
        "nothing relevant here",
    ],
)
def test_standardization_is_idempotent(raw):
    once = standardize_fields(raw)
    assert standardize_fields(sorted(once)) == once


def test_result_never_empty():
    for raw in ["", "the", "123", "x, y", "Computer Science"]:
        assert standardize_fields(raw)


def test_split_field_text_separators():
    assert split_field_text("Math; Physics/Chemistry & Biology and CS") == [
        "Math", "Physics", "Chemistry", "Biology", "CS",
    ]


def test_standardize_list_taxonomy_order():
    standardizer = FieldStandardizer()
    assert standardizer.standardize_list("chemistry, biology") == ["Biology", "Chemistry"]


def test_standardizer_default_is_configurable():
    assert FieldStandardizer(default="STEM").standardize("") == {"STEM"}
