"""Unit tests for query classification, normalization and US address splitting."""

from __future__ import annotations

from perceptacle.models.geocode import BoundingBox
from perceptacle.services.geo_query import (
    USAddressParts,
    classify,
    is_likely_us,
    normalize_intl_query,
    normalize_us_query,
    split_us_address,
)


# ======================================================================
# is_likely_us
# ======================================================================


class TestIsLikelyUS:
    def test_zip_code(self) -> None:
        assert is_likely_us("123 Main St 72774") is True

    def test_zip_plus_four(self) -> None:
        assert is_likely_us("PO Box 5, 72774-1234") is True

    def test_state_code(self) -> None:
        assert is_likely_us("West Fork, AR") is True

    def test_state_code_is_case_insensitive(self) -> None:
        assert is_likely_us("west fork, ar") is True

    def test_country_name(self) -> None:
        assert is_likely_us("Springfield, United States") is True
        assert is_likely_us("Springfield USA") is True

    def test_international(self) -> None:
        assert is_likely_us("Brandenburger Tor, Berlin") is False
        assert is_likely_us("123 Main St, Paris, France") is False

    def test_empty(self) -> None:
        assert is_likely_us("") is False


# ======================================================================
# Normalization
# ======================================================================


class TestNormalizeUSQuery:
    def test_collapses_commas_and_whitespace(self) -> None:
        assert normalize_us_query("  12 Elm Ave ,  Fayetteville ,AR ") == "12 Elm Avenue Fayetteville AR"

    def test_shortens_zip_plus_four(self) -> None:
        assert normalize_us_query("Winslow AR 72959-0042") == "Winslow AR 72959"

    def test_expands_suffixes_with_period(self) -> None:
        assert normalize_us_query("5 Old Wire Rd. Springdale AR") == "5 Old Wire Road Springdale AR"

    def test_expands_each_suffix(self) -> None:
        result = normalize_us_query("1 A Hwy 2 B Ln 3 C Blvd AR")
        assert result == "1 A Highway 2 B Lane 3 C Boulevard AR"

    def test_suffix_inside_word_untouched(self) -> None:
        assert normalize_us_query("Rdx Avenue Road AR") == "Rdx Avenue Road AR"

    def test_saint_and_state_codes_untouched(self) -> None:
        assert normalize_us_query("St. Louis, MO") == "St. Louis MO"
        assert normalize_us_query("Hartford, CT") == "Hartford CT"


class TestNormalizeIntlQuery:
    def test_no_abbreviation_expansion(self) -> None:
        assert normalize_intl_query("Abbey Rd, London") == "Abbey Rd London"

    def test_collapses_runs(self) -> None:
        assert normalize_intl_query("  Paris ,,  France  ") == "Paris France"


# ======================================================================
# split_us_address
# ======================================================================


class TestSplitUSAddress:
    def test_comma_separated(self) -> None:
        parts = split_us_address("123 Union Star Rd, West Fork, AR 72774")
        assert parts == USAddressParts(
            street="123 Union Star Rd", city="West Fork", state="AR", zip="72774"
        )

    def test_without_zip(self) -> None:
        parts = split_us_address("123 Union Star Rd, West Fork, AR")
        assert parts.street == "123 Union Star Rd"
        assert parts.city == "West Fork"
        assert parts.state == "AR"
        assert parts.zip == ""

    def test_zip_plus_four_keeps_five_digits(self) -> None:
        parts = split_us_address("1 Main St, Winslow, AR 72959-1234")
        assert parts.zip == "72959"

    def test_no_commas_takes_last_two_tokens_as_city(self) -> None:
        parts = split_us_address("123 Union Star Rd West Fork AR")
        assert parts.street == "123 Union Star Rd"
        assert parts.city == "West Fork"
        assert parts.state == "AR"

    def test_last_state_token_wins(self) -> None:
        parts = split_us_address("12 Or Way, Salem, OR")
        assert parts.state == "OR"
        assert parts.city == "Salem"
        assert parts.street == "12 Or Way"

    def test_no_state_returns_whole_text_as_street(self) -> None:
        parts = split_us_address("Somewhere Over The Rainbow")
        assert parts == USAddressParts(street="Somewhere Over The Rainbow", city="", state="", zip="")

    def test_zip_before_state_is_ignored(self) -> None:
        parts = split_us_address("72774 Main, Greenland, AR")
        assert parts.zip == ""


# ======================================================================
# classify
# ======================================================================


class TestClassify:
    def test_us_query_normalized(self) -> None:
        query = classify("9 Mill Ln., Greenland, AR")
        assert query.is_us is True
        assert query.text == "9 Mill Lane Greenland AR"
        assert query.raw == "9 Mill Ln., Greenland, AR"
        assert query.viewport is None

    def test_international_query(self) -> None:
        query = classify("Abbey Rd,  London")
        assert query.is_us is False
        assert query.text == "Abbey Rd London"

    def test_viewport_carried(self) -> None:
        box = BoundingBox(south=35.0, west=-95.0, north=36.5, east=-93.0)
        query = classify("coffee", viewport=box)
        assert query.viewport == box

    def test_none_query_tolerated(self) -> None:
        query = classify(None)  # type: ignore[arg-type]
        assert query.raw == ""
        assert query.text == ""
