"""Tests for specialty matching and mapping suggestions."""

import pytest

from provcomp.sdk.schemas import MarketRecord
from provcomp.sdk.specialty_match import (
    match_market_row,
    normalize_specialty_key,
    specialty_similarity,
    suggest_specialty_mappings,
)


# === FIXTURES ===


@pytest.fixture
def market_rows():
    return [
        MarketRecord(specialty="Cardiology", provider_type="Physician", tcc_50=300000),
        MarketRecord(specialty="Cardiology", provider_type="APP", tcc_50=140000),
        MarketRecord(specialty="Cardiology, General", tcc_50=280000),
        MarketRecord(specialty="Dermatology", tcc_50=260000),
    ]


class TestMatchMarketRow:

    def test_exact_match_ignores_case_and_whitespace(self, market_rows):
        match = match_market_row("  dermatology ", market_rows)
        assert match.status == "Exact"
        assert match.market_row.specialty == "Dermatology"

    def test_normalized_match_folds_punctuation(self, market_rows):
        match = match_market_row("Cardiology - General", market_rows)
        assert match.status == "Normalized"
        assert match.matched_key == "Cardiology, General"

    def test_synonym_match(self, market_rows):
        match = match_market_row("Derm", market_rows, {"derm": "Dermatology"})
        assert match.status == "Synonym"
        assert match.market_row.specialty == "Dermatology"

    def test_exact_wins_over_synonym(self, market_rows):
        match = match_market_row("Dermatology", market_rows, {"Dermatology": "Cardiology"})
        assert match.status == "Exact"
        assert match.market_row.specialty == "Dermatology"

    def test_synonym_to_unknown_label_is_missing(self, market_rows):
        match = match_market_row("Derm", market_rows, {"Derm": "Skin Care"})
        assert match.status == "Missing"
        assert not match.found

    @pytest.mark.parametrize("specialty", [None, "", "   ", "Podiatry"])
    def test_missing(self, market_rows, specialty):
        match = match_market_row(specialty, market_rows)
        assert match.status == "Missing"
        assert match.market_row is None

    def test_prefers_row_for_provider_type(self, market_rows):
        match = match_market_row("Cardiology", market_rows, provider_type="app")
        assert match.market_row.provider_type == "APP"

    def test_first_row_without_provider_type(self, market_rows):
        match = match_market_row("Cardiology", market_rows)
        assert match.market_row.provider_type == "Physician"


class TestSuggestions:

    def test_normalize_key(self):
        assert normalize_specialty_key("  Cardiology -- Invasive/Interventional ") == (
            "cardiology invasive interventional"
        )

    def test_identical_labels_score_one(self):
        assert specialty_similarity("Cardiology", "cardiology") == 1.0

    def test_suggests_containing_label(self):
        suggestions = suggest_specialty_mappings(
            ["Cardiology Noninvasive", "Xyz"], ["Cardiology", "Dermatology"]
        )
        assert suggestions == {"Cardiology Noninvasive": "Cardiology"}

    def test_each_market_label_suggested_once(self):
        suggestions = suggest_specialty_mappings(
            ["Cardiology", "Cardiology Clinic"], ["Cardiology"]
        )
        assert suggestions == {"Cardiology": "Cardiology"}

    def test_no_market_labels(self):
        assert suggest_specialty_mappings(["Cardiology"], []) == {}
