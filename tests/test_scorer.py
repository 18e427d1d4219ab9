"""Tests for PreferenceMatcher and batch ranking."""

from datetime import datetime, timezone

import pytest

from aceprops.matching import PreferenceMatcher, rank_matches
from aceprops.matching.scorer import PORTFOLIO_WEIGHTS, WEIGHTS, redistribute_weights
from aceprops.models import PreferenceProfile, PropertyRecord

from conftest import preference_row, property_row


def make_profile(**data_overrides) -> PreferenceProfile:
    data = {
        "property_types": ["flats"],
        "bedrooms": {"min": 1, "max": 2},
        "budget": {"min": 1000, "max": 1500, "type": "per_property"},
        "locations": [{"city": "London"}],
    }
    data.update(data_overrides)
    return PreferenceProfile.from_db_row(preference_row(preference_data=data))


def make_property(property_id: str = "prop-1", **overrides) -> PropertyRecord:
    return PropertyRecord.from_db_row(property_row(property_id, **overrides))


@pytest.fixture
def matcher() -> PreferenceMatcher:
    return PreferenceMatcher()


class TestScore:
    """Tests for PreferenceMatcher.score."""

    def test_full_match_scores_100(self, matcher: PreferenceMatcher) -> None:
        """Flat, 2 beds, £1200 in London against a matching profile."""
        result = matcher.score(make_profile(), make_property())
        assert result.score == 100
        assert [item.factor for item in result.breakdown] == [
            "property_type",
            "bedrooms",
            "budget",
            "location",
        ]
        assert all(item.matched for item in result.breakdown)

    def test_wrong_city_and_bedrooms(self, matcher: PreferenceMatcher) -> None:
        """Only type and budget score for 4 beds in Manchester."""
        result = matcher.score(make_profile(), make_property(bedrooms=4, city="Manchester"))
        points = {item.factor: item.points for item in result.breakdown}
        assert points == {"property_type": 25, "bedrooms": 0, "budget": 30, "location": 0}
        assert result.score == 55

    def test_city_match_is_case_insensitive(self, matcher: PreferenceMatcher) -> None:
        result = matcher.score(make_profile(), make_property(city="  LONDON "))
        assert result.breakdown[3].points == 25

    def test_property_type_synonym(self, matcher: PreferenceMatcher) -> None:
        """'Apartment' is normalized to the 'flats' tag."""
        result = matcher.score(make_profile(), make_property(property_type="Apartment"))
        assert result.breakdown[0].matched

    def test_empty_property_types_is_wildcard(self, matcher: PreferenceMatcher) -> None:
        profile = make_profile(property_types=[])
        for kind in ("commercial", "hmo", "studio", None):
            result = matcher.score(profile, make_property(property_type=kind))
            assert result.breakdown[0].points == 25

    def test_bedroom_partial_credit(self, matcher: PreferenceMatcher) -> None:
        """One bedroom outside the range earns half the weight."""
        profile = make_profile()
        assert matcher.score(profile, make_property(bedrooms=3)).breakdown[1].points == 10
        assert matcher.score(profile, make_property(bedrooms=0)).breakdown[1].points == 10
        assert matcher.score(profile, make_property(bedrooms=5)).breakdown[1].points == 0

    def test_open_ended_bedroom_range(self, matcher: PreferenceMatcher) -> None:
        profile = make_profile(bedrooms={"min": 3, "max": None})
        assert matcher.score(profile, make_property(bedrooms=8)).breakdown[1].points == 20

    @pytest.mark.parametrize(
        "rent_pence, expected",
        [
            (100000, 30),
            (150000, 30),
            (165000, 15),
            (90000, 15),
            (180000, 0),
            (80000, 0),
            (250000, 0),
        ],
    )
    def test_budget_linear_decay(
        self, matcher: PreferenceMatcher, rent_pence: int, expected: int
    ) -> None:
        """Budget points decay to 0 at 20% outside either bound."""
        result = matcher.score(make_profile(), make_property(monthly_rent=rent_pence))
        assert result.breakdown[2].points == expected

    def test_portfolio_budget_redistributes_weight(self, matcher: PreferenceMatcher) -> None:
        profile = make_profile(
            budget={"min": 100000, "max": 500000, "type": "total_portfolio"}
        )
        result = matcher.score(profile, make_property(monthly_rent=999999))
        points = {item.factor: item.points for item in result.breakdown}
        assert points == {"property_type": 36, "bedrooms": 28, "budget": 0, "location": 36}
        assert result.score == 100
        assert result.breakdown[2].note

    def test_missing_rent_is_hard_non_match(self, matcher: PreferenceMatcher) -> None:
        result = matcher.score(make_profile(), make_property(monthly_rent=None))
        assert result.score == 0
        assert [item.factor for item in result.breakdown] == ["missing_data"]

    def test_unparsable_bedrooms_is_hard_non_match(self, matcher: PreferenceMatcher) -> None:
        result = matcher.score(make_profile(), make_property(bedrooms="two"))
        assert result.score == 0
        assert result.breakdown[0].factor == "missing_data"

    def test_no_profile_is_profile_incomplete(self, matcher: PreferenceMatcher) -> None:
        result = matcher.score(None, make_property())
        assert result.score == 0
        assert result.breakdown[0].factor == "profile_incomplete"

    def test_absent_criteria_score_zero(self, matcher: PreferenceMatcher) -> None:
        """A profile with only property types set still scores, without raising."""
        profile = PreferenceProfile.from_db_row(
            preference_row(preference_data={"property_types": ["flats"]})
        )
        result = matcher.score(profile, make_property())
        assert result.score == 25
        assert len(result.breakdown) == 4
        assert all(item.note for item in result.breakdown[1:])

    def test_breakdown_sums_to_score_and_stays_in_bounds(
        self, matcher: PreferenceMatcher
    ) -> None:
        profiles = [
            make_profile(),
            make_profile(property_types=[]),
            make_profile(budget={"min": 0, "max": None}),
            make_profile(budget={"min": 1, "max": 1, "type": "total_portfolio"}),
            make_profile(locations=[]),
        ]
        properties = [
            make_property(bedrooms=b, monthly_rent=r, city=c)
            for b in (0, 1, 3, 9)
            for r in (0, 50000, 121000, 400000)
            for c in ("London", "Leeds")
        ]
        for profile in profiles:
            for prop in properties:
                result = matcher.score(profile, prop)
                assert 0 <= result.score <= 100
                assert sum(item.points for item in result.breakdown) == result.score


class TestWeights:
    """Tests for the weight tables."""

    def test_weights_sum_to_100(self) -> None:
        assert sum(WEIGHTS.values()) == 100
        assert sum(PORTFOLIO_WEIGHTS.values()) == 100

    def test_redistribution_keeps_factor_order(self) -> None:
        weights = redistribute_weights(WEIGHTS, "budget")
        assert list(weights) == list(WEIGHTS)
        assert weights["budget"] == 0


class TestRankMatches:
    """Tests for the batch mode."""

    def test_sorted_by_score_then_newest(self) -> None:
        profile = make_profile()
        older = make_property("old", created_at="2025-03-01T00:00:00+00:00")
        newer = make_property("new", created_at="2025-03-05T00:00:00+00:00")
        weaker = make_property("weak", city="Leeds")

        results = rank_matches([profile], [older, weaker, newer])
        assert [r.property_id for r in results] == ["new", "old", "weak"]
        assert results[0].investor_id == "inv-1"

    def test_min_score_filters(self) -> None:
        results = rank_matches(
            [make_profile()],
            [make_property("a"), make_property("b", city="Leeds")],
            min_score=85,
        )
        assert [r.property_id for r in results] == ["a"]

    def test_inactive_profiles_excluded(self) -> None:
        inactive = PreferenceProfile.from_db_row(preference_row(is_active=False))
        assert rank_matches([inactive], [make_property()]) == []

    def test_cross_product(self) -> None:
        profiles = [
            PreferenceProfile.from_db_row(preference_row("inv-1")),
            PreferenceProfile.from_db_row(preference_row("inv-2")),
        ]
        properties = [make_property("a"), make_property("b")]
        results = rank_matches(profiles, properties)
        assert len(results) == 4
        assert {(r.investor_id, r.property_id) for r in results} == {
            ("inv-1", "a"),
            ("inv-1", "b"),
            ("inv-2", "a"),
            ("inv-2", "b"),
        }

    def test_missing_created_at_sorts_last(self) -> None:
        profile = make_profile()
        undated = make_property("undated", created_at=None)
        dated = make_property("dated", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        results = rank_matches([profile], [undated, dated])
        assert [r.property_id for r in results] == ["dated", "undated"]
