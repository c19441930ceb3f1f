"""Unit tests for the attribute growth formula."""
import pytest

from squadtrack.services.attribute_engine import (
    apply_growth,
    attribute_delta,
    calculate_attribute_updates,
    coach_grade_update,
    growth_terms,
    overall_rating,
    round_half_up,
)

BASELINE = {
    "shooting": 50, "passing": 50, "dribbling": 50, "defense": 50,
    "physical": 50, "coach_grade": 50, "overall_rating": 50,
}


class TestRounding:

    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(50.4) == 50
        assert round_half_up(-0.5) == 0


class TestGrowth:

    # Contribution vs quiet match
    # ─────────────────────────────────────────────────────────────

    def test_scoring_match_beats_quiet_match(self):
        """Should rate 2 goals, 1 assist, coach 85 above a scoreless coach-50 match."""
        strong = calculate_attribute_updates(
            BASELINE, {"minutes_played": 90, "goals": 2, "assists": 1, "coach_rating": 85},
        )
        quiet = calculate_attribute_updates(
            BASELINE, {"minutes_played": 90, "goals": 0, "assists": 0, "coach_rating": 50},
        )

        assert strong["overall_rating"] > quiet["overall_rating"]
        assert strong["shooting"] > quiet["shooting"]
        assert strong["coach_grade"] == 57
        assert quiet["coach_grade"] == 50

    def test_exact_values_for_quiet_full_match(self):
        result = calculate_attribute_updates(BASELINE, {"minutes_played": 90})

        assert result == {
            "shooting": 49, "passing": 49, "dribbling": 49, "defense": 49,
            "physical": 51, "coach_grade": 50, "overall_rating": 49,
        }

    def test_deterministic(self):
        stats = {"minutes_played": 77, "goals": 1, "tackles": 4, "chances_created": 3, "coach_rating": 71}
        assert calculate_attribute_updates(BASELINE, stats) == calculate_attribute_updates(BASELINE, stats)

    def test_missing_inputs_default(self):
        """Should treat missing baseline fields as 50 and missing stats as 0."""
        assert calculate_attribute_updates({}, {}) == calculate_attribute_updates(BASELINE, {"coach_rating": 50})

    def test_short_appearance_costs_physical(self):
        assert growth_terms({"minutes_played": 10})["physical"] < 0
        assert calculate_attribute_updates(BASELINE, {"minutes_played": 10})["physical"] == 49

    def test_no_penalty_for_brief_cameo(self):
        """Should not penalize attacking attributes under 30 minutes."""
        terms = growth_terms({"minutes_played": 20})
        assert terms["shooting"] == 0
        assert terms["dribbling"] == 0

    # Bounds
    # ─────────────────────────────────────────────────────────────

    def test_growth_is_capped_at_100(self):
        assert apply_growth(95, 100) == 100

    def test_diminishing_returns_near_ceiling(self):
        assert apply_growth(90, 10) - 90 < apply_growth(50, 10) - 50

    def test_decline_floor_is_10(self):
        assert apply_growth(12, -10) == 10

    @pytest.mark.parametrize("stats", [
        {"minutes_played": 0, "coach_rating": 0},
        {"minutes_played": 120, "goals": 40, "assists": 40, "tackles": 40, "coach_rating": 100},
    ])
    def test_all_outputs_within_bounds(self, stats):
        for baseline in (BASELINE, {k: 10 for k in BASELINE}, {k: 100 for k in BASELINE}):
            result = calculate_attribute_updates(baseline, stats)
            assert all(10 <= value <= 100 for value in result.values())


class TestCoachGrade:

    def test_pulls_twenty_percent_toward_rating(self):
        assert coach_grade_update(50, 100) == 60

    def test_poor_rating_penalty(self):
        assert coach_grade_update(50, 35) == 46

    def test_severe_rating_penalty(self):
        assert coach_grade_update(50, 20) == 42


class TestOverallAndDelta:

    def test_overall_weights_sum_to_one(self):
        assert overall_rating({name: 70 for name in BASELINE}) == 70

    def test_delta(self):
        new = dict(BASELINE, shooting=53, defense=48)
        delta = attribute_delta(BASELINE, new)
        assert delta["shooting"] == 3
        assert delta["defense"] == -2
        assert delta["passing"] == 0
