"""
Attribute growth formula.

Pure functions only: ``calculate_attribute_updates(baseline, stats)`` maps a
player's ratings before a match plus the match stats to the ratings after
it. Same inputs, same outputs; nothing here touches the database.

Each sub-attribute gets a growth term from the stats that drive it. Growth
is damped as the rating approaches 100 (diminishing returns) and decline
is scaled by the current rating, with a floor of 10.
"""
import math
from typing import Mapping

ATTRIBUTE_FLOOR = 10
ATTRIBUTE_CEILING = 100

GROWTH_SCALE = 0.2
BASELINE_PENALTY = -1.0  # no contribution in a substantial appearance

# Growth weights per stat
SHOOTING_WEIGHTS = {"goals": 2.0, "chances_created": 0.8}
PASSING_WEIGHTS = {"assists": 1.8, "chances_created": 1.2}
DRIBBLING_WEIGHTS = {"goals": 0.5, "assists": 0.5, "chances_created": 0.8}
DEFENSE_WEIGHTS = {"tackles": 2.0, "interceptions": 2.0, "saves": 2.5}

# Minutes after which a silent appearance is penalized
ATTACKING_PENALTY_MINUTES = 45
DRIBBLING_PENALTY_MINUTES = 30
LOW_MINUTES_THRESHOLD = 30
LOW_MINUTES_PENALTY = 1.5

MIN_DIMINISHING_FACTOR = 0.1
MIN_DECLINE_FACTOR = 0.6

COACH_GRADE_PULL = 0.2
COACH_SEVERE_THRESHOLD = 30
COACH_SEVERE_PENALTY = -2.0
COACH_POOR_THRESHOLD = 40
COACH_POOR_PENALTY = -1.0

OVERALL_WEIGHTS = {
    "shooting": 0.20,
    "passing": 0.20,
    "dribbling": 0.15,
    "defense": 0.20,
    "physical": 0.15,
    "coach_grade": 0.10,
}

DEFAULT_RATING = 50


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def _weighted(stats: Mapping[str, int], weights: Mapping[str, float]) -> float:
    return sum(stats.get(name, 0) * weight for name, weight in weights.items()) * GROWTH_SCALE


def growth_terms(stats: Mapping[str, int]) -> dict:
    """Raw growth (positive) or decline (negative) per sub-attribute, before damping."""
    goals = stats.get("goals", 0)
    assists = stats.get("assists", 0)
    chances = stats.get("chances_created", 0)
    defensive = stats.get("tackles", 0) + stats.get("interceptions", 0) + stats.get("saves", 0)
    minutes = stats.get("minutes_played", 0)

    shooting = _weighted(stats, SHOOTING_WEIGHTS)
    if goals == 0 and minutes > ATTACKING_PENALTY_MINUTES:
        shooting += BASELINE_PENALTY

    passing = _weighted(stats, PASSING_WEIGHTS)
    if assists == 0 and chances == 0 and minutes > ATTACKING_PENALTY_MINUTES:
        passing += BASELINE_PENALTY

    dribbling = _weighted(stats, DRIBBLING_WEIGHTS)
    if goals == 0 and assists == 0 and chances == 0 and minutes > DRIBBLING_PENALTY_MINUTES:
        dribbling += BASELINE_PENALTY

    defense = _weighted(stats, DEFENSE_WEIGHTS)
    if defensive == 0 and minutes > ATTACKING_PENALTY_MINUTES:
        defense += BASELINE_PENALTY

    physical = minutes / 90
    if minutes < LOW_MINUTES_THRESHOLD:
        physical -= LOW_MINUTES_PENALTY

    return {
        "shooting": shooting,
        "passing": passing,
        "dribbling": dribbling,
        "defense": defense,
        "physical": physical,
    }


def apply_growth(current: float, growth: float) -> float:
    """Damp ``growth`` by the current rating and clamp to [10, 100]."""
    if growth >= 0:
        factor = max(MIN_DIMINISHING_FACTOR, (ATTRIBUTE_CEILING - current) / 100)
        return min(ATTRIBUTE_CEILING, current + growth * factor)
    factor = max(MIN_DECLINE_FACTOR, current / 100)
    return max(ATTRIBUTE_FLOOR, current + growth * factor)


def coach_grade_update(current_grade: float, coach_rating: float) -> int:
    """Pull the running grade 20% toward this match's rating, with penalties for poor ratings."""
    penalty = 0.0
    if coach_rating < COACH_SEVERE_THRESHOLD:
        penalty = COACH_SEVERE_PENALTY
    elif coach_rating < COACH_POOR_THRESHOLD:
        penalty = COACH_POOR_PENALTY
    grade = current_grade + (coach_rating - current_grade) * COACH_GRADE_PULL + penalty
    return round_half_up(min(ATTRIBUTE_CEILING, max(ATTRIBUTE_FLOOR, grade)))


def overall_rating(attributes: Mapping[str, float]) -> int:
    return round_half_up(sum(attributes[name] * weight for name, weight in OVERALL_WEIGHTS.items()))


def calculate_attribute_updates(baseline: Mapping[str, int], stats: Mapping[str, int]) -> dict:
    """
    New ratings after one match.

    Args:
        baseline: ratings before the match; missing keys default to 50
        stats: match stats; missing counters default to 0, coach_rating to 50

    Returns:
        dict with shooting, passing, dribbling, defense, physical,
        coach_grade and overall_rating as integers
    """
    growth = growth_terms(stats)
    updated = {
        name: round_half_up(apply_growth(baseline.get(name, DEFAULT_RATING), term))
        for name, term in growth.items()
    }
    updated["coach_grade"] = coach_grade_update(
        baseline.get("coach_grade", DEFAULT_RATING), stats.get("coach_rating", DEFAULT_RATING)
    )
    updated["overall_rating"] = overall_rating(updated)
    return updated


def attribute_delta(previous: Mapping[str, int], new: Mapping[str, int]) -> dict:
    """Per-field change ``new - previous`` for every field in ``new``."""
    return {name: new[name] - previous.get(name, 0) for name in new}
