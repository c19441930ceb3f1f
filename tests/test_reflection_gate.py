"""Tests for the reflection gate.

Threshold is 50 characters after trimming; unlocking is one-way.
"""
import pytest

from squadtrack.core.context import RequestContext
from squadtrack.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from squadtrack.services.reflection_gate import (
    ReflectionGateService,
    ReflectionState,
    characters_remaining,
    evaluate,
    performance_summary,
    transition,
)
from squadtrack.services.stats_service import StatsService
from squadtrack.utils.timezone import utcnow

FORTY_CHARS = "I lost my marker twice at corners today."
FIFTY_TWO_CHARS = "I need to track runners and talk more at set pieces."

GK_STATS = {
    "minutes_played": 90,
    "saves": 6,
    "successful_goalie_kicks": 9,
    "failed_goalie_kicks": 3,
    "successful_goalie_throws": 4,
    "failed_goalie_throws": 0,
    "coach_rating": 78,
    "feedback": "Commanding performance, great handling.",
    "ai_suggestions": "Keep working on distribution.",
}


def test_fixture_lengths():
    assert len(FORTY_CHARS) == 40
    assert len(FIFTY_TWO_CHARS) == 52


class TestPureGate:

    def test_short_text_locked(self):
        assert evaluate(FORTY_CHARS) is ReflectionState.LOCKED
        assert characters_remaining(FORTY_CHARS) == 10

    def test_whitespace_does_not_count(self):
        padded = "   " + FORTY_CHARS + " " * 20
        assert evaluate(padded) is ReflectionState.LOCKED
        assert characters_remaining(padded) == 10

    def test_threshold_unlocks(self):
        assert evaluate("x" * 50) is ReflectionState.UNLOCKED
        assert characters_remaining("x" * 50) == 0

    def test_stamp_keeps_unlocked(self):
        assert evaluate("", unlocked_at=utcnow()) is ReflectionState.UNLOCKED

    @pytest.mark.parametrize("previous, text, expected", [
        (ReflectionState.LOCKED, FORTY_CHARS, ReflectionState.LOCKED),
        (ReflectionState.LOCKED, FIFTY_TWO_CHARS, ReflectionState.UNLOCKING),
        (ReflectionState.UNLOCKED, "", ReflectionState.UNLOCKED),
        (ReflectionState.UNLOCKED, FIFTY_TWO_CHARS, ReflectionState.UNLOCKED),
    ])
    def test_transitions(self, previous, text, expected):
        assert transition(previous, text) is expected


class TestSaveReflection:

    @pytest.fixture
    def review(self, db_session, match, player):
        StatsService(db_session).submit_match_stats(player.id, match.id, GK_STATS)
        return player, match

    # Unlocking
    # ─────────────────────────────────────────────────────────────

    def test_forty_chars_stays_locked(self, db_session, review):
        """Should keep feedback hidden with 10 characters to go."""
        player, match = review
        service = ReflectionGateService(db_session)

        result = service.save_reflection(player.id, match.id, FORTY_CHARS)
        view = service.get_feedback_view(player.id, match.id)

        assert result.state is ReflectionState.LOCKED
        assert result.unlocked is False
        assert result.characters_remaining == 10
        assert result.unlocked_at is None
        assert view.feedback is None
        assert view.ai_suggestions is None
        assert view.performance is None
        assert view.reflection == FORTY_CHARS

    def test_fifty_two_chars_unlocks(self, db_session, review):
        """Should reveal feedback, suggestions and performance on the crossing save."""
        player, match = review
        service = ReflectionGateService(db_session)

        result = service.save_reflection(player.id, match.id, FIFTY_TWO_CHARS)
        view = service.get_feedback_view(player.id, match.id)

        assert result.state is ReflectionState.UNLOCKED
        assert result.unlocked is True
        assert result.characters_remaining == 0
        assert result.unlocked_at is not None
        assert view.is_unlocked
        assert view.feedback == GK_STATS["feedback"]
        assert view.ai_suggestions == GK_STATS["ai_suggestions"]
        assert view.performance["saves"] == 6

    def test_unlock_is_monotonic(self, db_session, review):
        """Should stay unlocked after the reflection is shortened or cleared."""
        player, match = review
        service = ReflectionGateService(db_session)
        first = service.save_reflection(player.id, match.id, FIFTY_TWO_CHARS)

        shortened = service.save_reflection(player.id, match.id, "ok")
        cleared = service.save_reflection(player.id, match.id, "")

        assert shortened.state is ReflectionState.UNLOCKED
        assert shortened.unlocked is False
        assert cleared.state is ReflectionState.UNLOCKED
        assert cleared.unlocked_at == first.unlocked_at
        assert service.get_feedback_view(player.id, match.id).feedback == GK_STATS["feedback"]

    def test_unlock_event_fires_once(self, db_session, review):
        player, match = review
        service = ReflectionGateService(db_session)

        results = [service.save_reflection(player.id, match.id, FIFTY_TWO_CHARS) for _ in range(3)]

        assert [r.unlocked for r in results] == [True, False, False]

    # Rejections
    # ─────────────────────────────────────────────────────────────

    def test_too_long(self, db_session, review):
        player, match = review
        with pytest.raises(ValidationError):
            ReflectionGateService(db_session).save_reflection(player.id, match.id, "x" * 501)

    def test_no_stats_yet(self, db_session, match, player):
        with pytest.raises(NotFoundError):
            ReflectionGateService(db_session).save_reflection(player.id, match.id, FIFTY_TWO_CHARS)

    def test_other_user_cannot_write(self, db_session, review):
        player, match = review
        ctx = RequestContext(current_user_id="someone-else")
        with pytest.raises(AccessDeniedError):
            ReflectionGateService(db_session).save_reflection(player.id, match.id, FIFTY_TWO_CHARS, ctx=ctx)

    def test_owner_can_write(self, db_session, review):
        player, match = review
        ctx = RequestContext(current_user_id=player.user_id)
        result = ReflectionGateService(db_session).save_reflection(player.id, match.id, FIFTY_TWO_CHARS, ctx=ctx)
        assert result.unlocked is True


class TestPerformanceSummary:

    def test_goalkeeping_accuracy(self, db_session, match, player):
        StatsService(db_session).submit_match_stats(player.id, match.id, GK_STATS)
        record = StatsService(db_session).get_match_stats(player.id, match.id)

        summary = performance_summary(record)

        assert summary["goalkeeping"]["kicks_attempted"] == 12
        assert summary["goalkeeping"]["kicks_accuracy"] == 75.0
        assert summary["goalkeeping"]["throws_accuracy"] == 100.0
        assert summary["per_90"]["goals"] == 0.0

    def test_zero_minutes_and_attempts(self, db_session, match, player):
        StatsService(db_session).submit_match_stats(player.id, match.id, {"minutes_played": 0, "goals": 1})
        record = StatsService(db_session).get_match_stats(player.id, match.id)

        summary = performance_summary(record)

        assert summary["per_90"]["goals"] == 0.0
        assert summary["goalkeeping"]["kicks_accuracy"] == 0.0
        assert summary["goal_contributions"] == 1
