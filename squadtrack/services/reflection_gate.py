"""
Reflection gate.

A player only sees the coach's feedback, the AI suggestions and their
performance summary for a match after writing a reflection of at least
``REFLECTION_MIN_LENGTH`` characters (surrounding whitespace not counted).

States:
- LOCKED: no qualifying reflection has ever been saved
- UNLOCKING: the save being processed is the one that crosses the threshold
- UNLOCKED: terminal; ``unlocked_at`` is stamped once and never cleared,
  so shortening the reflection later does not hide the feedback again
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from squadtrack.core import metrics
from squadtrack.core.config import settings
from squadtrack.core.context import RequestContext, SYSTEM_CONTEXT
from squadtrack.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from squadtrack.core.locks import player_stats_lock
from squadtrack.models import MatchStatRecord
from squadtrack.repositories import MatchRepository, PlayerRepository, StatsRepository
from squadtrack.utils.timezone import utcnow

logger = logging.getLogger(__name__)


class ReflectionState(str, enum.Enum):
    LOCKED = "locked"
    UNLOCKING = "unlocking"
    UNLOCKED = "unlocked"


def reflection_length(text: Optional[str]) -> int:
    return len((text or "").strip())


def evaluate(
    reflection_text: Optional[str],
    unlocked_at: Optional[datetime] = None,
    min_length: Optional[int] = None,
) -> ReflectionState:
    """Gate state for a stored reflection: UNLOCKED once stamped or long enough."""
    threshold = settings.REFLECTION_MIN_LENGTH if min_length is None else min_length
    if unlocked_at is not None or reflection_length(reflection_text) >= threshold:
        return ReflectionState.UNLOCKED
    return ReflectionState.LOCKED


def transition(
    previous_state: ReflectionState,
    reflection_text: Optional[str],
    min_length: Optional[int] = None,
) -> ReflectionState:
    """
    Next state after saving ``reflection_text``.

    LOCKED moves to UNLOCKING when the text crosses the threshold; UNLOCKED
    stays UNLOCKED whatever the text.
    """
    if previous_state in (ReflectionState.UNLOCKED, ReflectionState.UNLOCKING):
        return ReflectionState.UNLOCKED
    if evaluate(reflection_text, min_length=min_length) is ReflectionState.UNLOCKED:
        return ReflectionState.UNLOCKING
    return ReflectionState.LOCKED


def characters_remaining(reflection_text: Optional[str], min_length: Optional[int] = None) -> int:
    threshold = settings.REFLECTION_MIN_LENGTH if min_length is None else min_length
    return max(0, threshold - reflection_length(reflection_text))


def _percentage(successful: int, failed: int) -> float:
    attempts = successful + failed
    if attempts == 0:
        return 0.0
    return round(successful / attempts * 100, 1)


def _per_90(value: int, minutes: int) -> float:
    if not minutes:
        return 0.0
    return round(value / minutes * 90, 2)


def performance_summary(record: MatchStatRecord) -> dict:
    """Raw counts plus derived rates for one stat record."""
    minutes = record.minutes_played or 0
    goals = record.goals or 0
    assists = record.assists or 0
    defensive_actions = (record.tackles or 0) + (record.interceptions or 0)
    kicks_ok, kicks_failed = record.successful_goalie_kicks or 0, record.failed_goalie_kicks or 0
    throws_ok, throws_failed = record.successful_goalie_throws or 0, record.failed_goalie_throws or 0

    return {
        "minutes_played": minutes,
        "goals": goals,
        "assists": assists,
        "tackles": record.tackles or 0,
        "interceptions": record.interceptions or 0,
        "saves": record.saves or 0,
        "chances_created": record.chances_created or 0,
        "coach_rating": record.coach_rating,
        "goal_contributions": goals + assists,
        "defensive_actions": defensive_actions,
        "per_90": {
            "goals": _per_90(goals, minutes),
            "assists": _per_90(assists, minutes),
            "chances_created": _per_90(record.chances_created or 0, minutes),
            "defensive_actions": _per_90(defensive_actions, minutes),
        },
        "goalkeeping": {
            "kicks_attempted": kicks_ok + kicks_failed,
            "kicks_accuracy": _percentage(kicks_ok, kicks_failed),
            "throws_attempted": throws_ok + throws_failed,
            "throws_accuracy": _percentage(throws_ok, throws_failed),
        },
    }


@dataclass
class ReflectionSaveResult:
    state: ReflectionState
    unlocked: bool
    characters_remaining: int
    unlocked_at: Optional[datetime] = None


@dataclass
class FeedbackView:
    player_id: str
    match_id: str
    opponent: str
    match_date: date
    team_score: int
    opponent_score: int
    state: ReflectionState
    reflection: Optional[str]
    characters_remaining: int
    feedback: Optional[str] = None
    ai_suggestions: Optional[str] = None
    performance: Optional[dict] = field(default=None)

    @property
    def is_unlocked(self) -> bool:
        return self.state is ReflectionState.UNLOCKED


class ReflectionGateService:
    """Persisted side of the gate: saving reflections and the gated feedback view."""

    def __init__(self, db: Session):
        self.db = db
        self.stats = StatsRepository(db)
        self.players = PlayerRepository(db)
        self.matches = MatchRepository(db)

    def _record(self, player_id: str, match_id: str) -> MatchStatRecord:
        record = self.stats.find_for(player_id, match_id)
        if record is None:
            raise NotFoundError("MatchStatRecord", f"{player_id}/{match_id}")
        return record

    def save_reflection(
        self,
        player_id: str,
        match_id: str,
        text: Optional[str],
        ctx: RequestContext = SYSTEM_CONTEXT,
    ) -> ReflectionSaveResult:
        """
        Store the player's reflection and advance the gate.

        Raises:
            ValidationError: reflection longer than REFLECTION_MAX_LENGTH
            AccessDeniedError: the caller is not the player
            NotFoundError: no stats have been submitted for (player, match)
        """
        text = text or ""
        if len(text) > settings.REFLECTION_MAX_LENGTH:
            raise ValidationError(
                "Reflection is too long",
                [{"field": "reflection", "message": f"at most {settings.REFLECTION_MAX_LENGTH} characters"}],
            )

        player = self.players.find_by_id(player_id)
        if player is None:
            raise NotFoundError("Player", player_id)
        if ctx.current_user_id and player.user_id and ctx.current_user_id != player.user_id:
            raise AccessDeniedError(
                "Only the player can write their reflection",
                {"player_id": player_id},
            )

        with player_stats_lock.hold(player_id, timeout_s=settings.LOCK_TIMEOUT_SECONDS):
            try:
                record = self._record(player_id, match_id)
                previous = evaluate(record.reflection, record.unlocked_at)
                state = transition(previous, text)

                record.reflection = text
                if state is not ReflectionState.LOCKED and record.unlocked_at is None:
                    record.unlocked_at = utcnow()
                self.stats.update(record)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        unlocked = state is ReflectionState.UNLOCKING
        if unlocked:
            metrics.record_reflection_unlock()
            logger.info(
                f"Feedback unlocked for player {player_id} match {match_id}",
                extra={"player_id": player_id, "match_id": match_id},
            )
            state = ReflectionState.UNLOCKED

        return ReflectionSaveResult(
            state=state,
            unlocked=unlocked,
            characters_remaining=0 if state is ReflectionState.UNLOCKED else characters_remaining(text),
            unlocked_at=record.unlocked_at,
        )

    def get_feedback_view(self, player_id: str, match_id: str) -> FeedbackView:
        """The match feedback as the player may see it right now."""
        record = self._record(player_id, match_id)
        match = self.matches.find_by_id(match_id)
        state = evaluate(record.reflection, record.unlocked_at)

        view = FeedbackView(
            player_id=player_id,
            match_id=match_id,
            opponent=match.opponent,
            match_date=match.match_date,
            team_score=match.team_score,
            opponent_score=match.opponent_score,
            state=state,
            reflection=record.reflection,
            characters_remaining=0 if state is ReflectionState.UNLOCKED else characters_remaining(record.reflection),
        )
        if view.is_unlocked:
            view.feedback = record.feedback
            view.ai_suggestions = record.ai_suggestions
            view.performance = performance_summary(record)
        return view
