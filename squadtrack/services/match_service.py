"""
Match lifecycle.

Every create and update re-checks the season date bounds; deleting a match
cascades to its lineup and stat records while the player growth snapshots
stay in the log.
"""
import logging
from contextlib import ExitStack
from typing import Optional, List

from sqlalchemy.orm import Session

from squadtrack.core.config import settings
from squadtrack.core.context import RequestContext, SYSTEM_CONTEXT
from squadtrack.core.exceptions import NotFoundError, ValidationError
from squadtrack.core.locks import player_stats_lock
from squadtrack.models import Season, Match
from squadtrack.repositories import SeasonRepository, MatchRepository
from squadtrack.services.stats_service import StatsService
from squadtrack.services.temporal_validator import validate_match_date
from squadtrack.utils.timezone import DateLike, to_calendar_date

logger = logging.getLogger(__name__)


class MatchService:
    """Create, update and delete matches inside their season's bounds."""

    def __init__(self, db: Session):
        self.db = db
        self.seasons = SeasonRepository(db)
        self.matches = MatchRepository(db)

    def _season(self, season_id: str) -> Season:
        season = self.seasons.find_by_id(season_id)
        if season is None:
            raise NotFoundError("Season", season_id)
        return season

    def get_match(self, match_id: str) -> Match:
        match = self.matches.find_by_id(match_id)
        if match is None:
            raise NotFoundError("Match", match_id)
        return match

    def list_matches(self, team_id: str, season_id: Optional[str] = None) -> List[Match]:
        return self.matches.find_by_team(team_id, season_id=season_id)

    @staticmethod
    def _check_scores(team_score: Optional[int], opponent_score: Optional[int]) -> None:
        errors = [
            {"field": field, "message": "must be a non-negative integer"}
            for field, value in (("team_score", team_score), ("opponent_score", opponent_score))
            if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0)
        ]
        if errors:
            raise ValidationError("Invalid match score", errors)

    def create_match(
        self,
        season_id: str,
        opponent: str,
        match_date: DateLike,
        team_score: int = 0,
        opponent_score: int = 0,
        team_id: Optional[str] = None,
        ctx: RequestContext = SYSTEM_CONTEXT,
    ) -> Match:
        """
        Create a match inside ``season_id``.

        Raises:
            NotFoundError: unknown season
            DateOutOfBoundsError: match_date outside the season
            ValidationError: empty opponent, negative score, or a team other than the season's
        """
        season = self._season(season_id)
        team_id = team_id or season.team_id
        if team_id != season.team_id:
            raise ValidationError(
                "Match team does not own the season",
                [{"field": "team_id", "message": f"season {season_id} belongs to team {season.team_id}"}],
            )
        ctx.ensure_team(team_id)

        opponent = (opponent or "").strip()
        if not opponent:
            raise ValidationError("Opponent is required", [{"field": "opponent", "message": "must not be empty"}])
        self._check_scores(team_score, opponent_score)
        validate_match_date(match_date, season)

        try:
            match = self.matches.create(
                team_id=team_id,
                season_id=season.id,
                opponent=opponent,
                match_date=to_calendar_date(match_date),
                team_score=team_score,
                opponent_score=opponent_score,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Created match {match.id} vs {opponent} on {match.match_date.isoformat()}",
            extra={"match_id": match.id, "season_id": season.id},
        )
        return match

    def update_match(
        self,
        match_id: str,
        opponent: Optional[str] = None,
        match_date: Optional[DateLike] = None,
        team_score: Optional[int] = None,
        opponent_score: Optional[int] = None,
        season_id: Optional[str] = None,
        ctx: RequestContext = SYSTEM_CONTEXT,
    ) -> Match:
        """
        Update a match; the date bound is re-checked against the (possibly new) season.

        Moving the match in the calendar replays the growth chain of every
        player with stats on it, from the earlier of the old and new dates,
        in the same transaction.
        """
        match = self.get_match(match_id)
        ctx.ensure_team(match.team_id)

        season = self._season(season_id) if season_id else match.season
        if season.team_id != match.team_id:
            raise ValidationError(
                "Season belongs to another team",
                [{"field": "season_id", "message": f"season {season.id} belongs to team {season.team_id}"}],
            )
        self._check_scores(team_score, opponent_score)

        new_date = to_calendar_date(match_date) if match_date is not None else match.match_date
        validate_match_date(new_date, season)

        changes = {"season_id": season.id, "match_date": new_date}
        if opponent is not None:
            opponent = opponent.strip()
            if not opponent:
                raise ValidationError("Opponent is required", [{"field": "opponent", "message": "must not be empty"}])
            changes["opponent"] = opponent
        if team_score is not None:
            changes["team_score"] = team_score
        if opponent_score is not None:
            changes["opponent_score"] = opponent_score

        old_key = (match.match_date, match.id)
        moved = new_date != match.match_date
        player_ids = sorted({r.player_id for r in match.stat_records}) if moved else []

        with ExitStack() as held:
            # Player locks are always taken in id order
            for player_id in player_ids:
                held.enter_context(player_stats_lock.hold(player_id, timeout_s=settings.LOCK_TIMEOUT_SECONDS))
            try:
                self.matches.update(match, **changes)
                self.db.flush()
                start = min(old_key, (new_date, match.id))
                stats = StatsService(self.db)
                for player_id in player_ids:
                    stats.replay_from(player_id, start)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        if moved:
            logger.info(
                f"Match {match_id} moved {old_key[0].isoformat()} -> {new_date.isoformat()}; "
                f"replayed growth for {len(player_ids)} player(s)",
                extra={"match_id": match_id, "players": len(player_ids)},
            )
        return match

    def delete_match(self, match_id: str, ctx: RequestContext = SYSTEM_CONTEXT) -> None:
        """Delete a match with its lineup and stat records; growth snapshots stay."""
        match = self.get_match(match_id)
        ctx.ensure_team(match.team_id)
        try:
            self.matches.delete(match)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Deleted match {match_id}", extra={"match_id": match_id})


def match_result(match: Match) -> str:
    """'W', 'D' or 'L' from the team's point of view."""
    if match.team_score > match.opponent_score:
        return "W"
    if match.team_score < match.opponent_score:
        return "L"
    return "D"


