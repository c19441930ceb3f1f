"""
Season lifecycle.

SeasonService owns season creation, activation and guarded deletion. It
commits its own transaction and rolls back on any error.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from squadtrack.core.context import RequestContext, SYSTEM_CONTEXT
from squadtrack.core.exceptions import NotFoundError, ReferenceConflictError, ValidationError
from squadtrack.models import Season
from squadtrack.repositories import SeasonRepository
from squadtrack.services.temporal_validator import validate_season_bounds
from squadtrack.utils.timezone import DateLike, to_calendar_date

logger = logging.getLogger(__name__)


class SeasonService:
    """Create, list, toggle and delete seasons."""

    def __init__(self, db: Session):
        self.db = db
        self.seasons = SeasonRepository(db)

    def create_season(
        self,
        team_id: str,
        name: str,
        start_date: DateLike,
        end_date: DateLike,
        is_active: bool = True,
        ctx: RequestContext = SYSTEM_CONTEXT,
    ) -> Season:
        """
        Create a season for a team.

        Raises:
            ValidationError: empty name, or start_date not before end_date
            ReferenceConflictError: the range overlaps another season of the team
        """
        ctx.ensure_team(team_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Season name is required", [{"field": "name", "message": "must not be empty"}])
        validate_season_bounds(start_date, end_date)
        start, end = to_calendar_date(start_date), to_calendar_date(end_date)

        clash = self.seasons.find_overlapping(team_id, start, end)
        if clash:
            raise ReferenceConflictError(
                f"Season overlaps existing season '{clash.name}' "
                f"({clash.start_date.isoformat()} to {clash.end_date.isoformat()})",
                {"season_id": clash.id, "name": clash.name,
                 "start_date": clash.start_date.isoformat(), "end_date": clash.end_date.isoformat()},
            )

        try:
            season = self.seasons.create(
                team_id=team_id, name=name, start_date=start, end_date=end, is_active=is_active,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Created season {season.id} for team {team_id}", extra={"season_id": season.id})
        return season

    def get_season(self, season_id: str) -> Season:
        season = self.seasons.find_by_id(season_id)
        if season is None:
            raise NotFoundError("Season", season_id)
        return season

    def list_seasons(self, team_id: str, active_only: bool = False) -> List[Season]:
        return self.seasons.find_by_team(team_id, active_only=active_only)

    def set_active(self, season_id: str, is_active: bool, ctx: RequestContext = SYSTEM_CONTEXT) -> Season:
        season = self.get_season(season_id)
        ctx.ensure_team(season.team_id)
        try:
            self.seasons.update(season, is_active=is_active)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Season {season_id} is_active={is_active}")
        return season

    def delete_season(self, season_id: str, ctx: RequestContext = SYSTEM_CONTEXT) -> None:
        """
        Raises:
            ReferenceConflictError: matches still reference the season
        """
        season = self.get_season(season_id)
        ctx.ensure_team(season.team_id)
        match_count = self.seasons.match_count(season_id)
        if match_count:
            raise ReferenceConflictError(
                f"Season '{season.name}' still has {match_count} match(es); delete them first",
                {"season_id": season_id, "match_count": match_count},
            )
        try:
            self.seasons.delete(season)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Deleted season {season_id}")
