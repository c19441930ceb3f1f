"""
Season and match repositories.

Usage:
    seasons = SeasonRepository(db)
    clash = seasons.find_overlapping(team_id, date(2025, 2, 1), date(2025, 8, 1))

    matches = MatchRepository(db)
    fixtures = matches.find_by_team(team_id, season_id=season.id)
"""
from datetime import date
from typing import Optional, List

from sqlalchemy.orm import Session

from squadtrack.models import Season, Match
from squadtrack.repositories.base import BaseRepository


class SeasonRepository(BaseRepository[Season]):
    """Repository for seasons."""

    def __init__(self, db: Session):
        super().__init__(Season, db)

    def find_by_team(self, team_id: str, active_only: bool = False) -> List[Season]:
        """Seasons of a team, most recent first."""
        query = self.db.query(Season).filter(Season.team_id == team_id)
        if active_only:
            query = query.filter(Season.is_active == True)  # noqa: E712
        return query.order_by(Season.start_date.desc()).all()

    def find_overlapping(
        self,
        team_id: str,
        start_date: date,
        end_date: date,
        exclude_id: Optional[str] = None
    ) -> Optional[Season]:
        """First season of the team whose inclusive range intersects [start_date, end_date]."""
        query = self.db.query(Season).filter(
            Season.team_id == team_id,
            Season.start_date <= end_date,
            Season.end_date >= start_date,
        )
        if exclude_id:
            query = query.filter(Season.id != exclude_id)
        return query.order_by(Season.start_date).first()

    def match_count(self, season_id: str) -> int:
        return self.db.query(Match).filter(Match.season_id == season_id).count()


class MatchRepository(BaseRepository[Match]):
    """Repository for matches."""

    def __init__(self, db: Session):
        super().__init__(Match, db)

    def find_by_team(self, team_id: str, season_id: Optional[str] = None) -> List[Match]:
        """Matches of a team in chronological order, optionally restricted to one season."""
        query = self.db.query(Match).filter(Match.team_id == team_id)
        if season_id:
            query = query.filter(Match.season_id == season_id)
        return query.order_by(Match.match_date, Match.id).all()

    def find_by_ids(self, match_ids: List[str]) -> dict:
        """Map of match id to Match for the ids that still exist."""
        if not match_ids:
            return {}
        rows = self.db.query(Match).filter(Match.id.in_(match_ids)).all()
        return {m.id: m for m in rows}
