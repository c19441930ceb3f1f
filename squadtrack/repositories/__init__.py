"""
Repository layer for data access.

Usage:
    from squadtrack.repositories import SeasonRepository
    from squadtrack.core.database import SessionLocal

    db = SessionLocal()
    seasons = SeasonRepository(db).find_by_team(team_id)
    db.close()
"""

from squadtrack.repositories.base import BaseRepository
from squadtrack.repositories.season_repository import SeasonRepository, MatchRepository
from squadtrack.repositories.lineup_repository import LineupRepository
from squadtrack.repositories.stats_repository import PlayerRepository, StatsRepository, SnapshotRepository

__all__ = [
    "BaseRepository",
    "SeasonRepository",
    "MatchRepository",
    "LineupRepository",
    "PlayerRepository",
    "StatsRepository",
    "SnapshotRepository",
]
