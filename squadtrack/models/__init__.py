"""
Database models.

Usage:
    from squadtrack.models import Player, Season, Match

    season = db.query(Season).filter(Season.team_id == team_id).first()
"""

from squadtrack.models.models import (
    Base,
    Player,
    Season,
    Match,
    Lineup,
    LineupAssignment,
    MatchStatRecord,
    PlayerAttributeSnapshot,
    ImmutableSnapshotError,
    ATTRIBUTE_FIELDS,
    RATING_FIELDS,
)

__all__ = [
    "Base",
    "Player",
    "Season",
    "Match",
    "Lineup",
    "LineupAssignment",
    "MatchStatRecord",
    "PlayerAttributeSnapshot",
    "ImmutableSnapshotError",
    "ATTRIBUTE_FIELDS",
    "RATING_FIELDS",
]
