"""
Database models for the SquadTrack match lifecycle and growth tracking service.

Tables:
- players: roster projection plus the live attribute columns
- seasons / matches: the competitive calendar
- lineups / lineup_assignments: one formation per match and its slot map
- moderate_reviews: per-(match, player) coach stats, feedback and the player's reflection
- player_snapshots: append-only growth log
"""
import uuid

from sqlalchemy import (
    Column, String, Integer, DateTime, Date, ForeignKey, Boolean, Text, Index, UniqueConstraint,
    CheckConstraint, event,
)
from sqlalchemy.orm import relationship, declarative_base

from squadtrack.utils.timezone import utcnow

Base = declarative_base()

ATTRIBUTE_FIELDS = ("shooting", "passing", "dribbling", "defense", "physical")
RATING_FIELDS = ATTRIBUTE_FIELDS + ("coach_grade", "overall_rating")
DEFAULT_ATTRIBUTE_VALUE = 50


def new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# ROSTER
# =============================================================================

class Player(Base):
    """
    Player as seen by this service.

    Name, position and team come from the roster service; the rating
    columns are the live PlayerCurrentAttributes owned by the stats pipeline.
    """
    __tablename__ = "players"

    id = Column(String(36), primary_key=True, default=new_id)
    team_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=True, index=True)  # account that owns reflections
    name = Column(String(255), nullable=False)
    position = Column(String(10), nullable=True)  # GK, CB, CM, ST, ...

    shooting = Column(Integer, nullable=False, default=DEFAULT_ATTRIBUTE_VALUE)
    passing = Column(Integer, nullable=False, default=DEFAULT_ATTRIBUTE_VALUE)
    dribbling = Column(Integer, nullable=False, default=DEFAULT_ATTRIBUTE_VALUE)
    defense = Column(Integer, nullable=False, default=DEFAULT_ATTRIBUTE_VALUE)
    physical = Column(Integer, nullable=False, default=DEFAULT_ATTRIBUTE_VALUE)
    coach_grade = Column(Integer, nullable=False, default=DEFAULT_ATTRIBUTE_VALUE)
    overall_rating = Column(Integer, nullable=False, default=DEFAULT_ATTRIBUTE_VALUE)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    stat_records = relationship("MatchStatRecord", back_populates="player", cascade="all, delete-orphan")

    def attributes(self) -> dict:
        """Current rating columns as a plain dict."""
        return {field: getattr(self, field) for field in RATING_FIELDS}


# =============================================================================
# CALENDAR
# =============================================================================

class Season(Base):
    """A bounded date range scoping a team's matches."""
    __tablename__ = "seasons"

    id = Column(String(36), primary_key=True, default=new_id)
    team_id = Column(String(36), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # No cascade: a season with matches cannot be deleted
    matches = relationship("Match", back_populates="season", passive_deletes="all")

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_seasons_date_order"),
        Index("ix_seasons_team_start", "team_id", "start_date"),
    )


class Match(Base):
    """One fixture, always inside its season's date range."""
    __tablename__ = "matches"

    id = Column(String(36), primary_key=True, default=new_id)
    team_id = Column(String(36), nullable=False, index=True)
    season_id = Column(String(36), ForeignKey("seasons.id", ondelete="RESTRICT"), nullable=False, index=True)
    opponent = Column(String(255), nullable=False)
    match_date = Column(Date, nullable=False, index=True)
    team_score = Column(Integer, nullable=False, default=0)
    opponent_score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    season = relationship("Season", back_populates="matches")
    lineup = relationship("Lineup", back_populates="match", uselist=False, cascade="all, delete-orphan")
    stat_records = relationship("MatchStatRecord", back_populates="match", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("team_score >= 0 AND opponent_score >= 0", name="ck_matches_scores"),
    )


# =============================================================================
# LINEUPS
# =============================================================================

class Lineup(Base):
    """Formation chosen for a match; exactly one per match."""
    __tablename__ = "lineups"

    id = Column(String(36), primary_key=True, default=new_id)
    match_id = Column(String(36), ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, unique=True)
    team_id = Column(String(36), nullable=False, index=True)
    formation = Column(String(20), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    match = relationship("Match", back_populates="lineup")
    assignments = relationship("LineupAssignment", back_populates="lineup", cascade="all, delete-orphan")


class LineupAssignment(Base):
    """Player placed in one starting or bench slot."""
    __tablename__ = "lineup_assignments"

    id = Column(String(36), primary_key=True, default=new_id)
    lineup_id = Column(String(36), ForeignKey("lineups.id", ondelete="CASCADE"), nullable=False, index=True)
    slot_code = Column(String(10), nullable=False)  # GK, CB1, ST, ..., B1..Bn
    player_id = Column(String(36), ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    lineup = relationship("Lineup", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("lineup_id", "slot_code", name="uq_lineup_assignments_slot"),
        UniqueConstraint("lineup_id", "player_id", name="uq_lineup_assignments_player"),
    )


# =============================================================================
# MATCH STATS & GROWTH
# =============================================================================

class MatchStatRecord(Base):
    """
    Coach-submitted performance for one player in one match.

    ``reflection`` and ``unlocked_at`` belong to the player; every other
    column belongs to the coach or the system.
    """
    __tablename__ = "moderate_reviews"

    id = Column(String(36), primary_key=True, default=new_id)
    match_id = Column(String(36), ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    player_id = Column(String(36), ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)

    minutes_played = Column(Integer, nullable=False, default=0)
    goals = Column(Integer, nullable=False, default=0)
    assists = Column(Integer, nullable=False, default=0)
    tackles = Column(Integer, nullable=False, default=0)
    interceptions = Column(Integer, nullable=False, default=0)
    saves = Column(Integer, nullable=False, default=0)
    chances_created = Column(Integer, nullable=False, default=0)
    successful_goalie_kicks = Column(Integer, nullable=False, default=0)
    failed_goalie_kicks = Column(Integer, nullable=False, default=0)
    successful_goalie_throws = Column(Integer, nullable=False, default=0)
    failed_goalie_throws = Column(Integer, nullable=False, default=0)
    coach_rating = Column(Integer, nullable=False, default=50)

    feedback = Column(Text, nullable=True)
    ai_suggestions = Column(Text, nullable=True)
    reflection = Column(Text, nullable=True)
    unlocked_at = Column(DateTime, nullable=True)  # set once, when the reflection first reaches the threshold

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    match = relationship("Match", back_populates="stat_records")
    player = relationship("Player", back_populates="stat_records")

    __table_args__ = (
        UniqueConstraint("match_id", "player_id", name="uq_moderate_reviews_match_player"),
    )


class PlayerAttributeSnapshot(Base):
    """
    Immutable record of a player's ratings as of one match.

    Rows are only ever inserted. ``match_id`` is deliberately not a foreign
    key: the snapshot keeps its own copy of the match date and opponent and
    stays in the log after the match is deleted. The initial snapshot of a
    player has ``match_id`` NULL and holds the pre-tracking ratings.
    """
    __tablename__ = "player_snapshots"

    id = Column(String(36), primary_key=True, default=new_id)
    player_id = Column(String(36), ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    match_id = Column(String(36), nullable=True, index=True)
    revision = Column(Integer, nullable=False, default=1)  # 1-based per (player, match); highest is effective

    shooting = Column(Integer, nullable=False)
    passing = Column(Integer, nullable=False)
    dribbling = Column(Integer, nullable=False)
    defense = Column(Integer, nullable=False)
    physical = Column(Integer, nullable=False)
    coach_grade = Column(Integer, nullable=False)
    overall_rating = Column(Integer, nullable=False)

    match_date = Column(Date, nullable=True)
    opponent = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = (
        Index("ix_player_snapshots_player_match", "player_id", "match_id"),
        UniqueConstraint("player_id", "match_id", "revision", name="uq_player_snapshots_revision"),
    )

    def attributes(self) -> dict:
        return {field: getattr(self, field) for field in RATING_FIELDS}


class ImmutableSnapshotError(RuntimeError):
    """Raised when code tries to rewrite or remove a growth snapshot."""


@event.listens_for(PlayerAttributeSnapshot, "before_update")
def _reject_snapshot_update(mapper, connection, target):
    raise ImmutableSnapshotError(f"Growth snapshot {target.id} is append-only and cannot be updated")


@event.listens_for(PlayerAttributeSnapshot, "before_delete")
def _reject_snapshot_delete(mapper, connection, target):
    raise ImmutableSnapshotError(f"Growth snapshot {target.id} is append-only and cannot be deleted")
