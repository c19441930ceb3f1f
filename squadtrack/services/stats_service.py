"""
Stats ingestion pipeline.

A coach submits one player's stats for one match. The service:

1. validates the payload (``RawMatchStats``) before touching the database
2. upserts the MatchStatRecord for (match, player)
3. computes the new ratings from the match's baseline
4. appends a growth snapshot and replays every later match of the player
5. sets the player's current ratings to the chronologically last result

The baseline of a match is the effective snapshot of the player's previous
match in ``(match_date, match_id)`` order, or the player's initial snapshot
for their first match. Resubmitting unchanged stats therefore produces
unchanged ratings, however often it happens.

Steps 2-5 run in one transaction under the player's keyed lock and a row
lock on the player.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from squadtrack.core import metrics
from squadtrack.core.config import settings
from squadtrack.core.context import RequestContext, SYSTEM_CONTEXT
from squadtrack.core.exceptions import NotFoundError, ValidationError
from squadtrack.core.locks import player_stats_lock
from squadtrack.models import Match, MatchStatRecord, Player, PlayerAttributeSnapshot, RATING_FIELDS
from squadtrack.repositories import MatchRepository, PlayerRepository, SnapshotRepository, StatsRepository
from squadtrack.services.attribute_engine import attribute_delta, calculate_attribute_updates

logger = logging.getLogger(__name__)

MatchKey = Tuple[date, str]

COUNTER_FIELDS = (
    "goals",
    "assists",
    "tackles",
    "interceptions",
    "saves",
    "chances_created",
    "successful_goalie_kicks",
    "failed_goalie_kicks",
    "successful_goalie_throws",
    "failed_goalie_throws",
)
STAT_FIELDS = ("minutes_played",) + COUNTER_FIELDS + ("coach_rating",)
TEXT_FIELDS = ("feedback", "ai_suggestions")

MAX_MINUTES = 120


class RawMatchStats(BaseModel):
    """Coach-submitted stats for one player in one match."""
    model_config = ConfigDict(extra="forbid", strict=True)

    minutes_played: int = Field(0, ge=0, le=MAX_MINUTES)
    goals: int = Field(0, ge=0)
    assists: int = Field(0, ge=0)
    tackles: int = Field(0, ge=0)
    interceptions: int = Field(0, ge=0)
    saves: int = Field(0, ge=0)
    chances_created: int = Field(0, ge=0)
    successful_goalie_kicks: int = Field(0, ge=0)
    failed_goalie_kicks: int = Field(0, ge=0)
    successful_goalie_throws: int = Field(0, ge=0)
    failed_goalie_throws: int = Field(0, ge=0)
    coach_rating: int = Field(50, ge=0, le=100)
    feedback: Optional[str] = None
    ai_suggestions: Optional[str] = None

    def numeric(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in STAT_FIELDS}


def parse_raw_stats(raw: Union[RawMatchStats, Mapping]) -> RawMatchStats:
    """
    Raises:
        ValidationError: with one entry per offending field
    """
    if isinstance(raw, RawMatchStats):
        return raw
    try:
        return RawMatchStats.model_validate(dict(raw or {}))
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]) or "body", "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Invalid match stats", errors) from e


def record_stats(record: MatchStatRecord) -> Dict[str, int]:
    """Numeric stats of a stored record, as fed to the attribute formula."""
    return {name: getattr(record, name) or 0 for name in STAT_FIELDS}


@dataclass
class StatsSubmissionResult:
    review_id: str
    player_id: str
    match_id: str
    previous_attributes: Dict[str, int]
    new_attributes: Dict[str, int]
    growth_delta: Dict[str, int]
    created: bool = False
    recalculated_match_ids: List[str] = field(default_factory=list)


@dataclass
class GrowthHistory:
    player: Player
    current_attributes: Dict[str, int]
    history: List[PlayerAttributeSnapshot]
    snapshot_count: int


class StatsService:
    """Match stat submission and growth history."""

    def __init__(self, db: Session):
        self.db = db
        self.players = PlayerRepository(db)
        self.matches = MatchRepository(db)
        self.stats = StatsRepository(db)
        self.snapshots = SnapshotRepository(db)

    # ========================================================================
    # Submission
    # ========================================================================

    def submit_match_stats(
        self,
        player_id: str,
        match_id: str,
        raw_stats: Union[RawMatchStats, Mapping],
        ctx: RequestContext = SYSTEM_CONTEXT,
    ) -> StatsSubmissionResult:
        """
        Record stats for (player, match) and update the player's growth chain.

        Raises:
            ValidationError: malformed stats, or player not on the match's team
            NotFoundError: unknown player or match
            AccessDeniedError: match belongs to another team than the caller's
            TimeoutError: the player's lock was not acquired in time
        """
        try:
            stats = parse_raw_stats(raw_stats)
        except ValidationError:
            metrics.record_stats_submission("rejected")
            raise

        match = self.matches.find_by_id(match_id)
        if match is None:
            raise NotFoundError("Match", match_id)
        player = self.players.find_by_id(player_id)
        if player is None:
            raise NotFoundError("Player", player_id)
        ctx.ensure_team(match.team_id)
        if player.team_id != match.team_id:
            raise ValidationError(
                "Player is not on the match's team",
                [{"field": "player_id", "message": f"player {player_id} plays for team {player.team_id}"}],
            )

        with player_stats_lock.hold(player_id, timeout_s=settings.LOCK_TIMEOUT_SECONDS):
            try:
                result = self._submit_locked(player_id, match_id, stats)
                self.db.commit()
            except IntegrityError:
                # Another writer inserted the record first; replay as an update
                self.db.rollback()
                logger.warning(
                    f"Concurrent insert of stats for player {player_id} match {match_id}; retrying as update",
                    extra={"player_id": player_id, "match_id": match_id},
                )
                try:
                    result = self._submit_locked(player_id, match_id, stats)
                    self.db.commit()
                except Exception:
                    self.db.rollback()
                    raise
            except Exception:
                self.db.rollback()
                raise

        metrics.record_stats_submission("created" if result.created else "updated")
        logger.info(
            f"Stats {'created' if result.created else 'updated'} for player {player_id} "
            f"match {match_id}: overall {result.previous_attributes['overall_rating']} -> "
            f"{result.new_attributes['overall_rating']}",
            extra={
                "player_id": player_id,
                "match_id": match_id,
                "recalculated_matches": len(result.recalculated_match_ids),
            },
        )
        return result

    def _submit_locked(self, player_id: str, match_id: str, stats: RawMatchStats) -> StatsSubmissionResult:
        player = self.players.find_by_id_for_update(player_id)
        match = self.matches.find_by_id(match_id)

        record = self.stats.find_for(player_id, match_id)
        created = record is None
        values = stats.numeric()
        for name in TEXT_FIELDS:
            if name in stats.model_fields_set:
                values[name] = getattr(stats, name)
        if created:
            record = self.stats.create(match_id=match_id, player_id=player_id, **values)
        else:
            self.stats.update(record, **values)
            self.db.flush()

        initial = self.snapshots.find_initial(player_id)
        if initial is None:
            initial = self.snapshots.append(player_id, player.attributes())
            metrics.record_snapshot("initial")

        timeline = self._effective_timeline(player_id)
        for key in [k for k in timeline if k[1] == match_id]:
            del timeline[key]

        target = (match.match_date, match.id)
        previous = _baseline_before(timeline, target, initial.attributes())
        new = calculate_attribute_updates(previous, values)
        self.snapshots.append(player_id, new, match_id=match.id, match_date=match.match_date, opponent=match.opponent)
        metrics.record_snapshot("submission")
        timeline[target] = new

        recalculated = self._replay(player_id, timeline, initial.attributes(), after=target)
        self._apply_latest(player, timeline)

        return StatsSubmissionResult(
            review_id=record.id,
            player_id=player_id,
            match_id=match_id,
            previous_attributes=dict(previous),
            new_attributes=new,
            growth_delta=attribute_delta(previous, new),
            created=created,
            recalculated_match_ids=recalculated,
        )

    def replay_from(self, player_id: str, start: MatchKey) -> List[str]:
        """
        Recompute every match of the player keyed at or after ``start``.

        Used when a match moves in the calendar. The caller holds the
        player's keyed lock and owns the commit.
        """
        player = self.players.find_by_id_for_update(player_id)
        if player is None:
            raise NotFoundError("Player", player_id)
        initial = self.snapshots.find_initial(player_id)
        if initial is None:
            return []

        timeline = self._effective_timeline(player_id)
        recalculated = self._replay(player_id, timeline, initial.attributes(), after=start, inclusive=True)
        self._apply_latest(player, timeline)
        return recalculated

    def _replay(
        self,
        player_id: str,
        timeline: Dict[MatchKey, Dict[str, int]],
        initial: Dict[str, int],
        after: MatchKey,
        inclusive: bool = False,
    ) -> List[str]:
        """Append a fresh snapshot for each recorded match past ``after``, oldest first."""
        recalculated = []
        for record, match in self.stats.find_player_records(player_id):
            key = (match.match_date, match.id)
            if key < after or (key == after and not inclusive):
                continue
            baseline = _baseline_before(timeline, key, initial)
            attrs = calculate_attribute_updates(baseline, record_stats(record))
            self.snapshots.append(
                player_id, attrs,
                match_id=match.id, match_date=match.match_date, opponent=match.opponent,
            )
            timeline[key] = attrs
            recalculated.append(match.id)
        metrics.record_snapshot("recalculation", len(recalculated))
        return recalculated

    def _apply_latest(self, player: Player, timeline: Dict[MatchKey, Dict[str, int]]) -> None:
        """Current ratings follow the chronologically last match."""
        if timeline:
            self.players.update(player, **timeline[max(timeline)])
        self.db.flush()

    def _effective_timeline(self, player_id: str) -> Dict[MatchKey, Dict[str, int]]:
        """
        Effective ratings per match keyed by ``(match_date, match_id)``.

        Matches that still exist are keyed by their live date; snapshots of
        deleted matches keep the date they were recorded with.
        """
        effective = self.snapshots.effective_by_match(player_id)
        live = self.matches.find_by_ids([s.match_id for s in effective])
        timeline = {}
        for snapshot in effective:
            match = live.get(snapshot.match_id)
            match_date = match.match_date if match is not None else snapshot.match_date
            timeline[(match_date or date.min, snapshot.match_id)] = snapshot.attributes()
        return timeline

    # ========================================================================
    # Reads
    # ========================================================================

    def get_match_stats(self, player_id: str, match_id: str) -> MatchStatRecord:
        record = self.stats.find_for(player_id, match_id)
        if record is None:
            raise NotFoundError("MatchStatRecord", f"{player_id}/{match_id}")
        return record

    def list_match_reviews(self, match_id: str) -> List[MatchStatRecord]:
        if self.matches.find_by_id(match_id) is None:
            raise NotFoundError("Match", match_id)
        return self.stats.find_by_match(match_id)

    def effective_history(self, player_id: str) -> List[PlayerAttributeSnapshot]:
        """Latest snapshot per match in chronological order; the initial snapshot is left out."""
        effective = self.snapshots.effective_by_match(player_id)
        live = self.matches.find_by_ids([s.match_id for s in effective])

        def key(snapshot: PlayerAttributeSnapshot) -> MatchKey:
            match: Optional[Match] = live.get(snapshot.match_id)
            match_date = match.match_date if match is not None else snapshot.match_date
            return (match_date or date.min, snapshot.match_id)

        return sorted(effective, key=key)

    def get_growth_history(self, player_id: str) -> GrowthHistory:
        player = self.players.find_by_id(player_id)
        if player is None:
            raise NotFoundError("Player", player_id)
        return GrowthHistory(
            player=player,
            current_attributes=player.attributes(),
            history=self.effective_history(player_id),
            snapshot_count=self.snapshots.count_for_player(player_id),
        )


def _baseline_before(
    timeline: Mapping[MatchKey, Dict[str, int]],
    key: MatchKey,
    initial: Dict[str, int],
) -> Dict[str, int]:
    earlier = [k for k in timeline if k < key]
    if not earlier:
        return {name: initial[name] for name in RATING_FIELDS}
    return dict(timeline[max(earlier)])
