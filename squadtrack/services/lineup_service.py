"""
Lineup assignment service.

One lineup per match. A lineup has a formation, which fixes the starting
slot vocabulary, plus the bench. The service guarantees that after every
successful mutation no player holds two slots and no slot lies outside the
vocabulary.

Concurrency: edits of the same match's lineup are serialized by
``lineup_lock`` (keyed by match id) and a row lock on the lineup; the
unique constraints on (lineup_id, slot_code) and (lineup_id, player_id)
catch anything that slips past both.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from squadtrack.core import metrics
from squadtrack.core.config import settings
from squadtrack.core.context import RequestContext, SYSTEM_CONTEXT
from squadtrack.core.exceptions import (
    DuplicatePlayerError, NotFoundError, SlotConflictError, ValidationError,
)
from squadtrack.core.locks import lineup_lock
from squadtrack.models import Lineup, LineupAssignment
from squadtrack.repositories import LineupRepository, MatchRepository, PlayerRepository
from squadtrack.services import formations

logger = logging.getLogger(__name__)


class LineupService:
    """Formation selection and slot assignment for match lineups."""

    def __init__(self, db: Session, bench_size: Optional[int] = None):
        self.db = db
        self.bench_size = settings.BENCH_SIZE if bench_size is None else bench_size
        self.lineups = LineupRepository(db)
        self.matches = MatchRepository(db)
        self.players = PlayerRepository(db)

    # ========================================================================
    # Reads
    # ========================================================================

    @staticmethod
    def list_formations(bench_size: Optional[int] = None) -> List[dict]:
        return [
            {"formation": name, "slots": formations.starting_slots(name), "bench": formations.bench_slots(bench_size)}
            for name in formations.supported_formations()
        ]

    def get_lineup(self, lineup_id: str) -> Lineup:
        lineup = self.lineups.find_by_id(lineup_id)
        if lineup is None:
            raise NotFoundError("Lineup", lineup_id)
        return lineup

    def get_lineup_for_match(self, match_id: str) -> Optional[Lineup]:
        """The match's lineup, or None when no formation has been chosen yet."""
        if self.matches.find_by_id(match_id) is None:
            raise NotFoundError("Match", match_id)
        return self.lineups.find_by_match(match_id)

    def vocabulary(self, lineup: Lineup) -> List[str]:
        return formations.slot_vocabulary(lineup.formation, self.bench_size)

    def slot_map(self, lineup: Lineup) -> Dict[str, Optional[str]]:
        """Every vocabulary slot (formation order, then bench) mapped to its player id or None."""
        mapping: Dict[str, Optional[str]] = {slot: None for slot in self.vocabulary(lineup)}
        for assignment in self.lineups.assignments(lineup.id):
            if assignment.slot_code in mapping:
                mapping[assignment.slot_code] = assignment.player_id
        return mapping

    # ========================================================================
    # Mutations
    # ========================================================================

    def select_formation(self, match_id: str, formation: str, ctx: RequestContext = SYSTEM_CONTEXT) -> Lineup:
        """
        Create the match's lineup, or reset it to ``formation``.

        On an existing lineup every assignment is cleared, starting and bench
        alike, even when the formation is unchanged.

        Raises:
            ValidationError: unsupported formation
            NotFoundError: unknown match
        """
        if not formations.is_supported(formation):
            raise ValidationError(
                f"Unsupported formation '{formation}'",
                [{"field": "formation", "message": f"supported: {', '.join(formations.supported_formations())}"}],
            )
        match = self.matches.find_by_id(match_id)
        if match is None:
            raise NotFoundError("Match", match_id)
        ctx.ensure_team(match.team_id)

        with lineup_lock.hold(match_id, timeout_s=settings.LOCK_TIMEOUT_SECONDS):
            try:
                lineup = self.lineups.find_by_match(match_id, for_update=True)
                if lineup is None:
                    lineup = self.lineups.create(match_id=match_id, team_id=match.team_id, formation=formation)
                    logger.info(
                        f"Created lineup {lineup.id} for match {match_id} in {formation}",
                        extra={"lineup_id": lineup.id, "match_id": match_id, "formation": formation},
                    )
                else:
                    cleared = self.lineups.clear_assignments(lineup.id)
                    previous = lineup.formation
                    self.lineups.update(lineup, formation=formation)
                    self.db.expire(lineup, ["assignments"])
                    metrics.record_formation_reset()
                    logger.info(
                        f"Lineup {lineup.id} reset {previous} -> {formation}; cleared {cleared} assignment(s)",
                        extra={"lineup_id": lineup.id, "match_id": match_id, "cleared_assignments": cleared},
                    )
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
        return lineup

    def assign_player(
        self,
        lineup_id: str,
        slot_code: str,
        player_id: str,
        ctx: RequestContext = SYSTEM_CONTEXT,
    ) -> LineupAssignment:
        """
        Put ``player_id`` in ``slot_code``, replacing whoever held the slot.

        Raises:
            SlotConflictError: slot not in the formation or bench
            DuplicatePlayerError: player already holds a different slot of this lineup
            NotFoundError: unknown lineup or player
        """
        lineup = self.get_lineup(lineup_id)
        ctx.ensure_team(lineup.team_id)
        if self.players.find_by_id(player_id) is None:
            raise NotFoundError("Player", player_id)

        with lineup_lock.hold(lineup.match_id, timeout_s=settings.LOCK_TIMEOUT_SECONDS):
            try:
                lineup = self.lineups.find_by_id_for_update(lineup_id)
                if lineup is None:
                    raise NotFoundError("Lineup", lineup_id)
                vocabulary = self.vocabulary(lineup)
                if slot_code not in vocabulary:
                    metrics.record_lineup_rejection("slot_conflict")
                    raise SlotConflictError(slot_code, lineup.formation, vocabulary)

                held = self.lineups.find_player_slot(lineup_id, player_id)
                if held is not None:
                    if held.slot_code == slot_code:
                        self.db.commit()
                        return held
                    metrics.record_lineup_rejection("duplicate_player")
                    raise DuplicatePlayerError(player_id, held.slot_code, slot_code)

                occupant = self.lineups.find_slot(lineup_id, slot_code)
                if occupant is not None:
                    logger.info(
                        f"Slot {slot_code} of lineup {lineup_id}: replacing player {occupant.player_id}",
                        extra={"lineup_id": lineup_id, "slot_code": slot_code},
                    )
                    self.lineups.remove_assignment(occupant)

                assignment = self.lineups.add_assignment(lineup_id, slot_code, player_id)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                held = self.lineups.find_player_slot(lineup_id, player_id)
                metrics.record_lineup_rejection("duplicate_player")
                raise DuplicatePlayerError(player_id, held.slot_code if held else slot_code, slot_code)
            except Exception:
                self.db.rollback()
                raise
        return assignment

    def unassign_slot(self, lineup_id: str, slot_code: str, ctx: RequestContext = SYSTEM_CONTEXT) -> None:
        """Empty a slot; no-op when it is already empty."""
        lineup = self.get_lineup(lineup_id)
        ctx.ensure_team(lineup.team_id)

        with lineup_lock.hold(lineup.match_id, timeout_s=settings.LOCK_TIMEOUT_SECONDS):
            try:
                if self.lineups.find_by_id_for_update(lineup_id) is None:
                    raise NotFoundError("Lineup", lineup_id)
                occupant = self.lineups.find_slot(lineup_id, slot_code)
                if occupant is not None:
                    self.lineups.remove_assignment(occupant)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
