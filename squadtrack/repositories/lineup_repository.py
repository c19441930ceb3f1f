"""
Lineup repository.

Lineups and their assignments are always read and written together, so a
single repository covers both tables.
"""
from typing import Optional, List

from sqlalchemy.orm import Session

from squadtrack.models import Lineup, LineupAssignment
from squadtrack.repositories.base import BaseRepository


class LineupRepository(BaseRepository[Lineup]):
    """Repository for lineups and slot assignments."""

    def __init__(self, db: Session):
        super().__init__(Lineup, db)

    def find_by_match(self, match_id: str, for_update: bool = False) -> Optional[Lineup]:
        query = self.db.query(Lineup).filter(Lineup.match_id == match_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    # ========================================================================
    # Assignments
    # ========================================================================

    def assignments(self, lineup_id: str) -> List[LineupAssignment]:
        return self.db.query(LineupAssignment).filter(
            LineupAssignment.lineup_id == lineup_id
        ).all()

    def find_slot(self, lineup_id: str, slot_code: str) -> Optional[LineupAssignment]:
        return self.db.query(LineupAssignment).filter(
            LineupAssignment.lineup_id == lineup_id,
            LineupAssignment.slot_code == slot_code,
        ).first()

    def find_player_slot(self, lineup_id: str, player_id: str) -> Optional[LineupAssignment]:
        return self.db.query(LineupAssignment).filter(
            LineupAssignment.lineup_id == lineup_id,
            LineupAssignment.player_id == player_id,
        ).first()

    def add_assignment(self, lineup_id: str, slot_code: str, player_id: str) -> LineupAssignment:
        assignment = LineupAssignment(lineup_id=lineup_id, slot_code=slot_code, player_id=player_id)
        self.db.add(assignment)
        self.db.flush()
        return assignment

    def remove_assignment(self, assignment: LineupAssignment) -> None:
        self.db.delete(assignment)
        self.db.flush()

    def clear_assignments(self, lineup_id: str) -> int:
        """Delete every assignment of the lineup; returns how many were removed."""
        removed = self.db.query(LineupAssignment).filter(
            LineupAssignment.lineup_id == lineup_id
        ).delete(synchronize_session="fetch")
        self.db.flush()
        return removed
