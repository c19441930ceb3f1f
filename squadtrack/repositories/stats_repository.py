"""
Repositories for the stats pipeline: players, match stat records and the
growth snapshot log.

Chronological order everywhere is ``(match_date, match_id)`` so two matches
on the same day still have a stable order.
"""
from datetime import date
from typing import Optional, List, Tuple

from sqlalchemy.orm import Session
from sqlalchemy import func

from squadtrack.models import Player, Match, MatchStatRecord, PlayerAttributeSnapshot, RATING_FIELDS
from squadtrack.repositories.base import BaseRepository

MatchKey = Tuple[date, str]


class PlayerRepository(BaseRepository[Player]):
    """Repository for the roster projection."""

    def __init__(self, db: Session):
        super().__init__(Player, db)

    def find_by_team(self, team_id: str) -> List[Player]:
        return self.db.query(Player).filter(Player.team_id == team_id).order_by(Player.name).all()


class StatsRepository(BaseRepository[MatchStatRecord]):
    """Repository for per-(match, player) stat records."""

    def __init__(self, db: Session):
        super().__init__(MatchStatRecord, db)

    def find_for(self, player_id: str, match_id: str) -> Optional[MatchStatRecord]:
        return self.where_first(
            MatchStatRecord.player_id == player_id,
            MatchStatRecord.match_id == match_id,
        )

    def find_by_match(self, match_id: str) -> List[MatchStatRecord]:
        return self.db.query(MatchStatRecord).filter(
            MatchStatRecord.match_id == match_id
        ).order_by(MatchStatRecord.created_at).all()

    def find_player_records(self, player_id: str) -> List[Tuple[MatchStatRecord, Match]]:
        """Every record of the player with its match, in chronological match order."""
        return self.db.query(MatchStatRecord, Match).join(
            Match, Match.id == MatchStatRecord.match_id
        ).filter(
            MatchStatRecord.player_id == player_id
        ).order_by(Match.match_date, Match.id).all()


class SnapshotRepository(BaseRepository[PlayerAttributeSnapshot]):
    """
    Append-only access to the growth log.

    There is no update or delete here; the model refuses both at flush time.
    """

    def __init__(self, db: Session):
        super().__init__(PlayerAttributeSnapshot, db)

    def append(
        self,
        player_id: str,
        attributes: dict,
        match_id: Optional[str] = None,
        match_date: Optional[date] = None,
        opponent: Optional[str] = None,
    ) -> PlayerAttributeSnapshot:
        """Insert the next revision of the (player, match) snapshot."""
        criterion = [PlayerAttributeSnapshot.player_id == player_id]
        if match_id is None:
            criterion.append(PlayerAttributeSnapshot.match_id.is_(None))
        else:
            criterion.append(PlayerAttributeSnapshot.match_id == match_id)
        current = self.db.query(func.max(PlayerAttributeSnapshot.revision)).filter(*criterion).scalar()

        snapshot = PlayerAttributeSnapshot(
            player_id=player_id,
            match_id=match_id,
            revision=(current or 0) + 1,
            match_date=match_date,
            opponent=opponent,
            **{field: attributes[field] for field in RATING_FIELDS},
        )
        self.db.add(snapshot)
        self.db.flush()
        return snapshot

    def find_initial(self, player_id: str) -> Optional[PlayerAttributeSnapshot]:
        return self.db.query(PlayerAttributeSnapshot).filter(
            PlayerAttributeSnapshot.player_id == player_id,
            PlayerAttributeSnapshot.match_id.is_(None),
        ).order_by(PlayerAttributeSnapshot.revision).first()

    def find_for_match(self, player_id: str, match_id: str) -> List[PlayerAttributeSnapshot]:
        """Every revision for one match, oldest first."""
        return self.db.query(PlayerAttributeSnapshot).filter(
            PlayerAttributeSnapshot.player_id == player_id,
            PlayerAttributeSnapshot.match_id == match_id,
        ).order_by(PlayerAttributeSnapshot.revision).all()

    def effective_by_match(self, player_id: str) -> List[PlayerAttributeSnapshot]:
        """
        Highest-revision snapshot per match, initial snapshot excluded.

        Ordered by the snapshot's own ``(match_date, match_id)``; callers that
        need the live match date re-key the result themselves.
        """
        latest = {}
        rows = self.db.query(PlayerAttributeSnapshot).filter(
            PlayerAttributeSnapshot.player_id == player_id,
            PlayerAttributeSnapshot.match_id.isnot(None),
        ).all()
        for snapshot in rows:
            held = latest.get(snapshot.match_id)
            if held is None or snapshot.revision > held.revision:
                latest[snapshot.match_id] = snapshot
        return sorted(latest.values(), key=lambda s: (s.match_date or date.min, s.match_id))

    def count_for_player(self, player_id: str) -> int:
        return self.count(PlayerAttributeSnapshot.player_id == player_id)
