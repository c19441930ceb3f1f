"""
Player growth routes.

``/growth`` returns the effective snapshot history; ``/growth/chart``
returns the same history projected to chart coordinates for a given
canvas width.
"""
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from squadtrack.core.database import get_db
from squadtrack.models import PlayerAttributeSnapshot, RATING_FIELDS
from squadtrack.services.growth_projector import ChartDimensions, project_growth_timeline
from squadtrack.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/players", tags=["growth"])


def snapshot_to_dict(snapshot: PlayerAttributeSnapshot) -> dict:
    data = {name: getattr(snapshot, name) for name in RATING_FIELDS}
    data.update({
        "id": snapshot.id,
        "match_id": snapshot.match_id,
        "revision": snapshot.revision,
        "match_date": snapshot.match_date.isoformat() if snapshot.match_date else None,
        "opponent": snapshot.opponent,
        "created_at": snapshot.created_at.isoformat() if snapshot.created_at else None,
    })
    return data


@router.get("/{player_id}/growth")
async def get_growth_history(player_id: str, db: Session = Depends(get_db)):
    growth = StatsService(db).get_growth_history(player_id)
    return {
        "player_id": growth.player.id,
        "name": growth.player.name,
        "position": growth.player.position,
        "current_attributes": growth.current_attributes,
        "growth_history": [snapshot_to_dict(s) for s in growth.history],
        "snapshot_count": growth.snapshot_count,
    }


@router.get("/{player_id}/growth/chart")
async def get_growth_chart(
    player_id: str,
    width: float = Query(360, gt=0, description="Canvas width in points"),
    height: float = Query(200, gt=0, description="Chart height in points"),
    db: Session = Depends(get_db),
):
    growth = StatsService(db).get_growth_history(player_id)
    chart = project_growth_timeline(growth.history, ChartDimensions(width=width, height=height))
    data = asdict(chart)
    for label in data["point_labels"]:
        label["match_date"] = label["match_date"].isoformat() if label["match_date"] else None
    data["player_id"] = player_id
    return data
