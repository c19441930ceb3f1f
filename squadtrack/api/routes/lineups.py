"""
Lineup routes.

Choosing a formation creates the match's lineup; switching formation
clears every slot. Slot edits return the full slot map so clients never
hold a stale board.
"""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from squadtrack.core.context import RequestContext, get_request_context
from squadtrack.core.database import get_db
from squadtrack.core.events import publish_invalidation
from squadtrack.models import Lineup
from squadtrack.services import formations
from squadtrack.services.lineup_service import LineupService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lineups", tags=["lineups"])


class SelectFormationRequest(BaseModel):
    formation: str = Field(..., description="One of GET /lineups/formations")


class AssignSlotRequest(BaseModel):
    player_id: str


def lineup_to_dict(service: LineupService, lineup: Lineup) -> dict:
    """Convert Lineup model to dictionary with its full slot map."""
    slots = service.slot_map(lineup)
    return {
        "id": lineup.id,
        "match_id": lineup.match_id,
        "team_id": lineup.team_id,
        "formation": lineup.formation,
        "starting": {code: pid for code, pid in slots.items() if not formations.is_bench_slot(code)},
        "bench": {code: pid for code, pid in slots.items() if formations.is_bench_slot(code)},
    }


@router.get("/formations")
async def list_formations():
    return {"formations": LineupService.list_formations()}


@router.put("/match/{match_id}")
def select_formation(
    match_id: str,
    request: SelectFormationRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    """Create the lineup or change its formation (clears all assignments)."""
    service = LineupService(db)
    lineup = service.select_formation(match_id, request.formation, ctx=ctx)
    publish_invalidation(lineup.team_id, "lineup", lineup.id)
    return lineup_to_dict(service, lineup)


@router.get("/match/{match_id}")
async def get_match_lineup(match_id: str, db: Session = Depends(get_db)):
    service = LineupService(db)
    lineup = service.get_lineup_for_match(match_id)
    if lineup is None:
        return {"match_id": match_id, "lineup": None}
    return {"match_id": match_id, "lineup": lineup_to_dict(service, lineup)}


@router.put("/{lineup_id}/slots/{slot_code}")
def assign_slot(
    lineup_id: str,
    slot_code: str,
    request: AssignSlotRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    service = LineupService(db)
    service.assign_player(lineup_id, slot_code, request.player_id, ctx=ctx)
    lineup = service.get_lineup(lineup_id)
    publish_invalidation(lineup.team_id, "lineup", lineup.id)
    return lineup_to_dict(service, lineup)


@router.delete("/{lineup_id}/slots/{slot_code}")
def unassign_slot(
    lineup_id: str,
    slot_code: str,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    service = LineupService(db)
    service.unassign_slot(lineup_id, slot_code, ctx=ctx)
    lineup = service.get_lineup(lineup_id)
    publish_invalidation(lineup.team_id, "lineup", lineup.id)
    return lineup_to_dict(service, lineup)
