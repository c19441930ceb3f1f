"""
Match routes.

Every write re-checks the match date against its season; out-of-range
dates come back as 422 ``date_out_of_bounds`` with the valid range.
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from squadtrack.core.context import RequestContext, get_request_context
from squadtrack.core.database import get_db
from squadtrack.core.events import publish_invalidation
from squadtrack.models import Match
from squadtrack.services.match_service import MatchService, match_result

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])


class CreateMatchRequest(BaseModel):
    """Request to create a match."""
    season_id: str
    opponent: str = Field(..., min_length=1, max_length=255)
    match_date: date
    team_score: int = Field(0, ge=0)
    opponent_score: int = Field(0, ge=0)
    team_id: Optional[str] = Field(None, description="Defaults to the season's team")


class UpdateMatchRequest(BaseModel):
    """Partial update; omitted fields keep their value."""
    season_id: Optional[str] = None
    opponent: Optional[str] = Field(None, min_length=1, max_length=255)
    match_date: Optional[date] = None
    team_score: Optional[int] = Field(None, ge=0)
    opponent_score: Optional[int] = Field(None, ge=0)


def match_to_dict(match: Match) -> dict:
    """Convert Match model to dictionary."""
    return {
        "id": match.id,
        "team_id": match.team_id,
        "season_id": match.season_id,
        "opponent": match.opponent,
        "match_date": match.match_date.isoformat(),
        "team_score": match.team_score,
        "opponent_score": match.opponent_score,
        "result": match_result(match),
        "has_lineup": match.lineup is not None,
    }


@router.post("", status_code=201)
def create_match(
    request: CreateMatchRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    match = MatchService(db).create_match(
        season_id=request.season_id,
        opponent=request.opponent,
        match_date=request.match_date,
        team_score=request.team_score,
        opponent_score=request.opponent_score,
        team_id=request.team_id,
        ctx=ctx,
    )
    publish_invalidation(match.team_id, "match", match.id)
    return match_to_dict(match)


@router.get("/team/{team_id}")
async def list_team_matches(
    team_id: str,
    season_id: Optional[str] = Query(None, description="Restrict to one season"),
    db: Session = Depends(get_db),
):
    matches = MatchService(db).list_matches(team_id, season_id=season_id)
    return {"matches": [match_to_dict(m) for m in matches], "count": len(matches)}


@router.get("/{match_id}")
async def get_match(match_id: str, db: Session = Depends(get_db)):
    return match_to_dict(MatchService(db).get_match(match_id))


@router.patch("/{match_id}")
def update_match(
    match_id: str,
    request: UpdateMatchRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    match = MatchService(db).update_match(
        match_id,
        opponent=request.opponent,
        match_date=request.match_date,
        team_score=request.team_score,
        opponent_score=request.opponent_score,
        season_id=request.season_id,
        ctx=ctx,
    )
    publish_invalidation(match.team_id, "match", match.id)
    return match_to_dict(match)


@router.delete("/{match_id}", status_code=204)
def delete_match(
    match_id: str,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    """Delete a match with its lineup and stat records; growth history is kept."""
    service = MatchService(db)
    team_id = service.get_match(match_id).team_id
    service.delete_match(match_id, ctx=ctx)
    publish_invalidation(team_id, "match", match_id)
