"""
Season routes.

Seasons bound the dates of a team's matches. A season cannot be deleted
while matches reference it.
"""
import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from squadtrack.core.context import RequestContext, get_request_context
from squadtrack.core.database import get_db
from squadtrack.core.events import publish_invalidation
from squadtrack.models import Season
from squadtrack.services.season_service import SeasonService
from squadtrack.services.temporal_validator import is_match_date_valid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/seasons", tags=["seasons"])


class CreateSeasonRequest(BaseModel):
    """Request to create a season."""
    team_id: str
    name: str = Field(..., min_length=1, max_length=100)
    start_date: date
    end_date: date
    is_active: bool = True


class SeasonStatusRequest(BaseModel):
    is_active: bool


def season_to_dict(season: Season) -> dict:
    """Convert Season model to dictionary."""
    return {
        "id": season.id,
        "team_id": season.team_id,
        "name": season.name,
        "start_date": season.start_date.isoformat(),
        "end_date": season.end_date.isoformat(),
        "is_active": season.is_active,
        "created_at": season.created_at.isoformat() if season.created_at else None,
    }


@router.post("", status_code=201)
def create_season(
    request: CreateSeasonRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    """Create a season; overlapping seasons of the same team are rejected."""
    season = SeasonService(db).create_season(
        team_id=request.team_id,
        name=request.name,
        start_date=request.start_date,
        end_date=request.end_date,
        is_active=request.is_active,
        ctx=ctx,
    )
    publish_invalidation(season.team_id, "season", season.id)
    return season_to_dict(season)


@router.get("/team/{team_id}")
async def list_team_seasons(
    team_id: str,
    active_only: bool = Query(False, description="Only return active seasons"),
    db: Session = Depends(get_db),
):
    seasons = SeasonService(db).list_seasons(team_id, active_only=active_only)
    return {"seasons": [season_to_dict(s) for s in seasons], "count": len(seasons)}


@router.get("/{season_id}")
async def get_season(season_id: str, db: Session = Depends(get_db)):
    return season_to_dict(SeasonService(db).get_season(season_id))


@router.patch("/{season_id}/status")
def set_season_status(
    season_id: str,
    request: SeasonStatusRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    season = SeasonService(db).set_active(season_id, request.is_active, ctx=ctx)
    publish_invalidation(season.team_id, "season", season.id)
    return season_to_dict(season)


@router.delete("/{season_id}", status_code=204)
def delete_season(
    season_id: str,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    service = SeasonService(db)
    team_id = service.get_season(season_id).team_id
    service.delete_season(season_id, ctx=ctx)
    publish_invalidation(team_id, "season", season_id)


@router.get("/{season_id}/validate-date")
async def validate_match_date(
    season_id: str,
    match_date: date = Query(..., description="Candidate match date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
):
    """
    Advisory check for match forms.

    The match endpoints re-validate on write; this only saves a round trip
    for the user.
    """
    season = SeasonService(db).get_season(season_id)
    return {
        "valid": is_match_date_valid(match_date, season),
        "match_date": match_date.isoformat(),
        "valid_start": season.start_date.isoformat(),
        "valid_end": season.end_date.isoformat(),
    }
