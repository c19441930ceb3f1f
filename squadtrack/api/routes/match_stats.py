"""
Match stats routes (coach side).

POST /match-stats takes a flat body: ``player_id``, ``match_id`` and the
stat fields of ``RawMatchStats``. When the coach writes feedback and sends
no ``ai_suggestions`` of their own, suggestions are generated here, before
the submission transaction opens.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from squadtrack.core.config import settings
from squadtrack.core.context import RequestContext, get_request_context
from squadtrack.core.database import get_db
from squadtrack.core.events import publish_invalidation
from squadtrack.core.exceptions import ValidationError
from squadtrack.core.rate_limit import limiter
from squadtrack.models import MatchStatRecord
from squadtrack.repositories import PlayerRepository
from squadtrack.services.ai_suggestions import SuggestionGenerator, get_suggestion_generator
from squadtrack.services.stats_service import (
    STAT_FIELDS, RawMatchStats, StatsService, StatsSubmissionResult, parse_raw_stats,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/match-stats", tags=["match-stats"])


def review_to_dict(record: MatchStatRecord) -> dict:
    """Convert MatchStatRecord to dictionary (coach view, reflection excluded)."""
    data = {name: getattr(record, name) for name in STAT_FIELDS}
    data.update({
        "id": record.id,
        "match_id": record.match_id,
        "player_id": record.player_id,
        "feedback": record.feedback,
        "ai_suggestions": record.ai_suggestions,
        "has_reflection": bool((record.reflection or "").strip()),
        "unlocked_at": record.unlocked_at.isoformat() if record.unlocked_at else None,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    })
    return data


def submission_to_dict(result: StatsSubmissionResult) -> dict:
    return {
        "review_id": result.review_id,
        "player_id": result.player_id,
        "match_id": result.match_id,
        "created": result.created,
        "previous_attributes": result.previous_attributes,
        "new_attributes": result.new_attributes,
        "growth_delta": result.growth_delta,
        "recalculated_match_ids": result.recalculated_match_ids,
    }


def _required_id(payload: Dict[str, Any], key: str) -> str:
    value = payload.pop(key, None)
    if not value:
        raise ValidationError(f"{key} is required", [{"field": key, "message": "field required"}])
    return str(value)


def _with_suggestions(
    stats: RawMatchStats,
    position: Optional[str],
    generator: Optional[SuggestionGenerator],
) -> RawMatchStats:
    if generator is None or "ai_suggestions" in stats.model_fields_set or not (stats.feedback or "").strip():
        return stats
    text = generator.generate(stats.feedback, position, stats.numeric())
    if not text:
        return stats
    payload = stats.model_dump(exclude_unset=True)
    payload["ai_suggestions"] = text
    return RawMatchStats.model_validate(payload)


@router.post("", status_code=201)
@limiter.limit(settings.STATS_SUBMIT_RATE_LIMIT)
def submit_match_stats(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    generator: Optional[SuggestionGenerator] = Depends(get_suggestion_generator),
):
    """
    Submit or resubmit one player's stats for one match.

    Returns the ratings before and after the match plus the delta.
    """
    body = dict(payload)
    player_id = _required_id(body, "player_id")
    match_id = _required_id(body, "match_id")
    stats = parse_raw_stats(body)

    player = PlayerRepository(db).find_by_id(player_id)
    stats = _with_suggestions(stats, player.position if player else None, generator)

    result = StatsService(db).submit_match_stats(player_id, match_id, stats, ctx=ctx)
    if player is not None:
        publish_invalidation(player.team_id, "match_stats", result.review_id)
    return submission_to_dict(result)


@router.get("/match/{match_id}")
async def list_match_reviews(match_id: str, db: Session = Depends(get_db)):
    records = StatsService(db).list_match_reviews(match_id)
    return {"reviews": [review_to_dict(r) for r in records], "count": len(records)}


@router.get("/player/{player_id}/match/{match_id}")
async def get_match_stats(player_id: str, match_id: str, db: Session = Depends(get_db)):
    return review_to_dict(StatsService(db).get_match_stats(player_id, match_id))
