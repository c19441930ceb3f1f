"""
Feedback routes (player side).

The coach's feedback, AI suggestions and performance summary stay hidden
until the player saves a reflection long enough to unlock them.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from squadtrack.core.config import settings
from squadtrack.core.context import RequestContext, get_request_context
from squadtrack.core.database import get_db
from squadtrack.core.events import publish_invalidation
from squadtrack.services.reflection_gate import FeedbackView, ReflectionGateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["feedback"])


class ReflectionRequest(BaseModel):
    reflection: Optional[str] = ""


def feedback_to_dict(view: FeedbackView) -> dict:
    return {
        "player_id": view.player_id,
        "match_id": view.match_id,
        "opponent": view.opponent,
        "match_date": view.match_date.isoformat(),
        "team_score": view.team_score,
        "opponent_score": view.opponent_score,
        "state": view.state.value,
        "unlocked": view.is_unlocked,
        "reflection": view.reflection,
        "characters_remaining": view.characters_remaining,
        "min_reflection_length": settings.REFLECTION_MIN_LENGTH,
        "max_reflection_length": settings.REFLECTION_MAX_LENGTH,
        "feedback": view.feedback,
        "ai_suggestions": view.ai_suggestions,
        "performance": view.performance,
    }


@router.get("/player/{player_id}/match/{match_id}")
async def get_feedback(player_id: str, match_id: str, db: Session = Depends(get_db)):
    return feedback_to_dict(ReflectionGateService(db).get_feedback_view(player_id, match_id))


@router.put("/player/{player_id}/match/{match_id}/reflection")
def save_reflection(
    player_id: str,
    match_id: str,
    request: ReflectionRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    """
    Save the player's reflection.

    ``unlocked`` is true only on the save that unlocked the feedback; the
    response also carries the feedback view as the player now sees it.
    """
    service = ReflectionGateService(db)
    result = service.save_reflection(player_id, match_id, request.reflection, ctx=ctx)
    view = service.get_feedback_view(player_id, match_id)
    player = service.players.find_by_id(player_id)
    publish_invalidation(player.team_id, "reflection", f"{player_id}:{match_id}")
    return {
        "state": result.state.value,
        "unlocked": result.unlocked,
        "characters_remaining": result.characters_remaining,
        "unlocked_at": result.unlocked_at.isoformat() if result.unlocked_at else None,
        "feedback": feedback_to_dict(view),
    }
