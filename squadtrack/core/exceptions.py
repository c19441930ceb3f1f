"""
Domain errors raised by the core services.

Services raise these; routes let them propagate and the handler registered
in ``squadtrack.main`` renders them as::

    {"error": "<error_code>", "message": "...", "details": {...}}

Every error carries enough detail for the caller to fix its input without
guessing (the valid date range, the valid slot codes, the slot a player
already occupies, ...).
"""
from datetime import date
from typing import Any, Optional


class SquadTrackError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    error_code: str = "bad_request"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(SquadTrackError):
    """Malformed input, rejected before anything is persisted."""

    status_code = 422
    error_code = "validation_error"

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message, {"errors": errors or []})
        self.errors = errors or []


class DateOutOfBoundsError(SquadTrackError):
    """A match date falls outside its season."""

    status_code = 422
    error_code = "date_out_of_bounds"

    def __init__(self, match_date: date, valid_start: date, valid_end: date, season_id: Optional[str] = None):
        super().__init__(
            f"Match date {match_date.isoformat()} is outside the season "
            f"({valid_start.isoformat()} to {valid_end.isoformat()})",
            {
                "match_date": match_date.isoformat(),
                "valid_start": valid_start.isoformat(),
                "valid_end": valid_end.isoformat(),
                "season_id": season_id,
            },
        )
        self.match_date = match_date
        self.valid_start = valid_start
        self.valid_end = valid_end


class SlotConflictError(SquadTrackError):
    """Slot code is not part of the lineup's formation or bench."""

    status_code = 409
    error_code = "slot_conflict"

    def __init__(self, slot_code: str, formation: str, valid_slots: list[str]):
        super().__init__(
            f"Slot '{slot_code}' does not exist in formation {formation} or on the bench",
            {"slot_code": slot_code, "formation": formation, "valid_slots": valid_slots},
        )
        self.slot_code = slot_code
        self.valid_slots = valid_slots


class DuplicatePlayerError(SquadTrackError):
    """Player already occupies another slot of the same lineup."""

    status_code = 409
    error_code = "duplicate_player"

    def __init__(self, player_id: str, occupied_slot: str, requested_slot: str):
        super().__init__(
            f"Player {player_id} already occupies slot '{occupied_slot}'; "
            f"unassign it before moving the player to '{requested_slot}'",
            {"player_id": player_id, "occupied_slot": occupied_slot, "requested_slot": requested_slot},
        )
        self.player_id = player_id
        self.occupied_slot = occupied_slot


class NotFoundError(SquadTrackError):
    """A referenced season, match, player, lineup or stat record does not exist."""

    status_code = 404
    error_code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "entity_id": str(entity_id)})
        self.entity = entity
        self.entity_id = entity_id


class ReferenceConflictError(SquadTrackError):
    """The operation would break a reference held by other records."""

    status_code = 409
    error_code = "reference_conflict"


class AccessDeniedError(SquadTrackError):
    """The request context is not allowed to touch this data."""

    status_code = 403
    error_code = "access_denied"
