"""
Request-scoped caller context.

Core operations receive the caller's identity explicitly instead of reading
it from process-wide state. The API layer builds one ``RequestContext`` per
request from the ``X-User-ID`` and ``X-Team-ID`` headers (authentication
happens upstream; this service trusts the gateway).
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from squadtrack.core.exceptions import AccessDeniedError


@dataclass(frozen=True)
class RequestContext:
    current_user_id: Optional[str] = None
    active_team_id: Optional[str] = None

    def ensure_team(self, team_id: str) -> None:
        """Reject writes to a team other than the caller's active team."""
        if self.active_team_id and str(team_id) != self.active_team_id:
            raise AccessDeniedError(
                f"Active team {self.active_team_id} cannot modify data of team {team_id}",
                {"active_team_id": self.active_team_id, "team_id": str(team_id)},
            )


SYSTEM_CONTEXT = RequestContext()


def get_request_context(
    x_user_id: Optional[str] = Header(None),
    x_team_id: Optional[str] = Header(None),
) -> RequestContext:
    """FastAPI dependency building the context from gateway headers."""
    return RequestContext(current_user_id=x_user_id or None, active_team_id=x_team_id or None)
