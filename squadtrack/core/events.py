"""
Invalidation events.

After a successful mutation the API layer publishes a
``TeamDataInvalidated`` event keyed by team id; clients (websocket
gateways, caches) subscribe and refetch. Handlers run synchronously in the
publisher's thread and a failing handler never fails the request.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Callable, Optional

from squadtrack.utils.timezone import utcnow

logger = logging.getLogger(__name__)

ALL_TEAMS = "*"


@dataclass(frozen=True)
class TeamDataInvalidated:
    team_id: str
    entity: str  # season, match, lineup, match_stats, reflection
    entity_id: str
    occurred_at: datetime = field(default_factory=utcnow)


Handler = Callable[[TeamDataInvalidated], None]


class EventBus:
    """In-process pub/sub keyed by team id."""

    def __init__(self):
        self._lock = Lock()
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, handler: Handler, team_id: Optional[str] = None) -> Callable[[], None]:
        """
        Register ``handler`` for one team (or every team when ``team_id`` is None).

        Returns:
            A callable that removes the subscription.
        """
        key = str(team_id) if team_id is not None else ALL_TEAMS
        with self._lock:
            self._handlers.setdefault(key, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(key, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def publish(self, event: TeamDataInvalidated) -> int:
        """Deliver ``event``; returns the number of handlers that ran successfully."""
        with self._lock:
            handlers = list(self._handlers.get(str(event.team_id), [])) + list(self._handlers.get(ALL_TEAMS, []))

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Invalidation handler failed",
                    extra={"team_id": event.team_id, "entity": event.entity, "entity_id": event.entity_id},
                )
        return delivered

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()


event_bus = EventBus()


def publish_invalidation(team_id: str, entity: str, entity_id: str) -> None:
    event_bus.publish(TeamDataInvalidated(team_id=str(team_id), entity=entity, entity_id=str(entity_id)))
