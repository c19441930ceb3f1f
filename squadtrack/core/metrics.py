"""
Prometheus metrics for the SquadTrack API.

HTTP request metrics come from prometheus-fastapi-instrumentator (see
``squadtrack.main``); this module defines the domain counters:
- stat submissions and snapshots appended
- reflection unlocks
- lineup assignments rejected by kind
- AI suggestion generation outcomes and circuit breaker state
"""
from prometheus_client import Counter, Gauge

# Stats pipeline
stats_submissions_total = Counter(
    "squadtrack_stats_submissions_total",
    "Match stat submissions processed",
    ["outcome"]  # created, updated, rejected
)

snapshots_appended_total = Counter(
    "squadtrack_snapshots_appended_total",
    "Growth snapshots appended",
    ["reason"]  # submission, recalculation, initial
)

# Reflection gate
reflection_unlocks_total = Counter(
    "squadtrack_reflection_unlocks_total",
    "Reflections that crossed the unlock threshold"
)

# Lineups
lineup_assignments_rejected_total = Counter(
    "squadtrack_lineup_assignments_rejected_total",
    "Slot assignments rejected",
    ["reason"]  # duplicate_player, slot_conflict
)

formation_resets_total = Counter(
    "squadtrack_formation_resets_total",
    "Formation changes that wiped existing assignments"
)

# AI suggestion generator
ai_suggestion_requests_total = Counter(
    "squadtrack_ai_suggestion_requests_total",
    "AI suggestion generation attempts",
    ["outcome"]  # remote, fallback, skipped
)

circuit_breaker_state = Gauge(
    "squadtrack_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["service"]
)

_BREAKER_STATE_VALUES = {"closed": 0, "open": 1, "half-open": 2, "half_open": 2}


def record_stats_submission(outcome: str) -> None:
    stats_submissions_total.labels(outcome=outcome).inc()


def record_snapshot(reason: str, count: int = 1) -> None:
    if count > 0:
        snapshots_appended_total.labels(reason=reason).inc(count)


def record_reflection_unlock() -> None:
    reflection_unlocks_total.inc()


def record_lineup_rejection(reason: str) -> None:
    lineup_assignments_rejected_total.labels(reason=reason).inc()


def record_formation_reset() -> None:
    formation_resets_total.inc()


def record_ai_suggestion(outcome: str) -> None:
    ai_suggestion_requests_total.labels(outcome=outcome).inc()


def update_breaker_state(service: str, state: str) -> None:
    circuit_breaker_state.labels(service=service).set(_BREAKER_STATE_VALUES.get(state, 0))
