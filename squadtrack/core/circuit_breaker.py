"""
Circuit breaker for the external AI suggestion generator.

Uses the pybreaker library. After ``fail_max`` consecutive failures the
breaker opens and calls fail fast for ``reset_timeout`` seconds; the caller
then falls back to locally generated suggestions.

States:
- closed: requests pass through normally
- open: requests fail immediately with CircuitBreakerError
- half-open: one trial request decides whether to close again
"""
from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

from squadtrack.core import metrics
from squadtrack.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FAIL_MAX = 5  # Failures before opening the circuit
DEFAULT_RESET_TIMEOUT = 60  # Seconds before a trial request is let through


class _MetricsListener(CircuitBreakerListener):
    """Mirror breaker state changes into the Prometheus gauge."""

    def state_change(self, cb, old_state, new_state):
        old_name = getattr(old_state, "name", str(old_state))
        new_name = getattr(new_state, "name", str(new_state))
        metrics.update_breaker_state(cb.name, new_name)
        logger.warning(f"Circuit breaker '{cb.name}' changed state: {old_name} -> {new_name}")


ai_suggestions_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="ai_suggestions",
    listeners=[_MetricsListener()],
)


def get_breaker_state(breaker: CircuitBreaker = ai_suggestions_breaker) -> str:
    """Current state name: 'closed', 'open' or 'half-open'."""
    return breaker.current_state


def reset_breaker(breaker: CircuitBreaker = ai_suggestions_breaker) -> None:
    """Force the breaker closed (tests, or after a known recovery)."""
    breaker.close()
    logger.warning(f"Circuit breaker '{breaker.name}' manually reset to CLOSED state")


__all__ = [
    "CircuitBreakerError",
    "ai_suggestions_breaker",
    "get_breaker_state",
    "reset_breaker",
]
