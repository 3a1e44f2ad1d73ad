"""
Remote Call Resilience.

The hosted store is reached through a circuit breaker wrapping a retry
loop (see SupabaseClient.request). This module provides the breaker
factory and the two hooks that log what the breaker and the retry loop
are doing, tagged with a `resilience_event` field.
"""

from datetime import timedelta
from typing import Any

import aiobreaker

from modules.client.core.logging import get_logger

logger = get_logger(__name__)

_BREAKER_EVENTS = {
    "open": "circuit_breaker_opened",
    "half-open": "circuit_breaker_half_open",
    "closed": "circuit_breaker_closed",
}


class ResilienceLogger(aiobreaker.CircuitBreakerListener):
    """Logs breaker state changes and recorded failures for one dependency."""

    def __init__(self, dependency: str) -> None:
        self.dependency = dependency

    def state_change(self, cb: aiobreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        state = str(new_state).lower()
        fields = {
            "resilience_event": _BREAKER_EVENTS.get(state, f"circuit_breaker_{state}"),
            "dependency": self.dependency,
            "failure_count": cb.fail_counter,
        }
        message = f"Circuit breaker {self.dependency}: {old_state} -> {new_state}"
        if state == "open":
            logger.error(message, extra=fields)
        else:
            logger.info(message, extra=fields)

    def failure(self, cb: aiobreaker.CircuitBreaker, exception: Exception) -> None:
        logger.warning(
            f"Circuit breaker {self.dependency}: failure recorded",
            extra={
                "resilience_event": "circuit_breaker_failure",
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
                "error": str(exception),
            },
        )


def log_retry(retry_state: Any) -> None:
    """tenacity `before_sleep` hook: log the attempt that is about to be retried."""
    outcome = retry_state.outcome
    started, finished = retry_state.start_time, retry_state.outcome_timestamp

    logger.warning(
        f"Retrying remote call (attempt {retry_state.attempt_number})",
        extra={
            "resilience_event": "retry_attempt",
            "dependency": getattr(retry_state.fn, "__name__", "unknown"),
            "attempt": retry_state.attempt_number,
            "duration_ms": round((finished - started) * 1000) if started and finished else None,
            "error": str(outcome.exception()) if outcome and outcome.failed else None,
        },
    )


def create_circuit_breaker(
    dependency: str,
    fail_max: int = 5,
    timeout_duration: int = 30,
) -> aiobreaker.CircuitBreaker:
    """
    Build a breaker for a remote dependency.

    Args:
        dependency: Name used in log records
        fail_max: Consecutive failures that open the breaker
        timeout_duration: Seconds the breaker stays open before a trial call
    """
    return aiobreaker.CircuitBreaker(
        fail_max=fail_max,
        timeout_duration=timedelta(seconds=timeout_duration),
        listeners=[ResilienceLogger(dependency)],
    )
