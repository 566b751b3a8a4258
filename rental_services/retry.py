"""
rental_services.retry -- Caller-side retry for optimistic-concurrency conflicts.

The engines and the facade never retry: a ConflictError means the snapshot
they worked on is stale.  Callers that want to retry pass a zero-argument
operation that reloads and reapplies (for the SQL repository this means a
fresh ``session_scope`` per attempt, since the failed session must be rolled
back).

Usage:
    def pay():
        with session_scope() as session:
            service = ReconciliationService(SqlReservationRepository(session), clock)
            return service.apply_payment(reservation_id, payment)

    summary = run_with_conflict_retry(pay, max_attempts=config.retry.max_conflict_attempts)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from rental_kernel.exceptions import ConflictError
from rental_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


def run_with_conflict_retry(
    operation: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> T:
    """
    Invoke ``operation`` until it completes without ConflictError.

    Args:
        operation: Zero-argument callable that reloads state and reapplies
            the change on every call.
        max_attempts: Total attempts including the first (>= 1).

    Returns:
        Whatever ``operation`` returns.

    Raises:
        ConflictError: The last attempt also conflicted.
        ValueError: ``max_attempts`` < 1.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except ConflictError as exc:
            if attempt == max_attempts:
                logger.warning("conflict_retry_exhausted", extra={
                    "entity_type": exc.entity_type,
                    "entity_id": exc.entity_id,
                    "attempts": attempt,
                })
                raise
            logger.info("conflict_retry", extra={
                "entity_type": exc.entity_type,
                "entity_id": exc.entity_id,
                "attempt": attempt,
                "max_attempts": max_attempts,
            })
    raise AssertionError("unreachable")
