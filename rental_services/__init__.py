"""
Module: rental_services
Responsibility:
    Orchestration over the pure engines and the kernel repositories.
    ``ReconciliationService`` is the public facade; ``run_with_conflict_retry``
    is the caller-side helper for optimistic-concurrency conflicts.
"""

from rental_services.reconciliation_service import ReconciliationService, ReservationStatement
from rental_services.retry import DEFAULT_MAX_ATTEMPTS, run_with_conflict_retry

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "ReconciliationService",
    "ReservationStatement",
    "run_with_conflict_retry",
]
