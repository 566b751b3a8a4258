"""
Module: rental_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    ``rental_services``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import rental_kernel/domain, rental_kernel/exceptions and
    sibling engine modules.  MUST NOT import rental_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates and timestamps are passed in by callers.
    - Integer minor units for all monetary amounts; floats are rejected at
      the Money boundary.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``rental_engines.tracer``), emitting RENTAL_ENGINE_TRACE records.

Usage:
    from rental_engines import summarize, ReservationStateMachine, build_alert_set
"""

from rental_engines.expiry import (
    MAINTENANCE_UPCOMING_DAYS,
    UPCOMING_DAYS,
    URGENT_DAYS,
    AlertSet,
    LotAlert,
    LotAlertLevel,
    LotStatistics,
    MaintenanceAlert,
    MaintenanceAlertLevel,
    MaintenanceStatistics,
    build_alert_set,
    classify_lot,
    classify_maintenance,
    days_until,
    lot_statistics,
    maintenance_statistics,
)
from rental_engines.ledger import PaymentSummary, percentage_of, summarize, validate_entry
from rental_engines.lifecycle import (
    LedgerPostingResult,
    ReservationStateMachine,
    derive_payment_status,
    find_reversal,
)
from rental_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "AlertSet",
    "LedgerPostingResult",
    "LotAlert",
    "LotAlertLevel",
    "LotStatistics",
    "MAINTENANCE_UPCOMING_DAYS",
    "MaintenanceAlert",
    "MaintenanceAlertLevel",
    "MaintenanceStatistics",
    "PaymentSummary",
    "ReservationStateMachine",
    "UPCOMING_DAYS",
    "URGENT_DAYS",
    "build_alert_set",
    "classify_lot",
    "classify_maintenance",
    "compute_input_fingerprint",
    "days_until",
    "derive_payment_status",
    "find_reversal",
    "lot_statistics",
    "maintenance_statistics",
    "percentage_of",
    "summarize",
    "traced_engine",
    "validate_entry",
]
