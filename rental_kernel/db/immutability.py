"""
ORM-Level Immutability Enforcement for the reservation ledger.

===============================================================================
WHY THIS EXISTS
===============================================================================

Ledger entries are append-only.  A mistaken payment is corrected with a
compensating Refund (``reverses_id`` set), never by editing or deleting the
original row, so every figure a client was ever shown can be reconstructed.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database:

    session.flush()
         |
         v
    [before_update event] --> _check_transaction_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_transaction_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Reservations themselves are mutable (status, cached payment status, version)
and are NOT protected here; their concurrency guard is the version
compare-and-swap in the repository.

===============================================================================
USAGE
===============================================================================

    from rental_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from rental_kernel.exceptions import ImmutabilityViolationError
from rental_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_transaction_immutability(mapper, connection, target):
    """Prevent any update to a recorded ledger entry."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "Transaction",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="Transaction",
        entity_id=str(target.id),
        reason="Ledger entries are append-only; record a compensating entry instead",
    )


def _check_transaction_delete(mapper, connection, target):
    """Prevent deletion of a recorded ledger entry."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "Transaction",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="Transaction",
        entity_id=str(target.id),
        reason="Ledger entries cannot be deleted; reverse the payment instead",
    )


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def register_immutability_listeners():
    """
    Register the ledger immutability listeners.

    Idempotent: registering twice does not install duplicate listeners.
    """
    from rental_kernel.models.transaction import TransactionModel

    if not event.contains(TransactionModel, "before_update", _check_transaction_immutability):
        event.listen(TransactionModel, "before_update", _check_transaction_immutability)
    if not event.contains(TransactionModel, "before_delete", _check_transaction_delete):
        event.listen(TransactionModel, "before_delete", _check_transaction_delete)


def unregister_immutability_listeners():
    """
    Remove the ledger immutability listeners.

    WARNING: Only use this in tests.
    """
    from rental_kernel.models.transaction import TransactionModel

    _safe_remove_listener(TransactionModel, "before_update", _check_transaction_immutability)
    _safe_remove_listener(TransactionModel, "before_delete", _check_transaction_delete)
