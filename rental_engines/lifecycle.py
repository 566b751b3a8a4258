"""
Module: rental_engines.lifecycle
Responsibility:
    Reservation state machine: derive the payment status from a
    PaymentSummary, validate and apply fulfillment transitions, and validate
    and apply new ledger entries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Declares no transition table of its own; it evaluates
    ``rental_kernel.domain.workflow.RESERVATION_WORKFLOW``.

Invariants enforced:
    - Status and payment status change together: every successful
      operation returns ONE new Reservation whose ``payment_status`` has been
      recomputed from the ledger.  There is no intermediate state.
    - Terminal states (Returned, Cancelled) reject every status transition
      but still accept ledger entries (a cancelled reservation accepts
      refunds only).
    - Exceptional paths (delivering below the required payment, cancelling
      after delivery) require an explicit ``override=True``.
    - A cancelled reservation reports ``payment_status == Cancelled``
      regardless of its historical figures.

Failure modes:
    - InvalidTransitionError: target not reachable, or override-only path
      without override.
    - PaymentRequiredError: delivery below the minimum payment status.
    - InvalidAmountError (and subclasses): non-positive amount, refund above
      net paid, deposit return above deposit held.
    - TerminalReservationError: non-refund entry on a cancelled reservation.
    - TransactionNotFoundError / InvalidReversalError /
      TransactionAlreadyReversedError: bad compensating entry.
    - CurrencyMismatchError / TransactionOwnershipError from the ledger.

Usage:
    from rental_engines.lifecycle import ReservationStateMachine

    machine = ReservationStateMachine()
    confirmed = machine.transition(reservation, ReservationStatus.CONFIRMED, summary)
    result = machine.record_transaction(confirmed, ledger, payment)
    result.reservation.payment_status   # PaymentStatus.PARTIAL
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from rental_engines.ledger import PaymentSummary, summarize, validate_entry
from rental_engines.tracer import traced_engine
from rental_kernel.domain.reservation import PaymentStatus, Reservation, ReservationStatus
from rental_kernel.domain.transaction import Transaction, TransactionKind
from rental_kernel.domain.workflow import PAYMENT_RECEIVED, RESERVATION_WORKFLOW, Workflow
from rental_kernel.exceptions import (
    DepositReturnExceededError,
    InvalidAmountError,
    InvalidReversalError,
    InvalidTransitionError,
    PaymentRequiredError,
    RefundExceedsPaidError,
    TerminalReservationError,
    TransactionAlreadyReversedError,
    TransactionNotFoundError,
)

_PAYMENT_RANK = {
    PaymentStatus.PENDING: 0,
    PaymentStatus.PARTIAL: 1,
    PaymentStatus.PAID: 2,
}


def derive_payment_status(
    summary: PaymentSummary,
    status: ReservationStatus = ReservationStatus.REQUESTED,
) -> PaymentStatus:
    """
    Payment status as a pure function of the ledger summary.

    A cancelled reservation is always ``Cancelled``.  A zero total is
    ``Paid``; a net paid amount at or below zero is ``Pending``.
    """
    if status == ReservationStatus.CANCELLED:
        return PaymentStatus.CANCELLED
    if summary.total.is_zero:
        return PaymentStatus.PAID
    if not summary.total_paid.is_positive:
        return PaymentStatus.PENDING
    if summary.outstanding_balance.is_zero:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


@dataclass(frozen=True)
class LedgerPostingResult:
    """Outcome of ``record_transaction``: the new state, summary and entry."""

    reservation: Reservation
    summary: PaymentSummary
    transaction: Transaction


class ReservationStateMachine:
    """
    Evaluate reservation transitions and ledger postings.

    Contract:
        Pure -- no I/O, no clock access.  Timestamps for stamped fields
        (approval, return) are passed in by the caller.
    Guarantees:
        - Every returned Reservation has a freshly derived payment_status.
        - Inputs are never mutated.
    Non-goals:
        - Does not persist anything or check versions; the repository
          collaborator performs the compare-and-swap.
    """

    def __init__(
        self,
        minimum_delivery_status: PaymentStatus = PaymentStatus.PAID,
        workflow: Workflow = RESERVATION_WORKFLOW,
    ):
        """
        Args:
            minimum_delivery_status: Lowest payment status at which goods may
                be delivered without an override.  ``Paid`` (default) or
                ``Partial``.
            workflow: Fulfillment workflow definition.
        """
        minimum_delivery_status = PaymentStatus(minimum_delivery_status)
        if minimum_delivery_status not in (PaymentStatus.PARTIAL, PaymentStatus.PAID):
            raise ValueError(
                "minimum_delivery_status must be Partial or Paid, "
                f"got {minimum_delivery_status.value}"
            )
        self.minimum_delivery_status = minimum_delivery_status
        self.workflow = workflow

    # =========================================================================
    # Transition table queries
    # =========================================================================

    def allowed_targets(
        self,
        status: ReservationStatus,
        include_override: bool = False,
    ) -> frozenset[ReservationStatus]:
        """Statuses reachable from ``status`` in one step."""
        return frozenset(
            ReservationStatus(t.to_state)
            for t in self.workflow.transitions
            if t.from_state == ReservationStatus(status).value
            and (include_override or not t.requires_override)
        )

    def is_transition_allowed(
        self,
        from_status: ReservationStatus,
        to_status: ReservationStatus,
        override: bool = False,
    ) -> bool:
        """Whether the table permits the move (payment guard not evaluated)."""
        t = self.workflow.find(ReservationStatus(from_status).value, ReservationStatus(to_status).value)
        return t is not None and (override or not t.requires_override)

    def meets_delivery_requirement(self, payment_status: PaymentStatus) -> bool:
        """Whether ``payment_status`` is enough to release goods."""
        rank = _PAYMENT_RANK.get(payment_status)
        return rank is not None and rank >= _PAYMENT_RANK[self.minimum_delivery_status]

    def open(self, reservation: Reservation) -> Reservation:
        """A newly created reservation with payment_status derived from its empty ledger."""
        summary = summarize(reservation, ())
        return replace(
            reservation,
            payment_status=derive_payment_status(summary, reservation.status),
        )

    def requires_override(
        self,
        reservation: Reservation,
        target: ReservationStatus,
        summary: PaymentSummary,
    ) -> bool:
        """
        Whether moving to ``target`` needs an administrative override.

        True for override-only edges and for delivery below the required
        payment.  Undeclared moves return False; ``transition`` rejects them.
        """
        declared = self.workflow.find(reservation.status.value, ReservationStatus(target).value)
        if declared is None:
            return False
        if declared.requires_override:
            return True
        if declared.guard == PAYMENT_RECEIVED:
            payment_status = derive_payment_status(summary, reservation.status)
            return not self.meets_delivery_requirement(payment_status)
        return False

    # =========================================================================
    # Fulfillment transitions
    # =========================================================================

    @traced_engine("lifecycle.transition", "1.0", fingerprint_fields=("override",))
    def transition(
        self,
        reservation: Reservation,
        target: ReservationStatus,
        summary: PaymentSummary,
        *,
        override: bool = False,
        actor_ref: str | None = None,
        reason: str | None = None,
        at: datetime | None = None,
    ) -> Reservation:
        """
        Move ``reservation`` to ``target``.

        Args:
            reservation: Current state.
            target: Requested fulfillment status.
            summary: Ledger summary for ``reservation`` (same snapshot).
            override: Explicit administrative override for delivering below
                the required payment or cancelling after delivery.
            actor_ref: Who performs the change (stamped on confirm/cancel).
            reason: Cancellation reason.
            at: Business timestamp of the change (stamped on confirm/return).

        Returns:
            A new Reservation with ``status`` and ``payment_status`` updated.
        """
        target = ReservationStatus(target)
        if summary.reservation_id != reservation.id:
            raise ValueError(
                f"summary for {summary.reservation_id} used with reservation {reservation.id}"
            )

        current = reservation.status
        declared = self.workflow.find(current.value, target.value)
        if declared is None:
            raise InvalidTransitionError(str(reservation.id), current.value, target.value)
        if declared.requires_override and not override:
            raise InvalidTransitionError(
                str(reservation.id), current.value, target.value, requires_override=True
            )

        if declared.guard == PAYMENT_RECEIVED and not override:
            payment_status = derive_payment_status(summary, current)
            if not self.meets_delivery_requirement(payment_status):
                raise PaymentRequiredError(
                    str(reservation.id),
                    payment_status.value,
                    self.minimum_delivery_status.value,
                )

        changes: dict = {}
        if target == ReservationStatus.CONFIRMED:
            changes["approved_by_ref"] = actor_ref
            changes["approved_at"] = at
        elif target == ReservationStatus.RETURNED and at is not None:
            changes["actual_return_date"] = at.date()
        elif target == ReservationStatus.CANCELLED:
            changes["cancelled_by_ref"] = actor_ref
            changes["cancellation_reason"] = reason

        return replace(
            reservation,
            status=target,
            payment_status=derive_payment_status(summary, target),
            **changes,
        )

    # =========================================================================
    # Ledger postings
    # =========================================================================

    @traced_engine("lifecycle.record_transaction", "1.0")
    def record_transaction(
        self,
        reservation: Reservation,
        transactions: Sequence[Transaction],
        transaction: Transaction,
    ) -> LedgerPostingResult:
        """
        Validate a new ledger entry and compute the resulting state.

        Args:
            reservation: Current state.
            transactions: The existing ledger (same snapshot).
            transaction: The entry to append.

        Returns:
            LedgerPostingResult with the updated reservation and summary.
            Persisting the entry is the caller's job.
        """
        if not transaction.amount.is_positive:
            raise InvalidAmountError(str(transaction.amount))
        validate_entry(reservation, transaction)

        if reservation.is_cancelled and transaction.kind != TransactionKind.REFUND:
            raise TerminalReservationError(
                str(reservation.id), reservation.status.value, transaction.kind.value
            )

        if transaction.reverses_id is not None:
            self._check_reversal(transactions, transaction)

        before = summarize(reservation, transactions)
        if transaction.kind == TransactionKind.REFUND and transaction.amount > before.total_paid:
            raise RefundExceedsPaidError(str(transaction.amount), str(before.total_paid))
        if (
            transaction.kind == TransactionKind.DEPOSIT_RETURN
            and transaction.amount > before.deposit_outstanding
        ):
            raise DepositReturnExceededError(
                str(transaction.amount), str(before.deposit_outstanding)
            )

        after = summarize(reservation, (*transactions, transaction))
        updated = replace(
            reservation,
            payment_status=derive_payment_status(after, reservation.status),
            deposit_returned=reservation.deposit_returned or after.deposit_fully_returned,
        )
        return LedgerPostingResult(reservation=updated, summary=after, transaction=transaction)

    @staticmethod
    def _check_reversal(transactions: Sequence[Transaction], transaction: Transaction) -> None:
        original = next((t for t in transactions if t.id == transaction.reverses_id), None)
        if original is None:
            raise TransactionNotFoundError(str(transaction.reverses_id))
        if original.kind != TransactionKind.PAYMENT or transaction.kind != TransactionKind.REFUND:
            raise InvalidReversalError(str(original.id), original.kind.value)
        existing = find_reversal(transactions, original.id)
        if existing is not None:
            raise TransactionAlreadyReversedError(str(original.id), str(existing.id))


def find_reversal(transactions: Sequence[Transaction], transaction_id) -> Transaction | None:
    """The compensating entry recorded for ``transaction_id``, if any."""
    return next((t for t in transactions if t.reverses_id == transaction_id), None)
