"""
rental_services.reconciliation_service -- Reservation payment reconciliation facade.

Responsibility:
    Public surface of the reservation subsystem.  Loads a reservation and
    its ledger through the repository collaborator, delegates every
    calculation and validation to the pure engines, and persists the
    result (reservation + new ledger entry) in one version-guarded call.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes ``rental_engines.ledger``, ``rental_engines.lifecycle`` and
    ``rental_engines.expiry`` with a ``ReservationRepository`` (kernel I/O)
    and a ``Clock``.

Invariants enforced:
    - No durable state on the facade: each call works on the snapshot it
      loaded, so one instance may serve concurrent requests.
    - Every mutation is guarded by the version it loaded; a concurrent
      writer surfaces as ConflictError and nothing is persisted.
    - Ledger entries are never edited or deleted; ``reverse_transaction``
      records a compensating Refund instead.

Failure modes:
    - ReservationNotFoundError: unknown reservation id.
    - DuplicateReservationCodeError: ``open_reservation`` with a used code.
    - Everything the engines raise (InvalidAmountError and subclasses,
      CurrencyMismatchError, InvalidTransitionError, PaymentRequiredError,
      TerminalReservationError, reversal errors), unchanged.
    - ConflictError: stale version; reload and retry (see
      ``rental_services.retry.run_with_conflict_retry``).

Audit relevance:
    Each completed operation is logged (``reservation_opened``,
    ``payment_applied``, ``transaction_reversed``, ``deposit_returned``,
    ``status_changed``) with the reservation id bound in LogContext.
    Override transitions additionally log ``status_override_used``.

Usage:
    from rental_services.reconciliation_service import ReconciliationService

    service = ReconciliationService(repository, SystemClock())
    summary = service.apply_payment(reservation.id, TransactionInput(
        kind=TransactionKind.PAYMENT,
        amount=Money.of("200000", "COP"),
        method=PaymentMethod.NEQUI,
        recorded_by_ref="cashier-7",
    ))
    service.change_status(reservation.id, ReservationStatus.CONFIRMED, actor_ref="admin-1")
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from rental_engines.expiry import AlertSet, build_alert_set
from rental_engines.ledger import PaymentSummary, summarize
from rental_engines.lifecycle import ReservationStateMachine, find_reversal
from rental_kernel.domain.clock import Clock
from rental_kernel.domain.inventory import Lot, MaintenanceTask
from rental_kernel.domain.repository import ReservationRepository
from rental_kernel.domain.reservation import Reservation, ReservationStatus
from rental_kernel.domain.transaction import (
    PaymentMethod,
    Transaction,
    TransactionInput,
    TransactionKind,
)
from rental_kernel.domain.values import Money
from rental_kernel.exceptions import TransactionNotFoundError
from rental_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.reconciliation")


@dataclass(frozen=True)
class ReservationStatement:
    """A reservation with its summary and full ledger, oldest entry first."""

    reservation: Reservation
    summary: PaymentSummary
    transactions: tuple[Transaction, ...]

    def reversal_of(self, transaction_id: UUID) -> Transaction | None:
        """The compensating entry for ``transaction_id``, if it was reversed."""
        return find_reversal(self.transactions, transaction_id)


class ReconciliationService:
    """
    Facade over the ledger, state machine and expiry engines.

    Contract:
        Every public method loads a fresh snapshot from the repository.
        Mutating methods persist through ``commit_posting`` or
        ``save_reservation`` with the loaded version.
    Non-goals:
        - Does NOT retry on ConflictError; wrap calls in
          ``run_with_conflict_retry`` when that is wanted.
        - Does NOT commit database transactions; the repository's session
          owner does.
    """

    def __init__(
        self,
        repository: ReservationRepository,
        clock: Clock,
        state_machine: ReservationStateMachine | None = None,
    ):
        """
        Args:
            repository: Persistence collaborator.
            clock: Source of ``now()`` for stamps and ``today()`` for alerts.
            state_machine: Lifecycle policy; defaults to delivery requiring
                ``Paid``.
        """
        self.repository = repository
        self.clock = clock
        self.state_machine = state_machine or ReservationStateMachine()

    # =========================================================================
    # Creation and queries
    # =========================================================================

    def open_reservation(
        self,
        *,
        code: str,
        client_ref: str,
        event_date: date,
        subtotal: Money,
        discount: Money | None = None,
        deposit: Money | None = None,
        delivery_date: date | None = None,
        scheduled_return_date: date | None = None,
        reservation_id: UUID | None = None,
    ) -> Reservation:
        """
        Create a reservation in Requested at version 1.

        The opening payment status is derived from the empty ledger, so a
        zero total opens as Paid and anything else as Pending.
        """
        reservation = Reservation.open(
            code=code,
            client_ref=client_ref,
            event_date=event_date,
            subtotal=subtotal,
            discount=discount,
            deposit=deposit,
            delivery_date=delivery_date,
            scheduled_return_date=scheduled_return_date,
            created_at=self.clock.now(),
            reservation_id=reservation_id,
        )
        stored = self.repository.add_reservation(self.state_machine.open(reservation))
        with LogContext.bind(reservation_id=str(stored.id)):
            logger.info("reservation_opened", extra={
                "code": stored.code,
                "total_minor": stored.total.minor_units,
                "deposit_minor": stored.deposit.minor_units,
                "currency": stored.currency,
                "payment_status": stored.payment_status.value,
            })
        return stored

    def get_summary(self, reservation_id: UUID) -> PaymentSummary:
        """Current PaymentSummary of a reservation."""
        reservation = self.repository.load_reservation(reservation_id)
        return summarize(reservation, self.repository.load_transactions(reservation_id))

    def get_statement(self, reservation_id: UUID) -> ReservationStatement:
        """Reservation, summary and ledger from one snapshot."""
        reservation = self.repository.load_reservation(reservation_id)
        transactions = tuple(self.repository.load_transactions(reservation_id))
        return ReservationStatement(
            reservation=reservation,
            summary=summarize(reservation, transactions),
            transactions=transactions,
        )

    # =========================================================================
    # Ledger postings
    # =========================================================================

    def apply_payment(
        self,
        reservation_id: UUID,
        transaction_input: TransactionInput,
    ) -> PaymentSummary:
        """
        Record a ledger entry (payment, refund or deposit return).

        Args:
            reservation_id: Target reservation.
            transaction_input: Caller-supplied entry fields; id and
                ``recorded_at`` are assigned here.

        Returns:
            The PaymentSummary after the entry.
        """
        return self._post(reservation_id, transaction_input, "payment_applied")

    def reverse_transaction(
        self,
        reservation_id: UUID,
        transaction_id: UUID,
        actor_ref: str,
        reason: str | None = None,
    ) -> PaymentSummary:
        """
        Compensate a recorded payment with a Refund of the same amount.

        Raises:
            TransactionNotFoundError: No such entry on this reservation.
            InvalidReversalError: The entry is not a Payment.
            TransactionAlreadyReversedError: A compensating entry exists.
        """
        self.repository.load_reservation(reservation_id)
        transactions = self.repository.load_transactions(reservation_id)
        original = next((t for t in transactions if t.id == transaction_id), None)
        if original is None:
            raise TransactionNotFoundError(str(transaction_id))

        compensation = TransactionInput(
            kind=TransactionKind.REFUND,
            amount=original.amount,
            method=original.method,
            recorded_by_ref=actor_ref,
            external_reference=original.external_reference,
            notes=reason,
            reverses_id=original.id,
        )
        return self._post(reservation_id, compensation, "transaction_reversed")

    def return_deposit(
        self,
        reservation_id: UUID,
        method: PaymentMethod | str,
        actor_ref: str,
        amount: Money | None = None,
        external_reference: str | None = None,
    ) -> PaymentSummary:
        """
        Record the return of the security deposit.

        ``amount`` defaults to the deposit still held.
        """
        if amount is None:
            amount = self.get_summary(reservation_id).deposit_outstanding
        entry = TransactionInput(
            kind=TransactionKind.DEPOSIT_RETURN,
            amount=amount,
            method=method,
            recorded_by_ref=actor_ref,
            external_reference=external_reference,
        )
        return self._post(reservation_id, entry, "deposit_returned")

    def _post(
        self,
        reservation_id: UUID,
        transaction_input: TransactionInput,
        event_name: str,
    ) -> PaymentSummary:
        t0 = time.monotonic()
        with LogContext.bind(
            reservation_id=str(reservation_id),
            actor_id=transaction_input.recorded_by_ref,
        ):
            reservation = self.repository.load_reservation(reservation_id)
            transactions = self.repository.load_transactions(reservation_id)
            transaction = transaction_input.to_transaction(
                reservation_id=reservation.id,
                recorded_at=self.clock.now(),
            )

            result = self.state_machine.record_transaction(reservation, transactions, transaction)
            saved = self.repository.commit_posting(
                result.reservation, reservation.version, transaction
            )

            summary = result.summary
            logger.info(event_name, extra={
                "transaction_id": str(transaction.id),
                "kind": transaction.kind.value,
                "amount_minor": transaction.amount.minor_units,
                "currency": summary.currency,
                "payment_status": saved.payment_status.value,
                "outstanding_minor": summary.outstanding_balance.minor_units,
                "version": saved.version,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            })
            return summary

    # =========================================================================
    # Fulfillment
    # =========================================================================

    def change_status(
        self,
        reservation_id: UUID,
        target: ReservationStatus,
        override: bool = False,
        actor_ref: str | None = None,
        reason: str | None = None,
    ) -> Reservation:
        """
        Move a reservation along its fulfillment workflow.

        Args:
            reservation_id: Target reservation.
            target: Requested status.
            override: Explicit administrative override (deliver below the
                required payment, cancel after delivery).
            actor_ref: Who performs the change.
            reason: Cancellation or override reason.

        Returns:
            The saved Reservation (version advanced by one).
        """
        with LogContext.bind(reservation_id=str(reservation_id), actor_id=actor_ref):
            reservation = self.repository.load_reservation(reservation_id)
            summary = summarize(reservation, self.repository.load_transactions(reservation_id))
            override_applied = override and self.state_machine.requires_override(
                reservation, target, summary
            )

            updated = self.state_machine.transition(
                reservation,
                target,
                summary,
                override=override,
                actor_ref=actor_ref,
                reason=reason,
                at=self.clock.now(),
            )
            saved = self.repository.save_reservation(updated, reservation.version)

            if override_applied:
                logger.warning("status_override_used", extra={
                    "from_status": reservation.status.value,
                    "to_status": saved.status.value,
                    "payment_status": reservation.payment_status.value,
                    "reason": reason,
                })
            logger.info("status_changed", extra={
                "from_status": reservation.status.value,
                "to_status": saved.status.value,
                "payment_status": saved.payment_status.value,
                "version": saved.version,
            })
            return saved

    # =========================================================================
    # Alerts
    # =========================================================================

    def get_alerts(
        self,
        lots: Iterable[Lot],
        tasks: Iterable[MaintenanceTask],
        today: date | None = None,
    ) -> AlertSet:
        """Expiry and maintenance alerts as of ``today`` (defaults to the clock)."""
        return build_alert_set(lots, tasks, today or self.clock.today())
