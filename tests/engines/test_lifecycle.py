"""
Tests for the reservation state machine.

Covers:
- Payment status derivation
- Fulfillment transitions, the delivery payment guard and overrides
- Terminal states
- Ledger posting validation: refunds, deposit returns, reversals
- Approval, return and cancellation stamps
"""

from dataclasses import replace
from datetime import date
from uuid import uuid4

import pytest

from rental_engines.ledger import summarize
from rental_engines.lifecycle import (
    ReservationStateMachine,
    derive_payment_status,
    find_reversal,
)
from rental_kernel.domain.reservation import PaymentStatus, ReservationStatus
from rental_kernel.domain.transaction import TransactionKind
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
from tests.conftest import FIXED_NOW, TEST_ACTOR, make_reservation, make_transaction

S = ReservationStatus


@pytest.fixture
def machine():
    return ReservationStateMachine()


def _in_status(status, **kwargs):
    return replace(make_reservation(**kwargs), status=status)


def _post_all(machine, reservation, entries):
    """Post entries one at a time, returning the final reservation and ledger."""
    ledger = []
    for entry in entries:
        reservation = machine.record_transaction(reservation, ledger, entry).reservation
        ledger.append(entry)
    return reservation, ledger


class TestDerivePaymentStatus:
    def test_pending_when_nothing_paid(self):
        reservation = make_reservation()

        assert derive_payment_status(summarize(reservation, [])) == PaymentStatus.PENDING

    def test_partial(self):
        reservation = make_reservation()
        summary = summarize(reservation, [make_transaction(reservation, amount="200000")])

        assert derive_payment_status(summary) == PaymentStatus.PARTIAL

    def test_paid_and_overpaid(self):
        reservation = make_reservation()
        exact = summarize(reservation, [make_transaction(reservation, amount="500000")])
        over = summarize(reservation, [make_transaction(reservation, amount="600000")])

        assert derive_payment_status(exact) == PaymentStatus.PAID
        assert derive_payment_status(over) == PaymentStatus.PAID

    def test_zero_total_is_paid(self):
        reservation = make_reservation(subtotal="1000", discount="1000")

        assert derive_payment_status(summarize(reservation, [])) == PaymentStatus.PAID

    def test_fully_refunded_is_pending(self):
        reservation = make_reservation()
        ledger = [
            make_transaction(reservation, amount="200000"),
            make_transaction(reservation, amount="200000", kind=TransactionKind.REFUND),
        ]

        assert derive_payment_status(summarize(reservation, ledger)) == PaymentStatus.PENDING

    def test_cancelled_overrides_figures(self):
        reservation = make_reservation()
        summary = summarize(reservation, [make_transaction(reservation, amount="500000")])

        assert derive_payment_status(summary, S.CANCELLED) == PaymentStatus.CANCELLED


class TestConfiguration:
    def test_minimum_delivery_status_must_be_partial_or_paid(self):
        with pytest.raises(ValueError):
            ReservationStateMachine(minimum_delivery_status=PaymentStatus.PENDING)

    def test_accepts_string_value(self):
        machine = ReservationStateMachine(minimum_delivery_status="Partial")

        assert machine.minimum_delivery_status == PaymentStatus.PARTIAL

    def test_allowed_targets(self, machine):
        assert machine.allowed_targets(S.DELIVERED) == frozenset({S.RETURNED})
        assert machine.allowed_targets(S.DELIVERED, include_override=True) == frozenset(
            {S.RETURNED, S.CANCELLED}
        )
        assert machine.allowed_targets(S.CANCELLED) == frozenset()

    def test_is_transition_allowed(self, machine):
        assert machine.is_transition_allowed(S.REQUESTED, S.CONFIRMED)
        assert not machine.is_transition_allowed(S.REQUESTED, S.DELIVERED)
        assert not machine.is_transition_allowed(S.DELIVERED, S.CANCELLED)
        assert machine.is_transition_allowed(S.DELIVERED, S.CANCELLED, override=True)


class TestOpening:
    def test_zero_total_opens_paid(self, machine):
        opened = machine.open(make_reservation(subtotal="100", discount="100"))

        assert opened.payment_status == PaymentStatus.PAID
        assert opened.payment_status == derive_payment_status(summarize(opened, []))

    def test_zero_subtotal_opens_paid(self, machine):
        assert machine.open(make_reservation(subtotal="0")).payment_status == PaymentStatus.PAID

    def test_amount_owed_opens_pending(self, machine):
        opened = machine.open(make_reservation(subtotal="500000", discount="100000"))

        assert opened.payment_status == PaymentStatus.PENDING
        assert opened.status == S.REQUESTED
        assert opened.version == 1


class TestRequiresOverride:
    def test_ordinary_edge_needs_none(self, machine):
        reservation = make_reservation()

        assert not machine.requires_override(reservation, S.CONFIRMED, summarize(reservation, []))

    def test_delivery_below_minimum_needs_override(self, machine):
        reservation = make_reservation(status=S.CONFIRMED)
        ledger = [make_transaction(reservation, "200000")]

        assert machine.requires_override(reservation, S.DELIVERED, summarize(reservation, ledger))

    def test_paid_delivery_needs_none(self, machine):
        reservation = make_reservation(status=S.CONFIRMED)
        ledger = [make_transaction(reservation, "500000")]

        assert not machine.requires_override(reservation, S.DELIVERED, summarize(reservation, ledger))

    def test_override_only_edge(self, machine):
        reservation = make_reservation(status=S.DELIVERED)

        assert machine.requires_override(reservation, S.CANCELLED, summarize(reservation, []))

    def test_undeclared_edge_is_left_to_transition(self, machine):
        reservation = make_reservation()

        assert not machine.requires_override(reservation, S.RETURNED, summarize(reservation, []))


class TestTransitions:
    """Fulfillment transitions."""

    def test_confirm_stamps_approval(self, machine):
        reservation = make_reservation()

        confirmed = machine.transition(
            reservation,
            S.CONFIRMED,
            summarize(reservation, []),
            actor_ref=TEST_ACTOR,
            at=FIXED_NOW,
        )

        assert confirmed.status == S.CONFIRMED
        assert confirmed.approved_by_ref == TEST_ACTOR
        assert confirmed.approved_at == FIXED_NOW
        assert confirmed.payment_status == PaymentStatus.PENDING
        assert reservation.status == S.REQUESTED

    def test_skipping_confirmation_is_invalid(self, machine):
        """Requested -> Delivered is not declared, even fully paid."""
        reservation = make_reservation()
        summary = summarize(reservation, [make_transaction(reservation, amount="500000")])

        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.transition(reservation, S.DELIVERED, summary)

        assert exc_info.value.from_status == "Requested"
        assert exc_info.value.to_status == "Delivered"

    def test_delivery_below_paid_requires_payment(self, machine):
        reservation = _in_status(S.CONFIRMED)
        summary = summarize(reservation, [make_transaction(reservation, amount="200000")])

        with pytest.raises(PaymentRequiredError) as exc_info:
            machine.transition(reservation, S.DELIVERED, summary)

        assert exc_info.value.payment_status == "Partial"
        assert exc_info.value.required_status == "Paid"

    def test_delivery_with_override(self, machine):
        reservation = _in_status(S.CONFIRMED)
        summary = summarize(reservation, [make_transaction(reservation, amount="200000")])

        delivered = machine.transition(reservation, S.DELIVERED, summary, override=True)

        assert delivered.status == S.DELIVERED
        assert delivered.payment_status == PaymentStatus.PARTIAL

    def test_delivery_when_paid(self, machine):
        reservation = _in_status(S.CONFIRMED)
        summary = summarize(reservation, [make_transaction(reservation, amount="500000")])

        delivered = machine.transition(reservation, S.DELIVERED, summary)

        assert delivered.payment_status == PaymentStatus.PAID

    def test_partial_minimum_allows_partial_delivery(self):
        machine = ReservationStateMachine(minimum_delivery_status=PaymentStatus.PARTIAL)
        reservation = _in_status(S.CONFIRMED)
        summary = summarize(reservation, [make_transaction(reservation, amount="1000")])

        assert machine.transition(reservation, S.DELIVERED, summary).status == S.DELIVERED

    def test_partial_minimum_still_blocks_pending(self):
        machine = ReservationStateMachine(minimum_delivery_status=PaymentStatus.PARTIAL)
        reservation = _in_status(S.CONFIRMED)

        with pytest.raises(PaymentRequiredError):
            machine.transition(reservation, S.DELIVERED, summarize(reservation, []))

    def test_return_stamps_actual_date(self, machine):
        reservation = _in_status(S.DELIVERED)

        returned = machine.transition(
            reservation, S.RETURNED, summarize(reservation, []), at=FIXED_NOW
        )

        assert returned.status == S.RETURNED
        assert returned.actual_return_date == date(2024, 6, 1)

    def test_cancel_after_delivery_requires_override(self, machine):
        reservation = _in_status(S.DELIVERED)
        summary = summarize(reservation, [])

        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.transition(reservation, S.CANCELLED, summary)

        assert exc_info.value.requires_override

    def test_cancel_after_delivery_with_override(self, machine):
        reservation = _in_status(S.DELIVERED)

        cancelled = machine.transition(
            reservation,
            S.CANCELLED,
            summarize(reservation, []),
            override=True,
            actor_ref=TEST_ACTOR,
            reason="damaged",
        )

        assert cancelled.status == S.CANCELLED
        assert cancelled.payment_status == PaymentStatus.CANCELLED
        assert cancelled.cancelled_by_ref == TEST_ACTOR
        assert cancelled.cancellation_reason == "damaged"

    @pytest.mark.parametrize("terminal", [S.RETURNED, S.CANCELLED])
    @pytest.mark.parametrize("target", list(S))
    def test_terminal_states_reject_everything(self, machine, terminal, target):
        reservation = _in_status(terminal)

        with pytest.raises(InvalidTransitionError):
            machine.transition(reservation, target, summarize(reservation, []), override=True)

    def test_summary_must_belong_to_reservation(self, machine):
        reservation = make_reservation()

        with pytest.raises(ValueError):
            machine.transition(reservation, S.CONFIRMED, summarize(make_reservation(), []))


class TestRecordTransaction:
    """Ledger postings."""

    def test_payment_updates_payment_status(self, machine):
        reservation = make_reservation()
        payment = make_transaction(reservation, amount="200000")

        result = machine.record_transaction(reservation, [], payment)

        assert result.reservation.payment_status == PaymentStatus.PARTIAL
        assert result.summary.total_paid == payment.amount
        assert result.transaction is payment
        assert reservation.payment_status == PaymentStatus.PENDING

    def test_payment_settles(self, machine):
        reservation = make_reservation()
        final, _ = _post_all(
            machine,
            reservation,
            [
                make_transaction(reservation, amount="200000"),
                make_transaction(reservation, amount="300000"),
            ],
        )

        assert final.payment_status == PaymentStatus.PAID

    def test_non_positive_amount_rejected(self, machine):
        reservation = make_reservation()

        with pytest.raises(InvalidAmountError):
            machine.record_transaction(reservation, [], make_transaction(reservation, amount="0"))
        with pytest.raises(InvalidAmountError):
            machine.record_transaction(
                reservation, [], make_transaction(reservation, amount="-5")
            )

    def test_refund_above_net_paid_rejected(self, machine):
        reservation = make_reservation()
        payment = make_transaction(reservation, amount="100000")
        refund = make_transaction(reservation, amount="100001", kind=TransactionKind.REFUND)

        with pytest.raises(RefundExceedsPaidError):
            machine.record_transaction(reservation, [payment], refund)

    def test_refund_of_full_amount_returns_to_pending(self, machine):
        reservation = make_reservation()
        final, _ = _post_all(
            machine,
            reservation,
            [
                make_transaction(reservation, amount="100000"),
                make_transaction(reservation, amount="100000", kind=TransactionKind.REFUND),
            ],
        )

        assert final.payment_status == PaymentStatus.PENDING

    def test_deposit_return_limited_to_deposit(self, machine):
        reservation = make_reservation(deposit="50000")
        entry = make_transaction(
            reservation, amount="50001", kind=TransactionKind.DEPOSIT_RETURN
        )

        with pytest.raises(DepositReturnExceededError):
            machine.record_transaction(reservation, [], entry)

    def test_deposit_return_marks_flag(self, machine):
        reservation = make_reservation(deposit="50000")
        first, ledger = _post_all(
            machine,
            reservation,
            [make_transaction(reservation, amount="20000", kind=TransactionKind.DEPOSIT_RETURN)],
        )
        assert not first.deposit_returned

        second = machine.record_transaction(
            first,
            ledger,
            make_transaction(reservation, amount="30000", kind=TransactionKind.DEPOSIT_RETURN),
        )

        assert second.reservation.deposit_returned
        assert second.summary.deposit_outstanding.is_zero

    def test_cancelled_accepts_refunds_only(self, machine):
        reservation = _in_status(S.CANCELLED, deposit="10000")
        payment = make_transaction(reservation, amount="100000")

        with pytest.raises(TerminalReservationError):
            machine.record_transaction(reservation, [], payment)
        with pytest.raises(TerminalReservationError):
            machine.record_transaction(
                reservation,
                [],
                make_transaction(reservation, amount="100", kind=TransactionKind.DEPOSIT_RETURN),
            )

        refund = make_transaction(reservation, amount="40000", kind=TransactionKind.REFUND)
        result = machine.record_transaction(reservation, [payment], refund)

        assert result.reservation.payment_status == PaymentStatus.CANCELLED
        assert result.summary.total_paid == payment.amount - refund.amount

    def test_returned_still_accepts_entries(self, machine):
        reservation = _in_status(S.RETURNED, deposit="10000")
        entry = make_transaction(reservation, amount="10000", kind=TransactionKind.DEPOSIT_RETURN)

        result = machine.record_transaction(reservation, [], entry)

        assert result.reservation.status == S.RETURNED
        assert result.reservation.deposit_returned


class TestReversals:
    def test_reversal_of_payment(self, machine):
        reservation = make_reservation()
        payment = make_transaction(reservation, amount="100000")
        reversal = make_transaction(
            reservation, amount="100000", kind=TransactionKind.REFUND, reverses_id=payment.id
        )

        result = machine.record_transaction(reservation, [payment], reversal)

        assert result.summary.total_paid.is_zero
        assert find_reversal([payment, reversal], payment.id) is reversal

    def test_reversal_target_must_exist(self, machine):
        reservation = make_reservation()
        payment = make_transaction(reservation)
        dangling = make_transaction(
            reservation, kind=TransactionKind.REFUND, reverses_id=uuid4()
        )

        with pytest.raises(TransactionNotFoundError):
            machine.record_transaction(reservation, [payment], dangling)

    def test_only_payments_can_be_reversed(self, machine):
        reservation = make_reservation()
        payment = make_transaction(reservation, amount="100000")
        refund = make_transaction(reservation, amount="10000", kind=TransactionKind.REFUND)
        reversal = make_transaction(
            reservation, amount="10000", kind=TransactionKind.REFUND, reverses_id=refund.id
        )

        with pytest.raises(InvalidReversalError):
            machine.record_transaction(reservation, [payment, refund], reversal)

    def test_reversal_must_be_a_refund(self, machine):
        reservation = make_reservation()
        payment = make_transaction(reservation, amount="100000")
        bogus = make_transaction(reservation, amount="100000", reverses_id=payment.id)

        with pytest.raises(InvalidReversalError):
            machine.record_transaction(reservation, [payment], bogus)

    def test_double_reversal_rejected(self, machine):
        reservation = make_reservation()
        payment = make_transaction(reservation, amount="100000")
        extra = make_transaction(reservation, amount="100000")
        first = make_transaction(
            reservation, amount="100000", kind=TransactionKind.REFUND, reverses_id=payment.id
        )
        second = make_transaction(
            reservation, amount="100000", kind=TransactionKind.REFUND, reverses_id=payment.id
        )

        with pytest.raises(TransactionAlreadyReversedError):
            machine.record_transaction(reservation, [payment, extra, first], second)

    def test_find_reversal_none(self):
        reservation = make_reservation()
        payment = make_transaction(reservation)

        assert find_reversal([payment], payment.id) is None
