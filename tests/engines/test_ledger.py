"""
Tests for the ledger engine (PaymentSummary).

Covers:
- Empty ledger and partial payment figures
- Refunds netting against payments; overpayment reporting
- Deposit tracking independent of the rental total
- Percentage rounding/clamping and the unclamped ratio
- Ownership, currency and amount validation of stored entries
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from rental_engines.ledger import percentage_of, summarize
from rental_kernel.domain.transaction import TransactionKind
from rental_kernel.domain.values import Money
from rental_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidAmountError,
    TransactionOwnershipError,
)
from tests.conftest import cop, make_reservation, make_transaction


class TestSummaryFigures:
    """Tests for the derived monetary figures."""

    def test_no_transactions(self):
        """500,000 COP with nothing paid is fully outstanding."""
        reservation = make_reservation(subtotal="500000")

        summary = summarize(reservation, [])

        assert summary.total == cop("500000")
        assert summary.total_paid.is_zero
        assert summary.outstanding_balance == cop("500000")
        assert summary.percentage_paid == Decimal("0.0")
        assert summary.paid_ratio == Decimal("0")
        assert summary.transaction_count == 0

    def test_partial_payment(self):
        """A 200,000 payment on 500,000 leaves 300,000 and reads 40.0%."""
        reservation = make_reservation(subtotal="500000")
        payment = make_transaction(reservation, amount="200000")

        summary = summarize(reservation, [payment])

        assert summary.total_payments == cop("200000")
        assert summary.outstanding_balance == cop("300000")
        assert summary.percentage_paid == Decimal("40.0")
        assert not summary.is_settled

    def test_discount_reduces_total(self):
        reservation = make_reservation(subtotal="600000", discount="100000")
        payment = make_transaction(reservation, amount="500000")

        summary = summarize(reservation, [payment])

        assert summary.is_settled
        assert summary.percentage_paid == Decimal("100.0")

    def test_refund_nets_against_payments(self):
        reservation = make_reservation(subtotal="500000")
        ledger = [
            make_transaction(reservation, amount="300000"),
            make_transaction(reservation, amount="50000", kind=TransactionKind.REFUND),
        ]

        summary = summarize(reservation, ledger)

        assert summary.total_refunds == cop("50000")
        assert summary.total_paid == cop("250000")
        assert summary.outstanding_balance == cop("250000")

    def test_overpayment_reported_not_hidden(self):
        reservation = make_reservation(subtotal="500000")
        payment = make_transaction(reservation, amount="550000")

        summary = summarize(reservation, [payment])

        assert summary.outstanding_balance.is_zero
        assert summary.overpayment == cop("50000")
        assert summary.is_overpaid
        assert summary.percentage_paid == Decimal("100.0")
        assert summary.paid_ratio == Decimal("1.1")

    def test_zero_total(self):
        reservation = make_reservation(subtotal="100000", discount="100000")

        summary = summarize(reservation, [])

        assert summary.is_settled
        assert summary.percentage_paid == Decimal("100.0")
        assert summary.paid_ratio is None

    def test_order_does_not_matter(self):
        reservation = make_reservation(subtotal="500000")
        ledger = [
            make_transaction(reservation, amount="100000"),
            make_transaction(reservation, amount="30000", kind=TransactionKind.REFUND),
            make_transaction(reservation, amount="250000"),
        ]

        assert summarize(reservation, ledger) == summarize(reservation, list(reversed(ledger)))


class TestDeposit:
    def test_deposit_is_not_part_of_total(self):
        reservation = make_reservation(subtotal="500000", deposit="100000")
        payment = make_transaction(reservation, amount="500000")

        summary = summarize(reservation, [payment])

        assert summary.is_settled
        assert summary.deposit == cop("100000")
        assert summary.deposit_outstanding == cop("100000")
        assert not summary.deposit_fully_returned

    def test_deposit_return_does_not_affect_paid(self):
        reservation = make_reservation(subtotal="500000", deposit="100000")
        ledger = [
            make_transaction(reservation, amount="500000"),
            make_transaction(reservation, amount="100000", kind=TransactionKind.DEPOSIT_RETURN),
        ]

        summary = summarize(reservation, ledger)

        assert summary.total_paid == cop("500000")
        assert summary.deposit_returned_amount == cop("100000")
        assert summary.deposit_outstanding.is_zero
        assert summary.deposit_fully_returned

    def test_zero_deposit_is_never_fully_returned(self):
        summary = summarize(make_reservation(deposit="0"), [])

        assert not summary.deposit_fully_returned


class TestPercentage:
    def test_rounds_half_up_to_one_decimal(self):
        """1/3 = 33.333...% -> 33.3; 2/3 = 66.666...% -> 66.7."""
        total = cop("3")

        assert percentage_of(cop("1"), total)[0] == Decimal("33.3")
        assert percentage_of(cop("2"), total)[0] == Decimal("66.7")

    def test_half_rounds_up(self):
        """1/16 = 6.25% -> 6.3."""
        assert percentage_of(cop("1"), cop("16"))[0] == Decimal("6.3")

    def test_negative_paid_clamped_to_zero(self):
        pct, ratio = percentage_of(cop("-10"), cop("100"))

        assert pct == Decimal("0.0")
        assert ratio == Decimal("-0.1")


class TestEntryValidation:
    def test_foreign_entry_rejected(self):
        reservation = make_reservation()
        other = make_reservation()

        with pytest.raises(TransactionOwnershipError):
            summarize(reservation, [make_transaction(other)])

    def test_currency_mismatch_rejected(self):
        reservation = make_reservation()

        with pytest.raises(CurrencyMismatchError):
            summarize(reservation, [make_transaction(reservation, currency="USD")])

    def test_non_positive_amount_rejected(self):
        reservation = make_reservation()
        entry = make_transaction(reservation, amount="0")

        with pytest.raises(InvalidAmountError):
            summarize(reservation, [entry])

    def test_inputs_not_mutated(self):
        reservation = make_reservation()
        ledger = [make_transaction(reservation, id=uuid4())]
        snapshot = list(ledger)

        summarize(reservation, ledger)

        assert ledger == snapshot

    def test_currency_code_exposed(self):
        summary = summarize(make_reservation(currency="USD"), [])

        assert summary.currency == "USD"
        assert summary.total == Money.of("500000", "USD")
