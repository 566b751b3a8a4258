"""
Module: rental_engines.ledger
Responsibility:
    Compute the authoritative PaymentSummary of a reservation from its
    append-only list of transactions.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import rental_kernel/domain and rental_kernel/exceptions.

Invariants enforced:
    - Purity: the reservation and the transaction sequence are never mutated;
      identical inputs always produce an identical summary.
    - ``outstanding_balance`` is never negative; overpayment is reported in
      ``overpayment`` instead of being clamped away.
    - ``percentage_paid`` is rounded half-up to one decimal and clamped to
      [0, 100] for display; ``paid_ratio`` keeps the unclamped value.

Failure modes:
    - CurrencyMismatchError when any entry is not in the reservation's
      currency.
    - InvalidAmountError when a stored entry has ``amount <= 0``.
    - TransactionOwnershipError when an entry belongs to another reservation.

Usage:
    from rental_engines.ledger import summarize

    summary = summarize(reservation, transactions)
    summary.outstanding_balance   # Money
    summary.percentage_paid       # Decimal("40.0")
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from rental_engines.tracer import traced_engine
from rental_kernel.domain.reservation import Reservation
from rental_kernel.domain.transaction import Transaction, TransactionKind
from rental_kernel.domain.values import Money
from rental_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidAmountError,
    TransactionOwnershipError,
)

HUNDRED = Decimal("100")
ONE_DECIMAL = Decimal("0.1")


@dataclass(frozen=True)
class PaymentSummary:
    """
    Derived monetary state of one reservation.

    Contract:
        Frozen snapshot computed by ``summarize``; never persisted as a
        source of truth.
    Guarantees:
        - ``total_paid == total_payments - total_refunds``.
        - ``outstanding_balance == max(0, total - total_paid)``.
        - ``overpayment == max(0, total_paid - total)``.
        - ``deposit_outstanding == max(0, deposit - deposit_returned_amount)``.
    """

    reservation_id: UUID
    total: Money
    total_payments: Money
    total_refunds: Money
    total_paid: Money
    outstanding_balance: Money
    overpayment: Money
    percentage_paid: Decimal
    paid_ratio: Decimal | None
    deposit: Money
    deposit_returned_amount: Money
    deposit_outstanding: Money
    transaction_count: int

    @property
    def currency(self) -> str:
        return self.total.currency.code

    @property
    def is_settled(self) -> bool:
        """Nothing left to pay (a zero total is settled)."""
        return self.outstanding_balance.is_zero

    @property
    def is_overpaid(self) -> bool:
        return self.overpayment.is_positive

    @property
    def deposit_fully_returned(self) -> bool:
        """True once a non-zero deposit has been returned in full."""
        return self.deposit.is_positive and self.deposit_outstanding.is_zero


def validate_entry(reservation: Reservation, transaction: Transaction) -> None:
    """
    Check that an entry can belong to this reservation's ledger.

    Raises:
        TransactionOwnershipError: Entry is owned by another reservation.
        CurrencyMismatchError: Entry currency differs from the reservation's.
        InvalidAmountError: Entry amount is zero or negative.
    """
    if transaction.reservation_id != reservation.id:
        raise TransactionOwnershipError(
            str(transaction.id), str(reservation.id), str(transaction.reservation_id)
        )
    if transaction.amount.currency != reservation.subtotal.currency:
        raise CurrencyMismatchError(
            reservation.subtotal.currency.code, transaction.amount.currency.code
        )
    if not transaction.amount.is_positive:
        raise InvalidAmountError(str(transaction.amount))


def percentage_of(paid: Money, total: Money) -> tuple[Decimal, Decimal | None]:
    """Display percentage (1 decimal, clamped) and the unclamped ratio."""
    if total.is_zero:
        return Decimal("100.0"), None
    ratio = paid.ratio_to(total)
    pct = (ratio * HUNDRED).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    pct = min(max(pct, Decimal("0.0")), Decimal("100.0"))
    return pct, ratio


@traced_engine("ledger", "1.0")
def summarize(reservation: Reservation, transactions: Sequence[Transaction]) -> PaymentSummary:
    """
    Compute the PaymentSummary for ``reservation`` from its ledger.

    Args:
        reservation: The reservation the ledger belongs to.
        transactions: Every recorded entry for the reservation, any order.

    Returns:
        A frozen PaymentSummary.
    """
    currency = reservation.subtotal.currency
    payments = Money.zero(currency)
    refunds = Money.zero(currency)
    deposit_returned = Money.zero(currency)

    for txn in transactions:
        validate_entry(reservation, txn)
        if txn.kind == TransactionKind.PAYMENT:
            payments = payments + txn.amount
        elif txn.kind == TransactionKind.REFUND:
            refunds = refunds + txn.amount
        else:
            deposit_returned = deposit_returned + txn.amount

    total = reservation.total
    zero = Money.zero(currency)
    total_paid = payments - refunds
    percentage, ratio = percentage_of(total_paid, total)

    return PaymentSummary(
        reservation_id=reservation.id,
        total=total,
        total_payments=payments,
        total_refunds=refunds,
        total_paid=total_paid,
        outstanding_balance=(total - total_paid).max(zero),
        overpayment=(total_paid - total).max(zero),
        percentage_paid=percentage,
        paid_ratio=ratio,
        deposit=reservation.deposit,
        deposit_returned_amount=deposit_returned,
        deposit_outstanding=(reservation.deposit - deposit_returned).max(zero),
        transaction_count=len(transactions),
    )
