"""
Reservation -- the rental booking record and its two status axes.

Responsibility:
    Frozen value object for a reservation: monetary figures, deposit,
    fulfillment status, cached payment status, and the optimistic-concurrency
    version marker.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - ``total`` is always ``subtotal - discount``; it is a property and is
      never stored or accepted as input.
    - ``0 <= discount <= subtotal`` and ``deposit >= 0``.
    - subtotal, discount and deposit share one currency.
    - ``code`` is non-empty.

Failure modes:
    - InvalidReservationError for negative amounts, discount > subtotal,
      empty code or version < 1.
    - CurrencyMismatchError when figures mix currencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from rental_kernel.domain.values import Money
from rental_kernel.exceptions import CurrencyMismatchError, InvalidReservationError


class ReservationStatus(str, Enum):
    """Fulfillment status of a reservation."""

    REQUESTED = "Requested"
    CONFIRMED = "Confirmed"
    DELIVERED = "Delivered"
    RETURNED = "Returned"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    """Payment status, derived from the ledger and cached on the reservation."""

    PENDING = "Pending"
    PARTIAL = "Partial"
    PAID = "Paid"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class Reservation:
    """
    A rental reservation.

    Contract:
        Immutable; every change produces a new instance (state machine
        operations use ``dataclasses.replace``).  ``payment_status`` is a
        cached projection of the ledger and is only ever written by the
        lifecycle engine.

    Guarantees:
        - ``total == subtotal - discount`` always.
        - ``deposit`` defaults to zero in the subtotal's currency.

    Non-goals:
        - Does NOT hold its transactions; the ledger is loaded separately.
    """

    id: UUID
    code: str
    client_ref: str
    event_date: date
    subtotal: Money
    discount: Money | None = None
    deposit: Money | None = None
    deposit_returned: bool = False
    status: ReservationStatus = ReservationStatus.REQUESTED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_date: date | None = None
    scheduled_return_date: date | None = None
    actual_return_date: date | None = None
    approved_by_ref: str | None = None
    approved_at: datetime | None = None
    cancelled_by_ref: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    version: int = 1

    def __post_init__(self) -> None:
        currency = self.subtotal.currency
        if self.discount is None:
            object.__setattr__(self, "discount", Money.zero(currency))
        if self.deposit is None:
            object.__setattr__(self, "deposit", Money.zero(currency))

        if not self.code or not self.code.strip():
            raise InvalidReservationError(str(self.id), "code is required")
        for value in (self.discount, self.deposit):
            if value.currency != currency:
                raise CurrencyMismatchError(currency.code, value.currency.code)
        if self.subtotal.is_negative:
            raise InvalidReservationError(self.code, "subtotal cannot be negative")
        if self.discount.is_negative:
            raise InvalidReservationError(self.code, "discount cannot be negative")
        if self.deposit.is_negative:
            raise InvalidReservationError(self.code, "deposit cannot be negative")
        if self.discount > self.subtotal:
            raise InvalidReservationError(
                self.code,
                f"discount {self.discount} exceeds subtotal {self.subtotal}",
            )
        if self.version < 1:
            raise InvalidReservationError(self.code, "version must be >= 1")

    @classmethod
    def open(
        cls,
        *,
        code: str,
        client_ref: str,
        event_date: date,
        subtotal: Money,
        discount: Money | None = None,
        deposit: Money | None = None,
        delivery_date: date | None = None,
        scheduled_return_date: date | None = None,
        created_at: datetime | None = None,
        reservation_id: UUID | None = None,
    ) -> Reservation:
        """Create a new reservation in Requested.  The facade derives its opening payment status."""
        return cls(
            id=reservation_id or uuid4(),
            code=code.strip(),
            client_ref=client_ref,
            event_date=event_date,
            subtotal=subtotal,
            discount=discount,
            deposit=deposit,
            delivery_date=delivery_date,
            scheduled_return_date=scheduled_return_date,
            created_at=created_at,
        )

    @property
    def currency(self) -> str:
        return self.subtotal.currency.code

    @property
    def total(self) -> Money:
        """Amount owed for the rental: subtotal minus discount."""
        return self.subtotal - self.discount

    @property
    def is_cancelled(self) -> bool:
        return self.status == ReservationStatus.CANCELLED
