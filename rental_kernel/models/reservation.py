"""
Module: rental_kernel.models.reservation
Responsibility: ORM persistence for reservations.  Each row stores the
    monetary figures (integer minor units plus one currency code), both status
    axes, audit stamps and the optimistic-concurrency version.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ (for DTO conversion).  MUST NOT import from services/ or outer
    layers.

Invariants enforced:
    - ``code`` is unique (business reference shown to clients).
    - No ``total`` column: total is always ``subtotal - discount`` and is
      derived by the domain object.
    - ``version`` starts at 1 and is only advanced by the repository's
      compare-and-swap UPDATE.

Failure modes:
    - IntegrityError on a duplicate ``code`` (mapped to
      DuplicateReservationCodeError by the repository).
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import Base, as_utc
from rental_kernel.domain.reservation import PaymentStatus, Reservation, ReservationStatus
from rental_kernel.domain.values import Money


class ReservationModel(Base):
    """
    Persistent storage for reservations.

    Contract:
        Mirrors ``rental_kernel.domain.reservation.Reservation`` field for
        field; conversion goes through ``to_dto`` / ``from_dto``.
    Guarantees:
        - Money columns share ``currency``.
        - Status columns store the enum values.
    """

    __tablename__ = "reservations"

    __table_args__ = (
        Index("idx_reservation_status", "status"),
        Index("idx_reservation_event_date", "event_date"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    client_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    subtotal_minor: Mapped[int] = mapped_column(nullable=False)
    discount_minor: Mapped[int] = mapped_column(nullable=False, default=0)
    deposit_minor: Mapped[int] = mapped_column(nullable=False, default=0)
    deposit_returned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)

    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    scheduled_return_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_return_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    approved_by_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    def to_dto(self) -> Reservation:
        """Convert the row to the frozen domain object."""
        return Reservation(
            id=self.id,
            code=self.code,
            client_ref=self.client_ref,
            event_date=self.event_date,
            subtotal=Money.from_minor(self.subtotal_minor, self.currency),
            discount=Money.from_minor(self.discount_minor, self.currency),
            deposit=Money.from_minor(self.deposit_minor, self.currency),
            deposit_returned=self.deposit_returned,
            status=ReservationStatus(self.status),
            payment_status=PaymentStatus(self.payment_status),
            delivery_date=self.delivery_date,
            scheduled_return_date=self.scheduled_return_date,
            actual_return_date=self.actual_return_date,
            approved_by_ref=self.approved_by_ref,
            approved_at=as_utc(self.approved_at),
            cancelled_by_ref=self.cancelled_by_ref,
            cancellation_reason=self.cancellation_reason,
            created_at=as_utc(self.created_at),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, reservation: Reservation) -> ReservationModel:
        """Build a new row from a domain object (used on insert only)."""
        return cls(id=reservation.id, **cls.column_values(reservation))

    @staticmethod
    def column_values(reservation: Reservation) -> dict:
        """Mutable column values of ``reservation`` (everything but id)."""
        return {
            "code": reservation.code,
            "client_ref": reservation.client_ref,
            "event_date": reservation.event_date,
            "currency": reservation.currency,
            "subtotal_minor": reservation.subtotal.minor_units,
            "discount_minor": reservation.discount.minor_units,
            "deposit_minor": reservation.deposit.minor_units,
            "deposit_returned": reservation.deposit_returned,
            "status": reservation.status.value,
            "payment_status": reservation.payment_status.value,
            "delivery_date": reservation.delivery_date,
            "scheduled_return_date": reservation.scheduled_return_date,
            "actual_return_date": reservation.actual_return_date,
            "approved_by_ref": reservation.approved_by_ref,
            "approved_at": reservation.approved_at,
            "cancelled_by_ref": reservation.cancelled_by_ref,
            "cancellation_reason": reservation.cancellation_reason,
            "created_at": reservation.created_at,
            "version": reservation.version,
        }

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.code}: {self.status}/{self.payment_status} "
            f"v{self.version}>"
        )
