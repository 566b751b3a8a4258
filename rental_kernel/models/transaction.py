"""
Module: rental_kernel.models.transaction
Responsibility: ORM persistence for reservation ledger entries (payments,
    refunds, deposit returns).
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Append-only: rows are never updated or deleted (ORM listeners in
      db/immutability.py raise ImmutabilityViolationError).
    - ``(reservation_id, position)`` is unique: entries are numbered per
      reservation in recording order.
    - ``reverses_id`` is unique: a payment is compensated at most once.
    - ``amount_minor`` is a positive integer in minor units.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import Base, UUIDString, as_utc
from rental_kernel.domain.transaction import Transaction, TransactionKind
from rental_kernel.domain.values import Money


class TransactionModel(Base):
    """
    Persistent storage for ledger entries.

    Non-goals:
        - Does not store running balances; summaries are always recomputed
          from the full entry list.
    """

    __tablename__ = "reservation_transactions"

    __table_args__ = (
        UniqueConstraint("reservation_id", "position", name="uq_transaction_position"),
        UniqueConstraint("reverses_id", name="uq_transaction_reverses"),
        CheckConstraint("amount_minor > 0", name="ck_transaction_amount_positive"),
        Index("idx_transaction_recorded_at", "recorded_at"),
    )

    reservation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("reservations.id"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(nullable=False)

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount_minor: Mapped[int] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    method: Mapped[str] = mapped_column(String(50), nullable=False)

    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    recorded_by_ref: Mapped[str] = mapped_column(String(100), nullable=False)

    external_reference: Mapped[str | None] = mapped_column(String(200), nullable=True)
    receipt_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    reverses_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("reservation_transactions.id"),
        nullable=True,
    )

    def to_dto(self) -> Transaction:
        return Transaction(
            id=self.id,
            reservation_id=self.reservation_id,
            kind=TransactionKind(self.kind),
            amount=Money.from_minor(self.amount_minor, self.currency),
            method=self.method,
            recorded_at=as_utc(self.recorded_at),
            recorded_by_ref=self.recorded_by_ref,
            external_reference=self.external_reference,
            receipt_url=self.receipt_url,
            notes=self.notes,
            reverses_id=self.reverses_id,
        )

    @classmethod
    def from_dto(cls, transaction: Transaction, position: int) -> TransactionModel:
        return cls(
            id=transaction.id,
            reservation_id=transaction.reservation_id,
            position=position,
            kind=transaction.kind.value,
            amount_minor=transaction.amount.minor_units,
            currency=transaction.amount.currency.code,
            method=transaction.method,
            recorded_at=transaction.recorded_at,
            recorded_by_ref=transaction.recorded_by_ref,
            external_reference=transaction.external_reference,
            receipt_url=transaction.receipt_url,
            notes=transaction.notes,
            reverses_id=transaction.reverses_id,
        )

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.id}: {self.kind} {self.amount_minor} {self.currency} "
            f"#{self.position}>"
        )
