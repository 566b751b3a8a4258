"""
Module: rental_kernel.selectors.reservation_selector
Responsibility: Read-only query access to reservations and their ledgers.
    Converts ORM rows to frozen domain objects.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - Ledger entries are returned in recording order (``position``).

Failure modes:
    - Returns None or an empty list when nothing matches (never raises on
      absence of data).
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from rental_kernel.domain.reservation import Reservation, ReservationStatus
from rental_kernel.domain.transaction import Transaction
from rental_kernel.models.reservation import ReservationModel
from rental_kernel.models.transaction import TransactionModel
from rental_kernel.selectors.base import BaseSelector


class ReservationSelector(BaseSelector[ReservationModel]):
    """Queries over reservations and reservation ledgers."""

    def get(self, reservation_id: UUID) -> Reservation | None:
        model = self.session.get(ReservationModel, reservation_id, populate_existing=True)
        return model.to_dto() if model else None

    def get_by_code(self, code: str) -> Reservation | None:
        model = self.session.execute(
            select(ReservationModel).where(ReservationModel.code == code)
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def transactions_for(self, reservation_id: UUID) -> list[Transaction]:
        """The reservation's ledger, oldest first."""
        rows = self.session.execute(
            select(TransactionModel)
            .where(TransactionModel.reservation_id == reservation_id)
            .order_by(TransactionModel.position)
        ).scalars()
        return [row.to_dto() for row in rows]

    def next_position(self, reservation_id: UUID) -> int:
        """Position the next ledger entry of ``reservation_id`` will take."""
        current = self.session.execute(
            select(func.max(TransactionModel.position)).where(
                TransactionModel.reservation_id == reservation_id
            )
        ).scalar()
        return (current or 0) + 1

    def reservations_by_status(self, status: ReservationStatus) -> list[Reservation]:
        """Reservations in ``status``, by event date then code."""
        rows = self.session.execute(
            select(ReservationModel)
            .where(ReservationModel.status == ReservationStatus(status).value)
            .order_by(ReservationModel.event_date, ReservationModel.code)
        ).scalars()
        return [row.to_dto() for row in rows]

    def transactions_recorded_between(
        self,
        start: datetime,
        end: datetime,
    ) -> list[Transaction]:
        """
        Ledger entries of every reservation recorded in ``[start, end)``.

        Ordered by recording time, then reservation and position.
        """
        rows = self.session.execute(
            select(TransactionModel)
            .where(TransactionModel.recorded_at >= start)
            .where(TransactionModel.recorded_at < end)
            .order_by(
                TransactionModel.recorded_at,
                TransactionModel.reservation_id,
                TransactionModel.position,
            )
        ).scalars()
        return [row.to_dto() for row in rows]
