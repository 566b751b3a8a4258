"""
SqlReservationRepository -- SQLAlchemy implementation of ReservationRepository.

Responsibility:
    Load and save reservations and append ledger entries inside the
    caller's session, enforcing optimistic concurrency with a single
    conditional UPDATE.

Architecture position:
    Kernel > Services -- imperative shell.  Reads go through
    ``ReservationSelector``; writes flush, never commit.

Invariants enforced:
    - Compare-and-swap: ``UPDATE reservations SET ..., version = :expected + 1
      WHERE id = :id AND version = :expected``.  A row count other than one
      means another writer got there first (ConflictError).
    - ``code`` is never rewritten; saving a reservation under a different
      code raises InvalidReservationError.
    - Ledger rows are only ever INSERTed; each takes the next per-reservation
      ``position``.  Two writers racing for the same position collide on the
      unique constraint and the loser receives ConflictError.

Failure modes:
    - ReservationNotFoundError: unknown reservation id.
    - DuplicateReservationCodeError: ``code`` already in use.
    - ConflictError: stale version or concurrent ledger append.  The session
      must be rolled back by its owner after this.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from rental_kernel.domain.repository import ReservationRepository
from rental_kernel.domain.reservation import Reservation
from rental_kernel.domain.transaction import Transaction
from rental_kernel.exceptions import (
    ConflictError,
    DuplicateReservationCodeError,
    InvalidReservationError,
    ReservationNotFoundError,
)
from rental_kernel.logging_config import get_logger
from rental_kernel.models.reservation import ReservationModel
from rental_kernel.models.transaction import TransactionModel
from rental_kernel.selectors.reservation_selector import ReservationSelector
from rental_kernel.services.base import BaseService

logger = get_logger("services.reservation_repository")


class SqlReservationRepository(BaseService[ReservationModel], ReservationRepository):
    """
    Reservation persistence over a caller-owned SQLAlchemy session.

    Contract:
        Flush-only.  Commit or roll back with ``session_scope`` (or the
        session's owner) after the facade call returns.
    """

    def __init__(self, session):
        super().__init__(session)
        self.selector = ReservationSelector(session)

    def load_reservation(self, reservation_id: UUID) -> Reservation:
        reservation = self.selector.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(str(reservation_id))
        return reservation

    def load_transactions(self, reservation_id: UUID) -> Sequence[Transaction]:
        return self.selector.transactions_for(reservation_id)

    def add_reservation(self, reservation: Reservation) -> Reservation:
        if self.selector.get_by_code(reservation.code) is not None:
            raise DuplicateReservationCodeError(reservation.code)
        self.session.add(ReservationModel.from_dto(reservation))
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateReservationCodeError(reservation.code) from exc
        return reservation

    def save_reservation(self, reservation: Reservation, expected_version: int) -> Reservation:
        values = ReservationModel.column_values(reservation)
        values.pop("code")
        values["version"] = expected_version + 1

        result = self.session.execute(
            update(ReservationModel)
            .where(ReservationModel.id == reservation.id)
            .where(ReservationModel.code == reservation.code)
            .where(ReservationModel.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            stored = self.selector.get(reservation.id)
            if stored is None:
                raise ReservationNotFoundError(str(reservation.id))
            if stored.code != reservation.code:
                raise InvalidReservationError(
                    stored.code, f"code cannot change after creation (got {reservation.code})"
                )
            logger.warning(
                "reservation_version_conflict",
                extra={
                    "reservation_id": str(reservation.id),
                    "expected_version": expected_version,
                },
            )
            raise ConflictError("Reservation", str(reservation.id), expected_version)

        return replace(reservation, version=expected_version + 1)

    def append_transaction(self, transaction: Transaction) -> Transaction:
        position = self.selector.next_position(transaction.reservation_id)
        self.session.add(TransactionModel.from_dto(transaction, position))
        try:
            self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "ledger_append_conflict",
                extra={
                    "reservation_id": str(transaction.reservation_id),
                    "position": position,
                },
            )
            raise ConflictError(
                "ReservationLedger", str(transaction.reservation_id), position - 1
            ) from exc
        return transaction
