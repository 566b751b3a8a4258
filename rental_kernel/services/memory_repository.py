"""
InMemoryReservationRepository -- lock-guarded ReservationRepository.

Used by tests and by callers that embed the engine without a database.
Implements the same compare-and-swap and append-only contract as the SQL
repository; ``commit_posting`` checks the version and appends under one
lock acquisition so a conflicting writer never leaves a partial posting.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import replace
from uuid import UUID

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

logger = get_logger("services.memory_repository")


class InMemoryReservationRepository(ReservationRepository):
    """Dictionary-backed repository; safe to share between threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reservations: dict[UUID, Reservation] = {}
        self._codes: set[str] = set()
        self._ledgers: dict[UUID, list[Transaction]] = {}

    def load_reservation(self, reservation_id: UUID) -> Reservation:
        with self._lock:
            try:
                return self._reservations[reservation_id]
            except KeyError:
                raise ReservationNotFoundError(str(reservation_id)) from None

    def load_transactions(self, reservation_id: UUID) -> Sequence[Transaction]:
        with self._lock:
            return tuple(self._ledgers.get(reservation_id, ()))

    def add_reservation(self, reservation: Reservation) -> Reservation:
        with self._lock:
            if reservation.code in self._codes:
                raise DuplicateReservationCodeError(reservation.code)
            self._codes.add(reservation.code)
            self._reservations[reservation.id] = reservation
            self._ledgers[reservation.id] = []
            return reservation

    def save_reservation(self, reservation: Reservation, expected_version: int) -> Reservation:
        with self._lock:
            return self._swap(reservation, expected_version)

    def append_transaction(self, transaction: Transaction) -> Transaction:
        with self._lock:
            self._append(transaction)
            return transaction

    def commit_posting(
        self,
        reservation: Reservation,
        expected_version: int,
        transaction: Transaction,
    ) -> Reservation:
        with self._lock:
            if transaction.reservation_id not in self._ledgers:
                raise ReservationNotFoundError(str(transaction.reservation_id))
            saved = self._swap(reservation, expected_version)
            self._append(transaction)
            return saved

    def _swap(self, reservation: Reservation, expected_version: int) -> Reservation:
        stored = self._reservations.get(reservation.id)
        if stored is None:
            raise ReservationNotFoundError(str(reservation.id))
        if stored.code != reservation.code:
            raise InvalidReservationError(
                stored.code, f"code cannot change after creation (got {reservation.code})"
            )
        if stored.version != expected_version:
            logger.warning(
                "reservation_version_conflict",
                extra={
                    "reservation_id": str(reservation.id),
                    "expected_version": expected_version,
                    "stored_version": stored.version,
                },
            )
            raise ConflictError("Reservation", str(reservation.id), expected_version)
        saved = replace(reservation, version=expected_version + 1)
        self._reservations[reservation.id] = saved
        return saved

    def _append(self, transaction: Transaction) -> None:
        ledger = self._ledgers.get(transaction.reservation_id)
        if ledger is None:
            raise ReservationNotFoundError(str(transaction.reservation_id))
        ledger.append(transaction)
