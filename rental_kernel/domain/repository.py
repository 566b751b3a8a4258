"""
ReservationRepository -- the persistence contract the facade depends on.

Responsibility:
    Abstract collaborator through which reservations and their ledgers are
    loaded and saved.  Implementations live in ``rental_kernel.services``
    (SQLAlchemy and in-memory).

Invariants enforced (by every implementation):
    - ``save_reservation`` is a compare-and-swap on ``version``: it raises
      ConflictError when the stored version differs from
      ``expected_version``, and persists ``expected_version + 1`` otherwise.
    - The ledger is append-only: there is no update or delete operation.
    - ``load_transactions`` returns entries in recording order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from uuid import UUID

from rental_kernel.domain.reservation import Reservation
from rental_kernel.domain.transaction import Transaction


class ReservationRepository(ABC):
    """Persistence collaborator for reservations and their ledgers."""

    @abstractmethod
    def load_reservation(self, reservation_id: UUID) -> Reservation:
        """Load a reservation.

        Raises:
            ReservationNotFoundError: If no such reservation exists.
        """
        ...

    @abstractmethod
    def load_transactions(self, reservation_id: UUID) -> Sequence[Transaction]:
        """Load the reservation's ledger, oldest first."""
        ...

    @abstractmethod
    def add_reservation(self, reservation: Reservation) -> Reservation:
        """Persist a new reservation at version 1.

        Raises:
            DuplicateReservationCodeError: If ``code`` is already in use.
        """
        ...

    @abstractmethod
    def save_reservation(self, reservation: Reservation, expected_version: int) -> Reservation:
        """Compare-and-swap the reservation record.

        Returns:
            The stored reservation carrying its new version.

        Raises:
            ConflictError: If the stored version is not ``expected_version``.
            InvalidReservationError: If ``reservation.code`` differs from the
                stored code.
        """
        ...

    @abstractmethod
    def append_transaction(self, transaction: Transaction) -> Transaction:
        """Append a ledger entry. There is no update or delete counterpart."""
        ...

    def commit_posting(
        self,
        reservation: Reservation,
        expected_version: int,
        transaction: Transaction,
    ) -> Reservation:
        """Save the reservation and append its new ledger entry as one unit.

        The default saves first so a conflicting request never appends.
        Implementations with a real transaction boundary may override.
        """
        saved = self.save_reservation(reservation, expected_version)
        self.append_transaction(transaction)
        return saved
