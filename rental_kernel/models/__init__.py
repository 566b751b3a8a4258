"""ORM models. Importing this package registers every table on Base.metadata."""

from rental_kernel.models.reservation import ReservationModel
from rental_kernel.models.transaction import TransactionModel

__all__ = ["ReservationModel", "TransactionModel"]
