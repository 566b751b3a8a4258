"""
Inventory inputs for expiry alerting: stock lots and scheduled maintenance.

Both records are owned and mutated by external collaborators; the kernel
only reads them.  Construction validates the quantity bounds of a lot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from rental_kernel.exceptions import InvalidLotError


class MaintenanceStatus(str, Enum):
    """Lifecycle of a maintenance task."""

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class Lot:
    """A dated batch of stocked product.

    Guarantees: ``0 <= current_quantity <= initial_quantity``.
    """

    id: UUID | str
    product_ref: str
    initial_quantity: int
    current_quantity: int
    expiration_date: date | datetime | None = None
    lot_number: str | None = None

    def __post_init__(self) -> None:
        if self.initial_quantity < 0:
            raise InvalidLotError(str(self.id), "initial_quantity cannot be negative")
        if self.current_quantity < 0:
            raise InvalidLotError(str(self.id), "current_quantity cannot be negative")
        if self.current_quantity > self.initial_quantity:
            raise InvalidLotError(
                str(self.id),
                f"current_quantity {self.current_quantity} exceeds "
                f"initial_quantity {self.initial_quantity}",
            )

    @property
    def is_depleted(self) -> bool:
        return self.current_quantity == 0


@dataclass(frozen=True)
class MaintenanceTask:
    """Scheduled maintenance for a fixed asset."""

    id: UUID | str
    asset_ref: str
    status: MaintenanceStatus = MaintenanceStatus.PENDING
    scheduled_date: date | datetime | None = None
    completed_date: date | datetime | None = None
    kind: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, MaintenanceStatus):
            object.__setattr__(self, "status", MaintenanceStatus(self.status))
