"""Read-only query selectors."""

from rental_kernel.selectors.base import BaseSelector
from rental_kernel.selectors.reservation_selector import ReservationSelector

__all__ = ["BaseSelector", "ReservationSelector"]
