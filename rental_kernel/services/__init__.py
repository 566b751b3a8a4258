"""Kernel services: repository implementations over SQLAlchemy and memory."""

from rental_kernel.services.base import BaseService
from rental_kernel.services.memory_repository import InMemoryReservationRepository
from rental_kernel.services.reservation_repository import SqlReservationRepository

__all__ = ["BaseService", "InMemoryReservationRepository", "SqlReservationRepository"]
