"""
Pure domain layer.

This module contains pure value objects and contracts with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time
- I/O

All domain objects are immutable and deterministic.
"""

from rental_kernel.domain.clock import Clock, DeterministicClock, SequentialClock, SystemClock
from rental_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from rental_kernel.domain.inventory import Lot, MaintenanceStatus, MaintenanceTask
from rental_kernel.domain.repository import ReservationRepository
from rental_kernel.domain.reservation import PaymentStatus, Reservation, ReservationStatus
from rental_kernel.domain.transaction import (
    PaymentMethod,
    Transaction,
    TransactionInput,
    TransactionKind,
)
from rental_kernel.domain.values import Currency, Money
from rental_kernel.domain.workflow import RESERVATION_WORKFLOW, Guard, Transition, Workflow

__all__ = [
    "Clock",
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "DeterministicClock",
    "Guard",
    "Lot",
    "MaintenanceStatus",
    "MaintenanceTask",
    "Money",
    "PaymentMethod",
    "PaymentStatus",
    "RESERVATION_WORKFLOW",
    "Reservation",
    "ReservationRepository",
    "ReservationStatus",
    "SequentialClock",
    "SystemClock",
    "Transaction",
    "TransactionInput",
    "TransactionKind",
    "Transition",
    "Workflow",
]
