"""
Config -> Kernel bridges.

Functions that turn a RentalConfig into kernel and engine objects.  They live
here because the kernel must NEVER import rental_config.

Usage:
    config = get_active_config()
    configure_logging_from_config(config)
    init_engine_from_config(config)
    service = ReconciliationService(repository, SystemClock(), build_state_machine(config))
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from rental_config.schema import RentalConfig
from rental_engines.lifecycle import ReservationStateMachine
from rental_kernel.db.engine import init_engine_from_url
from rental_kernel.domain.reservation import PaymentStatus
from rental_kernel.logging_config import configure_logging


def build_state_machine(config: RentalConfig) -> ReservationStateMachine:
    """State machine with the configured delivery payment requirement."""
    return ReservationStateMachine(
        minimum_delivery_status=PaymentStatus(config.lifecycle.minimum_delivery_status),
    )


def init_engine_from_config(config: RentalConfig) -> Engine:
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )


def configure_logging_from_config(config: RentalConfig) -> None:
    configure_logging(level=config.logging.level)
