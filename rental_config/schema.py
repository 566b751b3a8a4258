"""
RentalConfig schema.

Frozen runtime configuration produced by ``rental_config.loader`` from a YAML
file.  Business thresholds (expiry alert windows) are code constants in
``rental_engines.expiry`` and are deliberately absent here.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger defaults; ``default_currency`` is an ISO 4217 code."""

    default_currency: str = "COP"


@dataclass(frozen=True)
class LifecycleConfig:
    """State machine policy; ``minimum_delivery_status`` is Paid or Partial."""

    minimum_delivery_status: str = "Paid"


@dataclass(frozen=True)
class RetryConfig:
    max_conflict_attempts: int = 3


@dataclass(frozen=True)
class RentalConfig:
    """The complete runtime configuration."""

    config_id: str
    version: int
    database: DatabaseConfig
    logging: LoggingConfig
    ledger: LedgerConfig
    lifecycle: LifecycleConfig
    retry: RetryConfig
    checksum: str
