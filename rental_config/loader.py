"""
YAML loader for RentalConfig.

Responsibility:
    Read a YAML file, apply environment overrides, validate each section and
    build the frozen ``RentalConfig``.

Key functions:
  * ``load_yaml_file`` -- reads one YAML file with ``yaml.safe_load``.
  * ``apply_env_overrides`` -- RENTAL_DATABASE_URL / RENTAL_LOG_LEVEL.
  * ``parse_config`` -- dict -> RentalConfig, validating every section.
  * ``compute_checksum`` -- deterministic SHA-256 of the effective settings,
    logged with every load so a deployment can be matched to its config.

Failure modes:
    - FileNotFoundError: missing file.
    - yaml.YAMLError: invalid YAML.
    - ValueError: unknown log level, invalid delivery status, attempts < 1,
      missing database url.
    - InvalidCurrencyError: unknown default currency.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from rental_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LifecycleConfig,
    LoggingConfig,
    RentalConfig,
    RetryConfig,
)
from rental_kernel.domain.currency import CurrencyRegistry

ENV_DATABASE_URL = "RENTAL_DATABASE_URL"
ENV_LOG_LEVEL = "RENTAL_LOG_LEVEL"

_DELIVERY_STATUSES = ("Partial", "Paid")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    result = copy.deepcopy(data)
    if environ.get(ENV_DATABASE_URL):
        result.setdefault("database", {})["url"] = environ[ENV_DATABASE_URL]
    if environ.get(ENV_LOG_LEVEL):
        result.setdefault("logging", {})["level"] = environ[ENV_LOG_LEVEL]
    return result


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    url = data.get("url")
    if not url:
        raise ValueError("database.url is required")
    return DatabaseConfig(
        url=str(url),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"logging.level: unknown level {level!r}")
    return LoggingConfig(level=level)


def parse_ledger(data: dict[str, Any]) -> LedgerConfig:
    return LedgerConfig(
        default_currency=CurrencyRegistry.validate(str(data.get("default_currency", "COP"))),
    )


def parse_lifecycle(data: dict[str, Any]) -> LifecycleConfig:
    status = str(data.get("minimum_delivery_status", "Paid"))
    if status not in _DELIVERY_STATUSES:
        raise ValueError(
            f"lifecycle.minimum_delivery_status must be one of {_DELIVERY_STATUSES}, "
            f"got {status!r}"
        )
    return LifecycleConfig(minimum_delivery_status=status)


def parse_retry(data: dict[str, Any]) -> RetryConfig:
    attempts = int(data.get("max_conflict_attempts", 3))
    if attempts < 1:
        raise ValueError("retry.max_conflict_attempts must be >= 1")
    return RetryConfig(max_conflict_attempts=attempts)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> RentalConfig:
    """Build a RentalConfig from an already-overridden dict."""
    return RentalConfig(
        config_id=str(data.get("config_id", "rental")),
        version=int(data.get("version", 1)),
        database=parse_database(data.get("database") or {}),
        logging=parse_logging(data.get("logging") or {}),
        ledger=parse_ledger(data.get("ledger") or {}),
        lifecycle=parse_lifecycle(data.get("lifecycle") or {}),
        retry=parse_retry(data.get("retry") or {}),
        checksum=compute_checksum(data),
    )
